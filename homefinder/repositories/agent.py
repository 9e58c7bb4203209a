"""
Agent repository, including the transactional delete that unassigns properties.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, asc
from homefinder.repositories.base import BaseRepository
from homefinder.models.agent import Agent
from homefinder.models.property import Property
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class AgentRepository(BaseRepository[Agent]):
    """Repository for agent records."""

    def __init__(self, db: AsyncSession):
        super().__init__(Agent, db)

    async def get_by_email(self, email: str) -> Optional[Agent]:
        return await self.get_by_field("email", email)

    async def email_taken(self, email: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        existing = await self.get_by_email(email)
        if existing is None:
            return False
        return exclude_id is None or existing.id != exclude_id

    async def list_agents(self) -> List[Agent]:
        """All agents ordered by name."""
        try:
            result = await self.db.execute(select(Agent).order_by(asc(Agent.name), asc(Agent.id)))
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to list agents: {e}")
            raise

    async def delete_and_unassign(self, agent_id: uuid.UUID) -> Optional[int]:
        """
        Unassign the agent's properties and delete the agent in one transaction.

        Steps run on the same session and commit once; any failure rolls both back.

        Args:
            agent_id: Agent to delete

        Returns:
            Number of properties unassigned, or None when the agent row was not
            found at delete time (nothing is committed in that case)
        """
        try:
            unassign = (
                update(Property)
                .where(Property.agent_id == agent_id)
                .values(agent_id=None)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(unassign)
            unassigned = result.rowcount or 0

            deleted = await self._delete_row(agent_id)
            if deleted == 0:
                await self.db.rollback()
                logger.debug(f"Agent {agent_id} not found at delete time, rolled back")
                return None

            await self.db.commit()
            logger.debug(f"Deleted agent {agent_id}, unassigned {unassigned} properties")
            return unassigned
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete agent {agent_id}: {e}")
            raise

    async def _delete_row(self, agent_id: uuid.UUID) -> int:
        """Delete the agent row inside the caller's transaction; returns affected rows."""
        result = await self.db.execute(
            delete(Agent)
            .where(Agent.id == agent_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
