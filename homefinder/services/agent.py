"""
Agent service: directory reads and the admin create/update/delete workflows.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from homefinder.config import Settings, get_settings
from homefinder.repositories.agent import AgentRepository
from homefinder.models.agent import Agent
from homefinder.schemas.forms import AgentForm, UploadedFile
from homefinder.schemas.property import ListResult
from homefinder.services.media import MediaUploader
from homefinder.utils.exceptions import (
    NotFoundError,
    ValidationError,
    ConflictError,
    UploadError,
    PersistenceError,
)
from homefinder.utils.validators import ValidationUtils
import uuid
import logging

logger = logging.getLogger(__name__)

AGENTS_UNAVAILABLE_MESSAGE = "Failed to load staff list."


class AgentService:
    """Agent management with email uniqueness and transactional deletion."""

    def __init__(
        self,
        db_session: AsyncSession,
        uploader: Optional[MediaUploader] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db_session
        self.uploader = uploader
        self.settings = settings or get_settings()
        self.agent_repo = AgentRepository(db_session)

    async def list_agents(self) -> ListResult:
        """All agents by name; a data-source failure yields no agents and an advisory message."""
        try:
            return ListResult(items=await self.agent_repo.list_agents())
        except SQLAlchemyError as e:
            logger.error(f"Failed to load agents: {e}", exc_info=True)
            await self.db.rollback()
            return ListResult(error=AGENTS_UNAVAILABLE_MESSAGE)

    async def get_agent(self, agent_id: str) -> Agent:
        parsed_id = ValidationUtils.parse_uuid(agent_id)
        agent = await self.agent_repo.get_by_id(parsed_id) if parsed_id else None
        if not agent:
            raise NotFoundError("Agent", str(agent_id))
        return agent

    async def create_agent(self, form: AgentForm) -> Agent:
        """
        Create an agent.

        Raises:
            ValidationError: Missing name/email or malformed email
            ConflictError: Email already used by another agent
            UploadError: Image upload failed
        """
        values = await self._validate_form(form)
        image_url = await self._upload_image(form.image)
        values["image_url"] = image_url

        try:
            agent = await self.agent_repo.create(values)
        except IntegrityError as e:
            self._log_orphaned_upload(image_url)
            logger.warning(f"Email conflict on insert for '{values['email']}': {e}")
            raise ConflictError(f'Email "{values["email"]}" is already in use.', field="email")
        except SQLAlchemyError as e:
            self._log_orphaned_upload(image_url)
            logger.error(f"Failed to create agent '{values['email']}': {e}", exc_info=True)
            raise PersistenceError("Failed to save agent to database.")

        logger.info(f"Agent created: {agent.name} (ID: {agent.id})")
        return agent

    async def update_agent(self, agent_id: str, form: AgentForm) -> Agent:
        """
        Update an agent. The stored image is kept unless a new one is uploaded.
        """
        existing = await self.get_agent(agent_id)
        pk = existing.id
        values = await self._validate_form(form, exclude_id=pk)

        image_url = await self._upload_image(form.image)
        if image_url:
            values["image_url"] = image_url

        try:
            updated = await self.agent_repo.update(pk, values)
        except IntegrityError as e:
            self._log_orphaned_upload(image_url)
            logger.warning(f"Email conflict on update of agent {pk}: {e}")
            raise ConflictError(f'Email "{values["email"]}" is already in use.', field="email")
        except SQLAlchemyError as e:
            self._log_orphaned_upload(image_url)
            logger.error(f"Failed to update agent {pk}: {e}", exc_info=True)
            raise PersistenceError("Failed to update agent in database.")

        if updated is None:
            raise NotFoundError("Agent", str(pk))

        logger.info(f"Agent updated: {updated.name} (ID: {updated.id})")
        return updated

    async def delete_agent(self, agent_id: str) -> Dict[str, Any]:
        """
        Delete an agent and unassign their properties in one transaction.

        Returns:
            Summary with the deleted agent's id and name and the unassigned count
        """
        agent = await self.get_agent(agent_id)
        agent_pk, name = agent.id, agent.name

        try:
            unassigned = await self.agent_repo.delete_and_unassign(agent_pk)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete agent {agent_pk}: {e}", exc_info=True)
            raise PersistenceError("Failed to delete agent.")

        if unassigned is None:
            raise NotFoundError("Agent", str(agent_pk))

        logger.info(f"Agent deleted: {name} (ID: {agent_pk}); {unassigned} properties unassigned")
        return {"id": str(agent_pk), "name": name, "unassigned_count": unassigned}

    async def _validate_form(self, form: AgentForm, exclude_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
        missing = [field for field in ("name", "email") if not getattr(form, field)]
        if missing:
            raise ValidationError(
                "Name and Email are required.",
                field_errors=[ValidationUtils.field_error(field, "This field is required") for field in missing]
            )

        if not ValidationUtils.is_valid_email(form.email):
            raise ValidationError(
                "Invalid email format.",
                field_errors=[ValidationUtils.field_error("email", "Invalid email format")]
            )

        if await self.agent_repo.email_taken(form.email, exclude_id=exclude_id):
            raise ConflictError(f'Email "{form.email}" is already in use.', field="email")

        return {
            "name": form.name,
            "email": form.email,
            "phone": form.phone or None,
        }

    async def _upload_image(self, upload: Optional[UploadedFile]) -> Optional[str]:
        if upload is None or upload.is_empty:
            return None
        if self.uploader is None:
            raise UploadError("Image uploads are not available", filename=upload.filename)

        try:
            return await self.uploader.upload(upload.content, self.settings.agent_image_folder, upload.filename)
        except UploadError as e:
            logger.error(f"Agent image upload failed: {e.detail}")
            raise UploadError(f"Failed to upload image: {e.detail}", filename=upload.filename)

    def _log_orphaned_upload(self, url: Optional[str]) -> None:
        if url:
            logger.warning(f"Orphaned upload after failed write: {url}")
