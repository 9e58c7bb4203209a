"""
Property repository for listing management, search and filtering.
Translates SearchCriteria into SQLAlchemy conditions, ordering and pagination.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_, or_, func, desc, asc
from homefinder.repositories.base import BaseRepository
from homefinder.models.property import Property
from homefinder.schemas.search import SearchCriteria, Pagination
from typing import Optional, List, Tuple, Sequence
import uuid
import logging

logger = logging.getLogger(__name__)


class PropertyRepository(BaseRepository[Property]):
    """
    Repository for property records with search, featured and admin queries.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    async def get_by_slug(self, slug: str) -> Optional[Property]:
        return await self.get_by_field("slug", slug)

    async def slug_taken(self, slug: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        """
        Check whether another property already uses the slug.

        Args:
            slug: Candidate slug
            exclude_id: Property being updated, which may keep its own slug
        """
        existing = await self.get_by_slug(slug)
        if existing is None:
            return False
        return exclude_id is None or existing.id != exclude_id

    async def search_properties(self, criteria: SearchCriteria) -> Tuple[List[Property], Pagination]:
        """
        Search properties with filtering, sorting and pagination.

        The count runs first so the requested page can be clamped to the last page
        before the window query is issued.

        Args:
            criteria: Normalised search criteria

        Returns:
            Tuple of (properties on the effective page, resolved pagination)
        """
        try:
            conditions = self._build_filter_conditions(criteria)

            count_query = select(func.count(Property.id))
            query = select(Property)
            if conditions:
                count_query = count_query.where(and_(*conditions))
                query = query.where(and_(*conditions))

            count_result = await self.db.execute(count_query)
            total_count = count_result.scalar() or 0

            pagination = criteria.paginate(total_count)

            query = query.order_by(*self._build_ordering(criteria))
            query = query.offset(pagination.skip).limit(pagination.take)

            result = await self.db.execute(query)
            properties = result.scalars().all()

            logger.debug(
                f"Property search returned {len(properties)} of {total_count} results "
                f"(page {pagination.page}/{pagination.total_pages})"
            )
            return list(properties), pagination
        except Exception as e:
            logger.error(f"Failed to search properties: {e}")
            raise

    def _build_filter_conditions(self, criteria: SearchCriteria) -> List:
        """
        Build SQLAlchemy filter conditions from search criteria.
        All conditions are ANDed; the location group matches address OR title.
        """
        conditions = []

        # Location filter (case-insensitive substring on address or title)
        if criteria.location:
            conditions.append(
                or_(
                    Property.address.icontains(criteria.location, autoescape=True),
                    Property.title.icontains(criteria.location, autoescape=True),
                )
            )

        if criteria.property_type:
            conditions.append(Property.property_type == criteria.property_type)

        # Price range filters
        if criteria.min_price:
            conditions.append(Property.price >= criteria.min_price)
        if criteria.max_price:
            conditions.append(Property.price <= criteria.max_price)

        if criteria.min_beds:
            conditions.append(Property.beds >= criteria.min_beds)
        if criteria.min_baths:
            conditions.append(Property.baths >= criteria.min_baths)

        return conditions

    def _build_ordering(self, criteria: SearchCriteria) -> list:
        order_field = getattr(Property, criteria.sort_column)
        direction = desc if criteria.descending else asc
        # id breaks ties so pages never overlap
        return [direction(order_field), direction(Property.id)]

    async def get_featured_properties(self, limit: int = 4) -> List[Property]:
        """Featured properties, newest first."""
        try:
            query = (
                select(Property)
                .where(Property.is_featured.is_(True))
                .order_by(desc(Property.created_at))
                .limit(limit)
            )
            result = await self.db.execute(query)
            properties = result.scalars().all()

            logger.debug(f"Retrieved {len(properties)} featured properties")
            return list(properties)
        except Exception as e:
            logger.error(f"Failed to get featured properties: {e}")
            raise

    async def get_by_ids(self, ids: Sequence[uuid.UUID]) -> List[Property]:
        """
        Resolve a list of ids, keeping the caller's order and skipping unknown ids.
        """
        if not ids:
            return []
        try:
            result = await self.db.execute(select(Property).where(Property.id.in_(list(ids))))
            by_id = {prop.id: prop for prop in result.scalars().all()}
            return [by_id[property_id] for property_id in ids if property_id in by_id]
        except Exception as e:
            logger.error(f"Failed to get properties by ids: {e}")
            raise

    async def list_for_admin(self) -> List[Property]:
        """All properties for the back office table, newest first."""
        return await self.get_multi(skip=0, limit=10_000, order_by="-created_at")

    async def toggle_featured(self, property_id: uuid.UUID) -> Optional[Tuple[str, bool]]:
        """
        Flip is_featured with a single UPDATE ... SET is_featured = NOT is_featured.

        Returns:
            (title, new state) or None when the property does not exist
        """
        try:
            stmt = (
                update(Property)
                .where(Property.id == property_id)
                .values(is_featured=~Property.is_featured)
                .returning(Property.title, Property.is_featured)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            row = result.first()

            if row is None:
                await self.db.rollback()
                logger.debug(f"Property {property_id} not found for featured toggle")
                return None

            await self.db.commit()
            title, is_featured = row
            logger.debug(f"Toggled featured flag of property {property_id} to {is_featured}")
            return title, bool(is_featured)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to toggle featured flag of property {property_id}: {e}")
            raise
