"""
Property service: public reads and the admin create/update/delete workflows.
Validation, image uploads and persistence run in that order; nothing is written
when validation or the primary image upload fails.
"""

from typing import Awaitable, Optional, List, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from homefinder.config import Settings, get_settings
from homefinder.repositories.property import PropertyRepository
from homefinder.repositories.agent import AgentRepository
from homefinder.models.property import Property
from homefinder.schemas.forms import PropertyForm, UploadedFile
from homefinder.schemas.property import ListResult, SearchResult
from homefinder.schemas.search import SearchCriteria
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

REQUIRED_FIELDS = ("title", "slug", "address", "price")
# fixed routes under /properties that a detail slug could never reach
RESERVED_SLUGS = frozenset({"search", "featured", "saved"})

SEARCH_UNAVAILABLE_MESSAGE = "Could not load properties. Please try again later."
FEATURED_UNAVAILABLE_MESSAGE = "Could not load featured properties."
SAVED_UNAVAILABLE_MESSAGE = "Could not load property data."
ADMIN_LIST_UNAVAILABLE_MESSAGE = "Failed to load properties."


class PropertyService:
    """
    Property service for listings.
    Public reads degrade gracefully; admin mutations raise typed API exceptions.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        uploader: Optional[MediaUploader] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db_session
        self.uploader = uploader
        self.settings = settings or get_settings()
        self.property_repo = PropertyRepository(db_session)
        self.agent_repo = AgentRepository(db_session)

    # Public reads

    async def search_properties(self, criteria: SearchCriteria) -> SearchResult:
        """
        Run a search. A data-source failure yields an empty page plus an advisory
        message instead of an error response.
        """
        try:
            properties, pagination = await self.property_repo.search_properties(criteria)
            return SearchResult(properties=properties, pagination=pagination)
        except SQLAlchemyError as e:
            logger.error(f"Property search failed: {e}", exc_info=True)
            return SearchResult(
                properties=[],
                pagination=criteria.paginate(0),
                error=SEARCH_UNAVAILABLE_MESSAGE,
            )

    async def get_by_slug(self, slug: str) -> Property:
        property_obj = await self.property_repo.get_by_slug(slug)
        if not property_obj:
            raise NotFoundError("Property", slug)
        return property_obj

    async def get_featured(self, limit: Optional[int] = None) -> ListResult:
        return await self._listing(
            self.property_repo.get_featured_properties(limit or self.settings.featured_limit),
            FEATURED_UNAVAILABLE_MESSAGE,
        )

    async def get_saved(self, raw_ids: List[str]) -> ListResult:
        """Resolve client-side favorites; malformed and unknown ids are ignored."""
        ids = []
        for raw_id in raw_ids:
            parsed = ValidationUtils.parse_uuid(raw_id)
            if parsed is not None and parsed not in ids:
                ids.append(parsed)
        return await self._listing(self.property_repo.get_by_ids(ids), SAVED_UNAVAILABLE_MESSAGE)

    # Admin reads

    async def list_for_admin(self) -> ListResult:
        return await self._listing(self.property_repo.list_for_admin(), ADMIN_LIST_UNAVAILABLE_MESSAGE)

    async def get_for_edit(self, property_id: str) -> Property:
        return await self._get_existing(property_id)

    # Admin mutations

    async def create_property(self, form: PropertyForm) -> Property:
        """
        Create a property from an admin form.

        Raises:
            ValidationError: Missing/malformed fields or unknown agent
            ConflictError: Slug already taken
            UploadError: Primary image upload failed
            PersistenceError: The insert failed
        """
        values = await self._validate_form(form)

        image_url = await self._upload_primary(form.image)
        gallery_urls = await self._upload_gallery(form.gallery_images)

        values.update({
            "image_url": image_url,
            "gallery_images": gallery_urls,
            "is_featured": form.is_featured,
        })

        try:
            property_obj = await self.property_repo.create(values)
        except IntegrityError as e:
            self._log_orphaned_uploads([image_url] + gallery_urls)
            logger.warning(f"Slug conflict on insert for '{values['slug']}': {e}")
            raise ConflictError(f'Slug "{values["slug"]}" is already taken.', field="slug")
        except SQLAlchemyError as e:
            self._log_orphaned_uploads([image_url] + gallery_urls)
            logger.error(f"Failed to create property '{values['slug']}': {e}", exc_info=True)
            raise PersistenceError("Failed to save property to database.")

        logger.info(f"Property created: {property_obj.title} (ID: {property_obj.id})")
        return property_obj

    async def update_property(self, property_id: str, form: PropertyForm) -> Property:
        """
        Update a property from an admin form.

        Image fields are only written when they change: a new primary upload replaces
        image_url, a primary listed in images_to_delete without a replacement clears it,
        and the gallery becomes survivors followed by new uploads.
        """
        existing = await self._get_existing(property_id)
        # a failed write rolls the session back and expires `existing`
        pk = existing.id
        values = await self._validate_form(form, exclude_id=pk)

        to_delete = set(form.images_to_delete)

        new_primary = await self._upload_primary(form.image)
        if new_primary:
            values["image_url"] = new_primary
        elif existing.image_url and existing.image_url in to_delete:
            values["image_url"] = None

        current_gallery = list(existing.gallery_images or [])
        survivors = [url for url in current_gallery if url not in to_delete]
        new_gallery = await self._upload_gallery(form.gallery_images)
        if new_gallery or len(survivors) != len(current_gallery):
            values["gallery_images"] = survivors + new_gallery

        try:
            updated = await self.property_repo.update(pk, values)
        except IntegrityError as e:
            self._log_orphaned_uploads([new_primary] + new_gallery)
            logger.warning(f"Slug conflict on update of property {pk}: {e}")
            raise ConflictError(f'Slug "{values["slug"]}" is already taken.', field="slug")
        except SQLAlchemyError as e:
            self._log_orphaned_uploads([new_primary] + new_gallery)
            logger.error(f"Failed to update property {pk}: {e}", exc_info=True)
            raise PersistenceError("Failed to update property in database.")

        if updated is None:
            raise NotFoundError("Property", str(pk))

        logger.info(f"Property updated: {updated.title} (ID: {updated.id})")
        return updated

    async def delete_property(self, property_id: str) -> str:
        """
        Delete a property.

        Returns:
            Title of the deleted property
        """
        existing = await self._get_existing(property_id)
        pk, title = existing.id, existing.title

        try:
            deleted = await self.property_repo.delete(pk)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete property {pk}: {e}", exc_info=True)
            raise PersistenceError("Failed to delete property.")

        if not deleted:
            raise NotFoundError("Property", str(pk))

        logger.info(f"Property deleted: {title} (ID: {pk})")
        return title

    async def toggle_featured(
        self,
        property_id: str,
        asserted_state: Optional[bool] = None,
    ) -> Tuple[str, bool]:
        """
        Flip the featured flag atomically in the database.

        asserted_state is what the client believed the flag was; it never decides
        the outcome and a mismatch is only logged.

        Returns:
            (title, new featured state)
        """
        parsed_id = ValidationUtils.parse_uuid(property_id)
        if parsed_id is None:
            raise NotFoundError("Property", str(property_id))

        try:
            result = await self.property_repo.toggle_featured(parsed_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to toggle featured flag of property {parsed_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to update featured status.")

        if result is None:
            raise NotFoundError("Property", str(parsed_id))

        title, new_state = result
        if asserted_state is not None and asserted_state == new_state:
            logger.warning(
                f"Stale featured state for property {parsed_id}: client saw {asserted_state}, "
                f"now {new_state}"
            )

        logger.info(f"Property {title} (ID: {parsed_id}) featured set to {new_state}")
        return title, new_state

    # Helpers

    async def _listing(self, query: Awaitable[List[Property]], message: str) -> ListResult:
        """Await a read-only listing; a data-source failure becomes an empty result plus ``message``."""
        try:
            return ListResult(items=await query)
        except SQLAlchemyError as e:
            logger.error(f"Listing query failed: {e}", exc_info=True)
            await self.db.rollback()
            return ListResult(error=message)

    async def _get_existing(self, property_id: str) -> Property:
        parsed_id = ValidationUtils.parse_uuid(property_id)
        property_obj = await self.property_repo.get_by_id(parsed_id) if parsed_id else None
        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        return property_obj

    async def _validate_form(self, form: PropertyForm, exclude_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
        """
        Validate a property form and return the column values it maps to.

        Checks run in order: required fields, slug format, field formats,
        agent reference, slug uniqueness.
        """
        price = ValidationUtils.parse_optional_int(form.price, "price", minimum=0)

        missing = [field for field in REQUIRED_FIELDS if field != "price" and not getattr(form, field)]
        if not price:
            missing.append("price")
        if missing:
            raise ValidationError(
                "Missing required fields.",
                field_errors=[ValidationUtils.field_error(field, "This field is required") for field in missing]
            )

        if not ValidationUtils.is_valid_slug(form.slug):
            raise ValidationError(
                "Invalid slug format.",
                field_errors=[ValidationUtils.field_error(
                    "slug", "Use lowercase letters, numbers and single hyphens"
                )]
            )

        if form.slug in RESERVED_SLUGS:
            raise ValidationError(
                f'Slug "{form.slug}" is reserved.',
                field_errors=[ValidationUtils.field_error("slug", "This slug is used by the site itself")]
            )

        values = {
            "title": form.title,
            "slug": form.slug,
            "address": form.address,
            "price": price,
            "beds": ValidationUtils.parse_optional_int(form.beds, "beds"),
            "baths": ValidationUtils.parse_optional_int(form.baths, "baths"),
            "area": ValidationUtils.parse_optional_int(form.area, "area"),
            "year_built": ValidationUtils.parse_optional_int(form.year_built, "year_built"),
            "latitude": ValidationUtils.parse_optional_float(form.latitude, "latitude", -90, 90),
            "longitude": ValidationUtils.parse_optional_float(form.longitude, "longitude", -180, 180),
            "description": form.description or None,
            "property_type": form.property_type or None,
            "video_url": form.video_url or None,
            "features": ValidationUtils.parse_features(form.features),
            "agent_id": await self._resolve_agent(form.agent_id),
        }

        if await self.property_repo.slug_taken(form.slug, exclude_id=exclude_id):
            raise ConflictError(f'Slug "{form.slug}" is already taken.', field="slug")

        return values

    async def _resolve_agent(self, raw_agent_id: str) -> Optional[uuid.UUID]:
        """Empty means no agent; anything else must reference an existing agent."""
        if not raw_agent_id:
            return None

        agent_id = ValidationUtils.parse_uuid(raw_agent_id)
        if agent_id is None or not await self.agent_repo.exists(agent_id):
            raise ValidationError(
                "Selected agent does not exist.",
                field_errors=[ValidationUtils.field_error("agent_id", "Unknown agent")]
            )
        return agent_id

    async def _upload_primary(self, upload: Optional[UploadedFile]) -> Optional[str]:
        """Upload the main image; failure aborts the workflow."""
        if upload is None or upload.is_empty:
            return None
        if self.uploader is None:
            raise UploadError("Image uploads are not available", filename=upload.filename)

        try:
            return await self.uploader.upload(upload.content, self.settings.property_image_folder, upload.filename)
        except UploadError as e:
            logger.error(f"Main image upload failed: {e.detail}")
            raise UploadError(f"Failed to upload main image: {e.detail}", filename=upload.filename)

    async def _upload_gallery(self, uploads: List[UploadedFile]) -> List[str]:
        """Upload gallery images in order; failed files are skipped."""
        urls = []
        for upload in uploads:
            if upload.is_empty:
                continue
            if self.uploader is None:
                logger.error(f"Skipping gallery image {upload.filename}: no uploader configured")
                continue
            try:
                urls.append(
                    await self.uploader.upload(upload.content, self.settings.property_image_folder, upload.filename)
                )
            except UploadError as e:
                logger.error(f"Skipping gallery image {upload.filename}: {e.detail}")
        return urls

    def _log_orphaned_uploads(self, urls: List[Optional[str]]) -> None:
        for url in urls:
            if url:
                logger.warning(f"Orphaned upload after failed write: {url}")
