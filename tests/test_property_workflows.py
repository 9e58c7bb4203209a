"""
Tests for the admin property workflows: create, update, delete and featured toggle.
"""

import pytest
import uuid
from pathlib import Path
from unittest.mock import AsyncMock, patch
from sqlalchemy.exc import OperationalError

from homefinder.repositories.property import PropertyRepository
from homefinder.schemas.forms import PropertyForm, UploadedFile
from homefinder.services.media import ImageStore, MediaUploader
from homefinder.services.property import PropertyService
from homefinder.utils.exceptions import ConflictError, NotFoundError, UploadError, ValidationError
from tests.conftest import AgentFactory, PropertyFactory, make_image_bytes


class FailingImageStore(ImageStore):
    """Image host that rejects every upload."""

    async def store(self, content: bytes, folder: str, filename: str) -> str:
        raise UploadError("Image host unavailable", filename=filename)


def build_form(**overrides) -> PropertyForm:
    values = {
        "title": "Sea View Apartment",
        "slug": "sea-view-apartment",
        "address": "Corniche, Sousse",
        "price": "320000",
        "beds": "3",
        "baths": "2",
        "area": "140",
        "property_type": "Apartment",
    }
    values.update(overrides)
    return PropertyForm(**values)


def image_upload(name: str = "photo.png", color: str = "red") -> UploadedFile:
    return UploadedFile(filename=name, content_type="image/png", content=make_image_bytes(color))


def form_for(property_obj, **overrides) -> PropertyForm:
    """Edit form pre-filled from a stored property."""
    values = {
        "title": property_obj.title,
        "slug": property_obj.slug,
        "address": property_obj.address,
        "price": str(property_obj.price),
        "agent_id": str(property_obj.agent_id) if property_obj.agent_id else "",
    }
    values.update(overrides)
    return PropertyForm(**values)


class TestCreateProperty:
    """Property creation workflow."""

    @pytest.mark.asyncio
    async def test_create_then_lookup_by_slug(self, property_service: PropertyService, test_settings):
        form = build_form(image=image_upload("front.png"), features="Pool, Garden , ,Sea view")

        created = await property_service.create_property(form)
        fetched = await property_service.get_by_slug("sea-view-apartment")

        assert fetched.id == created.id
        assert fetched.price == 320000
        assert fetched.features == ["Pool", "Garden", "Sea view"]
        assert fetched.image_url.startswith("/media/properties/front-")
        stored_name = fetched.image_url.rsplit("/", 1)[-1]
        assert (Path(test_settings.upload_dir) / "properties" / stored_name).exists()

    @pytest.mark.asyncio
    async def test_create_sets_featured_flag_and_agent(self, property_service: PropertyService, db_session):
        agent = await AgentFactory.create_agent(db_session, name="Amira")

        created = await property_service.create_property(build_form(is_featured=True, agent_id=str(agent.id)))

        assert created.is_featured is True
        assert created.agent_id == agent.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("slug", ["Has Spaces", "UPPER", "-leading", "trailing-", "double--hyphen", "under_score"])
    async def test_invalid_slug_is_rejected(self, property_service: PropertyService, property_repository, slug):
        with pytest.raises(ValidationError) as exc_info:
            await property_service.create_property(build_form(slug=slug))

        assert exc_info.value.detail == "Invalid slug format."
        assert exc_info.value.fields == ["slug"]
        assert await property_repository.count() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("slug", ["villa-2024", "a", "3-bed-flat"])
    async def test_valid_slugs_are_accepted(self, property_service: PropertyService, slug):
        created = await property_service.create_property(build_form(slug=slug))
        assert created.slug == slug

    @pytest.mark.asyncio
    @pytest.mark.parametrize("slug", ["search", "featured", "saved"])
    async def test_route_names_are_reserved(self, property_service: PropertyService, property_repository, slug):
        with pytest.raises(ValidationError) as exc_info:
            await property_service.create_property(build_form(slug=slug))

        assert exc_info.value.fields == ["slug"]
        assert await property_repository.count() == 0

    @pytest.mark.asyncio
    async def test_price_beyond_column_range_is_rejected(self, property_service: PropertyService, property_repository):
        with pytest.raises(ValidationError) as exc_info:
            await property_service.create_property(build_form(price="99999999999999999999"))

        assert exc_info.value.fields == ["price"]
        assert "at most" in exc_info.value.detail
        assert await property_repository.count() == 0

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, property_service: PropertyService, property_repository):
        with pytest.raises(ValidationError) as exc_info:
            await property_service.create_property(build_form(title="", price="0"))

        assert exc_info.value.detail == "Missing required fields."
        assert set(exc_info.value.fields) == {"title", "price"}
        assert await property_repository.count() == 0

    @pytest.mark.asyncio
    async def test_malformed_number_is_rejected(self, property_service: PropertyService):
        with pytest.raises(ValidationError) as exc_info:
            await property_service.create_property(build_form(beds="three"))

        assert exc_info.value.fields == ["beds"]

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, property_service: PropertyService, property_repository):
        await property_service.create_property(build_form())

        with pytest.raises(ConflictError) as exc_info:
            await property_service.create_property(build_form(title="Another listing"))

        assert exc_info.value.detail == 'Slug "sea-view-apartment" is already taken.'
        assert exc_info.value.field == "slug"
        assert await property_repository.count() == 1

    @pytest.mark.asyncio
    async def test_unknown_agent_is_rejected(self, property_service: PropertyService, property_repository):
        with pytest.raises(ValidationError) as exc_info:
            await property_service.create_property(build_form(agent_id=str(uuid.uuid4())))

        assert exc_info.value.fields == ["agent_id"]
        assert await property_repository.count() == 0

    @pytest.mark.asyncio
    async def test_primary_upload_failure_persists_nothing(self, db_session, test_settings, property_repository):
        service = PropertyService(
            db_session,
            uploader=MediaUploader(FailingImageStore(), max_file_size=test_settings.max_file_size),
            settings=test_settings,
        )

        with pytest.raises(UploadError) as exc_info:
            await service.create_property(build_form(image=image_upload()))

        assert exc_info.value.detail.startswith("Failed to upload main image")
        assert await property_repository.count() == 0

    @pytest.mark.asyncio
    async def test_invalid_primary_image_persists_nothing(self, property_service: PropertyService, property_repository):
        broken = UploadedFile(filename="notes.png", content_type="image/png", content=b"not an image")

        with pytest.raises(UploadError):
            await property_service.create_property(build_form(image=broken, gallery_images=[image_upload()]))

        assert await property_repository.count() == 0

    @pytest.mark.asyncio
    async def test_gallery_uploads_are_best_effort(self, property_service: PropertyService):
        gallery = [
            image_upload("one.png", "blue"),
            UploadedFile(filename="broken.png", content=b"garbage bytes"),
            UploadedFile(filename="empty.png", content=b""),
            image_upload("two.png", "green"),
        ]

        created = await property_service.create_property(build_form(gallery_images=gallery))

        assert len(created.gallery_images) == 2
        assert created.gallery_images[0].startswith("/media/properties/one-")
        assert created.gallery_images[1].startswith("/media/properties/two-")


class TestUpdateProperty:
    """Property update workflow."""

    @pytest.mark.asyncio
    async def test_gallery_becomes_survivors_plus_new_uploads(self, property_service: PropertyService, db_session):
        existing = await PropertyFactory.create_property(
            db_session,
            gallery_images=["https://cdn.example/a.jpg", "https://cdn.example/b.jpg", "https://cdn.example/c.jpg"],
        )
        form = form_for(
            existing,
            images_to_delete=["https://cdn.example/b.jpg"],
            gallery_images=[image_upload("new.png")],
        )

        updated = await property_service.update_property(str(existing.id), form)

        assert updated.gallery_images[:2] == ["https://cdn.example/a.jpg", "https://cdn.example/c.jpg"]
        assert len(updated.gallery_images) == 3
        assert updated.gallery_images[2].startswith("/media/properties/new-")

    @pytest.mark.asyncio
    async def test_gallery_untouched_without_changes(self, property_service: PropertyService, db_session):
        gallery = ["https://cdn.example/a.jpg", "https://cdn.example/b.jpg"]
        existing = await PropertyFactory.create_property(
            db_session, gallery_images=gallery, image_url="https://cdn.example/main.jpg"
        )

        updated = await property_service.update_property(str(existing.id), form_for(existing, title="Renamed"))

        assert updated.title == "Renamed"
        assert updated.gallery_images == gallery
        assert updated.image_url == "https://cdn.example/main.jpg"

    @pytest.mark.asyncio
    async def test_primary_marked_for_deletion_is_cleared(self, property_service: PropertyService, db_session):
        existing = await PropertyFactory.create_property(db_session, image_url="https://cdn.example/main.jpg")

        updated = await property_service.update_property(
            str(existing.id), form_for(existing, images_to_delete=["https://cdn.example/main.jpg"])
        )

        assert updated.image_url is None

    @pytest.mark.asyncio
    async def test_new_primary_replaces_old(self, property_service: PropertyService, db_session):
        existing = await PropertyFactory.create_property(db_session, image_url="https://cdn.example/main.jpg")

        updated = await property_service.update_property(
            str(existing.id),
            form_for(existing, images_to_delete=["https://cdn.example/main.jpg"], image=image_upload("replacement.png")),
        )

        assert updated.image_url.startswith("/media/properties/replacement-")

    @pytest.mark.asyncio
    async def test_keeping_own_slug_is_allowed(self, property_service: PropertyService, db_session):
        existing = await PropertyFactory.create_property(db_session, slug="keep-me")

        updated = await property_service.update_property(str(existing.id), form_for(existing, price="999"))

        assert updated.slug == "keep-me"
        assert updated.price == 999

    @pytest.mark.asyncio
    async def test_taking_another_slug_conflicts(self, property_service: PropertyService, db_session):
        await PropertyFactory.create_property(db_session, slug="taken")
        existing = await PropertyFactory.create_property(db_session, slug="mine")

        with pytest.raises(ConflictError):
            await property_service.update_property(str(existing.id), form_for(existing, slug="taken"))

    @pytest.mark.asyncio
    async def test_agent_can_be_disconnected(self, property_service: PropertyService, db_session):
        agent = await AgentFactory.create_agent(db_session)
        existing = await PropertyFactory.create_property(db_session, agent_id=agent.id)

        updated = await property_service.update_property(str(existing.id), form_for(existing, agent_id=""))

        assert updated.agent_id is None

    @pytest.mark.asyncio
    async def test_update_does_not_change_featured_flag(self, property_service: PropertyService, db_session):
        existing = await PropertyFactory.create_property(db_session, is_featured=True)

        updated = await property_service.update_property(str(existing.id), form_for(existing, is_featured=False))

        assert updated.is_featured is True

    @pytest.mark.asyncio
    async def test_update_missing_property(self, property_service: PropertyService):
        with pytest.raises(NotFoundError):
            await property_service.update_property(str(uuid.uuid4()), build_form())

    @pytest.mark.asyncio
    async def test_slug_taken_at_write_time_conflicts(
        self, property_service: PropertyService, db_session, session_factory
    ):
        await PropertyFactory.create_property(db_session, slug="taken")
        existing = await PropertyFactory.create_property(db_session, slug="mine")
        pk, form = existing.id, form_for(existing, slug="taken")

        # the pre-write lookup misses, so the unique index is what rejects the write
        with patch.object(PropertyRepository, "slug_taken", new=AsyncMock(return_value=False)):
            with pytest.raises(ConflictError) as exc_info:
                await property_service.update_property(str(pk), form)

        assert exc_info.value.field == "slug"
        async with session_factory() as session:
            assert (await PropertyRepository(session).get_by_id(pk)).slug == "mine"

    @pytest.mark.asyncio
    async def test_property_deleted_during_update_is_not_found(
        self, property_service: PropertyService, db_session, session_factory
    ):
        existing = await PropertyFactory.create_property(db_session, slug="short-lived")
        pk, form = existing.id, form_for(existing, title="Renamed")

        async def delete_elsewhere(slug, exclude_id=None):
            async with session_factory() as other:
                assert await PropertyRepository(other).delete(pk)
            return False

        with patch.object(PropertyRepository, "slug_taken", new=AsyncMock(side_effect=delete_elsewhere)):
            with pytest.raises(NotFoundError) as exc_info:
                await property_service.update_property(str(pk), form)

        assert str(pk) in exc_info.value.detail


class TestDeleteAndToggle:
    """Property deletion and featured toggle."""

    @pytest.mark.asyncio
    async def test_delete_returns_title(self, property_service: PropertyService, db_session):
        existing = await PropertyFactory.create_property(db_session, title="Old Farmhouse", slug="old-farmhouse")

        title = await property_service.delete_property(str(existing.id))

        assert title == "Old Farmhouse"
        with pytest.raises(NotFoundError):
            await property_service.get_by_slug("old-farmhouse")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("property_id", [str(uuid.uuid4()), "not-a-uuid"])
    async def test_delete_missing_property(self, property_service: PropertyService, property_id):
        with pytest.raises(NotFoundError):
            await property_service.delete_property(property_id)

    @pytest.mark.asyncio
    async def test_toggle_flips_state_in_database(self, property_service: PropertyService, db_session, session_factory):
        existing = await PropertyFactory.create_property(db_session, title="Toggle Me", is_featured=False)

        title, state = await property_service.toggle_featured(str(existing.id))
        assert (title, state) == ("Toggle Me", True)

        async with session_factory() as session:
            stored = await PropertyRepository(session).get_by_id(existing.id)
            assert stored.is_featured is True

        _, state = await property_service.toggle_featured(str(existing.id))
        assert state is False

    @pytest.mark.asyncio
    async def test_toggles_from_separate_sessions_never_lose_a_flip(self, session_factory, test_settings, db_session):
        existing = await PropertyFactory.create_property(db_session, is_featured=False)

        # Both clients saw "not featured"; the second flip still applies to the stored value
        async with session_factory() as first, session_factory() as second:
            _, first_state = await PropertyService(first, settings=test_settings).toggle_featured(
                str(existing.id), asserted_state=False
            )
            _, second_state = await PropertyService(second, settings=test_settings).toggle_featured(
                str(existing.id), asserted_state=False
            )

        assert first_state is True
        assert second_state is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("property_id", [str(uuid.uuid4()), "nope"])
    async def test_toggle_missing_property(self, property_service: PropertyService, property_id):
        with pytest.raises(NotFoundError):
            await property_service.toggle_featured(property_id)


class TestPublicReads:
    """Featured and saved-property lookups."""

    @pytest.mark.asyncio
    async def test_featured_newest_first_and_limited(self, property_service: PropertyService, db_session):
        for index in range(5):
            await PropertyFactory.create_property(db_session, title=f"Featured {index}", is_featured=True)
        await PropertyFactory.create_property(db_session, title="Plain", is_featured=False)

        featured = await property_service.get_featured()

        assert featured.error is None
        assert [prop.title for prop in featured.items] == ["Featured 4", "Featured 3", "Featured 2", "Featured 1"]

    @pytest.mark.asyncio
    async def test_saved_keeps_order_and_skips_unknown(self, property_service: PropertyService, db_session):
        first = await PropertyFactory.create_property(db_session, title="First")
        second = await PropertyFactory.create_property(db_session, title="Second")

        saved = await property_service.get_saved(
            [str(second.id), "garbage", str(uuid.uuid4()), str(first.id), str(second.id)]
        )

        assert [prop.title for prop in saved.items] == ["Second", "First"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,repository_call", [
        ("get_featured", "get_featured_properties"),
        ("list_for_admin", "list_for_admin"),
    ])
    async def test_listing_failure_degrades(self, property_service: PropertyService, method, repository_call):
        with patch.object(
            PropertyRepository,
            repository_call,
            side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
        ):
            result = await getattr(property_service, method)()

        assert result.items == []
        assert result.error

    @pytest.mark.asyncio
    async def test_saved_failure_degrades(self, property_service: PropertyService, db_session):
        existing = await PropertyFactory.create_property(db_session)

        with patch.object(
            PropertyRepository,
            "get_by_ids",
            side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
        ):
            result = await property_service.get_saved([str(existing.id)])

        assert result.items == []
        assert result.error == "Could not load property data."
