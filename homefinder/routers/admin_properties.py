"""
Admin property management.
Mounted under the admin prefix, behind the access gate. Mutations take form
posts (multipart for images) and answer with a success or failure result.
"""

from fastapi import APIRouter, Depends, Request, status, Path
from typing import Optional

from homefinder.schemas.agent import AgentResponse
from homefinder.schemas.forms import PropertyForm
from homefinder.schemas.property import PropertyActionResult, PropertyEditForm, PropertyResponse
from homefinder.services.agent import AgentService
from homefinder.services.error_handler import ErrorHandlerService
from homefinder.services.property import PropertyService
from homefinder.utils.dependencies import get_agent_service, get_property_service
from homefinder.utils.exceptions import APIException


router = APIRouter(prefix="/properties", tags=["Admin: Properties"])


def _parse_state(value) -> Optional[bool]:
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in ("true", "1", "on", "yes"):
        return True
    if text in ("false", "0", "off", "no"):
        return False
    return None


@router.get("", summary="List properties for administration")
async def list_properties(
    property_service: PropertyService = Depends(get_property_service),
    agent_service: AgentService = Depends(get_agent_service)
):
    """Rows for the admin table plus the agent options; a failed read leaves its list empty and sets ``error``."""
    properties = await property_service.list_for_admin()
    agents = await agent_service.list_agents()
    return {
        "properties": [
            {
                "id": str(prop.id),
                "slug": prop.slug,
                "title": prop.title,
                "property_type": prop.property_type,
                "price": prop.price,
                "is_featured": prop.is_featured,
            }
            for prop in properties.items
        ],
        "agents": [AgentResponse.model_validate(agent.to_dict()) for agent in agents.items],
        "error": properties.error or agents.error,
    }


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=PropertyActionResult,
    summary="Create property"
)
async def create_property(
    request: Request,
    property_service: PropertyService = Depends(get_property_service)
):
    """
    Create a property from a multipart form.

    Fields: title, slug, address, price, beds, baths, area, year_built,
    description, property_type, latitude, longitude, video_url, features
    (comma-separated), agent_id, is_featured, image, gallery_images (repeated).
    """
    form = await PropertyForm.from_form(await request.form())
    try:
        property_obj = await property_service.create_property(form)
    except APIException as e:
        return ErrorHandlerService.handle_action_failure(e, form.submitted_values(), request)

    return PropertyActionResult(
        id=str(property_obj.id),
        title=property_obj.title,
        slug=property_obj.slug,
        is_featured=property_obj.is_featured,
    )


@router.get(
    "/{property_id}",
    response_model=PropertyEditForm,
    summary="Load a property for editing"
)
async def edit_property_form(
    property_id: str = Path(..., description="Property ID"),
    property_service: PropertyService = Depends(get_property_service),
    agent_service: AgentService = Depends(get_agent_service)
) -> PropertyEditForm:
    property_obj = await property_service.get_for_edit(property_id)
    agents = await agent_service.list_agents()
    return PropertyEditForm(
        property=PropertyResponse.model_validate(property_obj.to_dict(include_agent=True)),
        features_string=", ".join(property_obj.features or []),
        gallery_images_string=", ".join(property_obj.gallery_images or []),
        agents=[AgentResponse.model_validate(agent.to_dict()) for agent in agents.items],
        error=agents.error,
    )


@router.post(
    "/{property_id}",
    response_model=PropertyActionResult,
    summary="Update property"
)
async def update_property(
    request: Request,
    property_id: str = Path(..., description="Property ID"),
    property_service: PropertyService = Depends(get_property_service)
):
    """
    Update a property. Accepts the create fields plus images_to_delete (repeated URLs).
    """
    form = await PropertyForm.from_form(await request.form())
    try:
        property_obj = await property_service.update_property(property_id, form)
    except APIException as e:
        return ErrorHandlerService.handle_action_failure(e, form.submitted_values(), request)

    return PropertyActionResult(
        id=str(property_obj.id),
        title=property_obj.title,
        slug=property_obj.slug,
        is_featured=property_obj.is_featured,
    )


@router.post(
    "/{property_id}/delete",
    response_model=PropertyActionResult,
    summary="Delete property"
)
async def delete_property(
    request: Request,
    property_id: str = Path(..., description="Property ID"),
    property_service: PropertyService = Depends(get_property_service)
):
    try:
        title = await property_service.delete_property(property_id)
    except APIException as e:
        return ErrorHandlerService.handle_action_failure(e, {"id": property_id}, request)

    return PropertyActionResult(id=property_id, title=title)


@router.post(
    "/{property_id}/toggle-featured",
    response_model=PropertyActionResult,
    summary="Toggle featured flag"
)
async def toggle_featured(
    request: Request,
    property_id: str = Path(..., description="Property ID"),
    property_service: PropertyService = Depends(get_property_service)
):
    """
    Flip is_featured atomically. An optional current_state field carries what the
    client displayed; it is only used to detect stale pages.
    """
    form = await request.form()
    asserted_state = _parse_state(form.get("current_state"))
    try:
        title, is_featured = await property_service.toggle_featured(property_id, asserted_state)
    except APIException as e:
        return ErrorHandlerService.handle_action_failure(
            e, {"id": property_id, "current_state": form.get("current_state")}, request
        )

    return PropertyActionResult(id=property_id, title=title, is_featured=is_featured)
