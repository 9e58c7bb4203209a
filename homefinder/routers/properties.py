"""
Public property endpoints: search, featured, saved favorites, detail and inquiries.
"""

from fastapi import APIRouter, Depends, Request, status, Query, Path
from typing import List, Optional

from homefinder.config import Settings, get_settings
from homefinder.services.error_handler import ErrorHandlerService
from homefinder.services.notification import NotificationService
from homefinder.services.property import PropertyService
from homefinder.schemas.forms import InquiryForm
from homefinder.schemas.property import (
    PaginationMeta,
    PropertyListResponse,
    PropertyResponse,
    PropertySearchResponse,
    PropertySummary,
    ListResult,
)
from homefinder.schemas.search import SearchCriteria
from homefinder.utils.dependencies import get_notification_service, get_property_service
from homefinder.utils.exceptions import APIException


router = APIRouter(prefix="/properties", tags=["Properties"])


def _as_cards(result: ListResult) -> PropertyListResponse:
    return PropertyListResponse(
        properties=[PropertySummary.model_validate(prop.to_summary()) for prop in result.items],
        error=result.error,
    )


@router.get(
    "/search",
    response_model=PropertySearchResponse,
    status_code=status.HTTP_200_OK,
    summary="Search properties",
    description=(
        "Filter by location, type, minPrice, maxPrice, minBeds, minBaths; "
        "sort with sortBy (price|area|createdAt) and sortOrder (asc|desc); "
        "paginate with page and perPage. Malformed values fall back to defaults."
    )
)
async def search_properties(
    request: Request,
    settings: Settings = Depends(get_settings),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertySearchResponse:
    """
    Search listings.

    Query parameters are read raw so that malformed values degrade to defaults
    instead of producing a 422.
    """
    criteria = SearchCriteria.from_params(
        request.query_params,
        default_per_page=settings.default_page_size,
        max_per_page=settings.max_page_size,
    )

    result = await property_service.search_properties(criteria)

    return PropertySearchResponse(
        properties=[PropertySummary.model_validate(prop.to_summary()) for prop in result.properties],
        criteria=criteria.to_query(),
        pagination=PaginationMeta.from_pagination(result.pagination),
        error=result.error,
    )


@router.get(
    "/featured",
    response_model=PropertyListResponse,
    summary="Featured properties"
)
async def featured_properties(
    limit: Optional[int] = Query(None, ge=1, le=50, description="Maximum number of properties"),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    return _as_cards(await property_service.get_featured(limit))


@router.get(
    "/saved",
    response_model=PropertyListResponse,
    summary="Resolve saved properties",
    description="Resolve a client-side favorites list. Accepts repeated or comma-separated ids."
)
async def saved_properties(
    ids: List[str] = Query([], description="Property ids"),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    raw_ids = [part for value in ids for part in value.split(",") if part.strip()]
    return _as_cards(await property_service.get_saved(raw_ids))


@router.get(
    "/{slug}",
    response_model=PropertyResponse,
    summary="Get property details"
)
async def get_property(
    slug: str = Path(..., description="Property slug"),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Get a property by slug, including its agent.

    Raises:
        NotFoundError: If no property has this slug
    """
    property_obj = await property_service.get_by_slug(slug)
    return PropertyResponse.model_validate(property_obj.to_dict(include_agent=True))


@router.post(
    "/{slug}/inquire",
    status_code=status.HTTP_200_OK,
    summary="Send an inquiry about a property"
)
async def inquire(
    request: Request,
    slug: str = Path(..., description="Property slug"),
    property_service: PropertyService = Depends(get_property_service),
    notification_service: NotificationService = Depends(get_notification_service)
):
    """
    Email an inquiry to the office.
    Failures return success=false with the submitted values.
    """
    property_obj = await property_service.get_by_slug(slug)

    form = InquiryForm.from_form(await request.form())
    try:
        message_id = await notification_service.send_inquiry(form, property_obj)
    except APIException as e:
        return ErrorHandlerService.handle_action_failure(e, form.submitted_values(), request)

    return {"success": True, "message_sent": True, "message_id": message_id}
