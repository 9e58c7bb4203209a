"""
Pydantic schemas for property responses.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from homefinder.schemas.agent import AgentResponse
from homefinder.schemas.search import Pagination


class PropertySummary(BaseModel):
    """Card-sized view of a property used in lists."""

    id: str = Field(..., description="Property unique identifier")
    slug: str = Field(..., description="URL-safe unique identifier")
    title: str
    address: str
    price: int = Field(..., description="Asking price in whole currency units")
    beds: Optional[int] = None
    baths: Optional[int] = None
    area: Optional[int] = Field(None, description="Living area in square metres")
    property_type: Optional[str] = None
    image_url: Optional[str] = None
    is_featured: bool = False

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "slug": "luxury-villa-houmt-souk",
                "title": "Luxury Villa in Houmt Souk",
                "address": "Houmt Souk, Djerba",
                "price": 850000,
                "beds": 5,
                "baths": 4,
                "area": 420,
                "property_type": "Villa",
                "image_url": "https://res.cloudinary.com/demo/image/upload/properties/villa.jpg",
                "is_featured": True
            }
        }
    }


class PropertyResponse(PropertySummary):
    """Full property detail."""

    description: Optional[str] = None
    year_built: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    gallery_images: List[str] = Field(default_factory=list, description="Ordered gallery image URLs")
    features: List[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    agent_id: Optional[str] = None
    agent: Optional[AgentResponse] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaginationMeta(BaseModel):
    """Pagination metadata for list controls."""

    page: int = Field(..., description="Effective page number")
    per_page: int = Field(..., description="Page size")
    total_count: int = Field(..., description="Number of matching properties")
    total_pages: int = Field(..., description="Number of pages (at least 1)")
    has_next: bool
    has_previous: bool

    @classmethod
    def from_pagination(cls, pagination: Pagination) -> "PaginationMeta":
        return cls(
            page=pagination.page,
            per_page=pagination.per_page,
            total_count=pagination.total_count,
            total_pages=pagination.total_pages,
            has_next=pagination.has_next,
            has_previous=pagination.has_previous,
        )


class PropertySearchResponse(BaseModel):
    """Search results with the effective criteria echoed back."""

    properties: List[PropertySummary]
    criteria: Dict[str, Any] = Field(..., description="Effective search criteria (query parameter names)")
    pagination: PaginationMeta
    error: Optional[str] = Field(None, description="Advisory message when results could not be loaded")


class SearchResult(BaseModel):
    """Service-level search outcome."""

    properties: List[Any]
    pagination: Pagination
    error: Optional[str] = None

    model_config = {"arbitrary_types_allowed": True}


class HomeResponse(BaseModel):
    """Landing page payload."""

    featured_properties: List[PropertySummary]
    agents: List[AgentResponse]
    error: Optional[str] = None


class PropertyEditForm(BaseModel):
    """Values for pre-filling the admin edit form."""

    property: PropertyResponse
    features_string: str = Field("", description="Features joined with ', '")
    gallery_images_string: str = Field("", description="Gallery URLs joined with ', '")
    agents: List[AgentResponse] = Field(default_factory=list, description="Options for the agent select")
    error: Optional[str] = Field(None, description="Advisory message when the agent options could not be loaded")


class PropertyActionResult(BaseModel):
    """Successful admin action on a property."""

    success: bool = True
    id: str
    title: str
    slug: Optional[str] = None
    is_featured: Optional[bool] = None


class ListResult(BaseModel):
    """Service-level outcome of a read-only listing; ``error`` is set when the read failed."""

    items: List[Any] = Field(default_factory=list)
    error: Optional[str] = None

    model_config = {"arbitrary_types_allowed": True}


class PropertyListResponse(BaseModel):
    """A list of property cards, empty with an advisory message when loading failed."""

    properties: List[PropertySummary]
    error: Optional[str] = Field(None, description="Advisory message when results could not be loaded")
