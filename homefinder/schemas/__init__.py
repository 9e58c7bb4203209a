"""
Pydantic schemas for request parsing and response validation.
"""

from .agent import AgentResponse, AgentActionResult, AgentDeleteResult
from .forms import UploadedFile, PropertyForm, AgentForm, ContactForm, InquiryForm
from .property import (
    PropertySummary,
    PropertyResponse,
    PaginationMeta,
    PropertySearchResponse,
    HomeResponse,
    PropertyEditForm,
    PropertyActionResult,
)
from .search import SearchCriteria, Pagination

__all__ = [
    "AgentResponse",
    "AgentActionResult",
    "AgentDeleteResult",
    "UploadedFile",
    "PropertyForm",
    "AgentForm",
    "ContactForm",
    "InquiryForm",
    "PropertySummary",
    "PropertyResponse",
    "PaginationMeta",
    "PropertySearchResponse",
    "HomeResponse",
    "PropertyEditForm",
    "PropertyActionResult",
    "SearchCriteria",
    "Pagination",
]
