"""
Search criteria value type for the public property search.
Raw query-string values are normalised here, independently of the persistence layer;
the property repository translates a SearchCriteria into SQL.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Mapping, Optional
import math

# Public sort keys mapped to Property column names
SORT_FIELDS = {
    "price": "price",
    "area": "area",
    "createdAt": "created_at",
}
DEFAULT_SORT_FIELD = "createdAt"
SORT_ORDERS = ("asc", "desc")
DEFAULT_SORT_ORDER = "desc"
DEFAULT_PER_PAGE = 12
# integer columns are 32-bit; larger bounds are clamped rather than sent to the driver
MAX_BOUND = 2 ** 31 - 1


def _parse_int(value: Any) -> Optional[int]:
    """Parse an integer query value, returning None for anything unusable."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        try:
            number = float(text)
        except ValueError:
            return None
        if math.isnan(number) or math.isinf(number):
            return None
        return int(number)


def _positive_or_none(value: Any) -> Optional[int]:
    """Zero, negative and malformed bounds all mean 'no bound'; huge ones are clamped."""
    number = _parse_int(value)
    if number is None or number <= 0:
        return None
    return min(number, MAX_BOUND)


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class Pagination(BaseModel):
    """Resolved pagination window for a known result count."""

    page: int = Field(..., ge=1, description="Effective page number")
    per_page: int = Field(..., ge=1, description="Page size")
    total_count: int = Field(..., ge=0, description="Number of matching records")
    total_pages: int = Field(..., ge=1, description="Number of pages, at least 1")

    model_config = {"frozen": True}

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def take(self) -> int:
        return self.per_page

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


class SearchCriteria(BaseModel):
    """
    Normalised, immutable search criteria.

    Construction through from_params never raises: unusable values fall back to
    their defaults so a malformed query string still renders a result page.
    """

    location: Optional[str] = None
    property_type: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    min_beds: Optional[int] = None
    min_baths: Optional[int] = None
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: str = DEFAULT_SORT_ORDER
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE

    model_config = {"frozen": True}

    @classmethod
    def from_params(
        cls,
        params: Mapping[str, Any],
        default_per_page: int = DEFAULT_PER_PAGE,
        max_per_page: Optional[int] = None,
    ) -> "SearchCriteria":
        """
        Build criteria from raw query parameters (camelCase keys as sent by the search form).

        Args:
            params: Query parameter mapping
            default_per_page: Page size used when perPage is absent or malformed
            max_per_page: Optional upper bound on the page size

        Returns:
            Normalised SearchCriteria
        """
        sort_by = _clean_text(params.get("sortBy"))
        if sort_by not in SORT_FIELDS:
            sort_by = DEFAULT_SORT_FIELD

        sort_order = _clean_text(params.get("sortOrder"))
        sort_order = sort_order.lower() if sort_order else None
        if sort_order not in SORT_ORDERS:
            sort_order = DEFAULT_SORT_ORDER

        page = _parse_int(params.get("page"))
        page = min(max(1, page if page is not None else 1), MAX_BOUND)

        per_page = _parse_int(params.get("perPage"))
        per_page = min(max(1, per_page if per_page is not None else default_per_page), MAX_BOUND)
        if max_per_page is not None:
            per_page = min(per_page, max_per_page)

        return cls(
            location=_clean_text(params.get("location")),
            property_type=_clean_text(params.get("type")),
            min_price=_positive_or_none(params.get("minPrice")),
            max_price=_positive_or_none(params.get("maxPrice")),
            min_beds=_positive_or_none(params.get("minBeds")),
            min_baths=_positive_or_none(params.get("minBaths")),
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            per_page=per_page,
        )

    @property
    def sort_column(self) -> str:
        """Property column name for the effective sort key."""
        return SORT_FIELDS.get(self.sort_by, SORT_FIELDS[DEFAULT_SORT_FIELD])

    @property
    def descending(self) -> bool:
        return self.sort_order == "desc"

    def paginate(self, total_count: int) -> Pagination:
        """
        Resolve the pagination window once the total count is known.
        The requested page is clamped to the last available page.
        """
        total_count = max(0, total_count or 0)
        total_pages = max(1, math.ceil(total_count / self.per_page))
        page = min(self.page, total_pages)
        return Pagination(
            page=page,
            per_page=self.per_page,
            total_count=total_count,
            total_pages=total_pages,
        )

    def to_query(self) -> Dict[str, Any]:
        """Echo the effective criteria using the public query parameter names."""
        return {
            "location": self.location or "",
            "type": self.property_type or "",
            "minPrice": self.min_price or 0,
            "maxPrice": self.max_price or 0,
            "minBeds": self.min_beds or 0,
            "minBaths": self.min_baths or 0,
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
            "page": self.page,
            "perPage": self.per_page,
        }
