"""
Validation helpers shared by the admin workflows and the public forms.
Parsers return None for blank input and raise ValidationError for malformed input.
"""

import re
import uuid
from typing import Any, List, Optional

from homefinder.utils.exceptions import ValidationError

# largest value the 32-bit integer columns accept
INT_COLUMN_MAX = 2 ** 31 - 1


class ValidationUtils:
    """
    Utility class for common validation operations.
    """

    SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
    # something@something.something, no whitespace
    EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

    @staticmethod
    def is_valid_slug(value: Any) -> bool:
        return isinstance(value, str) and bool(ValidationUtils.SLUG_PATTERN.match(value))

    @staticmethod
    def is_valid_email(value: Any) -> bool:
        return isinstance(value, str) and bool(ValidationUtils.EMAIL_PATTERN.match(value))

    @staticmethod
    def field_error(field: str, message: str) -> dict:
        return {"field": field, "message": message}

    @staticmethod
    def parse_optional_int(
        value: Any,
        field_name: str,
        minimum: Optional[int] = 0,
        maximum: Optional[int] = INT_COLUMN_MAX,
    ) -> Optional[int]:
        """
        Parse an optional integer form value.

        Raises:
            ValidationError: If the value is not a whole number or lies outside [minimum, maximum]
        """
        if value is None:
            return None
        text = str(value).strip()
        if not text:
            return None

        try:
            number = int(text)
        except ValueError:
            raise ValidationError(
                f"{field_name} must be a whole number",
                field_errors=[ValidationUtils.field_error(field_name, "Must be a whole number")]
            )

        if minimum is not None and number < minimum:
            raise ValidationError(
                f"{field_name} must be at least {minimum}",
                field_errors=[ValidationUtils.field_error(field_name, f"Must be at least {minimum}")]
            )
        if maximum is not None and number > maximum:
            raise ValidationError(
                f"{field_name} must be at most {maximum}",
                field_errors=[ValidationUtils.field_error(field_name, f"Must be at most {maximum}")]
            )
        return number

    @staticmethod
    def parse_optional_float(
        value: Any,
        field_name: str,
        minimum: Optional[float] = None,
        maximum: Optional[float] = None,
    ) -> Optional[float]:
        """Parse an optional decimal form value such as a coordinate."""
        if value is None:
            return None
        text = str(value).strip()
        if not text:
            return None

        try:
            number = float(text)
        except ValueError:
            raise ValidationError(
                f"{field_name} must be a number",
                field_errors=[ValidationUtils.field_error(field_name, "Must be a number")]
            )

        if (minimum is not None and number < minimum) or (maximum is not None and number > maximum):
            raise ValidationError(
                f"{field_name} must be between {minimum} and {maximum}",
                field_errors=[ValidationUtils.field_error(field_name, "Out of range")]
            )
        return number

    @staticmethod
    def parse_uuid(value: Any) -> Optional[uuid.UUID]:
        """Parse a UUID, returning None for blank or malformed values."""
        if value is None:
            return None
        if isinstance(value, uuid.UUID):
            return value
        text = str(value).strip()
        if not text:
            return None
        try:
            return uuid.UUID(text)
        except ValueError:
            return None

    @staticmethod
    def parse_features(value: Optional[str]) -> List[str]:
        """Split a comma-separated feature string into trimmed, non-empty labels."""
        if not value:
            return []
        return [label.strip() for label in value.split(",") if label.strip()]
