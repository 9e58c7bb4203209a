"""
File upload utilities for image validation and naming.
Uploaded bytes are decoded with Pillow before they are handed to an image store.
"""

import io
import uuid
from pathlib import Path
from typing import Iterable, Optional, Tuple
from PIL import Image, UnidentifiedImageError

from homefinder.utils.exceptions import ValidationError


class FileValidator:
    """Utility class for image validation operations."""

    # Pillow format name -> MIME type and canonical extension
    SUPPORTED_FORMATS = {
        'JPEG': ('image/jpeg', '.jpg'),
        'PNG': ('image/png', '.png'),
        'WEBP': ('image/webp', '.webp'),
        'GIF': ('image/gif', '.gif'),
    }

    MAX_FILE_SIZE = 10 * 1024 * 1024

    MAX_WIDTH = 12000
    MAX_HEIGHT = 12000

    @classmethod
    def validate_file_size(cls, file_size: int, max_size: Optional[int] = None) -> int:
        """
        Validate file size.

        Raises:
            ValidationError: If the file is empty or exceeds the limit
        """
        if file_size <= 0:
            raise ValidationError("File size must be greater than 0")

        max_allowed = max_size or cls.MAX_FILE_SIZE
        if file_size > max_allowed:
            max_mb = max_allowed / (1024 * 1024)
            actual_mb = file_size / (1024 * 1024)
            raise ValidationError(
                f"File size ({actual_mb:.1f}MB) exceeds maximum allowed size ({max_mb:.1f}MB)"
            )

        return file_size

    @classmethod
    def validate_image_bytes(
        cls,
        content: bytes,
        max_size: Optional[int] = None,
        allowed_types: Optional[Iterable[str]] = None,
    ) -> Tuple[int, int, str]:
        """
        Validate raw image bytes.

        The MIME type is taken from the decoded image, not from the client's
        Content-Type header.

        Returns:
            Tuple of (width, height, mime_type)

        Raises:
            ValidationError: If size, format or content is invalid
        """
        cls.validate_file_size(len(content), max_size)

        try:
            with Image.open(io.BytesIO(content)) as img:
                img.verify()
                pil_format = (img.format or "").upper()
                width, height = img.size
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError(f"Invalid image file: {e}")

        if pil_format not in cls.SUPPORTED_FORMATS:
            raise ValidationError(f"Image format '{pil_format or 'unknown'}' not supported")

        mime_type = cls.SUPPORTED_FORMATS[pil_format][0]
        allowed = list(allowed_types) if allowed_types is not None else None
        if allowed is not None and mime_type not in allowed:
            raise ValidationError(
                f"MIME type '{mime_type}' not supported. Supported types: {', '.join(allowed)}"
            )

        if width > cls.MAX_WIDTH or height > cls.MAX_HEIGHT:
            raise ValidationError(
                f"Image dimensions {width}x{height}px exceed maximum {cls.MAX_WIDTH}x{cls.MAX_HEIGHT}px"
            )

        return width, height, mime_type

    @classmethod
    def extension_for(cls, mime_type: str) -> str:
        for known_mime, extension in cls.SUPPORTED_FORMATS.values():
            if known_mime == mime_type:
                return extension
        return ""


def generate_unique_filename(original_filename: Optional[str], extension: str = "") -> str:
    """
    Generate a unique filename, keeping the original stem for readability.

    Args:
        original_filename: Name supplied by the client, may be empty
        extension: Extension to use (with dot); defaults to the original suffix
    """
    path = Path(original_filename or "image")
    stem = "".join(c if c.isalnum() or c in "-_" else "-" for c in path.stem.lower()).strip("-")
    suffix = extension or path.suffix.lower()
    return f"{stem or 'image'}-{uuid.uuid4().hex[:12]}{suffix}"
