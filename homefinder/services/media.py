"""
Media uploader for property and agent images.
Validates uploaded bytes with Pillow and stores them through a pluggable image store:
Cloudinary in production, the local upload directory for development and tests.
"""

import logging
from pathlib import Path
from typing import Optional

import aiofiles
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi.concurrency import run_in_threadpool

from homefinder.config import Settings, get_settings
from homefinder.utils.exceptions import UploadError, ValidationError
from homefinder.utils.file_utils import FileValidator, generate_unique_filename

logger = logging.getLogger(__name__)


class ImageStore:
    """Storage backend interface: persist bytes under a folder and return a public URL."""

    async def store(self, content: bytes, folder: str, filename: str) -> str:
        raise NotImplementedError


class CloudinaryImageStore(ImageStore):
    """Uploads to Cloudinary. The SDK is synchronous, so calls run in a worker thread."""

    def __init__(self, cloud_name: Optional[str], api_key: Optional[str], api_secret: Optional[str]):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _upload(self, content: bytes, folder: str, public_id: str) -> dict:
        return cloudinary.uploader.upload(
            content,
            folder=folder,
            public_id=public_id,
            resource_type="image",
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
        )

    async def store(self, content: bytes, folder: str, filename: str) -> str:
        if not self.is_configured:
            raise UploadError("Image storage is not configured", filename=filename)

        public_id = Path(filename).stem
        try:
            result = await run_in_threadpool(self._upload, content, folder, public_id)
        except (CloudinaryError, OSError) as e:
            raise UploadError(f"Image host rejected the upload: {e}", filename=filename)

        url = result.get("secure_url") if isinstance(result, dict) else None
        if not url:
            raise UploadError("Image host returned no URL", filename=filename)
        return url


class LocalImageStore(ImageStore):
    """Writes files below the upload directory; URLs are served under media_url."""

    def __init__(self, upload_dir: str, media_url: str = "/media"):
        self.upload_dir = Path(upload_dir)
        self.media_url = media_url.rstrip("/")

    async def store(self, content: bytes, folder: str, filename: str) -> str:
        target_dir = self.upload_dir / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        file_path = target_dir / filename

        try:
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            raise UploadError(f"Failed to save file: {e}", filename=filename)

        return f"{self.media_url}/{folder}/{filename}"


class MediaUploader:
    """
    Validate image bytes and hand them to the configured store.

    upload() returns a public URL or raises UploadError; callers decide whether
    the failure is fatal (primary image) or skippable (gallery image).
    """

    def __init__(self, store: ImageStore, max_file_size: int, allowed_types=None):
        self.store = store
        self.max_file_size = max_file_size
        self.allowed_types = allowed_types

    async def upload(self, content: bytes, folder: str, filename: Optional[str] = None) -> str:
        """
        Upload one image.

        Args:
            content: Raw file bytes
            folder: Destination folder (e.g. properties, agents)
            filename: Client-supplied name, only used to build a readable unique name

        Returns:
            Public URL of the stored image

        Raises:
            UploadError: If the bytes are not an acceptable image or storage fails
        """
        try:
            _, _, mime_type = FileValidator.validate_image_bytes(
                content,
                max_size=self.max_file_size,
                allowed_types=self.allowed_types,
            )
        except ValidationError as e:
            raise UploadError(f"{filename or 'file'}: {e.detail}", filename=filename)

        unique_name = generate_unique_filename(filename, FileValidator.extension_for(mime_type))
        url = await self.store.store(content, folder, unique_name)
        logger.info(f"Uploaded image {filename or unique_name} to {folder}: {url}")
        return url


def build_media_uploader(settings: Optional[Settings] = None) -> MediaUploader:
    """Create the uploader for the configured media backend."""
    settings = settings or get_settings()

    if settings.media_backend == "local":
        store: ImageStore = LocalImageStore(settings.upload_dir, settings.media_url)
    else:
        store = CloudinaryImageStore(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
        )
        if not store.is_configured:
            logger.warning("Cloudinary credentials not configured; image uploads will fail")

    return MediaUploader(
        store,
        max_file_size=settings.max_file_size,
        allowed_types=settings.allowed_file_types,
    )
