"""
FastAPI dependency injection utilities for services and external clients.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from homefinder.config import Settings, get_settings
from homefinder.database import get_db
from homefinder.services.agent import AgentService
from homefinder.services.email import ResendEmailClient, build_email_client
from homefinder.services.media import MediaUploader, build_media_uploader
from homefinder.services.notification import NotificationService
from homefinder.services.property import PropertyService


def get_media_uploader(settings: Settings = Depends(get_settings)) -> MediaUploader:
    """Media uploader for the configured backend."""
    return build_media_uploader(settings)


def get_email_client(settings: Settings = Depends(get_settings)) -> ResendEmailClient:
    return build_email_client(settings)


async def get_property_service(
    db: AsyncSession = Depends(get_db),
    uploader: MediaUploader = Depends(get_media_uploader),
    settings: Settings = Depends(get_settings),
) -> PropertyService:
    """
    Get property service instance.

    Args:
        db: Database session
        uploader: Media uploader for listing images
        settings: Application settings

    Returns:
        PropertyService instance
    """
    return PropertyService(db, uploader=uploader, settings=settings)


async def get_agent_service(
    db: AsyncSession = Depends(get_db),
    uploader: MediaUploader = Depends(get_media_uploader),
    settings: Settings = Depends(get_settings),
) -> AgentService:
    return AgentService(db, uploader=uploader, settings=settings)


async def get_notification_service(
    email_client: ResendEmailClient = Depends(get_email_client),
    settings: Settings = Depends(get_settings),
) -> NotificationService:
    return NotificationService(email_client, settings=settings)
