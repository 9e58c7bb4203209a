"""
Property model for sale and rental listings.
Handles listing data with pricing, media references and the optional agent relationship.
"""

from sqlalchemy import String, Text, Integer, Float, Boolean, Index, ForeignKey, Uuid, JSON
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship
from homefinder.database import Base
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from homefinder.models.agent import Agent


# Native ordered array on PostgreSQL; JSON only for the SQLite test dialect
StringList = ARRAY(String).with_variant(JSON(), "sqlite")


class Property(Base):
    """
    Property model for managing listings.
    The slug is the public, human-readable identifier used in URLs.
    """

    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Property listing title"
    )

    slug: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="URL-safe unique identifier"
    )

    address: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Street address or locality"
    )

    price: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Asking price in whole currency units"
    )

    beds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    baths: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    area: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Living area in square metres"
    )
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    property_type: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Free-text category such as Villa or Apartment"
    )

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Media references
    image_url: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True,
        comment="Primary image URL"
    )

    gallery_images: Mapped[List[str]] = mapped_column(
        StringList,
        nullable=False,
        default=list,
        comment="Ordered gallery image URLs"
    )

    features: Mapped[List[str]] = mapped_column(
        StringList,
        nullable=False,
        default=list,
        comment="Short feature labels"
    )

    video_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    is_featured: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
        comment="Shown on the landing page"
    )

    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Listing agent; cleared when the agent is deleted"
    )

    agent: Mapped[Optional["Agent"]] = relationship(
        "Agent",
        back_populates="properties",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, slug={self.slug}, price={self.price})>"

    def to_summary(self) -> dict:
        """Fields needed by listing cards."""
        return {
            "id": str(self.id),
            "slug": self.slug,
            "title": self.title,
            "address": self.address,
            "price": self.price,
            "beds": self.beds,
            "baths": self.baths,
            "area": self.area,
            "property_type": self.property_type,
            "image_url": self.image_url,
            "is_featured": self.is_featured,
        }

    def to_dict(self, include_agent: bool = False) -> dict:
        """
        Convert property to dictionary.

        Args:
            include_agent: Whether to include agent information

        Returns:
            Dictionary representation of property
        """
        result = self.to_summary()
        result.update({
            "description": self.description,
            "year_built": self.year_built,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "gallery_images": list(self.gallery_images or []),
            "features": list(self.features or []),
            "video_url": self.video_url,
            "agent_id": str(self.agent_id) if self.agent_id else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        })

        if include_agent:
            result["agent"] = self.agent.to_dict() if self.agent else None

        return result


# Search filters combine type and price; the landing page reads featured by recency
type_price_index = Index(
    'idx_properties_type_price',
    Property.property_type,
    Property.price
)

featured_created_index = Index(
    'idx_properties_featured_created',
    Property.is_featured,
    Property.created_at.desc()
)
