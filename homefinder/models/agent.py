"""
Agent model for the staff members who represent listings.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from homefinder.database import Base
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from homefinder.models.property import Property


class Agent(Base):
    """
    Agent model.
    Owns zero or more properties; deleting an agent unassigns them instead of deleting them.
    """

    __tablename__ = "agents"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Agent display name"
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Agent email address (unique)"
    )

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    image_url: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True,
        comment="Portrait image URL"
    )

    properties: Mapped[List["Property"]] = relationship(
        "Property",
        back_populates="agent",
        passive_deletes=True,
        lazy="noload"
    )

    def __repr__(self) -> str:
        return f"<Agent(id={self.id}, email={self.email})>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "image_url": self.image_url,
        }
