"""
Form submissions for admin and public actions.
Values are kept as submitted strings so a failed action can echo them back;
the services do the parsing and validation.
"""

from pydantic import BaseModel, Field
from starlette.datastructures import FormData, UploadFile
from typing import Any, Dict, List, Optional


class UploadedFile(BaseModel):
    """An uploaded file read into memory."""

    filename: str = ""
    content_type: Optional[str] = None
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_empty(self) -> bool:
        return self.size == 0


async def _read_upload(value: Any) -> Optional[UploadedFile]:
    if not isinstance(value, UploadFile):
        return None
    content = await value.read()
    return UploadedFile(
        filename=value.filename or "",
        content_type=value.content_type,
        content=content,
    )


def _text(form: FormData, key: str) -> str:
    value = form.get(key)
    if value is None or isinstance(value, UploadFile):
        return ""
    return str(value).strip()


def _flag(form: FormData, key: str) -> bool:
    return _text(form, key).lower() in ("on", "true", "1", "yes")


class PropertyForm(BaseModel):
    """Create/update property submission."""

    title: str = ""
    slug: str = ""
    address: str = ""
    price: str = ""
    beds: str = ""
    baths: str = ""
    area: str = ""
    year_built: str = ""
    description: str = ""
    property_type: str = ""
    latitude: str = ""
    longitude: str = ""
    video_url: str = ""
    features: str = Field("", description="Comma-separated feature labels")
    agent_id: str = ""
    is_featured: bool = False
    images_to_delete: List[str] = Field(default_factory=list)
    image: Optional[UploadedFile] = None
    gallery_images: List[UploadedFile] = Field(default_factory=list)

    @classmethod
    async def from_form(cls, form: FormData) -> "PropertyForm":
        gallery = []
        for value in form.getlist("gallery_images"):
            uploaded = await _read_upload(value)
            if uploaded is not None:
                gallery.append(uploaded)

        return cls(
            title=_text(form, "title"),
            slug=_text(form, "slug"),
            address=_text(form, "address"),
            price=_text(form, "price"),
            beds=_text(form, "beds"),
            baths=_text(form, "baths"),
            area=_text(form, "area"),
            year_built=_text(form, "year_built"),
            description=_text(form, "description"),
            property_type=_text(form, "property_type"),
            latitude=_text(form, "latitude"),
            longitude=_text(form, "longitude"),
            video_url=_text(form, "video_url"),
            features=_text(form, "features"),
            agent_id=_text(form, "agent_id"),
            is_featured=_flag(form, "is_featured"),
            images_to_delete=[
                str(value).strip() for value in form.getlist("images_to_delete")
                if isinstance(value, str) and value.strip()
            ],
            image=await _read_upload(form.get("image")),
            gallery_images=gallery,
        )

    def submitted_values(self) -> Dict[str, Any]:
        """Submitted text fields for redisplay (files are never echoed)."""
        return self.model_dump(exclude={"image", "gallery_images"})


class AgentForm(BaseModel):
    """Create/update agent submission."""

    name: str = ""
    email: str = ""
    phone: str = ""
    image: Optional[UploadedFile] = None

    @classmethod
    async def from_form(cls, form: FormData) -> "AgentForm":
        return cls(
            name=_text(form, "name"),
            email=_text(form, "email"),
            phone=_text(form, "phone"),
            image=await _read_upload(form.get("image")),
        )

    def submitted_values(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"image"})


class ContactForm(BaseModel):
    """Public contact form."""

    name: str = ""
    email: str = ""
    subject: str = ""
    message: str = ""

    @classmethod
    def from_form(cls, form: FormData) -> "ContactForm":
        return cls(
            name=_text(form, "name"),
            email=_text(form, "email"),
            subject=_text(form, "subject"),
            message=_text(form, "message"),
        )

    def submitted_values(self) -> Dict[str, Any]:
        return self.model_dump()


class InquiryForm(BaseModel):
    """Inquiry about a single property."""

    name: str = ""
    email: str = ""
    phone: str = ""
    message: str = ""

    @classmethod
    def from_form(cls, form: FormData) -> "InquiryForm":
        return cls(
            name=_text(form, "name"),
            email=_text(form, "email"),
            phone=_text(form, "phone"),
            message=_text(form, "message"),
        )

    def submitted_values(self) -> Dict[str, Any]:
        return self.model_dump()
