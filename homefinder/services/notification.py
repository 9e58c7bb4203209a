"""
Notification service for contact and property inquiry messages.
Validates the submission, formats an HTML message and dispatches it with the
submitter as reply-to.
"""

from html import escape
from typing import List, Optional
import logging

from homefinder.config import Settings, get_settings
from homefinder.models.property import Property
from homefinder.schemas.forms import ContactForm, InquiryForm
from homefinder.services.email import ResendEmailClient
from homefinder.utils.exceptions import DeliveryError, ValidationError
from homefinder.utils.validators import ValidationUtils

logger = logging.getLogger(__name__)


def _html_text(value: str) -> str:
    """Escape user text and keep its line breaks."""
    return escape(value).replace("\r\n", "\n").replace("\n", "<br>")


class NotificationService:
    """Formats and sends transactional email."""

    def __init__(self, email_client: ResendEmailClient, settings: Optional[Settings] = None):
        self.email_client = email_client
        self.settings = settings or get_settings()

    async def send_contact(self, form: ContactForm) -> str:
        """
        Send a general contact message.

        Returns:
            Provider message id

        Raises:
            DeliveryError: Email not configured or delivery failed
            ValidationError: Missing fields or invalid email
        """
        self._ensure_configured()
        self._validate(form.name, form.email, form.message)

        subject = f"Contact Form: {form.subject}" if form.subject else "New Contact Form Submission"
        html = (
            "<h2>New Contact Form Submission</h2>"
            "<hr>"
            f"<p><strong>Name:</strong> {escape(form.name)}</p>"
            f"<p><strong>Email:</strong> {escape(form.email)}</p>"
            + (f"<p><strong>Subject:</strong> {escape(form.subject)}</p>" if form.subject else "")
            + "<hr>"
            "<p><strong>Message:</strong></p>"
            f"<p>{_html_text(form.message)}</p>"
        )

        logger.info(f"Sending contact email from {form.email}")
        return await self._dispatch(subject, html, form.email)

    async def send_inquiry(self, form: InquiryForm, property_obj: Property) -> str:
        """Send an inquiry about a property to the office inbox."""
        self._ensure_configured()
        self._validate(form.name, form.email, form.message)

        property_link = f"{self.settings.site_url.rstrip('/')}/properties/{property_obj.slug}"
        subject = f"New Inquiry: {property_obj.title}"
        html = (
            "<h2>New Property Inquiry</h2>"
            f"<p><strong>Property:</strong> {escape(property_obj.title)}</p>"
            f'<p><strong>Link:</strong> <a href="{escape(property_link)}">{escape(property_link)}</a></p>'
            "<hr>"
            f"<p><strong>Name:</strong> {escape(form.name)}</p>"
            f"<p><strong>Email:</strong> {escape(form.email)}</p>"
            + (f"<p><strong>Phone:</strong> {escape(form.phone)}</p>" if form.phone else "")
            + "<hr>"
            "<p><strong>Message:</strong></p>"
            f"<p>{_html_text(form.message)}</p>"
        )

        logger.info(f"Sending inquiry email for property {property_obj.slug} from {form.email}")
        return await self._dispatch(subject, html, form.email)

    def _ensure_configured(self) -> None:
        if not self.email_client.is_configured():
            logger.error("Email send requested but the email service is not configured")
            raise DeliveryError.not_configured()

    def _validate(self, name: str, email: str, message: str) -> None:
        field_errors: List[dict] = []
        if not name:
            field_errors.append(ValidationUtils.field_error("name", "Name is required"))
        if not email:
            field_errors.append(ValidationUtils.field_error("email", "Email is required"))
        elif not ValidationUtils.is_valid_email(email):
            field_errors.append(ValidationUtils.field_error("email", "Please provide a valid email address."))
        if not message:
            field_errors.append(ValidationUtils.field_error("message", "Message is required"))

        if field_errors:
            missing = any(error["message"].endswith("is required") for error in field_errors)
            detail = "Missing required fields (Name, Email, Message)." if missing else "Please provide a valid email address."
            raise ValidationError(detail, field_errors=field_errors)

    async def _dispatch(self, subject: str, html: str, reply_to: str) -> str:
        return await self.email_client.send(
            sender=self.settings.email_from,
            to=list(self.settings.email_recipients),
            subject=subject,
            html=html,
            reply_to=reply_to,
        )
