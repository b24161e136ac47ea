"""
HTML bodies for the notification and confirmation emails.

Every submitter-controlled value passes through ``escape_html`` before it
is interpolated.
"""

from dataclasses import dataclass
from typing import Optional

from app.validation import SubmissionData


NO_MESSAGE_PLACEHOLDER = "No message provided"
CONFIRMATION_SUBJECT = "Thank you for contacting us!"

_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#039;"),
)


def escape_html(value: Optional[str]) -> str:
    """Escape ``& < > " '`` for safe interpolation into HTML. ``&`` goes first."""
    if not value:
        return ""
    for raw, entity in _HTML_ESCAPES:
        value = value.replace(raw, entity)
    return value


@dataclass(frozen=True)
class EscapedSubmission:
    name: str
    email: str
    phone: str
    message: str

    @classmethod
    def from_record(cls, record: SubmissionData) -> "EscapedSubmission":
        return cls(
            name=escape_html(record.name),
            email=escape_html(record.email),
            phone=escape_html(record.phone),
            message=escape_html(record.message or NO_MESSAGE_PLACEHOLDER),
        )


def notification_subject(safe: EscapedSubmission) -> str:
    return f"New Contact Form Submission from {safe.name}"


def render_notification(safe: EscapedSubmission) -> str:
    return f"""
          <h1>New Contact Form Submission</h1>
          <p><strong>Name:</strong> {safe.name}</p>
          <p><strong>Email:</strong> {safe.email}</p>
          <p><strong>Phone:</strong> {safe.phone}</p>
          <p><strong>Message:</strong></p>
          <p>{safe.message}</p>
        """


def render_confirmation(safe: EscapedSubmission, phone: str, whatsapp: str, email: str) -> str:
    """Thank-you body echoing the submitter's message and our contact channels."""
    phone = escape_html(phone)
    whatsapp = escape_html(whatsapp)
    email = escape_html(email)
    return f"""
          <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1 style="color: #333;">Thank You, {safe.name}!</h1>
            <p>We've received your message and appreciate you reaching out to us.</p>
            <p>Our team will review your inquiry and get back to you as soon as possible, typically within 24-48 hours.</p>
            <hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;" />
            <h3 style="color: #666;">Your Message:</h3>
            <p style="background: #f9f9f9; padding: 15px; border-radius: 5px;">{safe.message}</p>
            <hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;" />
            <p style="color: #888; font-size: 14px;">
              If you have any urgent questions, feel free to call us at {phone}, message us on WhatsApp at {whatsapp}
              or email us at <a href="mailto:{email}">{email}</a>.
            </p>
            <p style="color: #333;">Best regards,<br/>The Website My Business Team</p>
          </div>
        """
