"""
Field validation for contact submissions.

The same rules run for every entrypoint that accepts submitter input; the
server-side result is the authoritative one.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional


NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 255
PHONE_MIN_LENGTH = 7
PHONE_MAX_LENGTH = 20
MESSAGE_MAX_LENGTH = 2000

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[0-9\s\-()+]+$", re.ASCII)

NAME_ERROR = "Invalid name. Must be 1-100 characters."
EMAIL_ERROR = "Invalid email address."
PHONE_ERROR = "Invalid phone number."
MESSAGE_ERROR = "Message must be less than 2000 characters."

# Order in which field errors are reported
FIELD_ORDER = ("name", "email", "phone", "message")


@dataclass(frozen=True)
class SubmissionData:
    """Trimmed, validated submission fields."""
    name: str
    email: str
    phone: str
    message: Optional[str] = None


@dataclass
class ValidationResult:
    record: Optional[SubmissionData] = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def first_error(self) -> Optional[tuple[str, str]]:
        """Return the (field, message) pair of the first failing field."""
        for name in FIELD_ORDER:
            if name in self.errors:
                return name, self.errors[name]
        return None


def _trimmed(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip()


def name_error(value: Any) -> Optional[str]:
    name = _trimmed(value)
    if not name or len(name) > NAME_MAX_LENGTH:
        return NAME_ERROR
    return None


def email_error(value: Any) -> Optional[str]:
    email = _trimmed(value)
    if not email or not EMAIL_PATTERN.match(email) or len(email) > EMAIL_MAX_LENGTH:
        return EMAIL_ERROR
    return None


def phone_error(value: Any) -> Optional[str]:
    phone = _trimmed(value)
    if not phone or not PHONE_PATTERN.match(phone):
        return PHONE_ERROR
    if not PHONE_MIN_LENGTH <= len(phone) <= PHONE_MAX_LENGTH:
        return PHONE_ERROR
    return None


def message_error(value: Any) -> Optional[str]:
    # Optional field: absent or empty is fine
    if value is None or value == "":
        return None
    if not isinstance(value, str) or len(value.strip()) > MESSAGE_MAX_LENGTH:
        return MESSAGE_ERROR
    return None


def validate_submission(name: Any, email: Any, phone: Any, message: Any = None) -> ValidationResult:
    """
    Validate the four raw contact fields.

    Every field is checked independently so that all errors surface together.
    Malformed input (wrong types included) is reported as a field error,
    never raised.

    Returns:
        ValidationResult with either ``record`` (trimmed fields; empty message
        becomes None) or a field-keyed ``errors`` dict.
    """
    checks = {
        "name": name_error(name),
        "email": email_error(email),
        "phone": phone_error(phone),
        "message": message_error(message),
    }
    errors = {key: error for key, error in checks.items() if error}
    if errors:
        return ValidationResult(errors=errors)

    trimmed_message = message.strip() if isinstance(message, str) else None
    return ValidationResult(
        record=SubmissionData(
            name=name.strip(),
            email=email.strip(),
            phone=phone.strip(),
            message=trimmed_message or None,
        )
    )
