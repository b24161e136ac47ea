"""
Error taxonomy for the contact submission pipeline.

Every error carries the HTTP status it maps to and a public message that is
safe to show to the submitter. Internal details (provider bodies, database
errors) belong in the logs, never in ``message``.
"""

from typing import Optional

from fastapi import status


GENERIC_ERROR_MESSAGE = "An error occurred. Please try again."


class ContactError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    result: str = "error"

    def __init__(self, message: str = GENERIC_ERROR_MESSAGE):
        super().__init__(message)
        self.message = message


class ValidationError(ContactError):
    """Bad input shape. Never retried; the user must correct the field."""

    status_code = status.HTTP_400_BAD_REQUEST
    result = "validation_error"

    def __init__(self, field: str, message: str, errors: Optional[dict] = None):
        super().__init__(message)
        self.field = field
        self.errors = errors or {field: message}


class ThrottledError(ContactError):
    """Too many submissions from one address inside the throttling window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    result = "throttled"

    def __init__(self, message: str = "Too many submissions. Please try again later."):
        super().__init__(message)


class DeliveryError(ContactError):
    """The business notification email could not be delivered."""

    result = "delivery_error"


class PersistenceError(ContactError):
    """The submission could not be written to the store."""

    result = "persistence_error"


class EmailProviderError(Exception):
    """Raised by the email client for non-2xx responses and network failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
