"""
Server-side dispatch of contact submissions.

A dispatch re-validates the submitter's fields, applies the per-address
throttle, then sends the business notification followed by the submitter
confirmation. The notification is the must-deliver leg: if it fails the
confirmation is not attempted. A failed confirmation is logged only.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings
from app.email_client import EmailClient
from app.errors import DeliveryError, EmailProviderError, ThrottledError, ValidationError
from app.metrics import record_dispatch_outcome, record_email
from app.storage import count_recent_submissions
from app.templates import (
    CONFIRMATION_SUBJECT,
    EscapedSubmission,
    notification_subject,
    render_confirmation,
    render_notification,
)
from app.utils import mask_email
from app.validation import SubmissionData, validate_submission

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    notification_id: Optional[str] = None
    confirmation_sent: bool = False


class NotificationDispatcher:
    """Validates, throttles and sends the two emails for one submission."""

    def __init__(self, email_client: EmailClient, settings: Settings):
        self.email_client = email_client
        self.settings = settings

    @property
    def rate_limit_window(self) -> timedelta:
        return timedelta(seconds=self.settings.RATE_LIMIT_WINDOW_SECONDS)

    def dispatch(
        self,
        db: Session,
        name: Any,
        email: Any,
        phone: Any,
        message: Any = None,
        exclude_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DispatchResult:
        """
        Dispatch the notification and confirmation emails for a submission.

        Args:
            db: Session used for the rate-limit lookup
            name, email, phone, message: Raw submitter fields
            exclude_id: Stored submission to leave out of the rate-limit count
                (the row written for this very dispatch)
            now: Reference time for the throttling window

        Raises:
            ValidationError: a field failed validation; nothing was sent
            ThrottledError: too many recent submissions; nothing was sent
            DeliveryError: the business notification could not be sent
        """
        result = validate_submission(name, email, phone, message)
        if not result.is_valid:
            field, error = result.first_error()
            logger.warning(f"Dispatch rejected: invalid {field}")
            record_dispatch_outcome(ValidationError.result)
            raise ValidationError(field, error, errors=result.errors)

        record = result.record
        self._check_rate_limit(db, record.email, exclude_id=exclude_id, now=now)

        safe = EscapedSubmission.from_record(record)
        logger.info(f"Sending contact notification email for {safe.name} <{mask_email(record.email)}>")

        notification_id = self._send_notification(safe)
        confirmation_sent = self._send_confirmation(record, safe)

        record_dispatch_outcome("sent")
        return DispatchResult(notification_id=notification_id, confirmation_sent=confirmation_sent)

    def _check_rate_limit(
        self,
        db: Session,
        email: str,
        exclude_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        try:
            recent = count_recent_submissions(
                db, email, self.rate_limit_window, now=now, exclude_id=exclude_id
            )
        except SQLAlchemyError as e:
            # A failed lookup does not block delivery
            db.rollback()
            logger.error(f"Rate limit check error: {e}")
            return

        logger.debug(f"Recent submissions for {mask_email(email)}: {recent}")
        if recent >= self.settings.RATE_LIMIT_MAX_SUBMISSIONS:
            logger.warning(f"Rate limit exceeded for email: {mask_email(email)}")
            record_dispatch_outcome(ThrottledError.result)
            raise ThrottledError()

    def _send_notification(self, safe: EscapedSubmission) -> Optional[str]:
        try:
            data = self.email_client.send(
                sender=self.settings.NOTIFICATION_FROM,
                to=[self.settings.NOTIFICATION_TO],
                subject=notification_subject(safe),
                html=render_notification(safe),
            )
        except EmailProviderError as e:
            logger.error(f"Notification email failed: {e}")
            record_email("notification", sent=False)
            record_dispatch_outcome(DeliveryError.result)
            raise DeliveryError() from e

        record_email("notification", sent=True)
        logger.info(f"Notification email sent successfully: {data.get('id')}")
        return data.get("id")

    def _send_confirmation(self, record: SubmissionData, safe: EscapedSubmission) -> bool:
        try:
            data = self.email_client.send(
                sender=self.settings.CONFIRMATION_FROM,
                to=[record.email],
                subject=CONFIRMATION_SUBJECT,
                html=render_confirmation(
                    safe,
                    phone=self.settings.CONTACT_PHONE,
                    whatsapp=self.settings.CONTACT_WHATSAPP,
                    email=self.settings.CONTACT_EMAIL,
                ),
            )
        except EmailProviderError as e:
            # The business was already notified; the submission stands
            logger.error(f"Confirmation email failed: {e}")
            record_email("confirmation", sent=False)
            return False

        record_email("confirmation", sent=True)
        logger.info(f"Confirmation email sent successfully: {data.get('id')}")
        return True
