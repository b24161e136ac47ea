"""
Tests for NotificationDispatcher.

Tests cover:
- Re-validation before any side effect
- Per-address throttling inside the trailing window
- HTML escaping of every interpolated field
- Notification failure aborts; confirmation failure is tolerated
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.config import get_settings
from app.dispatcher import NotificationDispatcher
from app.errors import DeliveryError, ThrottledError, ValidationError
from app.storage import count_recent_submissions, create_submission
from app.validation import SubmissionData


NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def dispatcher(email_client):
    return NotificationDispatcher(email_client, get_settings())


def store(db, email, at, name="Prior"):
    return create_submission(
        db, SubmissionData(name=name, email=email, phone="1234567", message=None), now=at
    )


def dispatch(dispatcher, db, email="ada@x.com", message="Need a quote", **kwargs):
    return dispatcher.dispatch(db, "Ada", email, "+1 202-555-0101", message, now=NOW, **kwargs)


class TestValidation:
    def test_invalid_field_raises_before_sending(self, dispatcher, db_session, email_client):
        with pytest.raises(ValidationError) as exc_info:
            dispatcher.dispatch(db_session, "Ada", "not-an-email", "1234567", None)

        assert exc_info.value.field == "email"
        assert exc_info.value.status_code == 400
        assert email_client.sent == []

    def test_reports_first_failing_field(self, dispatcher, db_session):
        with pytest.raises(ValidationError) as exc_info:
            dispatcher.dispatch(db_session, "", "bad", "12345", None)

        assert exc_info.value.field == "name"
        assert set(exc_info.value.errors) == {"name", "email", "phone"}


class TestRateLimit:
    def test_fourth_attempt_in_window_is_throttled(self, dispatcher, db_session, email_client):
        for minutes in (10, 20, 30):
            store(db_session, "x@y.com", NOW - timedelta(minutes=minutes))

        with pytest.raises(ThrottledError) as exc_info:
            dispatch(dispatcher, db_session, email="x@y.com")

        assert exc_info.value.status_code == 429
        assert email_client.sent == []

    def test_other_address_in_same_window_succeeds(self, dispatcher, db_session, email_client):
        for minutes in (10, 20, 30):
            store(db_session, "x@y.com", NOW - timedelta(minutes=minutes))

        result = dispatch(dispatcher, db_session, email="other@y.com")

        assert result.confirmation_sent
        assert len(email_client.sent) == 2

    def test_two_prior_submissions_allowed(self, dispatcher, db_session):
        store(db_session, "x@y.com", NOW - timedelta(minutes=5))
        store(db_session, "x@y.com", NOW - timedelta(minutes=6))

        dispatch(dispatcher, db_session, email="x@y.com")

    def test_submissions_outside_window_not_counted(self, dispatcher, db_session):
        for minutes in (61, 90, 120):
            store(db_session, "x@y.com", NOW - timedelta(minutes=minutes))

        dispatch(dispatcher, db_session, email="x@y.com")

    def test_address_comparison_ignores_case(self, dispatcher, db_session):
        for minutes in (10, 20, 30):
            store(db_session, "X@Y.com", NOW - timedelta(minutes=minutes))

        with pytest.raises(ThrottledError):
            dispatch(dispatcher, db_session, email="x@y.COM")

    @pytest.mark.parametrize("stored,submitted", [
        ("Über@x.com", "Über@x.com"),
        ("Über@x.com", "über@X.com"),
        ("ÉLODIE@exemple.fr", "élodie@exemple.fr"),
    ])
    def test_non_ascii_address_throttled(self, dispatcher, db_session, email_client, stored, submitted):
        for minutes in (10, 20, 30):
            store(db_session, stored, NOW - timedelta(minutes=minutes))

        with pytest.raises(ThrottledError):
            dispatch(dispatcher, db_session, email=submitted)

        assert email_client.sent == []

    def test_excluded_row_not_counted(self, dispatcher, db_session):
        store(db_session, "x@y.com", NOW - timedelta(minutes=10))
        store(db_session, "x@y.com", NOW - timedelta(minutes=20))
        current = store(db_session, "x@y.com", NOW)

        dispatch(dispatcher, db_session, email="x@y.com", exclude_id=current.id)

    def test_concurrent_reads_may_both_pass(self, dispatcher, db_session, email_client):
        # Both requests read the count before either row is written, so each
        # sees two prior submissions and the window ends one over the limit.
        store(db_session, "x@y.com", NOW - timedelta(minutes=10))
        store(db_session, "x@y.com", NOW - timedelta(minutes=20))

        dispatch(dispatcher, db_session, email="x@y.com")
        dispatch(dispatcher, db_session, email="x@y.com")
        store(db_session, "x@y.com", NOW, name="First")
        store(db_session, "x@y.com", NOW, name="Second")

        assert len(email_client.notifications) == 2
        assert count_recent_submissions(db_session, "x@y.com", timedelta(hours=1), now=NOW) == 4

        with pytest.raises(ThrottledError):
            dispatch(dispatcher, db_session, email="x@y.com")
        assert len(email_client.notifications) == 2


class TestEscaping:
    def test_script_tag_escaped_in_both_emails(self, dispatcher, db_session, email_client):
        dispatch(dispatcher, db_session, message="<script>alert(1)</script>")

        for sent in email_client.sent:
            assert "&lt;script&gt;alert(1)&lt;/script&gt;" in sent["html"]
            assert "<script>" not in sent["html"]

    def test_all_special_characters_escaped(self, dispatcher, db_session, email_client):
        dispatcher.dispatch(db_session, "O'Brien & \"Sons\"", "ada@x.com", "1234567", None, now=NOW)

        notification = email_client.notifications[0]
        assert "O&#039;Brien &amp; &quot;Sons&quot;" in notification["html"]
        assert notification["subject"] == "New Contact Form Submission from O&#039;Brien &amp; &quot;Sons&quot;"

    def test_missing_message_placeholder(self, dispatcher, db_session, email_client):
        dispatch(dispatcher, db_session, message=None)

        assert "No message provided" in email_client.notifications[0]["html"]


class TestDelivery:
    def test_sends_notification_then_confirmation(self, dispatcher, db_session, email_client):
        settings = get_settings()

        result = dispatch(dispatcher, db_session, email="Ada@X.com")

        assert [m["subject"] for m in email_client.sent] == [
            "New Contact Form Submission from Ada",
            "Thank you for contacting us!",
        ]
        notification, confirmation = email_client.sent
        assert notification["to"] == [settings.NOTIFICATION_TO]
        assert notification["from"] == settings.NOTIFICATION_FROM
        assert confirmation["to"] == ["Ada@X.com"]
        assert settings.CONTACT_PHONE in confirmation["html"]
        assert settings.CONTACT_WHATSAPP in confirmation["html"]
        assert result.notification_id == "email_1"
        assert result.confirmation_sent

    def test_notification_failure_skips_confirmation(self, dispatcher, db_session, email_client):
        email_client.fail_notification = True

        with pytest.raises(DeliveryError) as exc_info:
            dispatch(dispatcher, db_session)

        assert exc_info.value.status_code == 500
        assert "500" not in exc_info.value.message
        assert email_client.sent == []

    def test_confirmation_failure_still_succeeds(self, dispatcher, db_session, email_client):
        email_client.fail_confirmation = True

        result = dispatch(dispatcher, db_session)

        assert not result.confirmation_sent
        assert len(email_client.notifications) == 1
