"""
Tests for the submission store.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from app.errors import PersistenceError
from app.storage import (
    check_db_health,
    count_recent_submissions,
    create_submission,
    delete_submission,
    format_timestamp,
    get_submission,
    list_submissions,
    parse_timestamp,
)
from app.validation import SubmissionData


RECORD = SubmissionData(name="Ada", email="Ada@X.com", phone="1234567", message="hi")
NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def test_create_assigns_id_and_timestamp(db_session):
    row = create_submission(db_session, RECORD, now=NOW)

    assert len(row.id) == 36
    assert row.created_at == "2025-01-15T12:00:00.000000Z"
    assert row.email == "Ada@X.com"


def test_ids_are_unique(db_session):
    ids = {create_submission(db_session, RECORD).id for _ in range(5)}
    assert len(ids) == 5


def test_list_newest_first_with_pagination(db_session):
    rows = [create_submission(db_session, RECORD, now=NOW + timedelta(seconds=i)) for i in range(4)]
    expected = [row.id for row in reversed(rows)]

    assert [row.id for row in list_submissions(db_session)] == expected
    assert [row.id for row in list_submissions(db_session, limit=2, offset=1)] == expected[1:3]


def test_delete_twice(db_session):
    row = create_submission(db_session, RECORD)
    submission_id = row.id

    assert delete_submission(db_session, submission_id) is True
    assert delete_submission(db_session, submission_id) is False
    db_session.expire_all()
    assert get_submission(db_session, submission_id) is None


def test_count_recent_window_and_case(db_session):
    create_submission(db_session, RECORD, now=NOW - timedelta(minutes=59))
    create_submission(db_session, RECORD, now=NOW - timedelta(minutes=61))
    create_submission(db_session, SubmissionData("Bob", "bob@x.com", "1234567"), now=NOW)

    assert count_recent_submissions(db_session, " ada@x.COM ", timedelta(hours=1), now=NOW) == 1
    assert count_recent_submissions(db_session, "ada@x.com", timedelta(hours=2), now=NOW) == 2


def test_non_ascii_address_counted(db_session):
    record = SubmissionData(name="Ada", email="Ülla@X.com", phone="1234567", message=None)
    row = create_submission(db_session, record, now=NOW)

    assert row.email == "Ülla@X.com"
    assert row.email_normalized == "ülla@x.com"
    assert count_recent_submissions(db_session, "ÜLLA@x.com", timedelta(hours=1), now=NOW) == 1


def test_create_failure_raises_persistence_error():
    db = Mock()
    db.commit.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))

    with pytest.raises(PersistenceError) as exc_info:
        create_submission(db, RECORD)

    db.rollback.assert_called_once()
    assert "locked" not in exc_info.value.message


def test_timestamp_round_trip_is_fixed_width():
    value = format_timestamp(datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
    assert value == "2025-01-02T03:04:05.000000Z"
    assert parse_timestamp(value) == datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_health_check(db_session):
    assert check_db_health() is True
