"""
Admin viewer helpers.

Search, date-range filtering and CSV export all operate on an
already-fetched, in-memory list of submissions.
"""

import csv
import io
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional

from app.storage import parse_timestamp


CSV_HEADERS = ["Name", "Email", "Phone", "Message", "Date"]
CSV_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class DateRange(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


_RANGE_DAYS = {
    DateRange.TODAY: 0,
    DateRange.WEEK: 7,
    DateRange.MONTH: 30,
}


class Action(str, Enum):
    SIGN_IN = "sign_in"
    SIGN_OUT = "sign_out"
    VIEW_ADMIN = "view_admin"


def range_start(date_range: DateRange, now: datetime) -> Optional[datetime]:
    """Lower bound for ``date_range``, counted back from the start of ``now``'s UTC day."""
    if date_range == DateRange.ALL:
        return None
    start_of_day = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return start_of_day - timedelta(days=_RANGE_DAYS[date_range])


def matches_query(submission, query: str) -> bool:
    """Case-insensitive substring match on name, email and message; phone matches as typed."""
    if not query:
        return True
    needle = query.lower()
    return (
        needle in submission.name.lower()
        or needle in submission.email.lower()
        or query in submission.phone
        or needle in (submission.message or "").lower()
    )


def filter_submissions(
    submissions: Iterable,
    query: str = "",
    date_range: DateRange = DateRange.ALL,
    now: Optional[datetime] = None,
) -> list:
    """Apply search and date-range filters, preserving input order."""
    start = range_start(DateRange(date_range), now or datetime.now(timezone.utc))
    filtered = []
    for submission in submissions:
        if not matches_query(submission, query):
            continue
        if start is not None and parse_timestamp(submission.created_at) <= start:
            continue
        filtered.append(submission)
    return filtered


def export_csv(submissions: Iterable) -> str:
    """
    Render submissions as CSV.

    Every field is double-quoted with embedded quotes doubled; rows are
    newline separated with no trailing newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(CSV_HEADERS) + "\n")
    for submission in submissions:
        writer.writerow([
            submission.name,
            submission.email,
            submission.phone,
            submission.message or "",
            parse_timestamp(submission.created_at).strftime(CSV_DATE_FORMAT),
        ])
    return buffer.getvalue().rstrip("\n")


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"contact-submissions-{now:%Y-%m-%d}.csv"


def visible_actions(user, is_admin: bool) -> frozenset:
    """Navigation actions available to ``user`` (None when signed out)."""
    if user is None:
        return frozenset({Action.SIGN_IN})
    if is_admin:
        return frozenset({Action.SIGN_OUT, Action.VIEW_ADMIN})
    return frozenset({Action.SIGN_OUT})
