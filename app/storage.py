import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Generator, Optional

from sqlalchemy import create_engine, func, inspect, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.config import settings
from app.errors import PersistenceError
from app.validation import SubmissionData

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# check_same_thread=False is required for SQLite to work with FastAPI's threadpool
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args,
    pool_pre_ping=True,
    echo=False,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

REQUIRED_TABLES = ("contact_submissions", "users", "user_roles", "auth_sessions")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as fixed-width ISO-8601 UTC so string order is time order."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def normalize_email(email: str) -> str:
    """Case-folded form used for per-address comparisons; the stored address keeps its case."""
    return email.strip().lower()


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug("Initializing database")
    try:
        # Import models to register them with Base.metadata
        from app import models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and the schema is applied.

    Returns:
        True if DB is healthy and all tables exist, False otherwise.
    """
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        existing = set(inspect(engine).get_table_names())
        missing = [name for name in REQUIRED_TABLES if name not in existing]
        if missing:
            logger.error(f"Database schema not applied, missing tables: {missing}")
            return False
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return False


# =============================================================================
# Submission Repository Functions
# =============================================================================

def create_submission(db: Session, record: SubmissionData, now: Optional[datetime] = None):
    """
    Insert a new contact submission.

    A successful return is the durability boundary: the row stays even if
    notification emails fail afterwards.

    Raises:
        PersistenceError: on any database failure (the session is rolled back)
    """
    from app.models import ContactSubmission

    submission = ContactSubmission(
        id=str(uuid.uuid4()),
        name=record.name,
        email=record.email,
        email_normalized=normalize_email(record.email),
        phone=record.phone,
        message=record.message,
        created_at=format_timestamp(now or utc_now()),
    )
    try:
        db.add(submission)
        db.commit()
        db.refresh(submission)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to store submission: {e}")
        raise PersistenceError() from e

    logger.info(f"Submission stored: {submission.id}")
    return submission


def list_submissions(db: Session, limit: Optional[int] = None, offset: int = 0) -> list:
    """Return submissions newest first, optionally paginated."""
    from app.models import ContactSubmission

    query = db.query(ContactSubmission).order_by(
        ContactSubmission.created_at.desc(), ContactSubmission.id.desc()
    )
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    submissions = query.all()
    logger.debug(f"Listed {len(submissions)} submissions (limit={limit}, offset={offset})")
    return submissions


def get_submission(db: Session, submission_id: str):
    from app.models import ContactSubmission

    return db.get(ContactSubmission, submission_id)


def delete_submission(db: Session, submission_id: str) -> bool:
    """
    Delete a submission by id.

    Idempotent: deleting an id that does not exist is not an error.

    Returns:
        True if a row was removed, False if it was already absent.
    """
    from app.models import ContactSubmission

    try:
        deleted = (
            db.query(ContactSubmission)
            .filter(ContactSubmission.id == submission_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete submission {submission_id}: {e}")
        raise PersistenceError() from e

    if deleted:
        logger.info(f"Submission deleted: {submission_id}")
    else:
        logger.info(f"Submission already absent: {submission_id}")
    return bool(deleted)


def count_recent_submissions(
    db: Session,
    email: str,
    window: timedelta,
    now: Optional[datetime] = None,
    exclude_id: Optional[str] = None,
) -> int:
    """
    Count submissions from ``email`` created inside the trailing ``window``.

    The address comparison is case-insensitive; stored values keep their case.
    """
    from app.models import ContactSubmission

    since = format_timestamp((now or utc_now()) - window)
    query = db.query(func.count(ContactSubmission.id)).filter(
        ContactSubmission.email_normalized == normalize_email(email),
        ContactSubmission.created_at >= since,
    )
    if exclude_id is not None:
        query = query.filter(ContactSubmission.id != exclude_id)
    return query.scalar() or 0


# =============================================================================
# User / Role / Session Repository Functions
# =============================================================================

def create_user(db: Session, email: str, password_hash: str):
    """
    Create a user account.

    Returns:
        The new User, or None if the address is already registered.
    """
    from app.models import User

    user = User(
        id=str(uuid.uuid4()),
        email=normalize_email(email),
        password_hash=password_hash,
        created_at=format_timestamp(utc_now()),
    )
    try:
        db.add(user)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Signup rejected: address already registered")
        return None
    db.refresh(user)
    return user


def get_user(db: Session, user_id: str):
    from app.models import User

    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str):
    from app.models import User

    return db.query(User).filter(User.email == normalize_email(email)).first()


def grant_role(db: Session, user_id: str, role: str) -> None:
    from app.models import UserRole

    if has_role(db, user_id, role):
        return
    db.add(UserRole(id=str(uuid.uuid4()), user_id=user_id, role=role))
    db.commit()
    logger.info(f"Granted role {role} to user {user_id}")


def has_role(db: Session, user_id: str, role: str) -> bool:
    from app.models import UserRole

    return (
        db.query(UserRole.id)
        .filter(UserRole.user_id == user_id, UserRole.role == role)
        .first()
        is not None
    )


def create_auth_session(db: Session, user_id: str, token: str, ttl: timedelta):
    from app.models import AuthSession

    now = utc_now()
    session = AuthSession(
        token=token,
        user_id=user_id,
        created_at=format_timestamp(now),
        expires_at=format_timestamp(now + ttl),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def get_auth_session(db: Session, token: str, now: Optional[datetime] = None):
    """Return the session for ``token`` unless it is missing or expired."""
    from app.models import AuthSession

    session = db.get(AuthSession, token)
    if session is None:
        return None
    if session.expires_at <= format_timestamp(now or utc_now()):
        logger.debug("Auth session expired")
        return None
    return session


def delete_auth_session(db: Session, token: str) -> None:
    from app.models import AuthSession

    db.query(AuthSession).filter(AuthSession.token == token).delete(synchronize_session=False)
    db.commit()
