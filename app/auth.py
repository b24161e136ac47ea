"""
Session-based identity and the admin role check.

Identity comes from an opaque bearer token issued at login; whether that
user is an admin is a separate lookup against ``user_roles``.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config import get_settings
from app.storage import (
    create_auth_session,
    create_user,
    delete_auth_session,
    get_auth_session,
    get_db,
    get_user,
    get_user_by_email,
    has_role,
)
from app.utils import generate_token, hash_password, verify_password

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    user: object
    token: str
    is_admin: bool


def register_user(db: Session, email: str, password: str):
    """Create an account; returns None if the address is taken."""
    return create_user(db, email, hash_password(password))


def authenticate(db: Session, email: str, password: str):
    """Return the user for valid credentials, otherwise None."""
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Login rejected: invalid credentials")
        return None
    return user


def start_session(db: Session, user_id: str):
    ttl = timedelta(seconds=get_settings().AUTH_SESSION_TTL_SECONDS)
    return create_auth_session(db, user_id, generate_token(), ttl)


def end_session(db: Session, token: str) -> None:
    delete_auth_session(db, token)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[CurrentUser]:
    """Resolve the bearer token to a user, or None when absent/invalid/expired."""
    if credentials is None or not credentials.credentials:
        return None
    session = get_auth_session(db, credentials.credentials)
    if session is None:
        return None
    user = get_user(db, session.user_id)
    if user is None:
        return None
    return CurrentUser(
        user=user,
        token=session.token,
        is_admin=has_role(db, user.id, ADMIN_ROLE),
    )


def get_current_user(current: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current


def require_admin(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current.is_admin:
        logger.warning(f"Admin access denied for user {current.user.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="admin access required",
        )
    return current
