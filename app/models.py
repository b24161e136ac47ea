"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import Column, ForeignKey, String, Text, UniqueConstraint

from app.storage import Base


class ContactSubmission(Base):
    """
    One contact-form entry.

    Table: contact_submissions
    Rows are created and deleted, never updated.
    """
    __tablename__ = "contact_submissions"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    email_normalized = Column(String(255), nullable=False, index=True)  # lower-cased, for throttling
    phone = Column(String(20), nullable=False)
    message = Column(Text, nullable=True)
    created_at = Column(String, nullable=False, index=True)  # ISO-8601 UTC, fixed width


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(String, nullable=False)


class UserRole(Base):
    """Role grants, looked up separately from the identity itself."""
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(32), nullable=False)


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(String, nullable=False)
    expires_at = Column(String, nullable=False)
