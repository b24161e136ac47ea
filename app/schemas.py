"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for incoming data
- Response models for API responses
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from app.validation import EMAIL_ERROR, EMAIL_MAX_LENGTH, email_error


# =============================================================================
# Pydantic Request Models
# =============================================================================

class ContactRequest(BaseModel):
    """
    Raw contact form fields.

    Types are deliberately loose: field rules live in app.validation so that
    every failure, wrong types included, is reported with the same messages.
    """
    name: Any = Field(None, description="Submitter name (1-100 characters)")
    email: Any = Field(None, description="Submitter email address")
    phone: Any = Field(None, description="Phone number, digits and ' +()-' only, 7-20 characters")
    message: Any = Field(None, description="Optional message, up to 2000 characters")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Ada",
                    "email": "ada@x.com",
                    "phone": "+1 202-555-0101",
                    "message": "Need a quote",
                }
            ]
        }
    }


class CredentialsRequest(BaseModel):
    """Email/password pair for signup and login."""
    email: str = Field(..., max_length=EMAIL_MAX_LENGTH)
    password: str = Field(..., min_length=6, max_length=72)

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str) -> str:
        if email_error(v):
            raise ValueError(EMAIL_ERROR)
        return v.strip()


# =============================================================================
# Pydantic Response Models
# =============================================================================

class ContactResponse(BaseModel):
    success: bool = Field(default=True)
    id: Optional[str] = Field(None, description="Stored submission id, when one was written")


class SubmissionCreatedResponse(BaseModel):
    id: str = Field(..., description="Generated submission identifier")
    created_at: str = Field(..., description="Server timestamp (ISO-8601 UTC)")


class ErrorResponse(BaseModel):
    """Public error body. Never carries internal details."""
    error: str = Field(..., description="Error description")


class SubmissionResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    message: Optional[str] = None
    created_at: str

    model_config = {"from_attributes": True}


class SubmissionsListResponse(BaseModel):
    """
    Response model for GET /admin/submissions.

    - data: page of submissions matching the filters, newest first
    - total: all stored submissions
    - filtered: submissions matching the filters (ignoring limit/offset)
    """
    data: list[SubmissionResponse] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    filtered: int = Field(..., ge=0)
    limit: Optional[int] = Field(None, ge=1)
    offset: int = Field(..., ge=0)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: str


class UserResponse(BaseModel):
    id: str
    email: str
    is_admin: bool
    actions: list[str] = Field(default_factory=list, description="Navigation actions visible to this user")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
