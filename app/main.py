import logging
from contextlib import asynccontextmanager
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.admin import DateRange, export_csv, export_filename, filter_submissions, visible_actions
from app.auth import (
    CurrentUser,
    authenticate,
    end_session,
    get_current_user,
    get_optional_user,
    register_user,
    require_admin,
    start_session,
)
from app.config import get_settings, settings
from app.dispatcher import NotificationDispatcher
from app.email_client import EmailClient, get_email_client
from app.errors import GENERIC_ERROR_MESSAGE, ContactError, ValidationError
from app.logging_utils import RequestLoggingMiddleware, log_dispatch_data, setup_logging
from app.metrics import get_metrics, get_metrics_content_type, record_dispatch_outcome
from app.schemas import (
    ContactRequest,
    ContactResponse,
    CredentialsRequest,
    ErrorResponse,
    HealthResponse,
    SubmissionCreatedResponse,
    SubmissionResponse,
    SubmissionsListResponse,
    TokenResponse,
    UserResponse,
)
from app.storage import (
    check_db_health,
    create_submission,
    delete_submission,
    get_db,
    get_submission,
    init_db,
    list_submissions,
)
from app.validation import validate_submission


setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Public endpoints answer malformed bodies with {"error": ...} like every other failure
PUBLIC_CONTACT_PATHS = ("/contact", "/submissions", "/send-contact-email")

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    429: {"model": ErrorResponse, "description": "Too many submissions"},
    500: {"model": ErrorResponse, "description": "Delivery or storage failure"},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: Initialize database and create tables
    """
    init_db()
    yield


app = FastAPI(
    title="Contact API",
    description="Contact form submissions, email notifications and admin viewer",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=CORS_ALLOW_HEADERS,
    expose_headers=["X-Request-ID"],
)


def get_dispatcher(email_client: EmailClient = Depends(get_email_client)) -> NotificationDispatcher:
    return NotificationDispatcher(email_client, get_settings())


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(ContactError)
async def contact_error_handler(request: Request, exc: ContactError) -> JSONResponse:
    log_dispatch_data(request, result=exc.result)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if request.url.path not in PUBLIC_CONTACT_PATHS:
        return await request_validation_exception_handler(request, exc)
    logger.warning(f"Malformed contact request: {exc.errors()}")
    log_dispatch_data(request, result=ValidationError.result)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body."},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": GENERIC_ERROR_MESSAGE},
    )


def _validated_record(payload: ContactRequest):
    result = validate_submission(payload.name, payload.email, payload.phone, payload.message)
    if not result.is_valid:
        field, error = result.first_error()
        logger.warning(f"Contact request rejected: invalid {field}")
        raise ValidationError(field, error, errors=result.errors)
    return result.record


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if:
    1. RESEND_API_KEY is set (non-empty)
    2. DB is reachable and schema is applied

    Otherwise returns 503 (Service Unavailable).
    """
    if not get_settings().RESEND_API_KEY:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason="RESEND_API_KEY not configured")

    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )

    return HealthResponse(status="ready")


# =============================================================================
# Public Contact Routes
# =============================================================================

@app.post(
    "/contact",
    response_model=ContactResponse,
    responses=ERROR_RESPONSES,
)
def submit_contact(
    payload: ContactRequest,
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ContactResponse:
    """
    Validate, store and dispatch a contact form submission.

    The store write is the durability boundary: once it succeeds the row is
    kept even if the notification email later fails. The just-written row is
    not counted against the submitter's throttle.
    """
    try:
        record = _validated_record(payload)
    except ValidationError:
        record_dispatch_outcome(ValidationError.result)
        raise

    submission = create_submission(db, record)
    log_dispatch_data(request, submission_id=submission.id)

    dispatcher.dispatch(
        db,
        record.name,
        record.email,
        record.phone,
        record.message,
        exclude_id=submission.id,
    )

    log_dispatch_data(request, result="sent")
    return ContactResponse(success=True, id=submission.id)


@app.post(
    "/submissions",
    response_model=SubmissionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: ERROR_RESPONSES[400], 500: ERROR_RESPONSES[500]},
)
def create_contact_submission(
    payload: ContactRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> SubmissionCreatedResponse:
    """Store a submission without sending any email."""
    record = _validated_record(payload)
    submission = create_submission(db, record)
    log_dispatch_data(request, submission_id=submission.id, result="stored")
    return SubmissionCreatedResponse(id=submission.id, created_at=submission.created_at)


@app.post(
    "/send-contact-email",
    response_model=ContactResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
def send_contact_email(
    payload: ContactRequest,
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ContactResponse:
    """
    Send the notification and confirmation emails for an already-stored
    submission. Submissions from the same address already in the store
    count against the throttle.
    """
    dispatcher.dispatch(db, payload.name, payload.email, payload.phone, payload.message)
    log_dispatch_data(request, result="sent")
    return ContactResponse(success=True)


# =============================================================================
# Auth Routes
# =============================================================================

@app.post("/auth/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(credentials: CredentialsRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user = register_user(db, credentials.email, credentials.password)
    if user is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email already registered")
    session = start_session(db, user.id)
    return TokenResponse(access_token=session.token, expires_at=session.expires_at)


@app.post("/auth/login", response_model=TokenResponse)
def login(credentials: CredentialsRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user = authenticate(db, credentials.email, credentials.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    session = start_session(db, user.id)
    return TokenResponse(access_token=session.token, expires_at=session.expires_at)


@app.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Response:
    end_session(db, current.token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/auth/me", response_model=UserResponse)
def me(current: CurrentUser = Depends(get_current_user)) -> UserResponse:
    actions = visible_actions(current.user, current.is_admin)
    return UserResponse(
        id=current.user.id,
        email=current.user.email,
        is_admin=current.is_admin,
        actions=sorted(action.value for action in actions),
    )


@app.get("/navigation")
def navigation(current: Optional[CurrentUser] = Depends(get_optional_user)) -> dict:
    """Navigation actions for the caller; works signed in or out."""
    if current is None:
        actions = visible_actions(None, False)
    else:
        actions = visible_actions(current.user, current.is_admin)
    return {"actions": sorted(action.value for action in actions)}


# =============================================================================
# Admin Routes
# =============================================================================

@app.get("/admin/submissions", response_model=SubmissionsListResponse)
def admin_list_submissions(
    q: Annotated[str, Query(max_length=255, description="Case-insensitive search in name, email, phone and message")] = "",
    date_range: Annotated[DateRange, Query(alias="range", description="all, today, week or month")] = DateRange.ALL,
    limit: Annotated[Optional[int], Query(ge=1, le=500, description="Page size (default: everything)")] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SubmissionsListResponse:
    """
    List submissions newest first.

    Search and date filters run over the fetched set in memory; limit and
    offset page through the filtered result.
    """
    submissions = list_submissions(db)
    filtered = filter_submissions(submissions, q, date_range)
    page = filtered[offset:offset + limit] if limit is not None else filtered[offset:]

    logger.info(f"Admin list: {len(filtered)} of {len(submissions)} submissions match (q={q!r}, range={date_range.value})")

    return SubmissionsListResponse(
        data=[SubmissionResponse.model_validate(s) for s in page],
        total=len(submissions),
        filtered=len(filtered),
        limit=limit,
        offset=offset,
    )


@app.get("/admin/submissions/export")
def admin_export_submissions(
    q: Annotated[str, Query(max_length=255)] = "",
    date_range: Annotated[DateRange, Query(alias="range")] = DateRange.ALL,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Response:
    """Export the currently filtered submissions as CSV."""
    filtered = filter_submissions(list_submissions(db), q, date_range)
    if not filtered:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="There are no submissions matching your current filters.",
        )

    logger.info(f"Exported {len(filtered)} submission{'s' if len(filtered) != 1 else ''} to CSV")
    return Response(
        content=export_csv(filtered),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@app.get("/admin/submissions/{submission_id}", response_model=SubmissionResponse)
def admin_get_submission(
    submission_id: str,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SubmissionResponse:
    submission = get_submission(db, submission_id)
    if submission is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="submission not found")
    return SubmissionResponse.model_validate(submission)


@app.delete("/admin/submissions/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_submission(
    submission_id: str,
    admin: CurrentUser = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Response:
    """Delete a submission. Deleting an absent id also returns 204."""
    delete_submission(db, submission_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus-style metrics."""
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
