"""
Pytest configuration and shared fixtures.

Test environment variables are set here before any app module is imported,
and the settings cache is cleared so they take effect.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///./test_contact.db"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")

import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
get_settings.cache_clear()

from app.auth import ADMIN_ROLE, register_user
from app.email_client import get_email_client
from app.errors import EmailProviderError
from app.main import app
from app.storage import Base, SessionLocal, engine, grant_role, init_db


class FakeEmailClient:
    """Records sends instead of calling the provider; can fail on demand."""

    def __init__(self):
        self.sent = []
        self.fail_notification = False
        self.fail_confirmation = False

    def send(self, sender, to, subject, html):
        is_confirmation = subject == "Thank you for contacting us!"
        if is_confirmation and self.fail_confirmation:
            raise EmailProviderError("Email API returned 500", status_code=500)
        if not is_confirmation and self.fail_notification:
            raise EmailProviderError("Email API returned 500", status_code=500)
        self.sent.append({"from": sender, "to": to, "subject": subject, "html": html})
        return {"id": f"email_{len(self.sent)}"}

    @property
    def notifications(self):
        return [m for m in self.sent if m["subject"] != "Thank you for contacting us!"]

    @property
    def confirmations(self):
        return [m for m in self.sent if m["subject"] == "Thank you for contacting us!"]


@pytest.fixture
def db_session():
    """Fresh tables and a session for each test."""
    init_db()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def client(db_session, email_client):
    """Test client with a fresh database and the fake email client."""
    app.dependency_overrides[get_email_client] = lambda: email_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def valid_payload() -> dict:
    return {
        "name": "Ada",
        "email": "ada@x.com",
        "phone": "+1 202-555-0101",
        "message": "Need a quote",
    }


def _login(client, email, password) -> dict:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client, db_session) -> dict:
    user = register_user(db_session, "admin@example.com", "admin-pass")
    grant_role(db_session, user.id, ADMIN_ROLE)
    return _login(client, "admin@example.com", "admin-pass")


@pytest.fixture
def user_headers(client, db_session) -> dict:
    register_user(db_session, "user@example.com", "user-pass")
    return _login(client, "user@example.com", "user-pass")
