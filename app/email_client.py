"""
Client for the transactional-email HTTP API.

Speaks the Resend ``POST /emails`` contract: a JSON body with
``from``, ``to``, ``subject`` and ``html``, authorized by a bearer token.
"""

import logging
from typing import Generator, Optional

import requests

from app.config import Settings, get_settings
from app.errors import EmailProviderError

logger = logging.getLogger(__name__)


class EmailClient:
    """Sends one email per call. No retries; every call carries a timeout."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

        if not self.api_key:
            logger.warning("Email API key not configured. Sends will be rejected by the provider.")

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailClient":
        return cls(
            api_key=settings.RESEND_API_KEY,
            api_url=settings.EMAIL_API_URL,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )

    def send(self, sender: str, to: list[str], subject: str, html: str) -> dict:
        """
        Send one email.

        Args:
            sender: ``from`` header, e.g. ``"Contact Form <noreply@example.com>"``
            to: Recipient addresses
            subject: Subject line
            html: Rendered HTML body

        Returns:
            dict: Provider response body (contains the message ``id``)

        Raises:
            EmailProviderError: on timeout, network error or non-2xx response
        """
        payload = {
            "from": sender,
            "to": to,
            "subject": subject,
            "html": html,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            response = self.session.post(
                self.api_url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error("Timeout calling email API")
            raise EmailProviderError("Request timeout") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling email API: {e}")
            raise EmailProviderError(f"Network error: {e}") from e

        if not response.ok:
            logger.error(
                f"Email API error. Status: {response.status_code}, Body: {response.text[:500]}"
            )
            raise EmailProviderError(
                f"Email API returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        logger.debug(f"Email API accepted message: {data.get('id')}")
        return data

    def close(self) -> None:
        self.session.close()


def get_email_client() -> Generator[EmailClient, None, None]:
    """
    Dependency to get an email client configured from settings.
    Closes the client's connection pool after the request.
    """
    client = EmailClient.from_settings(get_settings())
    try:
        yield client
    finally:
        client.close()
