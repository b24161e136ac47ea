"""
Utility functions for the contact service.
"""

import hashlib
import hmac
import logging
import secrets

logger = logging.getLogger(__name__)

PASSWORD_HASH_ALGORITHM = "pbkdf2_sha256"
PASSWORD_HASH_ITERATIONS = 390000


def mask_email(email: str) -> str:
    """Mask the local part of an address for logging: ``ada@x.com`` -> ``a**@x.com``."""
    local, sep, domain = email.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}{'*' * max(len(local) - 1, 2)}@{domain}"


def hash_password(password: str, salt: str = None) -> str:
    """
    Hash a password with PBKDF2-HMAC-SHA256.

    Returns:
        ``algorithm$iterations$salt$hexdigest``
    """
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PASSWORD_HASH_ITERATIONS,
    ).hex()
    return f"{PASSWORD_HASH_ALGORITHM}${PASSWORD_HASH_ITERATIONS}${salt}${digest}"


def verify_password(password: str, encoded: str) -> bool:
    """
    Verify a password against a stored ``hash_password`` value.

    Returns:
        True if the password matches, False otherwise (including malformed hashes)
    """
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
        iterations = int(iterations)
    except ValueError:
        logger.warning("Malformed password hash")
        return False
    if algorithm != PASSWORD_HASH_ALGORITHM:
        return False

    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
    ).hex()
    # Use constant-time comparison to prevent timing attacks
    return hmac.compare_digest(digest, expected)


def generate_token() -> str:
    """Opaque session token (64 hex chars)."""
    return secrets.token_hex(32)
