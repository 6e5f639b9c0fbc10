"""Sign-in credentials and session cookie helpers."""

from __future__ import annotations

import hashlib
import hmac
import os
import re
from urllib.parse import urlparse

from pawmatch.profile_edit.config import (
    PASSWORD_HASH_ITERATIONS,
    PASSWORD_MIN_LENGTH,
    PROFILE_PATH,
    session_secret,
)

EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)+$"
)
MAX_EMAIL_LENGTH = 320


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return False
    return bool(EMAIL_PATTERN.fullmatch(email))


def signin_error(email: str, password: str) -> str | None:
    """Return a validation error for sign-in form input, if any."""
    if not is_valid_email(email):
        return "Enter a valid email address."
    if len(password or "") < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters."
    return None


def hash_password(password: str) -> str:
    """Hash a password for storage using PBKDF2-HMAC-SHA256."""
    salt = os.urandom(16).hex()
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt),
        PASSWORD_HASH_ITERATIONS,
    ).hex()
    return f"pbkdf2_sha256${PASSWORD_HASH_ITERATIONS}${salt}${digest}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify plaintext password against a stored PBKDF2 hash."""
    try:
        algo, iterations_text, salt, expected_digest = password_hash.split("$", 3)
        iterations = int(iterations_text)
        salt_bytes = bytes.fromhex(salt)
    except (ValueError, TypeError):
        return False
    if algo != "pbkdf2_sha256" or iterations < 1 or not expected_digest:
        return False

    actual_digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt_bytes,
        iterations,
    ).hex()
    return hmac.compare_digest(actual_digest, expected_digest)


def normalize_next_path(value: str | None, default: str = PROFILE_PATH) -> str:
    """Normalize redirect targets to local absolute paths only."""
    candidate = (value or "").strip()
    if not candidate:
        return default
    parsed = urlparse(candidate)
    if parsed.scheme or parsed.netloc:
        return default
    if not candidate.startswith("/") or candidate.startswith("//"):
        return default
    return candidate


def session_signature(user_id: int) -> str:
    payload = str(user_id).encode("utf-8")
    return hmac.new(
        session_secret().encode("utf-8"), payload, hashlib.sha256
    ).hexdigest()


def encode_session_value(user_id: int) -> str:
    """Encode signed session cookie contents."""
    return f"{user_id}.{session_signature(user_id)}"


def decode_session_value(raw_value: str | None) -> int | None:
    """Decode and verify a signed session cookie value."""
    value = (raw_value or "").strip()
    user_id_text, _, signature = value.partition(".")
    if not signature or not user_id_text.isdigit():
        return None
    user_id = int(user_id_text)
    if user_id <= 0:
        return None
    if not hmac.compare_digest(signature, session_signature(user_id)):
        return None
    return user_id
