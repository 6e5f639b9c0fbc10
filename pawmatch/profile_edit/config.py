"""Configuration and messages for the profile editor."""

from __future__ import annotations

import os
from pathlib import Path

APP_DIR = Path(__file__).resolve().parent
BIO_MAX_LENGTH = 500
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
MAX_TEXT_LENGTH = 120
MAX_DISTANCE = 500
PASSWORD_MIN_LENGTH = 8
PASSWORD_HASH_ITERATIONS = 200000
SESSION_COOKIE_NAME = "pawmatch_session"
SESSION_COOKIE_MAX_AGE_SECONDS = 60 * 60 * 24 * 30
DEFAULT_SESSION_SECRET = "pawmatch-dev-session-secret-change-me"

PROFILE_PATH = "/profile"
EDIT_PROFILE_PATH = "/profile/edit"
SIGNIN_PATH = "/signin"
DEFAULT_AVATAR_URL = "/default-avatar.svg"

LOAD_FAILED_MESSAGE = "Failed to load profile"
UPDATE_FAILED_MESSAGE = "Failed to update profile."
USERNAME_TAKEN_MESSAGE = "Username is already taken."


def session_secret() -> str:
    """Return the cookie-signing secret."""
    secret = os.environ.get("PAWMATCH_SESSION_SECRET", "").strip()
    return secret or DEFAULT_SESSION_SECRET


def log_level() -> str:
    """Return the configured logging level name."""
    return (os.environ.get("LOG_LEVEL") or "INFO").upper()
