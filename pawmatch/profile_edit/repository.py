"""Database schema and query helpers for the profile editor."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable

from psycopg.errors import UniqueViolation
from psycopg.types.json import Json

from pawmatch.db import ensure_schema, get_connection
from pawmatch.profile_edit.auth import hash_password, verify_password
from pawmatch.profile_edit.config import USERNAME_TAKEN_MESSAGE

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = (
    "full_name",
    "username",
    "bio",
    "adopter",
    "gender",
    "birthdate",
    "breed",
    "avatar_url",
    "preferences",
)


def ensure_app_schema(conn) -> None:
    """Create or update tables/indexes needed by the profile editor."""
    ensure_schema(conn)
    with conn.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS user_profiles (
                user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
                full_name TEXT NOT NULL DEFAULT '',
                username TEXT UNIQUE,
                bio TEXT NOT NULL DEFAULT '',
                adopter TEXT NOT NULL DEFAULT 'adopter'
                    CHECK (adopter IN ('adopter', 'pet')),
                gender TEXT NOT NULL DEFAULT 'male'
                    CHECK (gender IN ('male', 'female', 'other')),
                birthdate DATE,
                breed TEXT,
                avatar_url TEXT,
                preferences JSONB,
                updated_at_utc TIMESTAMPTZ NOT NULL
            );
            """
        )
        cur.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_user_profiles_updated_at
            ON user_profiles (updated_at_utc DESC);
            """
        )
    conn.commit()


def _coerce_json(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _jsonify(obj):
    if isinstance(obj, dict):
        return {k: _jsonify(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_jsonify(v) for v in obj]
    return _coerce_json(obj)


def upsert_user(
    email: str,
    password: str,
    *,
    connection_factory: Callable = get_connection,
    ensure_schema_fn: Callable = ensure_app_schema,
) -> dict:
    """Create or authenticate a user row keyed by email."""
    now = datetime.now(timezone.utc)
    with connection_factory() as conn:
        ensure_schema_fn(conn)
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, password_hash
                FROM users
                WHERE email = %s;
                """,
                (email,),
            )
            existing = cur.fetchone()
            if existing:
                user_id, existing_hash = existing
                if existing_hash and not verify_password(password, str(existing_hash)):
                    raise ValueError("Incorrect email or password.")
                cur.execute(
                    """
                    UPDATE users
                    SET password_hash = COALESCE(password_hash, %s),
                        last_seen_at_utc = %s
                    WHERE id = %s
                    RETURNING id, email, created_at_utc, last_seen_at_utc;
                    """,
                    (hash_password(password), now, user_id),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (
                        email,
                        password_hash,
                        created_at_utc,
                        last_seen_at_utc
                    )
                    VALUES (%s, %s, %s, %s)
                    RETURNING id, email, created_at_utc, last_seen_at_utc;
                    """,
                    (email, hash_password(password), now, now),
                )
            row = cur.fetchone()
            columns = [col.name for col in cur.description] if row else []
        conn.commit()
    return _jsonify(dict(zip(columns, row))) if row else {}


def get_user_by_id(
    user_id: int,
    *,
    connection_factory: Callable = get_connection,
    ensure_schema_fn: Callable = ensure_app_schema,
) -> dict | None:
    """Load a user row by id and update last-seen timestamp."""
    with connection_factory() as conn:
        ensure_schema_fn(conn)
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE users
                SET last_seen_at_utc = %s
                WHERE id = %s
                RETURNING id, email, created_at_utc, last_seen_at_utc;
                """,
                (datetime.now(timezone.utc), user_id),
            )
            row = cur.fetchone()
            columns = [col.name for col in cur.description] if row else []
        conn.commit()
    if not row:
        return None
    return _jsonify(dict(zip(columns, row)))


def fetch_profile(
    user_id: int,
    *,
    connection_factory: Callable = get_connection,
    ensure_schema_fn: Callable = ensure_app_schema,
) -> dict | None:
    """Load the stored profile record for a user, if one exists."""
    with connection_factory() as conn:
        ensure_schema_fn(conn)
        with conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {", ".join(PROFILE_COLUMNS)}
                FROM user_profiles
                WHERE user_id = %s;
                """,
                (user_id,),
            )
            row = cur.fetchone()
            columns = [col.name for col in cur.description] if row else []
    if not row:
        return None
    return _jsonify(dict(zip(columns, row)))


def save_profile(
    user_id: int,
    record: dict,
    *,
    connection_factory: Callable = get_connection,
    ensure_schema_fn: Callable = ensure_app_schema,
) -> None:
    """Insert or replace a user's profile.

    Raises:
        ValueError: The username belongs to another user.
    """
    username = str(record.get("username") or "")
    with connection_factory() as conn:
        ensure_schema_fn(conn)
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT user_id
                FROM user_profiles
                WHERE lower(username) = lower(%s)
                  AND user_id <> %s
                LIMIT 1;
                """,
                (username, user_id),
            )
            if cur.fetchone():
                raise ValueError(USERNAME_TAKEN_MESSAGE)
            try:
                cur.execute(
                    """
                    INSERT INTO user_profiles (
                        user_id,
                        full_name,
                        username,
                        bio,
                        adopter,
                        gender,
                        birthdate,
                        breed,
                        avatar_url,
                        preferences,
                        updated_at_utc
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, NULLIF(%s, '')::date, %s, %s, %s, %s)
                    ON CONFLICT (user_id) DO UPDATE SET
                        full_name = EXCLUDED.full_name,
                        username = EXCLUDED.username,
                        bio = EXCLUDED.bio,
                        adopter = EXCLUDED.adopter,
                        gender = EXCLUDED.gender,
                        birthdate = EXCLUDED.birthdate,
                        breed = EXCLUDED.breed,
                        avatar_url = EXCLUDED.avatar_url,
                        preferences = EXCLUDED.preferences,
                        updated_at_utc = EXCLUDED.updated_at_utc;
                    """,
                    (
                        user_id,
                        record.get("full_name") or "",
                        username,
                        record.get("bio") or "",
                        record.get("adopter") or "adopter",
                        record.get("gender") or "male",
                        record.get("birthdate") or "",
                        record.get("breed"),
                        record.get("avatar_url") or None,
                        Json(record.get("preferences") or {}),
                        datetime.now(timezone.utc),
                    ),
                )
            except UniqueViolation as exc:
                raise ValueError(USERNAME_TAKEN_MESSAGE) from exc
        conn.commit()
    logger.info(f"Saved profile for user {user_id}.")
