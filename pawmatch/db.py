from __future__ import annotations

import os

import psycopg


def _get_pg_config() -> dict[str, str | int]:
    return {
        "host": os.environ.get("PGHOST", "localhost"),
        "port": int(os.environ.get("PGPORT", "5432")),
        "user": os.environ.get("PGUSER", "postgres"),
        "password": os.environ.get("PGPASSWORD", "postgres"),
        "dbname": os.environ.get("PGDATABASE", "pawmatch"),
    }


def get_connection() -> psycopg.Connection:
    cfg = _get_pg_config()
    try:
        return psycopg.connect(**cfg)
    except psycopg.OperationalError as exc:
        message = str(exc).lower()
        # Compose service names only resolve inside the compose network.
        if cfg["host"] != "postgres" or not (
            "resolve host" in message
            or "getaddrinfo" in message
            or "name or service not known" in message
        ):
            raise
        for host in ("localhost", "127.0.0.1"):
            try:
                return psycopg.connect(**{**cfg, "host": host})
            except psycopg.OperationalError:
                continue
        raise


def ensure_schema(conn: psycopg.Connection) -> None:
    with conn.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id BIGSERIAL PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT,
                created_at_utc TIMESTAMPTZ NOT NULL,
                last_seen_at_utc TIMESTAMPTZ NOT NULL
            );
            """
        )
    conn.commit()
