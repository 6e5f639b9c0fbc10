import psycopg
import pytest

import pawmatch.db as db


class DummyCursor:
    def __init__(self):
        self.executed = []

    def execute(self, query, params=None):
        self.executed.append((query, params))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class DummyConn:
    def __init__(self):
        self.cursor_obj = DummyCursor()
        self.commits = 0

    def cursor(self):
        return self.cursor_obj

    def commit(self):
        self.commits += 1


def test_get_pg_config_defaults(monkeypatch):
    for name in ("PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
        monkeypatch.delenv(name, raising=False)
    cfg = db._get_pg_config()
    assert cfg["host"] == "localhost"
    assert cfg["port"] == 5432
    assert cfg["user"] == "postgres"
    assert cfg["password"] == "postgres"
    assert cfg["dbname"] == "pawmatch"


def test_get_pg_config_env_override(monkeypatch):
    monkeypatch.setenv("PGHOST", "db.internal")
    monkeypatch.setenv("PGPORT", "6543")
    cfg = db._get_pg_config()
    assert cfg["host"] == "db.internal"
    assert cfg["port"] == 6543


def test_get_connection_falls_back_to_localhost_for_compose_host(monkeypatch):
    monkeypatch.setenv("PGHOST", "postgres")
    attempts = []

    def fake_connect(**cfg):
        attempts.append(cfg["host"])
        if cfg["host"] == "postgres":
            raise psycopg.OperationalError("could not translate host name: Name or service not known")
        return "conn"

    monkeypatch.setattr(db.psycopg, "connect", fake_connect)
    assert db.get_connection() == "conn"
    assert attempts == ["postgres", "localhost"]


def test_get_connection_reraises_other_errors(monkeypatch):
    monkeypatch.setenv("PGHOST", "localhost")

    def fake_connect(**cfg):
        raise psycopg.OperationalError("password authentication failed")

    monkeypatch.setattr(db.psycopg, "connect", fake_connect)
    with pytest.raises(psycopg.OperationalError):
        db.get_connection()


def test_ensure_schema_creates_users_table():
    conn = DummyConn()
    db.ensure_schema(conn)
    assert "CREATE TABLE IF NOT EXISTS users" in conn.cursor_obj.executed[0][0]
    assert conn.commits == 1
