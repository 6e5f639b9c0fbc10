from __future__ import annotations

from .db import get_connection
from .profile_edit.repository import ensure_app_schema


def main() -> None:
    with get_connection() as conn:
        ensure_app_schema(conn)
    print("OK")


if __name__ == "__main__":
    main()
