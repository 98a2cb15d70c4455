from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone

DEFAULT_NAMESPACE = "default"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class MySQLKeyValueStore:
    """KeyValueStore over the `kv_store` table.

    One namespace per device/user profile so several installations can share a
    database without seeing each other's keys.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, namespace: str = DEFAULT_NAMESPACE):
        self._conn_factory = conn_factory
        self._namespace = namespace

    def get(self, key: str) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT v FROM kv_store WHERE namespace=%s AND k=%s",
                (self._namespace, key),
            )
            row = fetchone(cur)
            return str(row["v"]) if row else None

    def set(self, key: str, value: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO kv_store (namespace, k, v)
                VALUES (%s, %s, %s)
                ON DUPLICATE KEY UPDATE v=VALUES(v), updated_at=CURRENT_TIMESTAMP
                """,
                (self._namespace, key, value),
            )

    def delete(self, key: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM kv_store WHERE namespace=%s AND k=%s", (self._namespace, key))

    def keys(self, prefix: str = "") -> list[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT k FROM kv_store WHERE namespace=%s AND k LIKE %s ORDER BY k",
                (self._namespace, _escape_like(prefix) + "%"),
            )
            return [str(row["k"]) for row in fetchall(cur)]
