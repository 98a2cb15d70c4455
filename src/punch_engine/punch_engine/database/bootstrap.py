from __future__ import annotations

import logging
from typing import Any, Mapping

from .connection import DBConfig, DatabaseConnection

logger = logging.getLogger(__name__)

KV_STORE_DDL = """
CREATE TABLE IF NOT EXISTS kv_store (
    namespace VARCHAR(64) NOT NULL,
    k VARCHAR(191) NOT NULL,
    v MEDIUMTEXT NOT NULL,
    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
    PRIMARY KEY (namespace, k)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci
"""


def ensure_database_exists(db_config: Mapping[str, Any]) -> None:
    target = DBConfig.from_settings(db_config)
    conn = DatabaseConnection(target).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: Mapping[str, Any]) -> None:
    """Create the database and the key-value table. Idempotent."""
    ensure_database_exists(db_config)

    conn = DatabaseConnection(DBConfig.from_settings(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute(KV_STORE_DDL)
        conn.commit()
    finally:
        conn.close()
    logger.info("kv_store schema ready")


def list_tables(db_config: Mapping[str, Any]) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_settings(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
