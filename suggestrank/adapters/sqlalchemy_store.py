"""SQLAlchemy key-value store adapter for SuggestRank."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session

TABLE_NAME = "suggestrank_kv"


class SQLAlchemyKeyValueStore:
    """Stores each aggregate as one JSON document in a relational table.

    Database errors propagate to the caller; nothing is retried.
    """

    def __init__(self, db: Session, create_table: bool = True):
        self.db = db
        if create_table:
            self.ensure_schema()

    def ensure_schema(self) -> None:
        self.db.execute(
            text(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    kv_key VARCHAR(255) PRIMARY KEY,
                    kv_value TEXT NOT NULL
                )
                """
            )
        )
        self.db.commit()

    def get(self, key: str, default: Any = None) -> Any:
        row = self.db.execute(
            text(f"SELECT kv_value FROM {TABLE_NAME} WHERE kv_key = :key"),
            {"key": key},
        ).fetchone()

        if row is None:
            return default
        return json.loads(row.kv_value)

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        result = self.db.execute(
            text(f"UPDATE {TABLE_NAME} SET kv_value = :value WHERE kv_key = :key"),
            {"key": key, "value": payload},
        )
        if result.rowcount == 0:
            self.db.execute(
                text(f"INSERT INTO {TABLE_NAME} (kv_key, kv_value) VALUES (:key, :value)"),
                {"key": key, "value": payload},
            )
        self.db.commit()
