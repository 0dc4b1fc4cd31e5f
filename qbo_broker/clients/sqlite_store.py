"""SQLite-backed document store with per-collection keys."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional


class SQLiteStore:
    """Document store using a normalized table keyed by (collection, key)."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_key TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (collection, doc_key)
                )
                """
            )

    def put_item(self, collection: str, key: str, item: Dict[str, Any]) -> None:
        if not collection or not key:
            raise ValueError("Documents require a collection and a key")

        data_json = json.dumps(item)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO documents (collection, doc_key, data)
                VALUES (?, ?, ?)
                ON CONFLICT(collection, doc_key) DO UPDATE SET data = excluded.data
                """,
                (collection, key, data_json),
            )

    def get_item(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key),
            ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])

    def delete_item(self, collection: str, key: str) -> bool:
        """Delete a document; returns whether a row was removed."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key),
            )
        return cursor.rowcount > 0

    def pop_item(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """
        Read and delete a document in one transaction.

        Only the caller whose DELETE removed the row receives the document, so
        concurrent pops of the same key cannot both succeed.
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key),
            ).fetchone()
            if not row:
                return None
            cursor = conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key),
            )
        if cursor.rowcount == 0:
            return None
        return json.loads(row["data"])

    def replace_item_if(
        self, collection: str, key: str, item: Dict[str, Any], **expected: Any
    ) -> bool:
        """Replace a document only while its fields still equal ``expected``."""
        clauses, params = self._field_clauses(expected)
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE documents SET data = ? "
                f"WHERE collection = ? AND doc_key = ?{clauses}",
                [json.dumps(item), collection, key, *params],
            )
        return cursor.rowcount > 0

    @staticmethod
    def _field_clauses(fields: Dict[str, Any]) -> tuple[str, list[Any]]:
        clauses = ""
        params: list[Any] = []
        for field, value in fields.items():
            if not field.isidentifier():
                raise ValueError(f"Unsupported filter field: {field!r}")
            clauses += f" AND json_extract(data, '$.{field}') = ?"
            params.append(value)
        return clauses, params

    def query_items(self, collection: str, **filters: Any) -> list[Dict[str, Any]]:
        """Return documents whose top-level fields equal every filter value."""
        clauses, params = self._field_clauses(filters)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT data FROM documents WHERE collection = ?{clauses}",
                [collection, *params],
            ).fetchall()
        return [json.loads(row["data"]) for row in rows]


__all__ = ["SQLiteStore"]
