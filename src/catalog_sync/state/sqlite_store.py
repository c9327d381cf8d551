from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from catalog_sync.core.errors import StorageFailure
from catalog_sync.core.models import AuditRecord, Candidate, StoredRecord
from catalog_sync.utils.time import utc_now_iso

PRIMARY_TABLE = "records"
BACKUP_TABLE = "records_backup"


class SQLiteCatalogStore:
    """SQLite-backed catalog: candidates, primary and backup documents, audit log."""

    def __init__(self, path: str):
        self.path = path
        self._ensure_parent_dir(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._ensure_schema()

    def __enter__(self) -> "SQLiteCatalogStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---------- candidates ----------

    def list_candidates(self) -> List[Candidate]:
        with self._session() as conn:
            rows = conn.execute("SELECT external_id, flags_json FROM candidates ORDER BY position").fetchall()
        return [Candidate(external_id=row["external_id"], flags=json.loads(row["flags_json"] or "{}")) for row in rows]

    def add_candidates(self, candidates: Iterable[Candidate]) -> int:
        """Append candidates not already listed; returns how many were added."""
        added = 0
        with self._session() as conn:
            for c in candidates:
                cur = conn.execute(
                    "INSERT OR IGNORE INTO candidates (external_id, flags_json) VALUES (?, ?)",
                    (c.external_id, json.dumps(c.flags, sort_keys=True)),
                )
                added += cur.rowcount
        return added

    def delete_candidate(self, external_id: str) -> None:
        with self._session() as conn:
            conn.execute("DELETE FROM candidates WHERE external_id = ?", (external_id,))

    # ---------- records ----------

    def find(self, external_id: str) -> Optional[StoredRecord]:
        doc = self._load_doc(PRIMARY_TABLE, external_id)
        return StoredRecord.from_doc(doc) if doc is not None else None

    def find_backup(self, external_id: str) -> Optional[StoredRecord]:
        doc = self._load_doc(BACKUP_TABLE, external_id)
        return StoredRecord.from_doc(doc) if doc is not None else None

    def count(self, table: str = PRIMARY_TABLE) -> int:
        with self._session() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM {self._table(table)}").fetchone()
        return int(row["n"])

    def insert(self, doc: Dict[str, Any]) -> None:
        """Insert a new document into the primary and backup collections."""
        key = str(doc.get("external_id") or "").strip()
        if not key:
            raise ValueError("external_id cannot be empty for catalog insert")

        doc_json = json.dumps(doc, ensure_ascii=False, sort_keys=True)
        now = utc_now_iso()
        with self._session() as conn:
            for table in (PRIMARY_TABLE, BACKUP_TABLE):
                conn.execute(
                    f"""
                    INSERT INTO {table} (external_id, doc_json, updated_at_utc)
                    VALUES (?, ?, ?)
                    ON CONFLICT(external_id) DO UPDATE SET
                        doc_json = excluded.doc_json,
                        updated_at_utc = excluded.updated_at_utc
                    """,
                    (key, doc_json, now),
                )

    def update(self, external_id: str, fields: Dict[str, Any]) -> None:
        """Merge `fields` into the stored document in both collections."""
        now = utc_now_iso()
        with self._session() as conn:
            for table in (PRIMARY_TABLE, BACKUP_TABLE):
                row = conn.execute(
                    f"SELECT doc_json FROM {table} WHERE external_id = ?",
                    (external_id,),
                ).fetchone()
                if not row:
                    continue
                doc = json.loads(row["doc_json"])
                doc.update(fields)
                conn.execute(
                    f"UPDATE {table} SET doc_json = ?, updated_at_utc = ? WHERE external_id = ?",
                    (json.dumps(doc, ensure_ascii=False, sort_keys=True), now, external_id),
                )

    def delete(self, external_id: str) -> None:
        with self._session() as conn:
            for table in (PRIMARY_TABLE, BACKUP_TABLE):
                conn.execute(f"DELETE FROM {table} WHERE external_id = ?", (external_id,))

    # ---------- audit ----------

    def append_audit(self, record: AuditRecord) -> None:
        with self._session() as conn:
            conn.execute(
                "INSERT INTO sync_log (timestamp, record_json) VALUES (?, ?)",
                (record.timestamp, json.dumps(record.to_dict(), ensure_ascii=False, sort_keys=True)),
            )

    def audit_records(self) -> List[Dict[str, Any]]:
        with self._session() as conn:
            rows = conn.execute("SELECT record_json FROM sync_log ORDER BY id").fetchall()
        return [json.loads(row["record_json"]) for row in rows]

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ---------- internals ----------

    def _load_doc(self, table: str, external_id: str) -> Optional[Dict[str, Any]]:
        with self._session() as conn:
            row = conn.execute(
                f"SELECT doc_json FROM {self._table(table)} WHERE external_id = ?",
                (external_id,),
            ).fetchone()
        return json.loads(row["doc_json"]) if row else None

    def _table(self, name: str) -> str:
        if name not in (PRIMARY_TABLE, BACKUP_TABLE):
            raise ValueError(f"Unknown catalog table: {name}")
        return name

    def _ensure_schema(self) -> None:
        with self._session() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS candidates (
                    position INTEGER PRIMARY KEY AUTOINCREMENT,
                    external_id TEXT NOT NULL UNIQUE,
                    flags_json TEXT NOT NULL DEFAULT '{}'
                )
                """
            )
            for table in (PRIMARY_TABLE, BACKUP_TABLE):
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        external_id TEXT PRIMARY KEY,
                        doc_json TEXT NOT NULL,
                        updated_at_utc TEXT NOT NULL
                    )
                    """
                )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    record_json TEXT NOT NULL
                )
                """
            )

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            conn = sqlite3.connect(self.path)
            conn.row_factory = sqlite3.Row
            self._conn = conn
        return self._conn

    @contextmanager
    def _session(self):
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StorageFailure(f"Cannot open catalog {self.path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageFailure(f"Catalog write failed: {e}") from e

    def _ensure_parent_dir(self, path: str) -> None:
        parent = Path(path).parent
        if str(parent) not in {"", "."}:
            parent.mkdir(parents=True, exist_ok=True)
