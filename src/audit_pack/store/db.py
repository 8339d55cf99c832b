"""SQLite access layer for audit-pack requests, artifacts and source records."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Mapping, Sequence

_SqlValue = str | bytes | int | float | None
_SqlParams = Sequence[_SqlValue] | Mapping[str, _SqlValue]


class SqliteStore:
    def __init__(self, path: str, wal: bool = True) -> None:
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._closed = False
        if wal:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS audit_pack_request (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                requested_by_id TEXT NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                status TEXT NOT NULL,
                error_code TEXT,
                error_message TEXT,
                created_at TEXT NOT NULL,
                completed_at TEXT
            );

            CREATE TABLE IF NOT EXISTS audit_pack_artifact (
                request_id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                audit_export_package_id TEXT NOT NULL,
                s3_key TEXT NOT NULL,
                entry_count INTEGER NOT NULL,
                correction_node_count INTEGER NOT NULL,
                approval_event_count INTEGER NOT NULL,
                timeline_event_count INTEGER NOT NULL,
                expanded_node_count INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY(request_id) REFERENCES audit_pack_request(id)
            );

            CREATE TABLE IF NOT EXISTS time_entry (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                previous_entry_id TEXT,
                replaces_entry_id TEXT,
                superseded_by_id TEXT
            );

            CREATE TABLE IF NOT EXISTS approval_request (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                entity_type TEXT NOT NULL,
                entity_id TEXT NOT NULL,
                approver_id TEXT,
                status TEXT NOT NULL,
                approved_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT
            );

            CREATE TABLE IF NOT EXISTS audit_log (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                timestamp TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_audit_pack_request_org_created
                ON audit_pack_request(organization_id, created_at);
            CREATE INDEX IF NOT EXISTS idx_time_entry_org_timestamp
                ON time_entry(organization_id, timestamp);
            CREATE INDEX IF NOT EXISTS idx_approval_request_org_created
                ON approval_request(organization_id, entity_type, created_at);
            CREATE INDEX IF NOT EXISTS idx_audit_log_org_timestamp
                ON audit_log(organization_id, timestamp);
            """
        )
        self._conn.commit()

    def execute(
        self,
        query: str,
        params: _SqlParams,
    ) -> int:
        """Run a write statement and return the affected row count."""
        with self._lock:
            cursor = self._conn.execute(query, params)
            self._conn.commit()
            return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True

    def fetch_one(
        self,
        query: str,
        params: _SqlParams,
    ) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchone()

    def fetch_all(
        self,
        query: str,
        params: _SqlParams,
    ) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchall()
