"""Read-side queries over time entries, approvals and audit logs.

Every query filters by organization. Timestamps are stored in canonical
UTC form, so range filters compare strings.
"""

from __future__ import annotations

from collections.abc import Iterable

from audit_pack.domain.models import ApprovalRecord, AuditLogRecord, TimeEntryRecord
from audit_pack.store.db import SqliteStore
from audit_pack.utils.time import to_utc_iso

# Stays well below SQLite's host-parameter limit.
_ID_BATCH_SIZE = 500

APPROVAL_ENTITY_TIME_ENTRY = "time_entry"


def _optional_iso(value: str | None) -> str | None:
    return to_utc_iso(value) if value else None


class SqliteEvidenceSource:
    def __init__(self, store: SqliteStore) -> None:
        self._store = store

    def find_entries_in_range(
        self, organization_id: str, start: str, end: str
    ) -> list[TimeEntryRecord]:
        rows = self._store.fetch_all(
            (
                "SELECT * FROM time_entry WHERE organization_id = ? "
                "AND timestamp >= ? AND timestamp <= ? ORDER BY id"
            ),
            (organization_id, start, end),
        )
        return [TimeEntryRecord(**dict(row)) for row in rows]

    def find_entries_by_ids(
        self, organization_id: str, entry_ids: Iterable[str]
    ) -> list[TimeEntryRecord]:
        ids = sorted(set(entry_ids))
        records: list[TimeEntryRecord] = []
        for offset in range(0, len(ids), _ID_BATCH_SIZE):
            batch = ids[offset : offset + _ID_BATCH_SIZE]
            placeholders = ",".join("?" for _ in batch)
            rows = self._store.fetch_all(
                (
                    f"SELECT * FROM time_entry WHERE organization_id = ? "
                    f"AND id IN ({placeholders}) ORDER BY id"
                ),
                [organization_id, *batch],
            )
            records.extend(TimeEntryRecord(**dict(row)) for row in rows)
        return records

    def find_approvals_in_range(
        self, organization_id: str, start: str, end: str
    ) -> list[ApprovalRecord]:
        rows = self._store.fetch_all(
            (
                "SELECT * FROM approval_request WHERE organization_id = ? "
                "AND entity_type = ? AND created_at >= ? AND created_at <= ? ORDER BY id"
            ),
            (organization_id, APPROVAL_ENTITY_TIME_ENTRY, start, end),
        )
        return [ApprovalRecord(**dict(row)) for row in rows]

    def find_audit_logs_in_range(
        self, organization_id: str, start: str, end: str
    ) -> list[AuditLogRecord]:
        rows = self._store.fetch_all(
            (
                "SELECT * FROM audit_log WHERE organization_id = ? "
                "AND timestamp >= ? AND timestamp <= ? ORDER BY id"
            ),
            (organization_id, start, end),
        )
        return [AuditLogRecord(**dict(row)) for row in rows]

    def add_time_entry(self, entry: TimeEntryRecord) -> None:
        self._store.execute(
            """
            INSERT INTO time_entry (
                id, organization_id, timestamp, previous_entry_id,
                replaces_entry_id, superseded_by_id
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                entry.organization_id,
                to_utc_iso(entry.timestamp),
                entry.previous_entry_id,
                entry.replaces_entry_id,
                entry.superseded_by_id,
            ),
        )

    def add_approval(self, approval: ApprovalRecord) -> None:
        self._store.execute(
            """
            INSERT INTO approval_request (
                id, organization_id, entity_type, entity_id, approver_id,
                status, approved_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                approval.id,
                approval.organization_id,
                approval.entity_type,
                approval.entity_id,
                approval.approver_id,
                approval.status,
                _optional_iso(approval.approved_at),
                to_utc_iso(approval.created_at),
                _optional_iso(approval.updated_at),
            ),
        )

    def add_audit_log(self, log: AuditLogRecord) -> None:
        self._store.execute(
            "INSERT INTO audit_log (id, organization_id, timestamp) VALUES (?, ?, ?)",
            (log.id, log.organization_id, to_utc_iso(log.timestamp)),
        )
