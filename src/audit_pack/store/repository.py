"""Persistence for audit-pack requests and their artifacts.

Every operation is scoped by ``(request_id, organization_id)``; a request
that exists under another organization is reported exactly like a missing
one, so status never leaks across tenants.
"""

from __future__ import annotations

import logging
from datetime import date
from uuid import uuid4

from audit_pack.domain.models import (
    EXECUTION_STATUSES,
    AuditPackArtifact,
    AuditPackRequest,
)
from audit_pack.errors import RequestNotFoundError, ScopeInvalidError
from audit_pack.store.db import SqliteStore
from audit_pack.utils.time import day_end_utc, day_start_utc, utc_now_iso

logger = logging.getLogger(__name__)

_DEFAULT_LIST_LIMIT = 10
_MAX_LIST_LIMIT = 100


class AuditPackRequestRepository:
    def __init__(self, store: SqliteStore) -> None:
        self._store = store

    def create_request(
        self,
        organization_id: str,
        requested_by_id: str,
        start_date: str | date,
        end_date: str | date,
    ) -> AuditPackRequest:
        """Create a ``requested`` row covering whole UTC days, both ends inclusive."""
        try:
            start = day_start_utc(start_date)
            end = day_end_utc(end_date)
        except (ValueError, OverflowError) as exc:
            raise ScopeInvalidError(f"Audit pack request has invalid date: {exc}") from exc
        if start > end:
            raise ScopeInvalidError()

        request = AuditPackRequest(
            id=uuid4().hex,
            organization_id=organization_id,
            requested_by_id=requested_by_id,
            start_date=start,
            end_date=end,
            status="requested",
            error_code=None,
            error_message=None,
            created_at=utc_now_iso(),
            completed_at=None,
        )
        self._store.execute(
            """
            INSERT INTO audit_pack_request (
                id, organization_id, requested_by_id, start_date, end_date,
                status, error_code, error_message, created_at, completed_at
            ) VALUES (?, ?, ?, ?, ?, ?, NULL, NULL, ?, NULL)
            """,
            (
                request.id,
                request.organization_id,
                request.requested_by_id,
                request.start_date,
                request.end_date,
                request.status,
                request.created_at,
            ),
        )
        return request

    def get_request(self, request_id: str, organization_id: str) -> AuditPackRequest | None:
        row = self._store.fetch_one(
            "SELECT * FROM audit_pack_request WHERE id = ? AND organization_id = ?",
            (request_id, organization_id),
        )
        if row is None:
            return None
        return AuditPackRequest(**dict(row))

    def list_requests(
        self, organization_id: str, limit: int = _DEFAULT_LIST_LIMIT
    ) -> list[AuditPackRequest]:
        limit = max(1, min(limit, _MAX_LIST_LIMIT))
        rows = self._store.fetch_all(
            (
                "SELECT * FROM audit_pack_request WHERE organization_id = ? "
                "ORDER BY created_at DESC, id DESC LIMIT ?"
            ),
            (organization_id, limit),
        )
        return [AuditPackRequest(**dict(row)) for row in rows]

    def get_artifact(self, request_id: str, organization_id: str) -> AuditPackArtifact | None:
        row = self._store.fetch_one(
            "SELECT * FROM audit_pack_artifact WHERE request_id = ? AND organization_id = ?",
            (request_id, organization_id),
        )
        if row is None:
            return None
        return AuditPackArtifact(**dict(row))

    def set_status(self, request_id: str, organization_id: str, status: str) -> None:
        if status not in EXECUTION_STATUSES:
            raise ValueError(f"Unsupported execution status: {status!r}")

        if status == "completed":
            updated = self._store.execute(
                (
                    "UPDATE audit_pack_request SET status = ?, completed_at = ? "
                    "WHERE id = ? AND organization_id = ?"
                ),
                (status, utc_now_iso(), request_id, organization_id),
            )
        elif status == "collecting":
            # A retry starts over; the earlier outcome survives only in the log.
            previous = self.get_request(request_id, organization_id)
            if previous is not None and previous.error_code:
                logger.warning(
                    "Retrying audit pack %s after %s: %s",
                    request_id,
                    previous.error_code,
                    previous.error_message,
                )
            updated = self._store.execute(
                (
                    "UPDATE audit_pack_request SET status = ?, error_code = NULL, "
                    "error_message = NULL, completed_at = NULL "
                    "WHERE id = ? AND organization_id = ?"
                ),
                (status, request_id, organization_id),
            )
        else:
            updated = self._store.execute(
                "UPDATE audit_pack_request SET status = ? WHERE id = ? AND organization_id = ?",
                (status, request_id, organization_id),
            )
        if updated == 0:
            raise RequestNotFoundError()

    def fail_request(
        self,
        request_id: str,
        organization_id: str,
        error_code: str,
        error_message: str,
    ) -> None:
        updated = self._store.execute(
            """
            UPDATE audit_pack_request
            SET status = 'failed', error_code = ?, error_message = ?, completed_at = ?
            WHERE id = ? AND organization_id = ?
            """,
            (error_code, error_message, utc_now_iso(), request_id, organization_id),
        )
        if updated == 0:
            raise RequestNotFoundError()

    def store_artifact(self, artifact: AuditPackArtifact) -> None:
        """Insert or replace the single artifact row for a request."""
        if self.get_request(artifact.request_id, artifact.organization_id) is None:
            raise RequestNotFoundError()

        now = utc_now_iso()
        self._store.execute(
            """
            INSERT INTO audit_pack_artifact (
                request_id, organization_id, audit_export_package_id, s3_key,
                entry_count, correction_node_count, approval_event_count,
                timeline_event_count, expanded_node_count, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(request_id) DO UPDATE SET
                audit_export_package_id = excluded.audit_export_package_id,
                s3_key = excluded.s3_key,
                entry_count = excluded.entry_count,
                correction_node_count = excluded.correction_node_count,
                approval_event_count = excluded.approval_event_count,
                timeline_event_count = excluded.timeline_event_count,
                expanded_node_count = excluded.expanded_node_count,
                updated_at = excluded.updated_at
            """,
            (
                artifact.request_id,
                artifact.organization_id,
                artifact.audit_export_package_id,
                artifact.s3_key,
                artifact.entry_count,
                artifact.correction_node_count,
                artifact.approval_event_count,
                artifact.timeline_event_count,
                artifact.expanded_node_count,
                now,
                now,
            ),
        )
