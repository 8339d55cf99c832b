"""SQLite persistence: request repository and evidence source."""

from audit_pack.store.db import SqliteStore
from audit_pack.store.evidence_source import SqliteEvidenceSource
from audit_pack.store.repository import AuditPackRequestRepository

__all__ = ["AuditPackRequestRepository", "SqliteEvidenceSource", "SqliteStore"]
