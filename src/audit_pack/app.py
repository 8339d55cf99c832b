"""Application context assembly."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from audit_pack.config import Settings, load_settings
from audit_pack.hardening import HardeningService
from audit_pack.hardening.http_client import HttpHardeningClient
from audit_pack.hardening.local import FilesystemHardeningService
from audit_pack.pipeline.orchestrator import AuditPackOrchestrator
from audit_pack.pipeline.stages import AuditPackStages
from audit_pack.store.db import SqliteStore
from audit_pack.store.evidence_source import SqliteEvidenceSource
from audit_pack.store.repository import AuditPackRequestRepository


@dataclass
class AppContext:
    """Application-wide dependency container.

    Initialized once per process and cached for its lifetime.
    """

    settings: Settings
    store: SqliteStore
    repository: AuditPackRequestRepository
    source: SqliteEvidenceSource
    hardener: HardeningService
    orchestrator: AuditPackOrchestrator


def build_hardener(settings: Settings) -> HardeningService:
    if settings.hardening.mode == "http":
        if not settings.hardening.base_url:
            raise RuntimeError("HARDENING_BASE_URL is required for HARDENING_MODE=http")
        return HttpHardeningClient(
            settings.hardening.base_url,
            api_token=settings.hardening.api_token,
            timeout_seconds=settings.hardening.timeout_seconds,
        )
    return FilesystemHardeningService(settings.storage.artifact_path)


def build_app_context(settings: Settings, store: SqliteStore | None = None) -> AppContext:
    if store is None:
        store = SqliteStore(settings.storage.sqlite_path, wal=settings.storage.sqlite_wal)
    repository = AuditPackRequestRepository(store)
    source = SqliteEvidenceSource(store)
    hardener = build_hardener(settings)
    stages = AuditPackStages(
        repository,
        source,
        hardener,
        max_lineage_rounds=settings.lineage.max_rounds,
        max_lineage_nodes=settings.lineage.max_nodes,
        compression_level=settings.bundle.compression_level,
    )
    return AppContext(
        settings=settings,
        store=store,
        repository=repository,
        source=source,
        hardener=hardener,
        orchestrator=AuditPackOrchestrator(repository, stages),
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the cached application context."""
    return build_app_context(load_settings())
