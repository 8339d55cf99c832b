from __future__ import annotations

import os

import pytest

from audit_pack.config import _load_settings_cached
from audit_pack.store.db import SqliteStore
from audit_pack.store.evidence_source import SqliteEvidenceSource
from audit_pack.store.repository import AuditPackRequestRepository


def pytest_sessionstart(session: pytest.Session) -> None:
    # Never reach out to a real hardening service from unit tests.
    os.environ.setdefault("HARDENING_MODE", "local")


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> None:
    _load_settings_cached.cache_clear()
    yield
    _load_settings_cached.cache_clear()


@pytest.fixture
def store(tmp_path):
    sqlite_store = SqliteStore(str(tmp_path / "audit_pack.db"))
    yield sqlite_store
    sqlite_store.close()


@pytest.fixture
def repository(store: SqliteStore) -> AuditPackRequestRepository:
    return AuditPackRequestRepository(store)


@pytest.fixture
def source(store: SqliteStore) -> SqliteEvidenceSource:
    return SqliteEvidenceSource(store)
