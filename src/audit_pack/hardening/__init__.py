"""Hardening collaborators.

Hardening signs an assembled archive and places it under write-once
storage. The generator only relies on the boundary defined here: raw
archive bytes plus request identity in, package id and storage key out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class HardenExportParams:
    export_id: str
    organization_id: str
    requested_by_id: str
    export_type: str
    zip_bytes: bytes


@dataclass(frozen=True)
class HardenExportResult:
    audit_package_id: str
    s3_key: str


class HardeningService(Protocol):
    def harden_export(self, params: HardenExportParams) -> HardenExportResult: ...


__all__ = ["HardenExportParams", "HardenExportResult", "HardeningService"]
