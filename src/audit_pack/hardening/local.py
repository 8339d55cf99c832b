"""Filesystem-backed hardening for local runs and tests.

Archives are written below a base directory together with a checksum
sidecar. No signing or retention lock is applied.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from uuid import uuid4

from audit_pack.errors import HardeningError
from audit_pack.hardening import HardenExportParams, HardenExportResult
from audit_pack.utils.hashing import sha256_bytes
from audit_pack.utils.time import utc_now_iso

_SAFE_SEGMENT_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def _key_segment(label: str, value: str) -> str:
    if not _SAFE_SEGMENT_RE.match(value) or value in {".", ".."}:
        raise HardeningError(f"Unsafe {label} for storage key: {value!r}")
    return value


class FilesystemHardeningService:
    def __init__(self, base_path: str) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    def harden_export(self, params: HardenExportParams) -> HardenExportResult:
        package_id = uuid4().hex
        key = "/".join(
            (
                "audit-packs",
                _key_segment("organization id", params.organization_id),
                _key_segment("export id", params.export_id),
                f"{package_id}.zip",
            )
        )
        path = self._base / key
        # Validate that the resolved path is within the base directory.
        if not path.resolve().is_relative_to(self._base.resolve()):
            raise HardeningError(f"Path is outside base directory: {key}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(params.zip_bytes)

        sidecar = {
            "auditPackageId": package_id,
            "checksum": sha256_bytes(params.zip_bytes),
            "createdAt": utc_now_iso(),
            "exportId": params.export_id,
            "exportType": params.export_type,
            "organizationId": params.organization_id,
            "requestedById": params.requested_by_id,
            "sizeBytes": len(params.zip_bytes),
        }
        path.with_suffix(".json").write_text(
            json.dumps(sidecar, ensure_ascii=True, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return HardenExportResult(audit_package_id=package_id, s3_key=key)

    def read_archive(self, s3_key: str) -> bytes:
        path = (self._base / s3_key).resolve()
        if not path.is_relative_to(self._base.resolve()):
            raise ValueError(f"Path is outside base directory: {s3_key}")
        return path.read_bytes()
