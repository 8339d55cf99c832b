"""Deterministic audit-pack archive assembly.

The archive bytes are a pure function of the logical evidence: JSON is
canonicalized (sorted keys, sorted arrays), CSV rows are sorted by id, and
every ZIP member is written with a fixed timestamp, fixed attributes and a
fixed compression level, in lexicographic path order. A verifier can
rebuild the archive from the same evidence and compare hashes.
"""

from __future__ import annotations

import csv
import io
import json
import re
from collections.abc import Mapping, Sequence
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from audit_pack.domain.models import (
    ApprovalEvidence,
    AuditPackScope,
    AuditTimelineEvent,
    CorrectionLinkNode,
    EntryChainEvidence,
)

EPOCH_ZIP_DT = (1980, 1, 1, 0, 0, 0)
DEFAULT_COMPRESSION_LEVEL = 6

ENTRIES_JSON = "evidence/entries.json"
CORRECTIONS_JSON = "evidence/corrections.json"
APPROVALS_JSON = "evidence/approvals.json"
TIMELINE_JSON = "evidence/audit-timeline.json"
SCOPE_JSON = "meta/scope.json"
ENTRIES_CSV = "views/entries.csv"
APPROVALS_CSV = "views/approvals.csv"

BUNDLE_PATHS = (
    ENTRIES_JSON,
    CORRECTIONS_JSON,
    APPROVALS_JSON,
    TIMELINE_JSON,
    SCOPE_JSON,
    ENTRIES_CSV,
    APPROVALS_CSV,
)

ENTRY_CSV_COLUMNS = (
    "id",
    "organizationId",
    "occurredAt",
    "previousEntryId",
    "replacesEntryId",
    "supersededById",
)
APPROVAL_CSV_COLUMNS = (
    "id",
    "organizationId",
    "entryId",
    "status",
    "approvedAt",
    "approvedById",
)

_FORMULA_PREFIX_RE = re.compile(r"^\s*[=+\-@]")


def _compact_json(value: object) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonicalize(value: object) -> object:
    """Recursively sort object keys and array elements."""
    if isinstance(value, Mapping):
        return {str(key): canonicalize(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        items = [canonicalize(item) for item in value]
        return sorted(items, key=_compact_json)
    return value


def canonical_json_bytes(value: object) -> bytes:
    text = json.dumps(canonicalize(value), sort_keys=True, indent=2, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def neutralize_csv_cell(value: object) -> str:
    if value is None:
        return ""
    text = str(value)
    if _FORMULA_PREFIX_RE.match(text):
        return "'" + text
    return text


def _row_sort_key(row: Mapping[str, object]) -> tuple[str, str]:
    return (str(row["id"]), _compact_json(row))


def render_csv(columns: Sequence[str], rows: Sequence[Mapping[str, object]]) -> bytes:
    buffer = io.StringIO()
    # QUOTE_ALL doubles embedded quotes.
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([neutralize_csv_cell(row.get(column)) for column in columns])
    return buffer.getvalue().encode("utf-8")


def create_deterministic_zip(
    files: Mapping[str, bytes], compression_level: int = DEFAULT_COMPRESSION_LEVEL
) -> bytes:
    buffer = io.BytesIO()
    with ZipFile(buffer, mode="w", compression=ZIP_DEFLATED) as zf:
        for relpath in sorted(files):
            info = ZipInfo(relpath, date_time=EPOCH_ZIP_DT)
            info.compress_type = ZIP_DEFLATED
            info.create_system = 3
            info.external_attr = 0o100644 << 16
            zf.writestr(info, files[relpath], compresslevel=compression_level)
    return buffer.getvalue()


def assemble_audit_pack_zip(
    entries: Sequence[EntryChainEvidence],
    corrections: Sequence[CorrectionLinkNode],
    approvals: Sequence[ApprovalEvidence],
    timeline: Sequence[AuditTimelineEvent],
    scope: AuditPackScope,
    *,
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
) -> bytes:
    """Build the audit-pack ZIP. Empty evidence still yields all seven files."""
    entry_rows = [entry.to_payload() for entry in entries]
    approval_rows = [approval.to_payload() for approval in approvals]

    files = {
        ENTRIES_JSON: canonical_json_bytes(entry_rows),
        CORRECTIONS_JSON: canonical_json_bytes([node.to_payload() for node in corrections]),
        APPROVALS_JSON: canonical_json_bytes(approval_rows),
        TIMELINE_JSON: canonical_json_bytes([event.to_payload() for event in timeline]),
        SCOPE_JSON: canonical_json_bytes(scope.to_payload()),
        ENTRIES_CSV: render_csv(ENTRY_CSV_COLUMNS, sorted(entry_rows, key=_row_sort_key)),
        APPROVALS_CSV: render_csv(APPROVAL_CSV_COLUMNS, sorted(approval_rows, key=_row_sort_key)),
    }
    return create_deterministic_zip(files, compression_level=compression_level)
