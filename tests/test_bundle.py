from __future__ import annotations

import io
import json
import random
from zipfile import ZIP_DEFLATED, ZipFile

from audit_pack.domain.bundle import (
    BUNDLE_PATHS,
    EPOCH_ZIP_DT,
    assemble_audit_pack_zip,
    canonical_json_bytes,
    canonicalize,
    neutralize_csv_cell,
    render_csv,
)
from audit_pack.domain.models import (
    ApprovalEvidence,
    AuditPackScope,
    AuditTimelineEvent,
    CorrectionLinkNode,
    EntryChainEvidence,
)


def _scope(**overrides) -> AuditPackScope:
    values = {
        "organization_id": "org-1",
        "requested_start_date": "2024-03-01T00:00:00.000+00:00",
        "requested_end_date": "2024-03-31T23:59:59.999+00:00",
        "included_entry_count": 0,
    }
    values.update(overrides)
    return AuditPackScope(**values)


def _evidence():
    entries = [
        EntryChainEvidence(
            id=f"e{i}",
            organization_id="org-1",
            occurred_at=f"2024-03-0{i}T08:00:00.000+00:00",
            previous_entry_id=f"e{i - 1}" if i > 1 else None,
        )
        for i in range(1, 6)
    ]
    corrections = [
        CorrectionLinkNode(id=entry.id, previous_entry_id=entry.previous_entry_id)
        for entry in entries
    ]
    approvals = [
        ApprovalEvidence(
            id=f"a{i}",
            organization_id="org-1",
            entry_id=f"e{i}",
            approved_at=f"2024-03-0{i}T09:00:00.000+00:00",
            status="approved",
            approved_by_id="mgr-1",
        )
        for i in range(1, 4)
    ]
    timeline = [
        AuditTimelineEvent(
            id=f"entry:{entry.id}",
            organization_id="org-1",
            source="entry",
            occurred_at=entry.occurred_at,
        )
        for entry in entries
    ]
    return entries, corrections, approvals, timeline


def _read_zip(data: bytes) -> dict[str, bytes]:
    with ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


def test_empty_bundle_contains_exactly_the_fixed_paths() -> None:
    data = assemble_audit_pack_zip([], [], [], [], _scope())

    with ZipFile(io.BytesIO(data)) as zf:
        names = zf.namelist()

    assert sorted(names) == sorted(BUNDLE_PATHS)
    assert len(names) == 7


def test_bundle_members_are_sorted_with_fixed_metadata() -> None:
    data = assemble_audit_pack_zip(*_evidence(), _scope(included_entry_count=5))

    with ZipFile(io.BytesIO(data)) as zf:
        infos = zf.infolist()

    assert [info.filename for info in infos] == sorted(BUNDLE_PATHS)
    for info in infos:
        assert info.date_time == EPOCH_ZIP_DT
        assert info.compress_type == ZIP_DEFLATED


def test_bundle_bytes_are_reproducible_for_shuffled_input() -> None:
    entries, corrections, approvals, timeline = _evidence()
    scope = _scope(included_entry_count=5, expanded_outside_range=("e0",))

    first = assemble_audit_pack_zip(entries, corrections, approvals, timeline, scope)

    rng = random.Random(42)
    for _ in range(5):
        shuffled = [entries[:], corrections[:], approvals[:], timeline[:]]
        for items in shuffled:
            rng.shuffle(items)
        assert assemble_audit_pack_zip(*shuffled, scope) == first


def test_bundle_json_files_are_canonical_and_newline_terminated() -> None:
    data = assemble_audit_pack_zip(*_evidence(), _scope(included_entry_count=5))
    files = _read_zip(data)

    entries_text = files["evidence/entries.json"].decode("utf-8")
    assert entries_text.endswith("}\n]\n")
    entries = json.loads(entries_text)
    assert list(entries[0]) == sorted(entries[0])
    assert entries[0]["organizationId"] == "org-1"

    scope = json.loads(files["meta/scope.json"])
    assert scope["includedEntryCount"] == 5
    assert scope["expandedOutsideRange"] == []
    assert scope["includedStartDate"] is None


def test_bundle_csv_views_are_sorted_by_id_with_fixed_columns() -> None:
    entries, corrections, approvals, timeline = _evidence()
    entries = list(reversed(entries))

    files = _read_zip(assemble_audit_pack_zip(entries, corrections, approvals, timeline, _scope()))

    entry_lines = files["views/entries.csv"].decode("utf-8").splitlines()
    assert entry_lines[0] == (
        '"id","organizationId","occurredAt","previousEntryId","replacesEntryId","supersededById"'
    )
    assert [line.split(",")[0] for line in entry_lines[1:]] == [
        '"e1"',
        '"e2"',
        '"e3"',
        '"e4"',
        '"e5"',
    ]
    assert entry_lines[1] == '"e1","org-1","2024-03-01T08:00:00.000+00:00","","",""'

    approval_lines = files["views/approvals.csv"].decode("utf-8").splitlines()
    assert approval_lines[0] == '"id","organizationId","entryId","status","approvedAt","approvedById"'
    assert approval_lines[1] == '"a1","org-1","e1","approved","2024-03-01T09:00:00.000+00:00","mgr-1"'


def test_csv_cells_neutralize_formula_prefixes() -> None:
    assert neutralize_csv_cell("=SUM(A1:A2)") == "'=SUM(A1:A2)"
    assert neutralize_csv_cell("+1") == "'+1"
    assert neutralize_csv_cell("-5") == "'-5"
    assert neutralize_csv_cell("@cmd") == "'@cmd"
    assert neutralize_csv_cell("  =HYPERLINK()") == "'  =HYPERLINK()"
    assert neutralize_csv_cell("safe") == "safe"
    assert neutralize_csv_cell(None) == ""


def test_render_csv_quotes_every_cell_and_doubles_quotes() -> None:
    rendered = render_csv(("id", "note"), [{"id": "x", "note": 'say "hi"'}, {"id": "y"}])

    assert rendered.decode("utf-8") == '"id","note"\n"x","say ""hi"""\n"y",""\n'


def test_canonicalize_sorts_nested_keys_and_arrays() -> None:
    value = {"b": [3, 1, {"z": 1, "a": [2, 1]}], "a": {"y": 1, "x": 2}}

    normalized = canonicalize(value)

    assert list(normalized) == ["a", "b"]
    assert list(normalized["a"]) == ["x", "y"]
    assert normalized["b"][:2] == [1, 3]
    assert normalized["b"][2] == {"a": [1, 2], "z": 1}


def test_canonical_json_bytes_ignore_input_ordering() -> None:
    left = canonical_json_bytes([{"id": "2", "v": [1, 2]}, {"id": "1"}])
    right = canonical_json_bytes([{"id": "1"}, {"v": [2, 1], "id": "2"}])

    assert left == right
    assert left.endswith(b"\n")
