"""Evidence normalizers.

Each builder keeps only the given organization's items, rewrites
timestamps to canonical UTC and returns a new, deterministically sorted
list. Unparseable timestamps are passed through as-is rather than raising.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from audit_pack.domain.models import (
    ApprovalEvidence,
    AuditTimelineEvent,
    EntryChainEvidence,
)
from audit_pack.utils.time import canonical_timestamp

# Within one instant the record changes first, then the human decision,
# then the audit log observing it.
TIMELINE_SOURCE_PRECEDENCE = {"entry": 0, "approval": 1, "audit_log": 2}


def build_entry_chain_evidence(
    entries: Iterable[EntryChainEvidence], organization_id: str
) -> list[EntryChainEvidence]:
    normalized = [
        replace(entry, occurred_at=canonical_timestamp(entry.occurred_at))
        for entry in entries
        if entry.organization_id == organization_id
    ]
    return sorted(normalized, key=lambda entry: (entry.occurred_at, entry.id))


def build_approval_evidence(
    approvals: Iterable[ApprovalEvidence], organization_id: str
) -> list[ApprovalEvidence]:
    normalized = [
        replace(approval, approved_at=canonical_timestamp(approval.approved_at))
        for approval in approvals
        if approval.organization_id == organization_id
    ]
    return sorted(normalized, key=lambda approval: (approval.approved_at, approval.id))


def build_audit_timeline(
    events: Iterable[AuditTimelineEvent], organization_id: str
) -> list[AuditTimelineEvent]:
    normalized = [
        replace(event, occurred_at=canonical_timestamp(event.occurred_at))
        for event in events
        if event.organization_id == organization_id
    ]
    return sorted(
        normalized,
        key=lambda event: (
            event.occurred_at,
            TIMELINE_SOURCE_PRECEDENCE.get(event.source, len(TIMELINE_SOURCE_PRECEDENCE)),
            event.id,
        ),
    )
