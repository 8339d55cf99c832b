"""Data models for audit-pack requests, lineage and evidence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

RequestStatus = Literal[
    "requested",
    "collecting",
    "lineage_expanding",
    "assembling",
    "hardening",
    "completed",
    "failed",
]

# Statuses the orchestrator may write through ``set_status``, in stage order.
EXECUTION_STATUSES: tuple[str, ...] = (
    "collecting",
    "lineage_expanding",
    "assembling",
    "hardening",
    "completed",
)

TimelineSource = Literal["entry", "approval", "audit_log"]
ApprovalDecision = Literal["submitted", "approved", "rejected"]

EXPORT_TYPE_AUDIT_PACK = "audit_pack"


@dataclass
class AuditPackRequest:
    id: str
    organization_id: str
    requested_by_id: str
    start_date: str
    end_date: str
    status: str
    error_code: str | None
    error_message: str | None
    created_at: str
    completed_at: str | None


@dataclass
class AuditPackArtifact:
    request_id: str
    organization_id: str
    audit_export_package_id: str
    s3_key: str
    entry_count: int
    correction_node_count: int
    approval_event_count: int
    timeline_event_count: int
    expanded_node_count: int
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class CorrectionLinkNode:
    id: str
    previous_entry_id: str | None = None
    replaces_entry_id: str | None = None
    superseded_by_id: str | None = None

    def linked_ids(self) -> list[str]:
        links = (self.previous_entry_id, self.replaces_entry_id, self.superseded_by_id)
        return [link for link in links if isinstance(link, str) and link]

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "previousEntryId": self.previous_entry_id,
            "replacesEntryId": self.replaces_entry_id,
            "supersededById": self.superseded_by_id,
        }


@dataclass(frozen=True)
class CorrectionClosure:
    node_ids: tuple[str, ...]
    expanded_outside_range: tuple[str, ...]


@dataclass(frozen=True)
class TimeEntryRecord:
    """A time entry row as read from the data source."""

    id: str
    organization_id: str
    timestamp: str
    previous_entry_id: str | None = None
    replaces_entry_id: str | None = None
    superseded_by_id: str | None = None

    def to_link_node(self) -> CorrectionLinkNode:
        return CorrectionLinkNode(
            id=self.id,
            previous_entry_id=self.previous_entry_id,
            replaces_entry_id=self.replaces_entry_id,
            superseded_by_id=self.superseded_by_id,
        )


@dataclass(frozen=True)
class ApprovalRecord:
    id: str
    organization_id: str
    entity_type: str
    entity_id: str
    approver_id: str | None
    status: str
    approved_at: str | None
    created_at: str
    updated_at: str | None


@dataclass(frozen=True)
class AuditLogRecord:
    id: str
    organization_id: str
    timestamp: str


@dataclass(frozen=True)
class EntryChainEvidence:
    id: str
    organization_id: str
    occurred_at: str
    previous_entry_id: str | None = None
    replaces_entry_id: str | None = None
    superseded_by_id: str | None = None

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "occurredAt": self.occurred_at,
            "previousEntryId": self.previous_entry_id,
            "replacesEntryId": self.replaces_entry_id,
            "supersededById": self.superseded_by_id,
        }


@dataclass(frozen=True)
class ApprovalEvidence:
    id: str
    organization_id: str
    entry_id: str
    approved_at: str
    status: ApprovalDecision
    approved_by_id: str | None = None

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "entryId": self.entry_id,
            "approvedAt": self.approved_at,
            "status": self.status,
            "approvedById": self.approved_by_id,
        }


@dataclass(frozen=True)
class AuditTimelineEvent:
    id: str
    organization_id: str
    source: TimelineSource
    occurred_at: str

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "source": self.source,
            "occurredAt": self.occurred_at,
        }


@dataclass(frozen=True)
class AuditPackScope:
    organization_id: str
    requested_start_date: str
    requested_end_date: str
    included_entry_count: int
    expanded_outside_range: tuple[str, ...] = ()
    included_start_date: str | None = None
    included_end_date: str | None = None

    def to_payload(self) -> dict[str, object]:
        return {
            "organizationId": self.organization_id,
            "requestedStartDate": self.requested_start_date,
            "requestedEndDate": self.requested_end_date,
            "includedEntryCount": self.included_entry_count,
            "expandedOutsideRange": list(self.expanded_outside_range),
            "includedStartDate": self.included_start_date,
            "includedEndDate": self.included_end_date,
        }


@dataclass
class AssemblyCounts:
    entry_count: int = 0
    correction_node_count: int = 0
    approval_event_count: int = 0
    timeline_event_count: int = 0
    expanded_node_count: int = 0


@dataclass
class AssembledAuditPack:
    zip_bytes: bytes
    counts: AssemblyCounts = field(default_factory=AssemblyCounts)
