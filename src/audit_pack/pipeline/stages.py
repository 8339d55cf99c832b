"""Default stage implementations for the audit-pack orchestrator.

Each stage takes the previous stage's result and returns its own; nothing
here writes request status. That is the orchestrator's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from audit_pack.domain.bundle import DEFAULT_COMPRESSION_LEVEL, assemble_audit_pack_zip
from audit_pack.domain.evidence import (
    build_approval_evidence,
    build_audit_timeline,
    build_entry_chain_evidence,
)
from audit_pack.domain.lineage import build_correction_closure
from audit_pack.domain.models import (
    EXPORT_TYPE_AUDIT_PACK,
    ApprovalEvidence,
    ApprovalRecord,
    AssembledAuditPack,
    AssemblyCounts,
    AuditLogRecord,
    AuditPackRequest,
    AuditPackScope,
    AuditTimelineEvent,
    CorrectionClosure,
    CorrectionLinkNode,
    EntryChainEvidence,
    TimeEntryRecord,
)
from audit_pack.errors import LineageBrokenError, RequestNotFoundError, ScopeInvalidError
from audit_pack.hardening import HardenExportParams, HardenExportResult, HardeningService
from audit_pack.store.evidence_source import SqliteEvidenceSource
from audit_pack.store.repository import AuditPackRequestRepository
from audit_pack.utils.time import canonical_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINEAGE_ROUNDS = 1000
DEFAULT_MAX_LINEAGE_NODES = 100_000


@dataclass(frozen=True)
class GenerateAuditPackInput:
    request_id: str
    organization_id: str


@dataclass
class CollectedScope:
    request: AuditPackRequest
    base_entries: list[TimeEntryRecord]

    @property
    def base_nodes(self) -> list[CorrectionLinkNode]:
        return [entry.to_link_node() for entry in self.base_entries]


@dataclass
class ExpandedScope:
    request: AuditPackRequest
    base_entries: list[TimeEntryRecord]
    closure: CorrectionClosure
    lineage_entries: list[TimeEntryRecord]
    lookup_rounds: int = 0


def _format_ids(ids: list[str], limit: int = 20) -> str:
    shown = ", ".join(ids[:limit])
    if len(ids) > limit:
        shown += f" (+{len(ids) - limit} more)"
    return shown


def _approval_decision(status: str) -> str:
    if status == "pending":
        return "submitted"
    if status == "approved":
        return "approved"
    return "rejected"


def _decision_time(approval: ApprovalRecord) -> str:
    if approval.status == "pending":
        return approval.created_at
    return approval.approved_at or approval.updated_at or approval.created_at


def _timeline_events(
    organization_id: str,
    lineage_entries: list[TimeEntryRecord],
    approvals: list[ApprovalRecord],
    audit_logs: list[AuditLogRecord],
) -> list[AuditTimelineEvent]:
    events = [
        AuditTimelineEvent(
            id=f"entry:{entry.id}",
            organization_id=entry.organization_id,
            source="entry",
            occurred_at=entry.timestamp,
        )
        for entry in lineage_entries
    ]
    for approval in approvals:
        events.append(
            AuditTimelineEvent(
                id=f"approval:{approval.id}:submitted",
                organization_id=approval.organization_id,
                source="approval",
                occurred_at=approval.created_at,
            )
        )
        if approval.status != "pending":
            events.append(
                AuditTimelineEvent(
                    id=f"approval:{approval.id}:{approval.status}",
                    organization_id=approval.organization_id,
                    source="approval",
                    occurred_at=_decision_time(approval),
                )
            )
    events.extend(
        AuditTimelineEvent(
            id=f"audit-log:{log.id}",
            organization_id=log.organization_id,
            source="audit_log",
            occurred_at=log.timestamp,
        )
        for log in audit_logs
    )
    return build_audit_timeline(events, organization_id)


class AuditPackStages:
    """Collect, expand, assemble and harden against SQLite and a hardening service."""

    def __init__(
        self,
        repository: AuditPackRequestRepository,
        source: SqliteEvidenceSource,
        hardener: HardeningService,
        *,
        max_lineage_rounds: int = DEFAULT_MAX_LINEAGE_ROUNDS,
        max_lineage_nodes: int = DEFAULT_MAX_LINEAGE_NODES,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    ) -> None:
        self._repository = repository
        self._source = source
        self._hardener = hardener
        self._max_rounds = max_lineage_rounds
        self._max_nodes = max_lineage_nodes
        self._compression_level = compression_level

    def _load_request(self, job: GenerateAuditPackInput) -> AuditPackRequest:
        request = self._repository.get_request(job.request_id, job.organization_id)
        if request is None:
            raise RequestNotFoundError()
        return request

    def collect(self, job: GenerateAuditPackInput) -> CollectedScope:
        request = self._load_request(job)
        try:
            inverted = parse_timestamp(request.start_date) > parse_timestamp(request.end_date)
        except ValueError as exc:
            raise ScopeInvalidError(f"Audit pack request has unreadable date range: {exc}") from exc
        if inverted:
            raise ScopeInvalidError()

        base_entries = self._source.find_entries_in_range(
            job.organization_id, request.start_date, request.end_date
        )
        logger.info(
            "Collected %d base entries for request %s", len(base_entries), job.request_id
        )
        return CollectedScope(request=request, base_entries=base_entries)

    def expand_lineage(
        self, collected: CollectedScope, job: GenerateAuditPackInput
    ) -> ExpandedScope:
        organization_id = collected.request.organization_id
        entries_by_id: dict[str, TimeEntryRecord] = {}

        foreign_seeds = sorted(
            entry.id for entry in collected.base_entries if entry.organization_id != organization_id
        )
        if foreign_seeds:
            raise LineageBrokenError(
                f"Seed entries missing in organization scope: {_format_ids(foreign_seeds)}"
            )
        for entry in collected.base_entries:
            entries_by_id[entry.id] = entry

        pending = {
            linked_id
            for entry in entries_by_id.values()
            for linked_id in entry.to_link_node().linked_ids()
            if linked_id not in entries_by_id
        }

        rounds = 0
        while pending:
            rounds += 1
            if rounds > self._max_rounds:
                raise LineageBrokenError(
                    f"Lineage resolution exceeded {self._max_rounds} lookup rounds"
                )
            batch_ids = sorted(pending)
            pending = set()

            linked_entries = self._source.find_entries_by_ids(organization_id, batch_ids)
            for entry in linked_entries:
                if entry.organization_id == organization_id:
                    entries_by_id[entry.id] = entry

            missing = [entry_id for entry_id in batch_ids if entry_id not in entries_by_id]
            if missing:
                raise LineageBrokenError(
                    f"Linked entries missing in organization scope: {_format_ids(missing)}"
                )
            if len(entries_by_id) > self._max_nodes:
                raise LineageBrokenError(
                    f"Lineage resolution exceeded {self._max_nodes} entries"
                )

            for entry in linked_entries:
                for linked_id in entry.to_link_node().linked_ids():
                    if linked_id not in entries_by_id:
                        pending.add(linked_id)

        lookup = {entry_id: entry.to_link_node() for entry_id, entry in entries_by_id.items()}
        closure = build_correction_closure(collected.base_nodes, lookup)

        missing_nodes = [node_id for node_id in closure.node_ids if node_id not in entries_by_id]
        if missing_nodes:
            raise LineageBrokenError(
                f"Closure contains missing lineage nodes: {_format_ids(missing_nodes)}"
            )
        lineage_entries = [entries_by_id[node_id] for node_id in closure.node_ids]

        logger.info(
            "Expanded request %s to %d entries (%d outside range) in %d lookup rounds",
            job.request_id,
            len(lineage_entries),
            len(closure.expanded_outside_range),
            rounds,
        )
        return ExpandedScope(
            request=collected.request,
            base_entries=collected.base_entries,
            closure=closure,
            lineage_entries=lineage_entries,
            lookup_rounds=rounds,
        )

    def assemble(
        self, expanded: ExpandedScope, job: GenerateAuditPackInput
    ) -> AssembledAuditPack:
        request = expanded.request
        organization_id = request.organization_id

        entry_evidence = build_entry_chain_evidence(
            (
                EntryChainEvidence(
                    id=entry.id,
                    organization_id=entry.organization_id,
                    occurred_at=entry.timestamp,
                    previous_entry_id=entry.previous_entry_id,
                    replaces_entry_id=entry.replaces_entry_id,
                    superseded_by_id=entry.superseded_by_id,
                )
                for entry in expanded.lineage_entries
            ),
            organization_id,
        )

        lineage_by_id = {entry.id: entry for entry in expanded.lineage_entries}
        correction_nodes = [
            lineage_by_id[node_id].to_link_node()
            for node_id in expanded.closure.node_ids
            if node_id in lineage_by_id
        ]

        approvals = self._source.find_approvals_in_range(
            organization_id, request.start_date, request.end_date
        )
        approval_evidence = build_approval_evidence(
            (
                ApprovalEvidence(
                    id=approval.id,
                    organization_id=approval.organization_id,
                    entry_id=approval.entity_id,
                    approved_at=_decision_time(approval),
                    status=_approval_decision(approval.status),
                    approved_by_id=approval.approver_id,
                )
                for approval in approvals
            ),
            organization_id,
        )

        audit_logs = self._source.find_audit_logs_in_range(
            organization_id, request.start_date, request.end_date
        )
        timeline = _timeline_events(
            organization_id, expanded.lineage_entries, approvals, audit_logs
        )

        included = sorted(
            (canonical_timestamp(entry.timestamp), entry.id) for entry in expanded.lineage_entries
        )
        scope = AuditPackScope(
            organization_id=organization_id,
            requested_start_date=canonical_timestamp(request.start_date),
            requested_end_date=canonical_timestamp(request.end_date),
            included_entry_count=len(entry_evidence),
            expanded_outside_range=expanded.closure.expanded_outside_range,
            included_start_date=included[0][0] if included else None,
            included_end_date=included[-1][0] if included else None,
        )

        zip_bytes = assemble_audit_pack_zip(
            entry_evidence,
            correction_nodes,
            approval_evidence,
            timeline,
            scope,
            compression_level=self._compression_level,
        )
        logger.info(
            "Assembled audit pack for request %s (%d bytes)", job.request_id, len(zip_bytes)
        )
        return AssembledAuditPack(
            zip_bytes=zip_bytes,
            counts=AssemblyCounts(
                entry_count=len(entry_evidence),
                correction_node_count=len(correction_nodes),
                approval_event_count=len(approval_evidence),
                timeline_event_count=len(timeline),
                expanded_node_count=len(expanded.closure.expanded_outside_range),
            ),
        )

    def harden(
        self, assembled: AssembledAuditPack, job: GenerateAuditPackInput
    ) -> HardenExportResult:
        request = self._load_request(job)
        return self._hardener.harden_export(
            HardenExportParams(
                export_id=job.request_id,
                organization_id=job.organization_id,
                requested_by_id=request.requested_by_id,
                export_type=EXPORT_TYPE_AUDIT_PACK,
                zip_bytes=assembled.zip_bytes,
            )
        )
