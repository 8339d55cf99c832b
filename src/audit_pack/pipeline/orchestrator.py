"""Audit-pack generation state machine.

``generate`` walks a request through

    collecting -> lineage_expanding -> assembling -> hardening -> completed

writing exactly one status per stage before the stage runs. Any failure is
recorded once as ``failed`` (with the error's code and message) and then
re-raised for the job queue to retry or alert on. An artifact is stored
only after hardening succeeds.
"""

from __future__ import annotations

import logging
from typing import Protocol

from audit_pack.domain.models import AssembledAuditPack, AuditPackArtifact
from audit_pack.errors import derive_error_code, derive_error_message
from audit_pack.hardening import HardenExportResult
from audit_pack.pipeline.stages import GenerateAuditPackInput

logger = logging.getLogger(__name__)

STATUS_COLLECTING = "collecting"
STATUS_LINEAGE_EXPANDING = "lineage_expanding"
STATUS_ASSEMBLING = "assembling"
STATUS_HARDENING = "hardening"
STATUS_COMPLETED = "completed"


class AuditPackRepository(Protocol):
    def set_status(self, request_id: str, organization_id: str, status: str) -> None: ...

    def fail_request(
        self, request_id: str, organization_id: str, error_code: str, error_message: str
    ) -> None: ...

    def store_artifact(self, artifact: AuditPackArtifact) -> None: ...


class AuditPackDependencies(Protocol):
    def collect(self, job: GenerateAuditPackInput) -> object: ...

    def expand_lineage(self, collected, job: GenerateAuditPackInput) -> object: ...

    def assemble(self, expanded, job: GenerateAuditPackInput) -> AssembledAuditPack: ...

    def harden(
        self, assembled: AssembledAuditPack, job: GenerateAuditPackInput
    ) -> HardenExportResult: ...


class AuditPackOrchestrator:
    def __init__(
        self,
        repository: AuditPackRepository,
        dependencies: AuditPackDependencies,
    ) -> None:
        self._repository = repository
        self._dependencies = dependencies

    def _advance(self, job: GenerateAuditPackInput, status: str) -> None:
        self._repository.set_status(job.request_id, job.organization_id, status)
        logger.info("Audit pack %s -> %s", job.request_id, status)

    def generate(self, request_id: str, organization_id: str) -> None:
        job = GenerateAuditPackInput(request_id=request_id, organization_id=organization_id)

        try:
            self._advance(job, STATUS_COLLECTING)
            collected = self._dependencies.collect(job)

            self._advance(job, STATUS_LINEAGE_EXPANDING)
            expanded = self._dependencies.expand_lineage(collected, job)

            self._advance(job, STATUS_ASSEMBLING)
            assembled = self._dependencies.assemble(expanded, job)

            self._advance(job, STATUS_HARDENING)
            hardened = self._dependencies.harden(assembled, job)

            counts = assembled.counts
            self._repository.store_artifact(
                AuditPackArtifact(
                    request_id=request_id,
                    organization_id=organization_id,
                    audit_export_package_id=hardened.audit_package_id,
                    s3_key=hardened.s3_key,
                    entry_count=counts.entry_count,
                    correction_node_count=counts.correction_node_count,
                    approval_event_count=counts.approval_event_count,
                    timeline_event_count=counts.timeline_event_count,
                    expanded_node_count=counts.expanded_node_count,
                )
            )

            self._advance(job, STATUS_COMPLETED)
        except Exception as exc:
            error_code = derive_error_code(exc)
            error_message = derive_error_message(exc)
            logger.error(
                "Audit pack %s failed (%s): %s", request_id, error_code, error_message
            )
            try:
                self._repository.fail_request(
                    request_id, organization_id, error_code, error_message
                )
            except Exception as fail_exc:
                # The original error is the one the job queue must see.
                logger.error(
                    "Could not record failure for audit pack %s: %s", request_id, fail_exc
                )
            raise
