"""Job-queue entrypoint for audit-pack generation."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from audit_pack.errors import JobPayloadError
from audit_pack.logging_utils import get_logger
from audit_pack.pipeline.orchestrator import AuditPackOrchestrator


class AuditPackJobPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    request_id: str = Field(alias="requestId", min_length=1)
    organization_id: str = Field(alias="organizationId", min_length=1)


def parse_job_payload(payload: Mapping[str, object]) -> AuditPackJobPayload:
    try:
        return AuditPackJobPayload.model_validate(dict(payload))
    except ValidationError as exc:
        raise JobPayloadError(f"Invalid audit pack job payload: {exc}") from exc


def process_audit_pack(
    payload: Mapping[str, object],
    orchestrator: AuditPackOrchestrator | None = None,
) -> None:
    """Run one audit-pack job.

    ``payload`` must carry ``requestId`` and ``organizationId``; a missing or
    blank field raises ``JobPayloadError`` before any status is written.
    Generation errors propagate unchanged so the queue can apply its retry
    policy.
    """
    job = parse_job_payload(payload)
    logger = get_logger(__name__)

    if orchestrator is None:
        from audit_pack.app import get_app_context

        orchestrator = get_app_context().orchestrator

    logger.info(
        "Processing audit pack %s for organization %s", job.request_id, job.organization_id
    )
    orchestrator.generate(job.request_id, job.organization_id)
    logger.info("Audit pack %s completed", job.request_id)
