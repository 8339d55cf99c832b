"""Audit-pack generation pipeline."""

from audit_pack.pipeline.orchestrator import AuditPackOrchestrator
from audit_pack.pipeline.stages import AuditPackStages, GenerateAuditPackInput

__all__ = ["AuditPackOrchestrator", "AuditPackStages", "GenerateAuditPackInput"]
