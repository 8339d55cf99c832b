"""Error taxonomy for audit-pack generation.

Every error the pipeline raises on purpose carries an ``error_code``. The
orchestrator copies that code onto the failed request; anything without one
is reported as ``audit_pack_generation_failed``.
"""

from __future__ import annotations

REQUEST_NOT_FOUND = "request_not_found"
SCOPE_INVALID = "scope_invalid"
LINEAGE_BROKEN = "lineage_broken"
GENERATION_FAILED = "audit_pack_generation_failed"


class AuditPackError(Exception):
    """Generation failure with error code."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.error_code = error_code


class RequestNotFoundError(AuditPackError):
    def __init__(self, message: str = "Audit pack request not found") -> None:
        super().__init__(message, REQUEST_NOT_FOUND)


class ScopeInvalidError(AuditPackError):
    def __init__(self, message: str = "Audit pack request has invalid date range") -> None:
        super().__init__(message, SCOPE_INVALID)


class LineageBrokenError(AuditPackError):
    def __init__(self, message: str) -> None:
        super().__init__(message, LINEAGE_BROKEN)


class HardeningError(RuntimeError):
    pass


class JobPayloadError(ValueError):
    pass


def derive_error_code(error: BaseException) -> str:
    code = getattr(error, "error_code", None)
    if isinstance(code, str) and code:
        return code
    return GENERATION_FAILED


def derive_error_message(error: BaseException) -> str:
    message = str(error)
    return message or type(error).__name__
