from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from audit_pack import worker
from audit_pack.errors import JobPayloadError, LineageBrokenError


@pytest.fixture(autouse=True)
def _plain_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(worker, "get_logger", logging.getLogger)


def test_parse_job_payload_accepts_camel_case_and_strips() -> None:
    job = worker.parse_job_payload({"requestId": "  req-1 ", "organizationId": "org-1"})

    assert job.request_id == "req-1"
    assert job.organization_id == "org-1"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"requestId": "req-1"},
        {"organizationId": "org-1"},
        {"requestId": "   ", "organizationId": "org-1"},
        {"requestId": "req-1", "organizationId": ""},
        {"requestId": None, "organizationId": "org-1"},
    ],
)
def test_process_rejects_incomplete_payload_before_generating(payload) -> None:
    orchestrator = MagicMock()

    with pytest.raises(JobPayloadError, match="Invalid audit pack job payload"):
        worker.process_audit_pack(payload, orchestrator=orchestrator)

    orchestrator.generate.assert_not_called()


def test_process_runs_generation_with_payload_ids() -> None:
    orchestrator = MagicMock()

    worker.process_audit_pack(
        {"requestId": "req-1", "organizationId": " org-1 "}, orchestrator=orchestrator
    )

    orchestrator.generate.assert_called_once_with("req-1", "org-1")


def test_process_propagates_generation_errors() -> None:
    orchestrator = MagicMock()
    orchestrator.generate.side_effect = LineageBrokenError("Linked entries missing: ghost")

    with pytest.raises(LineageBrokenError):
        worker.process_audit_pack(
            {"requestId": "req-1", "organizationId": "org-1"}, orchestrator=orchestrator
        )


def test_process_uses_cached_context_when_no_orchestrator(monkeypatch) -> None:
    context = MagicMock()
    monkeypatch.setattr("audit_pack.app.get_app_context", lambda: context)

    worker.process_audit_pack({"requestId": "req-1", "organizationId": "org-1"})

    context.orchestrator.generate.assert_called_once_with("req-1", "org-1")
