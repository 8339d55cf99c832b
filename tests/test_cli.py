from __future__ import annotations

import json
import logging

import pytest

from audit_pack import cli
from audit_pack.app import build_app_context
from audit_pack.config import Settings
from audit_pack.domain.models import TimeEntryRecord


@pytest.fixture
def context(tmp_path, store, monkeypatch: pytest.MonkeyPatch):
    settings = Settings.model_validate(
        {"storage": {"artifact_path": str(tmp_path / "artifacts")}}
    )
    app_context = build_app_context(settings, store=store)
    monkeypatch.setattr(cli, "get_app_context", lambda: app_context)
    monkeypatch.setattr(cli, "configure_logging", lambda: None)
    monkeypatch.setattr("audit_pack.worker.get_logger", logging.getLogger)
    return app_context


def _run(argv: list[str], capsys) -> tuple[int, object]:
    code = cli.main(argv)
    return code, json.loads(capsys.readouterr().out)


def test_create_then_status(context, capsys) -> None:
    code, created = _run(
        [
            "create",
            "--organization-id",
            "org-1",
            "--requested-by",
            "admin-1",
            "--start-date",
            "2024-03-01",
            "--end-date",
            "2024-03-31",
        ],
        capsys,
    )
    assert code == 0
    assert created["status"] == "requested"
    assert created["end_date"] == "2024-03-31T23:59:59.999+00:00"

    code, status = _run(
        ["status", "--request-id", created["id"], "--organization-id", "org-1"], capsys
    )
    assert code == 0
    assert status["request"]["id"] == created["id"]
    assert status["artifact"] is None


def test_create_rejects_inverted_range(context, capsys) -> None:
    code, body = _run(
        [
            "create",
            "--organization-id",
            "org-1",
            "--requested-by",
            "admin-1",
            "--start-date",
            "2024-03-31",
            "--end-date",
            "2024-03-01",
        ],
        capsys,
    )

    assert code == 2
    assert body["errorCode"] == "scope_invalid"


def test_generate_prints_artifact(context, capsys) -> None:
    context.source.add_time_entry(TimeEntryRecord("e1", "org-1", "2024-03-05T09:00:00Z"))
    request = context.repository.create_request("org-1", "admin-1", "2024-03-01", "2024-03-31")

    code, artifact = _run(
        ["generate", "--request-id", request.id, "--organization-id", "org-1"], capsys
    )

    assert code == 0
    assert artifact["request_id"] == request.id
    assert artifact["entry_count"] == 1
    assert artifact["s3_key"].startswith(f"audit-packs/org-1/{request.id}/")


def test_generate_reports_failure_code(context, capsys) -> None:
    context.source.add_time_entry(
        TimeEntryRecord("e1", "org-1", "2024-03-05T09:00:00Z", previous_entry_id="ghost")
    )
    request = context.repository.create_request("org-1", "admin-1", "2024-03-01", "2024-03-31")

    code, body = _run(
        ["generate", "--request-id", request.id, "--organization-id", "org-1"], capsys
    )

    assert code == 1
    assert body["errorCode"] == "lineage_broken"
    assert context.repository.get_request(request.id, "org-1").status == "failed"


def test_generate_rejects_blank_ids(context, capsys) -> None:
    code, body = _run(["generate", "--request-id", " ", "--organization-id", "org-1"], capsys)

    assert code == 2
    assert body["errorCode"] == "invalid_payload"


def test_status_for_unknown_request(context, capsys) -> None:
    code, body = _run(["status", "--request-id", "nope", "--organization-id", "org-1"], capsys)

    assert code == 1
    assert body == {"errorCode": "request_not_found"}


def test_list_is_scoped_to_organization(context, capsys) -> None:
    context.repository.create_request("org-1", "admin-1", "2024-03-01", "2024-03-31")
    context.repository.create_request("org-2", "admin-2", "2024-03-01", "2024-03-31")

    code, listed = _run(["list", "--organization-id", "org-1"], capsys)

    assert code == 0
    assert [item["organization_id"] for item in listed] == ["org-1"]
