"""Command-line entrypoint for creating, generating and inspecting audit packs."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from typing import Sequence

from audit_pack import __version__
from audit_pack.app import get_app_context
from audit_pack.errors import AuditPackError, JobPayloadError, derive_error_code
from audit_pack.logging_utils import configure_logging
from audit_pack.worker import process_audit_pack


def _print_json(payload: object) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="audit-pack", description=__doc__)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create an audit pack request")
    create.add_argument("--organization-id", required=True)
    create.add_argument("--requested-by", required=True)
    create.add_argument("--start-date", required=True, help="YYYY-MM-DD (inclusive)")
    create.add_argument("--end-date", required=True, help="YYYY-MM-DD (inclusive)")

    generate = sub.add_parser("generate", help="Generate the audit pack for a request")
    generate.add_argument("--request-id", required=True)
    generate.add_argument("--organization-id", required=True)

    status = sub.add_parser("status", help="Show a request and its artifact")
    status.add_argument("--request-id", required=True)
    status.add_argument("--organization-id", required=True)

    listing = sub.add_parser("list", help="List recent requests for an organization")
    listing.add_argument("--organization-id", required=True)
    listing.add_argument("--limit", type=int, default=10)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging()
    context = get_app_context()
    repository = context.repository

    if args.command == "create":
        try:
            request = repository.create_request(
                args.organization_id, args.requested_by, args.start_date, args.end_date
            )
        except AuditPackError as exc:
            _print_json({"errorCode": exc.error_code, "errorMessage": str(exc)})
            return 2
        _print_json(asdict(request))
        return 0

    if args.command == "generate":
        try:
            process_audit_pack(
                {"requestId": args.request_id, "organizationId": args.organization_id},
                orchestrator=context.orchestrator,
            )
        except JobPayloadError as exc:
            _print_json({"errorCode": "invalid_payload", "errorMessage": str(exc)})
            return 2
        except Exception as exc:
            _print_json({"errorCode": derive_error_code(exc), "errorMessage": str(exc)})
            return 1
        artifact = repository.get_artifact(args.request_id, args.organization_id)
        _print_json(asdict(artifact) if artifact else None)
        return 0

    if args.command == "status":
        request = repository.get_request(args.request_id, args.organization_id)
        if request is None:
            _print_json({"errorCode": "request_not_found"})
            return 1
        artifact = repository.get_artifact(args.request_id, args.organization_id)
        _print_json(
            {"request": asdict(request), "artifact": asdict(artifact) if artifact else None}
        )
        return 0

    requests = repository.list_requests(args.organization_id, limit=args.limit)
    _print_json([asdict(request) for request in requests])
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
