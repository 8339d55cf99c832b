"""HTTP client for an external hardening service."""

from __future__ import annotations

import logging

import httpx

from audit_pack.errors import HardeningError
from audit_pack.hardening import HardenExportParams, HardenExportResult

logger = logging.getLogger(__name__)

HARDENED_EXPORTS_PATH = "/v1/hardened-exports"


class HttpHardeningClient:
    """Posts archives to ``<base_url>/v1/hardened-exports``.

    The service is expected to answer with JSON containing at least
    ``auditPackageId`` and ``s3Key``. Timeouts are enforced here; retries
    are left to the job queue.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_token: str | None = None,
        timeout_seconds: float = 60.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}{HARDENED_EXPORTS_PATH}"
        self._api_token = api_token
        self._timeout = timeout_seconds
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    def harden_export(self, params: HardenExportParams) -> HardenExportResult:
        data = {
            "exportId": params.export_id,
            "organizationId": params.organization_id,
            "requestedById": params.requested_by_id,
            "exportType": params.export_type,
        }
        files = {"archive": (f"{params.export_id}.zip", params.zip_bytes, "application/zip")}

        logger.info(
            "Submitting export %s (%d bytes) for hardening",
            params.export_id,
            len(params.zip_bytes),
        )
        try:
            if self._client is not None:
                resp = self._client.post(
                    self._url,
                    data=data,
                    files=files,
                    headers=self._headers(),
                    timeout=self._timeout,
                )
            else:
                with httpx.Client() as client:
                    resp = client.post(
                        self._url,
                        data=data,
                        files=files,
                        headers=self._headers(),
                        timeout=self._timeout,
                    )
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPError as exc:
            raise HardeningError(f"Hardening request failed: {exc}") from exc
        except ValueError as exc:
            raise HardeningError(f"Hardening response is not JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise HardeningError("Hardening response must be a JSON object")
        package_id = body.get("auditPackageId")
        s3_key = body.get("s3Key")
        if not isinstance(package_id, str) or not package_id:
            raise HardeningError("Hardening response is missing auditPackageId")
        if not isinstance(s3_key, str) or not s3_key:
            raise HardeningError("Hardening response is missing s3Key")
        return HardenExportResult(audit_package_id=package_id, s3_key=s3_key)
