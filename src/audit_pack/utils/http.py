"""Shared HTTP utilities."""

from __future__ import annotations

from urllib.parse import urlparse

_BASE_URL_ALLOWED_SCHEMES = frozenset({"http", "https"})


def normalize_base_url(value: str) -> str:
    """Normalize and validate a service base URL (no trailing slash)."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("base_url must not be empty")

    parsed = urlparse(candidate)
    if parsed.scheme.lower() not in _BASE_URL_ALLOWED_SCHEMES:
        raise ValueError("base_url must use http or https")
    if not parsed.netloc:
        raise ValueError("base_url must include host")
    if parsed.query or parsed.fragment:
        raise ValueError("base_url must not include query or fragment")
    if parsed.username or parsed.password:
        raise ValueError("base_url must not include userinfo")

    normalized_path = parsed.path.rstrip("/")
    if normalized_path == "/":
        normalized_path = ""
    return f"{parsed.scheme.lower()}://{parsed.netloc}{normalized_path}"
