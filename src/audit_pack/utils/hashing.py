"""Hash helpers."""

from __future__ import annotations

import hashlib


def sha256_bytes(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"
