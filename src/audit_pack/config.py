"""Configuration management for the audit-pack generator."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from audit_pack.utils.http import normalize_base_url

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class StorageSettings(BaseModel):
    sqlite_path: str = Field(default="./data/audit_pack.sqlite")
    sqlite_wal: bool = Field(default=True)
    artifact_path: str = Field(default="./data/artifacts")


class HardeningSettings(BaseModel):
    """Where assembled archives are sent for signing and WORM storage.

    - local: archives are written below ``storage.artifact_path`` (development)
    - http: archives are posted to an external hardening service
    """

    mode: Literal["local", "http"] = Field(default="local")
    base_url: str | None = Field(default=None)
    api_token: str | None = Field(default=None)
    timeout_seconds: float = Field(default=60.0, ge=0.1, le=600.0)

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_base_url(value)


class LineageSettings(BaseModel):
    max_rounds: int = Field(
        default=1000,
        ge=1,
        description="Maximum batched lookup rounds while resolving correction links.",
    )
    max_nodes: int = Field(
        default=100_000,
        ge=1,
        description="Maximum number of entries resolved into a single lineage table.",
    )


class BundleSettings(BaseModel):
    compression_level: int = Field(default=6, ge=0, le=9)


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    hardening: HardeningSettings = Field(default_factory=HardeningSettings)
    lineage: LineageSettings = Field(default_factory=LineageSettings)
    bundle: BundleSettings = Field(default_factory=BundleSettings)


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "sqlite_path": "SQLITE_PATH",
    "sqlite_wal": "SQLITE_WAL",
    "artifact_path": "ARTIFACT_PATH",
    "hardening_mode": "HARDENING_MODE",
    "hardening_base_url": "HARDENING_BASE_URL",
    "hardening_api_token": "HARDENING_API_TOKEN",
    "hardening_timeout": "HARDENING_TIMEOUT_SECONDS",
    "lineage_max_rounds": "LINEAGE_MAX_ROUNDS",
    "lineage_max_nodes": "LINEAGE_MAX_NODES",
    "compression_level": "BUNDLE_COMPRESSION_LEVEL",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def _env_optional(key: str) -> str | None:
    return (os.getenv(key) or "").strip() or None


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "storage": {
            "sqlite_path": _resolve_path(
                os.getenv(ENV_KEYS["sqlite_path"], StorageSettings().sqlite_path)
            ),
            "sqlite_wal": _env_bool(ENV_KEYS["sqlite_wal"], StorageSettings().sqlite_wal),
            "artifact_path": _resolve_path(
                os.getenv(ENV_KEYS["artifact_path"], StorageSettings().artifact_path)
            ),
        },
        "hardening": {
            "mode": os.getenv(ENV_KEYS["hardening_mode"], HardeningSettings().mode),
            "base_url": _env_optional(ENV_KEYS["hardening_base_url"]),
            "api_token": _env_optional(ENV_KEYS["hardening_api_token"]),
            "timeout_seconds": _env_float(
                ENV_KEYS["hardening_timeout"],
                HardeningSettings().timeout_seconds,
            ),
        },
        "lineage": {
            "max_rounds": _env_int(
                ENV_KEYS["lineage_max_rounds"],
                LineageSettings().max_rounds,
            ),
            "max_nodes": _env_int(
                ENV_KEYS["lineage_max_nodes"],
                LineageSettings().max_nodes,
            ),
        },
        "bundle": {
            "compression_level": _env_int(
                ENV_KEYS["compression_level"],
                BundleSettings().compression_level,
            ),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if settings.hardening.mode == "http" and not settings.hardening.base_url:
        raise RuntimeError(
            "Invalid configuration: HARDENING_BASE_URL is required for HARDENING_MODE=http"
        )

    Path(settings.storage.artifact_path).mkdir(parents=True, exist_ok=True)
    Path(settings.storage.sqlite_path).parent.mkdir(parents=True, exist_ok=True)

    return settings
