"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from aftersales.models.config import (
    AfterSalesConfig,
    APIConfig,
    LedgerConfig,
    LogConfig,
    NotificationConfig,
)
from aftersales.observability.logging import LOG_FORMATS


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"AFTERSALES_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_identity(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("AFTERSALES_OWNER_IDENTITY must be set to the initializing identity")
    return value


def _validate_header(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Identity header name must not be empty")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in LOG_FORMATS:
        raise ValueError(f"Invalid log format: {value}. Must be one of {LOG_FORMATS}")
    return value.lower()


def load_config() -> AfterSalesConfig:
    """Load configuration from AFTERSALES_* environment variables."""
    return AfterSalesConfig(
        ledger=LedgerConfig(
            owner_identity=_validate_identity(_env("OWNER_IDENTITY", "")),
            strict_validation=_env_bool("STRICT_VALIDATION", False),
        ),
        notifications=NotificationConfig(
            audit_log=_env_bool("NOTIFICATIONS_AUDIT_LOG", True),
            webhook_secret_ref=_env("NOTIFICATIONS_WEBHOOK_SECRET_REF", ""),
        ),
        api=APIConfig(
            host=_env("API_HOST", "0.0.0.0"),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
            identity_header=_validate_header(_env("API_IDENTITY_HEADER", "X-Caller-Identity")),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
