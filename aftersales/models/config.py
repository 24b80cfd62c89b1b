"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LedgerConfig:
    """Request ledger configuration."""

    owner_identity: str = ""
    strict_validation: bool = False


@dataclass
class NotificationConfig:
    """Change-stream observer configuration."""

    audit_log: bool = True
    webhook_secret_ref: str = ""


@dataclass
class APIConfig:
    """REST API configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    identity_header: str = "X-Caller-Identity"


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class AfterSalesConfig:
    """Top-level aftersales configuration."""

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
