"""Audit log channel: writes every ledger event as a structured log line."""

from __future__ import annotations

import structlog

from aftersales.models.events import LedgerEvent
from aftersales.notifications.manager import NotificationChannel, serialize_event

_log = structlog.get_logger(component="notifications.audit")


class AuditLogChannel(NotificationChannel):
    @property
    def channel_name(self) -> str:
        return "audit"

    async def send(self, event: LedgerEvent) -> bool:
        payload = serialize_event(event)
        kind = payload.pop("kind")
        _log.info("ledger_event", kind=kind, **payload)
        return True
