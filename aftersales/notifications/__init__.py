"""Notification system for aftersales.

Forwards ledger change-stream events (request created, request updated,
feedback added) to off-system observers.

Exports:
    NotificationChannel        -- Abstract base for all channel implementations.
    NotificationDispatcher     -- Ledger observer that sends an event to all
                                  registered channels without blocking the ledger.
    AuditLogChannel            -- Structured audit log channel.
    WebhookNotificationChannel -- Generic JSON POST webhook channel.
    build_notification_dispatcher -- Factory used by the application bootstrap.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from aftersales.notifications.audit import AuditLogChannel
from aftersales.notifications.manager import (
    NotificationChannel,
    NotificationDispatcher,
    serialize_event,
)
from aftersales.notifications.webhook import WebhookNotificationChannel

if TYPE_CHECKING:
    from aftersales.models.config import NotificationConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "AuditLogChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "WebhookNotificationChannel",
    "build_notification_dispatcher",
    "serialize_event",
]


def build_notification_dispatcher(
    config: NotificationConfig,
) -> NotificationDispatcher:
    """Build a NotificationDispatcher from configuration and env-resolved secrets.

    Audit:
        Enabled unless AFTERSALES_NOTIFICATIONS_AUDIT_LOG is false.

    Webhook:
        AFTERSALES_NOTIFICATIONS_WEBHOOK_SECRET_REF (env var name) ->
        env var value is the webhook URL.
    """
    channels: list[NotificationChannel] = []

    if config.audit_log:
        channels.append(AuditLogChannel())
        _log.info("audit_channel_enabled")

    webhook_ref = config.webhook_secret_ref
    if webhook_ref:
        webhook_url = os.environ.get(webhook_ref, "")
        if webhook_url:
            try:
                channels.append(WebhookNotificationChannel(url=webhook_url))
                _log.info("webhook_channel_enabled")
            except ValueError as exc:
                _log.warning("webhook_channel_disabled", reason=str(exc))
        else:
            _log.debug("webhook_channel_skipped", reason="secret ref env var is empty")

    if not channels:
        _log.info("no_notification_channels_configured")

    return NotificationDispatcher(channels=channels)
