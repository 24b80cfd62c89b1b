"""Notification dispatcher for ledger change-stream events.

NotificationChannel    -- ABC every channel must implement.
NotificationDispatcher -- Ledger observer that fans events out to all
                          registered channels; failures in one channel
                          never block others or the ledger.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import asdict

import structlog

from aftersales.models.events import LedgerEvent
from aftersales.observability.metrics import notifications_total

_log = structlog.get_logger(component="notifications.manager")


def serialize_event(event: LedgerEvent) -> dict[str, object]:
    """Flatten *event* to a JSON-ready dict with its ``kind`` tag."""
    payload: dict[str, object] = {"kind": event.kind}
    for key, value in asdict(event).items():
        if hasattr(value, "isoformat"):
            payload[key] = value.isoformat()
        elif hasattr(value, "value"):
            payload[key] = value.value
        else:
            payload[key] = value
    return payload


class NotificationChannel(ABC):
    """Abstract base class for all notification channels.

    Every concrete channel must implement ``send``, which should not
    raise: return ``False`` instead.
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Human-readable channel identifier used in metrics and logs."""

    @abstractmethod
    async def send(self, event: LedgerEvent) -> bool:
        """Deliver *event* via this channel.

        Returns:
            True  -- event accepted by the channel.
            False -- delivery failed (already logged inside implementation).
        """


class NotificationDispatcher:
    """Fan-out dispatcher subscribed to the RequestLedger.

    * Never raises: exceptions from individual channels are caught and logged.
    * Never blocks the ledger: ``dispatch`` schedules the fan-out as a
      background asyncio task on the running loop.
    """

    def __init__(self, channels: list[NotificationChannel]) -> None:
        self._channels = channels
        self._pending: set[asyncio.Future[None]] = set()

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    def __call__(self, event: LedgerEvent) -> None:
        self.dispatch(event)

    def dispatch(self, event: LedgerEvent) -> None:
        """Schedule fan-out delivery of *event* as a background task."""
        if not self._channels:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            _log.debug("dispatch_skipped_no_event_loop", event_kind=event.kind, request_id=event.request_id)
            return
        future = asyncio.ensure_future(self._fan_out(event))
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

    async def stop(self) -> None:
        """Wait for in-flight deliveries to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _fan_out(self, event: LedgerEvent) -> None:
        """Deliver *event* to every channel concurrently."""
        tasks = [self._send_one(channel, event) for channel in self._channels]
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _send_one(self, channel: NotificationChannel, event: LedgerEvent) -> None:
        """Deliver to a single channel, recording metrics regardless of outcome."""
        try:
            success = await channel.send(event)
        except Exception as exc:  # noqa: BLE001
            _log.error(
                "notification_channel_unexpected_error",
                channel=channel.channel_name,
                event_id=event.event_id,
                error=str(exc),
            )
            success = False

        label = "true" if success else "false"
        notifications_total.labels(channel=channel.channel_name, success=label).inc()

        if success:
            _log.debug(
                "notification_sent",
                channel=channel.channel_name,
                event_kind=event.kind,
                event_id=event.event_id,
                request_id=event.request_id,
            )
        else:
            _log.warning(
                "notification_failed",
                channel=channel.channel_name,
                event_id=event.event_id,
            )
