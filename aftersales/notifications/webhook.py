"""HTTP webhook delivery of ledger events.

Each event is POSTed as a JSON document.  The event kind and id travel in
``X-Aftersales-Event`` / ``X-Aftersales-Event-Id`` headers as well, so a
receiver can route or de-duplicate without parsing the body.
"""

from __future__ import annotations

import httpx
import structlog

from aftersales.models.events import LedgerEvent
from aftersales.notifications.manager import NotificationChannel, serialize_event

_log = structlog.get_logger(component="notifications.webhook")

_BODY_PREVIEW = 200


class WebhookNotificationChannel(NotificationChannel):
    """Forwards the change stream to one HTTP endpoint.

    Args:
        url:       Receiver endpoint.
        headers:   Static headers added to every delivery, e.g. a bearer token.
        timeout:   Per-delivery timeout in seconds.
        transport: httpx transport override; tests pass a MockTransport.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._transport = transport

    @property
    def channel_name(self) -> str:
        return "webhook"

    def _delivery_headers(self, event: LedgerEvent) -> dict[str, str]:
        return {
            **self._headers,
            "X-Aftersales-Event": event.kind,
            "X-Aftersales-Event-Id": event.event_id,
        }

    async def send(self, event: LedgerEvent) -> bool:
        """Deliver one event.  Only a 2xx answer counts as delivered."""
        client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        try:
            async with client:
                response = await client.post(
                    self._url, json=serialize_event(event), headers=self._delivery_headers(event)
                )
        except httpx.TimeoutException:
            _log.warning("webhook_delivery_timed_out", request_id=event.request_id, event_id=event.event_id)
            return False
        except httpx.HTTPError as exc:
            _log.warning(
                "webhook_delivery_error",
                request_id=event.request_id,
                event_id=event.event_id,
                error=str(exc),
            )
            return False

        if not response.is_success:
            _log.warning(
                "webhook_delivery_rejected",
                request_id=event.request_id,
                event_id=event.event_id,
                status_code=response.status_code,
                body=response.text[:_BODY_PREVIEW],
            )
        return response.is_success
