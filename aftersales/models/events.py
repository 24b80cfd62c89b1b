"""Ledger change-stream events.

Emitted by the RequestLedger after a mutation has been applied, consumed
by every observer subscribed to the ledger (audit log, webhook forwarder).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from aftersales.models.requests import RequestStatus


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class RequestCreated:
    """A client submitted a new request."""

    request_id: int
    client: str
    description: str
    event_id: str = field(default_factory=lambda: str(uuid4()))
    emitted_at: datetime = field(default_factory=_now)

    @property
    def kind(self) -> str:
        return "request_created"


@dataclass(frozen=True)
class RequestUpdated:
    """An agent changed the status and response of a request."""

    request_id: int
    status: RequestStatus
    agent_response: str
    event_id: str = field(default_factory=lambda: str(uuid4()))
    emitted_at: datetime = field(default_factory=_now)

    @property
    def kind(self) -> str:
        return "request_updated"


@dataclass(frozen=True)
class FeedbackAdded:
    """The owning client attached feedback to a request."""

    request_id: int
    feedback: str
    event_id: str = field(default_factory=lambda: str(uuid4()))
    emitted_at: datetime = field(default_factory=_now)

    @property
    def kind(self) -> str:
        return "feedback_added"


LedgerEvent = RequestCreated | RequestUpdated | FeedbackAdded
