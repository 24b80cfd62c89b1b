"""Service request data structures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class RequestStatus(StrEnum):
    """Lifecycle status of a service request.

    Any status may follow any other; Closed is conventional, not final.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


@dataclass(frozen=True)
class ServiceRequest:
    """Snapshot of one service request as stored in the ledger.

    Records are immutable; the ledger replaces a stored snapshot with an
    updated copy on every mutation.
    """

    id: int = 0
    client: str = ""
    description: str = ""
    status: RequestStatus = RequestStatus.PENDING
    agent_response: str = ""
    client_feedback: str = ""
    created_at: datetime = EPOCH
    updated_at: datetime = EPOCH

    @classmethod
    def default(cls) -> ServiceRequest:
        """Return the all-default record served for never-assigned ids."""
        return cls()
