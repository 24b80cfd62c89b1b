"""Append-only ledger of service requests with a per-client index.

Every mutation runs under the registry's lock: authorize, apply, then
notify observers.  Observers are called synchronously, inside the lock,
after the new state is stored.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

import structlog

from aftersales.errors import PreconditionViolated, Unauthorized
from aftersales.models.events import FeedbackAdded, LedgerEvent, RequestCreated, RequestUpdated
from aftersales.models.requests import RequestStatus, ServiceRequest
from aftersales.observability.metrics import (
    authorization_failures_total,
    feedback_added_total,
    requests_created_total,
    requests_updated_total,
)
from aftersales.registry.roles import RoleRegistry

_log = structlog.get_logger(component="ledger")

LedgerObserver = Callable[[LedgerEvent], None]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class RequestLedger:
    """Storage and lifecycle operations for service requests.

    Ids are dense and zero-based: the next id is always ``request_count``.
    Reads of an id that was never assigned return ``ServiceRequest.default()``
    rather than raising; use ``exists()`` to tell the two apart.

    Args:
        registry: Shared RoleRegistry used for every authorization check.
        clock:    Returns the current UTC time.  Injected by tests.
    """

    def __init__(self, registry: RoleRegistry, clock: Clock | None = None) -> None:
        self._registry = registry
        self._lock = registry.lock
        self._clock = clock or _utcnow
        self._records: dict[int, ServiceRequest] = {}
        self._client_index: dict[str, list[int]] = {}
        self._count = 0
        self._observers: list[LedgerObserver] = []

    @property
    def registry(self) -> RoleRegistry:
        return self._registry

    @property
    def request_count(self) -> int:
        with self._lock:
            return self._count

    # ------------------------------------------------------------------
    # Change stream
    # ------------------------------------------------------------------

    def subscribe(self, observer: LedgerObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def unsubscribe(self, observer: LedgerObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _emit(self, event: LedgerEvent) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as exc:  # noqa: BLE001
                _log.error(
                    "ledger_observer_error",
                    observer=getattr(observer, "__qualname__", repr(observer)),
                    event_kind=event.kind,
                    request_id=event.request_id,
                    error=str(exc),
                )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_request(self, caller: str, description: str) -> int:
        """Store a new Pending request for *caller* and return its id."""
        with self._lock:
            request_id = self._count
            now = self._clock()
            self._records[request_id] = ServiceRequest(
                id=request_id,
                client=caller,
                description=description,
                status=RequestStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            self._client_index.setdefault(caller, []).append(request_id)
            self._count += 1

            requests_created_total.inc()
            _log.info("request_created", request_id=request_id, client=caller)
            self._emit(RequestCreated(request_id=request_id, client=caller, description=description))
            return request_id

    def update_request(
        self,
        caller: str,
        request_id: int,
        status: RequestStatus,
        agent_response: str,
    ) -> ServiceRequest:
        """Overwrite status and agent response.  Agents only.

        Any status may follow any other.  An id that was never assigned is
        updated starting from the default record (unless the registry is
        strict), leaving a degenerate entry that a later create_request
        overwrites.
        """
        with self._lock:
            self._registry.require_agent(caller, "update_request")
            if request_id < 0:
                raise PreconditionViolated("update_request", f"request id must be non-negative, got {request_id}")
            if not self._exists(request_id):
                if self._registry.strict:
                    raise PreconditionViolated("update_request", f"request {request_id} does not exist")
                _log.warning("update_on_unassigned_request", request_id=request_id, caller=caller)

            current = self._read(request_id)
            updated = replace(
                current,
                status=RequestStatus(status),
                agent_response=agent_response,
                updated_at=self._touch(current),
            )
            self._records[request_id] = updated

            requests_updated_total.labels(status=updated.status.value).inc()
            _log.info(
                "request_updated",
                request_id=request_id,
                status=updated.status.value,
                agent=caller,
            )
            self._emit(
                RequestUpdated(
                    request_id=request_id,
                    status=updated.status,
                    agent_response=agent_response,
                )
            )
            return updated

    def add_client_feedback(self, caller: str, request_id: int, feedback: str) -> ServiceRequest:
        """Overwrite the client feedback.  Only the request's client may call."""
        with self._lock:
            current = self._read(request_id)
            if not caller or current.client != caller:
                authorization_failures_total.labels(operation="add_client_feedback").inc()
                _log.warning(
                    "authorization_denied",
                    operation="add_client_feedback",
                    caller=caller,
                    request_id=request_id,
                )
                raise Unauthorized("add_client_feedback", caller)

            updated = replace(current, client_feedback=feedback, updated_at=self._touch(current))
            self._records[request_id] = updated

            feedback_added_total.inc()
            _log.info("feedback_added", request_id=request_id, client=caller)
            self._emit(FeedbackAdded(request_id=request_id, feedback=feedback))
            return updated

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_request(self, request_id: int) -> ServiceRequest:
        """Return the stored record, or the default record for unknown ids."""
        with self._lock:
            return self._read(request_id)

    def exists(self, request_id: int) -> bool:
        """True when *request_id* was assigned by create_request."""
        with self._lock:
            return self._exists(request_id)

    def list_client_requests(self, client: str) -> tuple[int, ...]:
        """Ids created by *client*, in creation order."""
        with self._lock:
            return tuple(self._client_index.get(client, ()))

    def client_request_at(self, client: str, index: int) -> int:
        """Return the *index*-th id created by *client*."""
        with self._lock:
            ids = self._client_index.get(client, [])
            if not 0 <= index < len(ids):
                raise PreconditionViolated(
                    "client_request_at",
                    f"index {index} out of range for client with {len(ids)} requests",
                )
            return ids[index]

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _exists(self, request_id: int) -> bool:
        return 0 <= request_id < self._count

    def _read(self, request_id: int) -> ServiceRequest:
        record = self._records.get(request_id)
        return record if record is not None else ServiceRequest.default()

    def _touch(self, current: ServiceRequest) -> datetime:
        # updated_at never moves backwards, even if the wall clock does
        return max(self._clock(), current.updated_at, current.created_at)
