"""Shared fixtures for aftersales tests.

Provides a registry/ledger pair driven by a deterministic clock, and an
HTTP test client wired to the same ledger.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from aftersales.api.app import create_app
from aftersales.ledger import RequestLedger
from aftersales.models.events import LedgerEvent
from aftersales.registry import RoleRegistry

OWNER = "0xowner"
AGENT = "0xagent"
CLIENT = "0xclient"
STRANGER = "0xstranger"

IDENTITY_HEADER = "X-Caller-Identity"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class StepClock:
    """Clock that advances by a fixed step on every call."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start or datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now


class EventRecorder:
    """Ledger observer that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[LedgerEvent] = []

    def __call__(self, event: LedgerEvent) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]


def make_ledger(owner: str = OWNER, strict: bool = False, clock: StepClock | None = None) -> RequestLedger:
    """Build a fresh registry + ledger pair."""
    return RequestLedger(RoleRegistry(owner, strict=strict), clock=clock or StepClock())


def as_caller(identity: str) -> dict[str, str]:
    return {IDENTITY_HEADER: identity}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def ledger(clock: StepClock) -> RequestLedger:
    return make_ledger(clock=clock)


@pytest.fixture
def strict_ledger(clock: StepClock) -> RequestLedger:
    return make_ledger(strict=True, clock=clock)


@pytest.fixture
def recorder(ledger: RequestLedger) -> EventRecorder:
    rec = EventRecorder()
    ledger.subscribe(rec)
    return rec


@pytest.fixture
def api(ledger: RequestLedger) -> TestClient:
    return TestClient(create_app(ledger=ledger), raise_server_exceptions=False)
