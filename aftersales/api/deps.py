"""Request-scoped dependencies: ledger access and caller identity."""

from __future__ import annotations

from fastapi import Request

from aftersales.errors import AfterSalesError
from aftersales.ledger import RequestLedger


class MissingIdentity(AfterSalesError):
    """No caller identity was attached to a mutating call."""

    def __init__(self, header: str) -> None:
        super().__init__(f"Missing caller identity header {header!r}")
        self.header = header


def get_ledger(request: Request) -> RequestLedger:
    return request.app.state.ledger


def get_caller(request: Request) -> str:
    """Resolve the authenticated caller identity from the configured header.

    The hosting transport is trusted to have verified the header value;
    only its presence is checked here.
    """
    header: str = request.app.state.identity_header
    identity = request.headers.get(header, "").strip()
    if not identity:
        raise MissingIdentity(header)
    return identity
