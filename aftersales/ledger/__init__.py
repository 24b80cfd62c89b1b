"""Request ledger for aftersales.

Holds every service request ever created plus the per-client index over
them, and applies the role-gated lifecycle operations.

Submodules:
    request_ledger  -- RequestLedger and its change-stream observers.
"""

from aftersales.ledger.request_ledger import LedgerObserver, RequestLedger

__all__ = ["LedgerObserver", "RequestLedger"]
