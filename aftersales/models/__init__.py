"""Core data structures for aftersales."""

from aftersales.models.config import AfterSalesConfig
from aftersales.models.events import (
    FeedbackAdded,
    LedgerEvent,
    RequestCreated,
    RequestUpdated,
)
from aftersales.models.requests import EPOCH, RequestStatus, ServiceRequest

__all__ = [
    "EPOCH",
    "AfterSalesConfig",
    "FeedbackAdded",
    "LedgerEvent",
    "RequestCreated",
    "RequestStatus",
    "RequestUpdated",
    "ServiceRequest",
]
