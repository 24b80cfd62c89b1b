"""aftersales: role-gated customer service request ledger."""

__version__ = "0.1.0"
