"""REST API layer for aftersales.

Exposes:
    create_app -- FastAPI application factory.
    build_app  -- Alias for create_app (used by aftersales.app bootstrap).
"""

from aftersales.api.app import create_app

build_app = create_app

__all__ = ["build_app", "create_app"]
