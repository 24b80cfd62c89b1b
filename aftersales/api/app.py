"""FastAPI application factory for aftersales.

Usage::

    from aftersales.api.app import create_app

    app = create_app(ledger=ledger, config=config)

The factory is designed for use by both the production bootstrap
(``aftersales.app``) and unit tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from aftersales.api.deps import MissingIdentity
from aftersales.api.routes import router
from aftersales.api.schemas import ErrorResponse
from aftersales.errors import PreconditionViolated, Unauthorized

if TYPE_CHECKING:
    from aftersales.ledger import RequestLedger
    from aftersales.models.config import AfterSalesConfig

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"
_DEFAULT_IDENTITY_HEADER = "X-Caller-Identity"


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


def create_app(
    ledger: RequestLedger,
    config: AfterSalesConfig | None = None,
) -> FastAPI:
    """Create and configure the aftersales FastAPI application.

    Args:
        ledger: RequestLedger instance (carries its RoleRegistry).
        config: AfterSalesConfig.  Used for the identity header name.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from aftersales import __version__

    identity_header = _DEFAULT_IDENTITY_HEADER
    if config is not None:
        identity_header = config.api.identity_header

    app = FastAPI(
        title="aftersales",
        summary="Customer service request ledger",
        version=__version__,
        description=(
            "Tracks customer service requests from submission through agent "
            "response, resolution and client feedback, gated by owner, agent "
            "and client roles."
        ),
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.ledger = ledger
    app.state.config = config
    app.state.identity_header = identity_header

    app.include_router(router, prefix=_API_PREFIX)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(_request: Request, exc: Unauthorized) -> JSONResponse:
        return _error(403, "UNAUTHORIZED", str(exc))

    @app.exception_handler(MissingIdentity)
    async def missing_identity_handler(_request: Request, exc: MissingIdentity) -> JSONResponse:
        return _error(401, "MISSING_IDENTITY", str(exc))

    @app.exception_handler(PreconditionViolated)
    async def precondition_handler(_request: Request, exc: PreconditionViolated) -> JSONResponse:
        return _error(409, "PRECONDITION_VIOLATED", str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map Pydantic validation errors to our error envelope."""
        errors = exc.errors()
        detail = "Invalid request."
        if errors:
            locs = errors[0].get("loc", ())
            field_name = str(locs[-1]) if locs else ""
            detail = f"{field_name}: {errors[0].get('msg', '')}" if field_name else str(errors[0].get("msg", ""))
        return _error(400, "INVALID_REQUEST", detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        _request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        return _error(exc.status_code, code, str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return _error(500, "INTERNAL_ERROR", "An unexpected error occurred.")

    return app
