"""Process wiring for the aftersales service.

``AfterSalesApp`` builds the ledger from configuration, attaches the
notification dispatcher to its change stream and optionally serves the
REST API with uvicorn.  ``main()`` is the asyncio entry point used by
``python -m aftersales`` and ``aftersales serve``.

Startup runs in this order: config, logging, ledger, notifications, REST.
Teardown runs it backwards.  A component that fails to stop is logged and
the rest still stop.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from aftersales.config import load_config
from aftersales.ledger import RequestLedger
from aftersales.models.config import AfterSalesConfig
from aftersales.notifications import NotificationDispatcher, build_notification_dispatcher
from aftersales.observability.logging import get_logger, setup_logging
from aftersales.registry import RoleRegistry

if TYPE_CHECKING:
    import structlog
    import uvicorn

_STOP_TIMEOUT_SECONDS = 15


class _ComponentError(Exception):
    """A component the service cannot run without did not come up."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"{component} did not start: {cause}")
        self.component = component
        self.cause = cause


class AfterSalesApp:
    """One running aftersales service.

    The registry and ledger are exposed so in-process callers (tests, an
    embedding host) can use the core without going through HTTP.

    Args:
        config: Settings to run with.  ``start()`` reads them from the
                environment when this is omitted.
    """

    def __init__(self, config: AfterSalesConfig | None = None) -> None:
        self.config: AfterSalesConfig | None = config
        self.registry: RoleRegistry | None = None
        self.ledger: RequestLedger | None = None

        self._dispatcher: NotificationDispatcher | None = None
        self._server: uvicorn.Server | None = None
        self._server_task: asyncio.Task[None] | None = None

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self, serve: bool = True) -> None:
        """Bring the service up.  ``serve=False`` skips the HTTP listener.

        Raises _ComponentError when configuration, the ledger or the HTTP
        server cannot be set up.  Notification problems only log a warning.
        """
        if self.config is None:
            try:
                self.config = load_config()
            except ValueError as exc:
                raise _ComponentError("config", exc) from exc

        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("service_starting", version=_aftersales_version(), serve=serve)

        self._build_ledger()
        self._attach_notifications()
        if serve:
            self._launch_server()

        self._running = True
        self._log.info("service_started", request_count=self.ledger.request_count if self.ledger else 0)

    def _build_ledger(self) -> None:
        assert self.config is not None and self._log is not None
        settings = self.config.ledger
        try:
            self.registry = RoleRegistry(initializer=settings.owner_identity, strict=settings.strict_validation)
            self.ledger = RequestLedger(self.registry)
        except Exception as exc:
            raise _ComponentError("ledger", exc) from exc
        self._log.info("ledger_ready", owner=self.registry.owner, strict=self.registry.strict)

    def _attach_notifications(self) -> None:
        assert self.config is not None and self._log is not None and self.ledger is not None
        try:
            dispatcher = build_notification_dispatcher(config=self.config.notifications)
        except Exception as exc:  # noqa: BLE001
            # The ledger is usable without a change-stream consumer.
            self._log.warning("notifications_unavailable", error=str(exc))
            return
        self.ledger.subscribe(dispatcher)
        self._dispatcher = dispatcher
        self._log.info("notifications_attached", channels=[c.channel_name for c in dispatcher.channels])

    def _launch_server(self) -> None:
        assert self.config is not None and self._log is not None and self.ledger is not None
        api = self.config.api
        try:
            import uvicorn

            from aftersales.api import build_app

            server = uvicorn.Server(
                uvicorn.Config(
                    app=build_app(ledger=self.ledger, config=self.config),
                    host=api.host,
                    port=api.port,
                    log_config=None,  # structlog owns the output
                    access_log=False,
                )
            )
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc
        self._server = server
        self._server_task = asyncio.create_task(server.serve(), name="aftersales-http")
        self._log.info("http_listening", host=api.host, port=api.port)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Tear the service down.  Calling it again, or before start, does nothing."""
        if not self._running and self._log is None:
            return
        log = self._log or get_logger("app")
        log.info("service_stopping")
        self._running = False

        await self._stop_server(log)

        if self._dispatcher is not None:
            if self.ledger is not None:
                self.ledger.unsubscribe(self._dispatcher)
            try:
                await asyncio.wait_for(self._dispatcher.stop(), timeout=_STOP_TIMEOUT_SECONDS)
            except TimeoutError:
                log.warning("notifications_drain_timed_out", timeout=_STOP_TIMEOUT_SECONDS)
            except Exception as exc:  # noqa: BLE001
                log.error("notifications_stop_failed", error=str(exc))
            self._dispatcher = None

        log.info("service_stopped")
        self._log = None

    async def _stop_server(self, log: structlog.stdlib.BoundLogger) -> None:
        task, self._server_task = self._server_task, None
        if self._server is not None:
            self._server.should_exit = True
            self._server = None
        if task is None:
            return
        try:
            await asyncio.wait_for(task, timeout=_STOP_TIMEOUT_SECONDS)
        except TimeoutError:
            log.warning("http_stop_timed_out", timeout=_STOP_TIMEOUT_SECONDS)
        except Exception as exc:  # noqa: BLE001
            log.error("http_stop_failed", error=str(exc))


def _aftersales_version() -> str:
    from aftersales import __version__

    return __version__


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def main() -> None:
    """Run the service until SIGINT or SIGTERM."""
    app = AfterSalesApp()
    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_requested.set)

    try:
        await app.start()
    except _ComponentError as exc:
        get_logger("app").critical("startup_failed", component=exc.component, error=str(exc.cause))
        await app.stop()
        raise SystemExit(1) from exc

    try:
        await stop_requested.wait()
    finally:
        await app.stop()
