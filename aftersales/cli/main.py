"""Click commands for running and talking to an aftersales server.

``serve`` runs the service in-process.  Every other command is a thin
HTTP client over the REST API; the caller identity is sent in the
identity header taken from ``--as`` / ``AFTERSALES_IDENTITY``.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import click
import httpx

from aftersales.models.requests import RequestStatus

_API_PREFIX = "/api/v1"


class _Session:
    """Per-invocation HTTP settings shared by the client commands."""

    def __init__(self, url: str, identity: str, header: str, client: httpx.Client | None = None) -> None:
        self.url = url
        self.identity = identity
        self.header = header
        self._client = client

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(base_url=self.url, timeout=10.0)
        return self._client

    def request(self, method: str, path: str, *, body: dict[str, Any] | None = None, auth: bool = False) -> Any:
        headers: dict[str, str] = {}
        if auth:
            if not self.identity:
                raise click.UsageError("this command needs a caller identity; pass --as or set AFTERSALES_IDENTITY")
            headers[self.header] = self.identity
        try:
            response = self._http().request(method, f"{_API_PREFIX}{path}", json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise click.ClickException(f"cannot reach {self.url}: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise click.ClickException(
                f"unexpected non-JSON response from {self.url} (HTTP {response.status_code})"
            ) from exc
        if response.is_error:
            error = payload.get("error", "HTTP_ERROR") if isinstance(payload, dict) else "HTTP_ERROR"
            detail = payload.get("detail", "") if isinstance(payload, dict) else str(payload)
            click.echo(f"{error}: {detail}", err=True)
            raise click.exceptions.Exit(1)
        return payload


def _echo(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


pass_session = click.make_pass_decorator(_Session)


@click.group()
@click.option("--url", envvar="AFTERSALES_URL", default="http://localhost:8080", show_default=True)
@click.option("--as", "identity", envvar="AFTERSALES_IDENTITY", default="", help="Caller identity.")
@click.option("--identity-header", envvar="AFTERSALES_API_IDENTITY_HEADER", default="X-Caller-Identity")
@click.pass_context
def cli(ctx: click.Context, url: str, identity: str, identity_header: str) -> None:
    """Customer service request ledger."""
    client = ctx.obj.get("client") if isinstance(ctx.obj, dict) else None
    ctx.obj = _Session(url=url, identity=identity, header=identity_header, client=client)


@cli.command()
def serve() -> None:
    """Run the aftersales service (configured from AFTERSALES_* env vars)."""
    import asyncio

    from aftersales.app import main

    asyncio.run(main())


@cli.command()
@click.argument("description")
@pass_session
def create(session: _Session, description: str) -> None:
    """Submit a new service request."""
    _echo(session.request("POST", "/requests", body={"description": description}, auth=True))


@cli.command()
@click.argument("request_id", type=click.IntRange(min=0))
@pass_session
def get(session: _Session, request_id: int) -> None:
    """Show one service request."""
    _echo(session.request("GET", f"/requests/{request_id}"))


@cli.command("list")
@click.argument("client", required=False)
@pass_session
def list_requests(session: _Session, client: str | None) -> None:
    """List request ids created by CLIENT (defaults to the caller)."""
    client = client or session.identity
    if not client:
        raise click.UsageError("give a CLIENT or pass --as")
    _echo(session.request("GET", f"/clients/{quote(client, safe='')}/requests"))


@cli.command()
@click.argument("request_id", type=click.IntRange(min=0))
@click.option(
    "--status",
    "status_",
    type=click.Choice([s.value for s in RequestStatus]),
    required=True,
)
@click.option("--response", "agent_response", default="", help="Agent response text.")
@pass_session
def update(session: _Session, request_id: int, status_: str, agent_response: str) -> None:
    """Set the status and agent response of a request (agents only)."""
    body = {"status": status_, "agent_response": agent_response}
    _echo(session.request("PUT", f"/requests/{request_id}", body=body, auth=True))


@cli.command()
@click.argument("request_id", type=click.IntRange(min=0))
@click.argument("feedback")
@pass_session
def feedback(session: _Session, request_id: int, feedback: str) -> None:
    """Attach feedback to your own request."""
    _echo(session.request("PUT", f"/requests/{request_id}/feedback", body={"feedback": feedback}, auth=True))


@cli.command("add-agent")
@click.argument("identity")
@pass_session
def add_agent(session: _Session, identity: str) -> None:
    """Authorize IDENTITY as an agent (owner only)."""
    _echo(session.request("POST", "/agents", body={"identity": identity}, auth=True))


@cli.command("transfer-ownership")
@click.argument("new_owner")
@pass_session
def transfer_ownership(session: _Session, new_owner: str) -> None:
    """Hand ownership to NEW_OWNER (owner only)."""
    _echo(session.request("PUT", "/owner", body={"new_owner": new_owner}, auth=True))


@cli.command()
@pass_session
def owner(session: _Session) -> None:
    """Show the current owner."""
    _echo(session.request("GET", "/owner"))
