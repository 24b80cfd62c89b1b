"""REST routes for the request ledger and role registry.

Mutating routes take the caller identity from ``get_caller``; read
routes are public.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from aftersales.api.deps import get_caller, get_ledger
from aftersales.api.schemas import (
    AddAgentBody,
    AgentResponse,
    ClientRequestAtResponse,
    ClientRequestsResponse,
    CreateRequestBody,
    CreateRequestResponse,
    FeedbackBody,
    HealthResponse,
    OwnerResponse,
    ServiceRequestResponse,
    StatsResponse,
    TransferOwnershipBody,
    UpdateRequestBody,
)
from aftersales.ledger import RequestLedger

router = APIRouter()

Ledger = Annotated[RequestLedger, Depends(get_ledger)]
Caller = Annotated[str, Depends(get_caller)]
RequestId = Annotated[int, Path(ge=0)]


def _snapshot(ledger: RequestLedger, request_id: int) -> ServiceRequestResponse:
    return ServiceRequestResponse.from_record(ledger.get_request(request_id), ledger.exists(request_id))


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@router.post("/requests", status_code=status.HTTP_201_CREATED, response_model=CreateRequestResponse)
async def create_request(body: CreateRequestBody, ledger: Ledger, caller: Caller) -> CreateRequestResponse:
    request_id = ledger.create_request(caller, body.description)
    return CreateRequestResponse(id=request_id)


@router.get("/requests/{request_id}", response_model=ServiceRequestResponse)
async def get_request(request_id: RequestId, ledger: Ledger) -> ServiceRequestResponse:
    return _snapshot(ledger, request_id)


@router.put("/requests/{request_id}", response_model=ServiceRequestResponse)
async def update_request(
    request_id: RequestId,
    body: UpdateRequestBody,
    ledger: Ledger,
    caller: Caller,
) -> ServiceRequestResponse:
    ledger.update_request(caller, request_id, body.status, body.agent_response)
    return _snapshot(ledger, request_id)


@router.put("/requests/{request_id}/feedback", response_model=ServiceRequestResponse)
async def add_client_feedback(
    request_id: RequestId,
    body: FeedbackBody,
    ledger: Ledger,
    caller: Caller,
) -> ServiceRequestResponse:
    ledger.add_client_feedback(caller, request_id, body.feedback)
    return _snapshot(ledger, request_id)


@router.get("/clients/{client:path}/requests", response_model=ClientRequestsResponse)
async def list_client_requests(client: str, ledger: Ledger) -> ClientRequestsResponse:
    return ClientRequestsResponse(client=client, request_ids=list(ledger.list_client_requests(client)))


@router.get("/clients/{client:path}/requests/{index}", response_model=ClientRequestAtResponse)
async def client_request_at(
    client: str,
    index: Annotated[int, Path(ge=0)],
    ledger: Ledger,
) -> ClientRequestAtResponse:
    return ClientRequestAtResponse(client=client, index=index, request_id=ledger.client_request_at(client, index))


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


@router.post("/agents", status_code=status.HTTP_201_CREATED, response_model=AgentResponse)
async def add_agent(body: AddAgentBody, ledger: Ledger, caller: Caller) -> AgentResponse:
    ledger.registry.add_agent(caller, body.identity)
    return AgentResponse(identity=body.identity, is_agent=True)


@router.get("/agents/{identity}", response_model=AgentResponse)
async def is_agent(identity: str, ledger: Ledger) -> AgentResponse:
    return AgentResponse(identity=identity, is_agent=ledger.registry.is_agent(identity))


@router.get("/owner", response_model=OwnerResponse)
async def get_owner(ledger: Ledger) -> OwnerResponse:
    return OwnerResponse(owner=ledger.registry.owner)


@router.put("/owner", response_model=OwnerResponse)
async def transfer_ownership(body: TransferOwnershipBody, ledger: Ledger, caller: Caller) -> OwnerResponse:
    ledger.registry.transfer_ownership(caller, body.new_owner)
    return OwnerResponse(owner=ledger.registry.owner)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=StatsResponse)
async def stats(ledger: Ledger) -> StatsResponse:
    registry = ledger.registry
    return StatsResponse(
        request_count=ledger.request_count,
        owner=registry.owner,
        agent_count=len(registry.agents()),
        strict_validation=registry.strict,
    )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    from aftersales import __version__

    return HealthResponse(version=__version__)


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
