"""Pydantic request and response bodies for the REST API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from aftersales.models.requests import RequestStatus, ServiceRequest


class ErrorResponse(BaseModel):
    """Error envelope returned by every failing endpoint."""

    error: str
    detail: str


class CreateRequestBody(BaseModel):
    description: str


class CreateRequestResponse(BaseModel):
    id: int


class UpdateRequestBody(BaseModel):
    status: RequestStatus
    agent_response: str = ""


class FeedbackBody(BaseModel):
    feedback: str


class AddAgentBody(BaseModel):
    identity: str = Field(min_length=1)


class TransferOwnershipBody(BaseModel):
    # Empty identities are accepted here; strict mode rejects them in the registry.
    new_owner: str


class ServiceRequestResponse(BaseModel):
    """Full snapshot of a stored request.

    ``exists`` is False when the id was never assigned and every other
    field holds its default value.
    """

    id: int
    client: str
    description: str
    status: RequestStatus
    agent_response: str
    client_feedback: str
    created_at: datetime
    updated_at: datetime
    exists: bool

    @classmethod
    def from_record(cls, record: ServiceRequest, exists: bool) -> ServiceRequestResponse:
        return cls(
            id=record.id,
            client=record.client,
            description=record.description,
            status=record.status,
            agent_response=record.agent_response,
            client_feedback=record.client_feedback,
            created_at=record.created_at,
            updated_at=record.updated_at,
            exists=exists,
        )


class ClientRequestsResponse(BaseModel):
    client: str
    request_ids: list[int]


class ClientRequestAtResponse(BaseModel):
    client: str
    index: int
    request_id: int


class AgentResponse(BaseModel):
    identity: str
    is_agent: bool


class OwnerResponse(BaseModel):
    owner: str


class StatsResponse(BaseModel):
    request_count: int
    owner: str
    agent_count: int
    strict_validation: bool


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
