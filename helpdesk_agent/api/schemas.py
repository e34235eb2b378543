"""Pydantic schemas for the FastAPI endpoints.

Required fields are optional at the schema level so that a missing value
is answered with the services' own 400 body instead of FastAPI's 422.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    """Question for the retrieval-augmented Q&A service."""

    prompt: str | None = Field(None, description="The user's question")


class ContextItem(BaseModel):
    source: dict[str, Any] = Field(default_factory=dict, description="Document metadata")
    content: str = Field(..., description="Retrieved document text")


class QueryResponse(BaseModel):
    context: list[ContextItem]
    response: str


class TicketRequest(BaseModel):
    """Request for a ticket-based agent flow (summary or letter)."""

    ticket_id: str | None = Field(None, description="PocketBase ID of the ticket")


class AgentOutput(BaseModel):
    input: str = Field(..., description="The task given to the agent")
    output: str = Field(..., description="The agent's final text")


class TicketResponse(BaseModel):
    success: bool = True
    data: AgentOutput


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "helpdesk-agent"
    services: list[str] = Field(default_factory=list)
