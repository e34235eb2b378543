"""FastAPI route definitions for the helpdesk services.

Each service has its own router so that one process can mount only the
endpoint it is deployed for (see ``SERVICES`` in config).
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from helpdesk_agent.api.schemas import (
    AgentOutput,
    ContextItem,
    HealthResponse,
    QueryRequest,
    QueryResponse,
    TicketRequest,
    TicketResponse,
)
from helpdesk_agent.errors import ValidationError
from helpdesk_agent.flows import LETTER_FLOW, SUMMARY_FLOW, FlowConfig, run_query_flow, run_ticket_flow
from helpdesk_agent.services.container import Services

logger = logging.getLogger(__name__)

health_router = APIRouter()
query_router = APIRouter()
summary_router = APIRouter()
letter_router = APIRouter()


def _get_services(request: Request) -> Services:
    """Retrieve the upstream clients from app state (set by the lifespan)."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=503,
            detail="The service is still starting up. Please try again in a moment.",
        )
    return services


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "?")


# ── Endpoints ────────────────────────────────────────────────────────


@health_router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    return HealthResponse(services=getattr(request.app.state, "enabled_services", []))


@query_router.post("/query", response_model=QueryResponse)
async def query(body: QueryRequest, http_request: Request):
    """Answer a question using documents retrieved from the vector index.

    The retrieval and completion SDK calls block, so the whole flow runs
    in the default thread-pool via ``asyncio.to_thread``.
    """
    if not body.prompt or not body.prompt.strip():
        return JSONResponse(status_code=400, content={"error": "Prompt is required"})

    services = _get_services(http_request)
    try:
        documents, answer = await asyncio.to_thread(
            run_query_flow, body.prompt, services.retrieval, services.completion,
        )
    except ValidationError as e:
        logger.info("[%s] Rejected query: %s", _request_id(http_request), e)
        return JSONResponse(status_code=400, content={"error": "Prompt is required"})
    except Exception:
        logger.exception("[%s] Error processing query", _request_id(http_request))
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return QueryResponse(
        context=[ContextItem(source=doc.metadata, content=doc.content) for doc in documents],
        response=answer,
    )


async def _run_ticket_endpoint(
    flow: FlowConfig,
    body: TicketRequest,
    http_request: Request,
    failure_message: str,
):
    if not body.ticket_id or not body.ticket_id.strip():
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "ticket_id is required"},
        )

    services = _get_services(http_request)
    try:
        run = await asyncio.to_thread(
            run_ticket_flow, flow, body.ticket_id, services.completion, services.record_store,
        )
    except Exception:
        # Full traceback stays in the server log; the client gets a short message
        logger.exception(
            "[%s] Error running %s flow for ticket %s",
            _request_id(http_request), flow.name, body.ticket_id,
        )
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": failure_message},
        )

    return TicketResponse(data=AgentOutput(input=run.input, output=run.output))


@summary_router.post("/summary", response_model=TicketResponse)
async def summary(body: TicketRequest, http_request: Request):
    """Summarize a support ticket and its conversation as markdown."""
    return await _run_ticket_endpoint(
        SUMMARY_FLOW, body, http_request, "Failed to generate ticket summary",
    )


@letter_router.post("/letter", response_model=TicketResponse)
async def letter(body: TicketRequest, http_request: Request):
    """Write a status letter to the customer who opened a ticket."""
    return await _run_ticket_endpoint(
        LETTER_FLOW, body, http_request, "Failed to generate customer letter",
    )


SERVICE_ROUTERS: dict[str, APIRouter] = {
    "query": query_router,
    "summary": summary_router,
    "letter": letter_router,
}
