"""FastAPI server for the helpdesk services.

Run with:
    uv run uvicorn helpdesk_agent.server:app --host 0.0.0.0 --port 3000

``SERVICES`` selects which endpoints this process serves, e.g.
``SERVICES=query`` for the Q&A service or ``SERVICES=summary`` for the
ticket summary service.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from helpdesk_agent.api.routes import SERVICE_ROUTERS, health_router
from helpdesk_agent.config import (
    CORS_HEADERS,
    CORS_METHODS,
    CORS_ORIGINS,
    SERVER_HOST,
    SERVER_PORT,
    SERVICES,
)
from helpdesk_agent.services.container import build_services

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(services: Sequence[str] = SERVICES) -> FastAPI:
    """Build the FastAPI app with one router per enabled service."""
    unknown = set(services) - SERVICE_ROUTERS.keys()
    if unknown:
        raise ValueError(f"Unknown services: {', '.join(sorted(unknown))}")
    enabled = [name for name in SERVICE_ROUTERS if name in services]

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        """Start-up: build the upstream clients once and keep them in app state."""
        logger.info("Building upstream clients…")
        application.state.services = build_services(enabled)
        logger.info("Ready to serve: %s", ", ".join(enabled))
        yield

    application = FastAPI(
        title="Helpdesk Agent",
        description=(
            "Retrieval-augmented Q&A, ticket summaries and customer "
            "status letters backed by OpenAI, Pinecone and PocketBase."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    application.state.enabled_services = enabled

    application.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )

    @application.middleware("http")
    async def add_request_id(request: Request, call_next) -> Response:
        """Attach a request ID to every request for log correlation.

        The ID is echoed in the ``X-Request-ID`` response header so callers
        can reference it when reporting a failed request.
        """
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        logger.info("[%s] %s %s", request_id, request.method, request.url.path)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    application.include_router(health_router)
    for name in enabled:
        application.include_router(SERVICE_ROUTERS[name])

    @application.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "service": "Helpdesk Agent",
            "version": "1.0.0",
            "endpoints": [f"/{name}" for name in enabled],
            "health": "/health",
        }

    return application


app = create_app()


if __name__ == "__main__":
    logger.info("Starting helpdesk server on %s:%d (%s)", SERVER_HOST, SERVER_PORT, ", ".join(SERVICES))
    uvicorn.run("helpdesk_agent.server:app", host=SERVER_HOST, port=SERVER_PORT)
