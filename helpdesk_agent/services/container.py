"""The set of upstream clients a running service shares across requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from helpdesk_agent.services.completion import CompletionClient
from helpdesk_agent.services.record_store import RecordStoreClient
from helpdesk_agent.services.retrieval import RetrievalClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    retrieval: RetrievalClient | None
    completion: CompletionClient
    record_store: RecordStoreClient | None


def build_services(enabled: list[str]) -> Services:
    """Construct only the clients the enabled routers need.

    No network call happens here: the Pinecone host and the PocketBase
    session are both acquired lazily on first use.
    """
    needs_tickets = bool({"summary", "letter"} & set(enabled))
    services = Services(
        retrieval=RetrievalClient() if "query" in enabled else None,
        completion=CompletionClient(),
        record_store=RecordStoreClient() if needs_tickets else None,
    )
    logger.info("Services built for: %s", ", ".join(enabled))
    return services
