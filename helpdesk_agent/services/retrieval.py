"""Similarity search over the Pinecone index backing the ``/query`` service.

The query text is embedded with OpenAI (via ``langchain-openai``) and the
vector is sent to the index's data-plane ``/query`` endpoint.  Documents
were written by LangChain's PineconeStore, so the chunk text sits in the
``text`` metadata key.

Pinecone API docs: https://docs.pinecone.io/reference/api/
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings

from helpdesk_agent.config import (
    EMBEDDING_MODEL,
    HTTP_TIMEOUT_SECONDS,
    OPENAI_API_KEY,
    PINECONE_API_KEY,
    PINECONE_CONTROL_URL,
    PINECONE_INDEX,
    PINECONE_NAMESPACE,
    RETRIEVAL_TOP_K,
)
from helpdesk_agent.errors import RetrievalError, ValidationError
from helpdesk_agent.models import Document
from helpdesk_agent.services.metrics import metrics

logger = logging.getLogger(__name__)

PINECONE_API_VERSION = "2024-07"
TEXT_KEY = "text"


class RetrievalClient:
    """Embeds free text and returns the closest documents from the index."""

    def __init__(
        self,
        *,
        embeddings: Embeddings | None = None,
        api_key: str | None = None,
        index_name: str | None = None,
        namespace: str | None = None,
        control_url: str | None = None,
        default_k: int | None = None,
        http_client: httpx.Client | None = None,
    ):
        self._embeddings = embeddings or OpenAIEmbeddings(
            model=EMBEDDING_MODEL, api_key=OPENAI_API_KEY,
        )
        self._index_name = index_name or PINECONE_INDEX
        self._namespace = PINECONE_NAMESPACE if namespace is None else namespace
        self._control_url = (control_url or PINECONE_CONTROL_URL).rstrip("/")
        self._default_k = default_k or RETRIEVAL_TOP_K
        self._client = http_client or httpx.Client(
            headers={
                "Api-Key": api_key or PINECONE_API_KEY,
                "X-Pinecone-API-Version": PINECONE_API_VERSION,
                "Content-Type": "application/json",
            },
            timeout=HTTP_TIMEOUT_SECONDS,
        )
        # Data-plane host for the index, looked up once (never changes)
        self._index_host: str | None = None

    # ── Internal helpers ─────────────────────────────────────────────

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        *,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            with metrics.track("pinecone", operation):
                response = self._client.request(method, url, json=json_body)
        except httpx.HTTPError as exc:
            raise RetrievalError(f"Pinecone request failed: {exc}") from exc
        if response.status_code >= 400:
            raise RetrievalError(
                f"Pinecone error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise RetrievalError(
                f"Pinecone returned a non-JSON body ({response.status_code})",
                status_code=response.status_code,
            ) from exc

    def _get_index_host(self) -> str:
        if self._index_host is None:
            data = self._request(
                "GET",
                f"{self._control_url}/indexes/{self._index_name}",
                "describe_index",
            )
            host = data.get("host")
            if not host:
                raise RetrievalError(f"Index {self._index_name!r} has no data-plane host")
            self._index_host = host if host.startswith("http") else f"https://{host}"
        return self._index_host

    def _embed(self, query: str) -> list[float]:
        try:
            with metrics.track("openai", "embed_query"):
                return self._embeddings.embed_query(query)
        except Exception as exc:
            raise RetrievalError(f"Embedding failed: {exc}") from exc

    # ── Public API ───────────────────────────────────────────────────

    def search(self, query: str, k: int | None = None) -> list[Document]:
        """Return up to *k* documents ordered by descending relevance.

        An empty list means nothing matched; it is not an error.
        """
        if not query or not query.strip():
            raise ValidationError("Search query must not be empty")

        vector = self._embed(query)
        body: dict[str, Any] = {
            "vector": vector,
            "topK": k or self._default_k,
            "includeMetadata": True,
            "includeValues": False,
        }
        if self._namespace:
            body["namespace"] = self._namespace

        data = self._request("POST", f"{self._get_index_host()}/query", "query", json_body=body)

        documents = [_to_document(match) for match in data.get("matches", [])]
        documents.sort(key=lambda d: d.score if d.score is not None else float("-inf"), reverse=True)
        logger.debug("Retrieved %d documents for query (%d chars)", len(documents), len(query))
        return documents


def _to_document(match: dict[str, Any]) -> Document:
    metadata = dict(match.get("metadata") or {})
    content = str(metadata.pop(TEXT_KEY, ""))
    return Document(content=content, metadata=metadata, score=match.get("score"))
