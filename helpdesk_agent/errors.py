"""Exception hierarchy shared by the clients, the agent and the HTTP layer.

``ValidationError`` maps to HTTP 400; every ``UpstreamError`` maps to a
generic HTTP 500 at the route boundary.
"""

from __future__ import annotations


class HelpdeskError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(HelpdeskError):
    """A required request field is missing or empty."""


class UpstreamError(HelpdeskError):
    """A provider, database or network call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class RetrievalError(UpstreamError):
    """Embedding or vector-index query failed."""


class CompletionError(UpstreamError):
    """Chat-completion call failed (provider error, timeout, rate limit)."""


class RecordStoreError(UpstreamError):
    """PocketBase call failed."""


class AuthorizationError(RecordStoreError):
    """PocketBase rejected the admin credential (HTTP 401/403)."""


class NotFoundError(RecordStoreError):
    """The requested record does not exist."""


class ToolResolutionError(UpstreamError):
    """The model named a tool that is not in the agent's registry."""


class PromptRenderError(ValueError):
    """A prompt template still has placeholders without bound values."""
