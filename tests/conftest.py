"""Shared test fixtures for the Helpdesk Agent test suite."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("OPENAI_API_KEY", "test-openai-key-123")
    os.environ.setdefault("PINECONE_API_KEY", "test-pinecone-key-456")
    os.environ.setdefault("PINECONE_INDEX", "test-index")
    os.environ.setdefault("POCKETBASE_URL", "http://pocketbase.test")
    os.environ.setdefault("POCKETBASE_ADMIN_EMAIL", "admin@example.com")
    os.environ.setdefault("POCKETBASE_ADMIN_PASSWORD", "test-password")


@pytest.fixture
def mock_http_response():
    """Factory fixture for creating mock httpx responses."""

    def _make(data: dict, status_code: int = 200):
        mock = MagicMock()
        mock.status_code = status_code
        mock.json.return_value = data
        mock.text = str(data)
        return mock

    return _make


@pytest.fixture
def login_ticket():
    """The ticket used by the summary example scenario."""
    from helpdesk_agent.models import Assignee, Ticket

    return Ticket(
        id="c3oi15w89jl52t3",
        status="open",
        title="Login issue",
        created=datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
        assignee=Assignee(id="u1", name="Maria Lopez"),
    )


@pytest.fixture
def login_messages():
    from helpdesk_agent.models import Message

    return [
        Message(
            ticket_id="c3oi15w89jl52t3",
            content="I cannot log in since yesterday.",
            created=datetime(2024, 3, 1, 9, 5, tzinfo=UTC),
        ),
        Message(
            ticket_id="c3oi15w89jl52t3",
            content="We reset your password, please try again.",
            created=datetime(2024, 3, 1, 11, 30, tzinfo=UTC),
        ),
    ]


@pytest.fixture
def record_store(login_ticket, login_messages):
    """A stub record store serving the login ticket."""
    store = MagicMock()
    store.get_ticket.return_value = login_ticket
    store.list_messages.return_value = list(login_messages)
    return store
