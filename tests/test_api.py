"""Tests for the FastAPI endpoints."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from fakes import ScriptedChatModel, answer, answer_from_observations, call_tool
from fastapi.testclient import TestClient

from helpdesk_agent.errors import NotFoundError, RetrievalError, ValidationError
from helpdesk_agent.models import Document
from helpdesk_agent.server import app
from helpdesk_agent.services.completion import CompletionClient
from helpdesk_agent.services.container import Services

TICKET_ID = "c3oi15w89jl52t3"


@pytest.fixture
def retrieval():
    retrieval = MagicMock()
    retrieval.search.return_value = [
        Document(content="Reset passwords from the login page.", metadata={"source": "faq.md"}, score=0.91),
        Document(content="Accounts lock after five attempts.", metadata={"source": "security.md"}, score=0.72),
    ]
    return retrieval


@pytest.fixture
def llm():
    """Scripted chat model; tests replace its script as needed."""
    return ScriptedChatModel(answer("You can reset it from the login page."))


@pytest.fixture
def services(retrieval, llm, record_store):
    """Attach stub services to app state (mirrors the lifespan)."""
    services = Services(
        retrieval=retrieval,
        completion=CompletionClient(llm_factory=lambda model, temperature: llm),
        record_store=record_store,
    )
    app.state.services = services
    yield services
    app.state.services = None


@pytest.fixture
def client(services):
    return TestClient(app)


def _script(llm: ScriptedChatModel, *replies) -> None:
    llm._replies = list(replies)


# ── /query ───────────────────────────────────────────────────────────


class TestQueryEndpoint:
    def test_returns_context_and_response(self, client):
        response = client.post("/query", json={"prompt": "How do I reset my password?"})
        assert response.status_code == 200
        data = response.json()
        assert data["response"] == "You can reset it from the login page."
        assert data["context"] == [
            {"source": {"source": "faq.md"}, "content": "Reset passwords from the login page."},
            {"source": {"source": "security.md"}, "content": "Accounts lock after five attempts."},
        ]

    def test_context_mirrors_retrieved_documents(self, client, retrieval):
        response = client.post("/query", json={"prompt": "password"})
        context = response.json()["context"]
        documents = retrieval.search.return_value
        assert len(context) == len(documents)
        assert [c["content"] for c in context] == [d.content for d in documents]

    def test_prompt_includes_query_and_serialised_context(self, client, llm):
        client.post("/query", json={"prompt": "How do I reset my password?"})
        rendered = llm.calls[0][0].content
        query, _, context = rendered.partition(" Context: ")
        assert query == "How do I reset my password?"
        assert json.loads(context)[0] == {
            "pageContent": "Reset passwords from the login page.",
            "metadata": {"source": "faq.md"},
        }

    def test_no_matches_is_not_an_error(self, client, retrieval):
        retrieval.search.return_value = []
        response = client.post("/query", json={"prompt": "unknown topic"})
        assert response.status_code == 200
        assert response.json()["context"] == []

    @pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": None}, {"prompt": "   "}])
    def test_missing_prompt_returns_400_before_any_call(self, client, retrieval, llm, body):
        response = client.post("/query", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Prompt is required"}
        retrieval.search.assert_not_called()
        assert llm.calls == []

    def test_validation_error_from_search_returns_400(self, client, retrieval, llm):
        retrieval.search.side_effect = ValidationError("Search query must not be empty")
        response = client.post("/query", json={"prompt": "\u200b"})
        assert response.status_code == 400
        assert response.json() == {"error": "Prompt is required"}
        assert llm.calls == []

    def test_upstream_failure_returns_generic_500(self, client, retrieval):
        retrieval.search.side_effect = RetrievalError("Pinecone error 401: invalid api key")
        response = client.post("/query", json={"prompt": "password"})
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "api key" not in response.text


# ── /summary ─────────────────────────────────────────────────────────


class TestSummaryEndpoint:
    def test_summary_mentions_status_and_messages_in_order(self, client, llm):
        _script(
            llm,
            call_tool("get_ticket_with_messages", TICKET_ID),
            answer_from_observations("## Login issue summary"),
        )

        response = client.post("/summary", json={"ticket_id": TICKET_ID})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        output = body["data"]["output"]
        assert output.startswith("## ")
        assert "open" in output
        first = output.index("I cannot log in since yesterday.")
        second = output.index("We reset your password, please try again.")
        assert first < second

    def test_data_input_is_the_agent_task(self, client, llm):
        _script(llm, answer("Nothing to summarize."))
        body = client.post("/summary", json={"ticket_id": TICKET_ID}).json()
        assert TICKET_ID in body["data"]["input"]
        assert body["data"]["output"] == "Nothing to summarize."

    def test_summary_agent_has_only_the_combined_tool(self, client, llm):
        _script(llm, answer("ok"))
        client.post("/summary", json={"ticket_id": TICKET_ID})
        assert llm.bound_tools == ["get_ticket_with_messages"]

    def test_messages_fetched_once_per_run(self, client, llm, record_store):
        _script(
            llm,
            call_tool("get_ticket_with_messages", TICKET_ID),
            call_tool("get_ticket_with_messages", TICKET_ID),
            answer("done"),
        )
        client.post("/summary", json={"ticket_id": TICKET_ID})
        assert record_store.list_messages.call_count == 1
        assert record_store.get_ticket.call_count == 1

    @pytest.mark.parametrize("body", [{}, {"ticket_id": ""}, {"ticket_id": "  "}])
    def test_missing_ticket_id_returns_400(self, client, llm, record_store, body):
        response = client.post("/summary", json=body)
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "ticket_id is required"}
        assert llm.calls == []
        record_store.get_ticket.assert_not_called()

    def test_unknown_tool_returns_500(self, client, llm):
        _script(llm, call_tool("drop_all_tickets", TICKET_ID))
        response = client.post("/summary", json={"ticket_id": TICKET_ID})
        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert "drop_all_tickets" not in body["error"]

    def test_iteration_cap_still_returns_200(self, client, llm):
        _script(llm, call_tool("get_ticket_with_messages", TICKET_ID))
        response = client.post("/summary", json={"ticket_id": TICKET_ID})
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_completion_failure_returns_500_without_leaking(self, client, llm):
        def _fail(messages):
            raise RuntimeError("openai exploded: sk-secret")

        _script(llm, _fail)
        response = client.post("/summary", json={"ticket_id": TICKET_ID})
        assert response.status_code == 500
        assert "sk-secret" not in response.text

    def test_missing_ticket_is_reported_to_the_model(self, client, llm, record_store):
        record_store.get_ticket.side_effect = NotFoundError("Not found", status_code=404)
        _script(
            llm,
            call_tool("get_ticket_with_messages", "nope"),
            answer_from_observations("Could not load:"),
        )
        response = client.post("/summary", json={"ticket_id": "nope"})
        assert response.status_code == 200
        assert "Error: Not found" in response.json()["data"]["output"]


# ── /letter ──────────────────────────────────────────────────────────


class TestLetterEndpoint:
    def test_letter_uses_messages_and_details_tools(self, client, llm):
        _script(
            llm,
            call_tool("get_ticket_details", TICKET_ID),
            call_tool("get_ticket_messages", TICKET_ID),
            answer_from_observations("Dear customer,"),
        )

        response = client.post("/letter", json={"ticket_id": TICKET_ID})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert llm.bound_tools == ["get_ticket_messages", "get_ticket_details"]
        output = body["data"]["output"]
        assert "Maria Lopez" in output
        assert "We reset your password" in output

    def test_letter_system_prompt_enforces_structure(self, client, llm):
        _script(llm, answer("Dear customer, ..."))
        client.post("/letter", json={"ticket_id": TICKET_ID})
        system = llm.calls[0][0].content
        for part in ("Greeting", "Status explanation", "Empathy", "Closing"):
            assert part in system

    def test_missing_ticket_id_returns_400(self, client):
        response = client.post("/letter", json={})
        assert response.status_code == 400
        assert response.json()["success"] is False


# ── Plumbing ─────────────────────────────────────────────────────────


class TestPlumbing:
    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["services"] == ["query", "summary", "letter"]

    def test_root_lists_endpoints(self, client):
        data = client.get("/").json()
        assert data["endpoints"] == ["/query", "/summary", "/letter"]

    def test_response_includes_request_id_header(self, client):
        response = client.post("/query", json={"prompt": "hi"})
        assert "X-Request-ID" in response.headers

    def test_client_supplied_request_id_is_echoed(self, client):
        response = client.post(
            "/query", json={"prompt": "hi"}, headers={"X-Request-ID": "trace-123"},
        )
        assert response.headers["X-Request-ID"] == "trace-123"

    def test_cors_preflight_for_allowed_origin(self, client):
        response = client.options(
            "/query",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_cors_rejects_unknown_origin(self, client):
        response = client.options(
            "/query",
            headers={
                "Origin": "https://evil.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert "access-control-allow-origin" not in response.headers


class TestServiceNotReady:
    def test_returns_503_when_services_not_initialised(self):
        with TestClient(app) as tc:
            app.state.services = None
            response = tc.post("/summary", json={"ticket_id": TICKET_ID})
            assert response.status_code == 503
            assert "starting up" in response.json()["detail"].lower()


class TestCreateApp:
    def test_query_only_app_has_no_ticket_routes(self):
        from helpdesk_agent.server import create_app

        query_app = create_app(["query"])
        paths = {route.path for route in query_app.routes}
        assert "/query" in paths
        assert "/summary" not in paths
        assert "/letter" not in paths

    def test_unknown_service_is_rejected(self):
        from helpdesk_agent.server import create_app

        with pytest.raises(ValueError, match="bogus"):
            create_app(["query", "bogus"])
