"""Tests for the CLI runner."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from helpdesk_agent.errors import RetrievalError
from helpdesk_agent.main import _build_parser, main
from helpdesk_agent.models import AgentRun, AgentStep, RunStatus


class TestParser:
    def test_summary_takes_ticket_id(self):
        args = _build_parser().parse_args(["summary", "c3oi15w89jl52t3"])
        assert args.command == "summary"
        assert args.ticket_id == "c3oi15w89jl52t3"

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])


class TestMain:
    @patch("helpdesk_agent.services.container.build_services")
    @patch("helpdesk_agent.flows.run_ticket_flow")
    def test_letter_prints_output(self, mock_run, mock_build, capsys):
        mock_build.return_value = MagicMock()
        mock_run.return_value = AgentRun(
            input="task",
            output="Dear customer, ...",
            status=RunStatus.FINAL,
            steps=[AgentStep(thought="", final_answer="Dear customer, ...")],
        )

        assert main(["letter", "c3oi15w89jl52t3"]) == 0
        out = capsys.readouterr().out
        assert "Dear customer" in out
        assert "status: FINAL" in out

    @patch("helpdesk_agent.services.container.build_services")
    @patch("helpdesk_agent.flows.run_query_flow")
    def test_upstream_error_exits_non_zero(self, mock_run, mock_build, capsys):
        mock_build.return_value = MagicMock()
        mock_run.side_effect = RetrievalError("Pinecone error 503")

        assert main(["query", "hello?"]) == 1
        assert "Pinecone error 503" in capsys.readouterr().err
