"""Tests for prompt rendering."""

from __future__ import annotations

import pytest
from langchain_core.prompts import PromptTemplate

from helpdesk_agent.errors import PromptRenderError
from helpdesk_agent.prompts import (
    LETTER_TASK_TEMPLATE,
    QUERY_PROMPT,
    SUMMARY_TASK_TEMPLATE,
    render_prompt,
)


class TestRenderPrompt:
    def test_query_prompt_layout(self):
        rendered = render_prompt(QUERY_PROMPT, query="What is X?", context="[]")
        assert rendered == "What is X? Context: []"

    def test_unresolved_placeholder_is_an_error(self):
        with pytest.raises(PromptRenderError, match="context"):
            render_prompt(QUERY_PROMPT, query="What is X?")

    def test_error_is_a_value_error(self):
        template = PromptTemplate.from_template("{a} and {b}")
        with pytest.raises(ValueError, match="a, b"):
            render_prompt(template)

    def test_braces_in_values_are_kept(self):
        rendered = render_prompt(QUERY_PROMPT, query="q", context='[{"pageContent": "x"}]')
        assert rendered.endswith('[{"pageContent": "x"}]')

    @pytest.mark.parametrize("template", [SUMMARY_TASK_TEMPLATE, LETTER_TASK_TEMPLATE])
    def test_task_templates_embed_ticket_id(self, template):
        assert "c3oi15w89jl52t3" in render_prompt(template, ticket_id="c3oi15w89jl52t3")
