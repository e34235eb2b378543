"""The request flows behind each endpoint.

The summary and letter flows differ in tools and instructions on purpose,
so each one spells out its own tool set and prompts.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass

from langchain_core.prompts import PromptTemplate

from helpdesk_agent.agent import run_agent
from helpdesk_agent.config import AGENT_MAX_ITERATIONS
from helpdesk_agent.models import AgentRun, Document
from helpdesk_agent.prompts import (
    LETTER_SYSTEM_PROMPT,
    LETTER_TASK_TEMPLATE,
    QUERY_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_TASK_TEMPLATE,
    render_prompt,
)
from helpdesk_agent.services.completion import CompletionClient
from helpdesk_agent.services.record_store import RecordStoreClient
from helpdesk_agent.services.retrieval import RetrievalClient
from helpdesk_agent.tools.registry import Tool, ToolRegistry
from helpdesk_agent.tools.tickets import (
    TicketSnapshot,
    ticket_details_tool,
    ticket_messages_tool,
    ticket_with_messages_tool,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowConfig:
    name: str
    system_prompt: str
    task_template: PromptTemplate
    tool_builders: tuple[Callable[[TicketSnapshot], Tool], ...]
    max_iterations: int = AGENT_MAX_ITERATIONS


SUMMARY_FLOW = FlowConfig(
    name="summary",
    system_prompt=SUMMARY_SYSTEM_PROMPT,
    task_template=SUMMARY_TASK_TEMPLATE,
    tool_builders=(ticket_with_messages_tool,),
)

LETTER_FLOW = FlowConfig(
    name="letter",
    system_prompt=LETTER_SYSTEM_PROMPT,
    task_template=LETTER_TASK_TEMPLATE,
    tool_builders=(ticket_messages_tool, ticket_details_tool),
)


def run_ticket_flow(
    flow: FlowConfig,
    ticket_id: str,
    completion: CompletionClient,
    record_store: RecordStoreClient,
) -> AgentRun:
    """Run *flow* for one ticket with a fresh snapshot and registry."""
    snapshot = TicketSnapshot(record_store)
    registry = ToolRegistry(build(snapshot) for build in flow.tool_builders)
    task = render_prompt(flow.task_template, ticket_id=ticket_id)

    logger.info("Running %s flow for ticket %s", flow.name, ticket_id)
    return run_agent(
        completion,
        registry,
        flow.system_prompt,
        task,
        max_iterations=flow.max_iterations,
    )


# ── Retrieval-augmented Q&A ──────────────────────────────────────────


def run_query_flow(
    prompt: str,
    retrieval: RetrievalClient,
    completion: CompletionClient,
) -> tuple[list[Document], str]:
    """Retrieve context for *prompt*, then answer it with the completion model."""
    documents = retrieval.search(prompt)
    context = json.dumps(
        [{"pageContent": doc.content, "metadata": doc.metadata} for doc in documents],
        default=str,
    )
    rendered = render_prompt(QUERY_PROMPT, query=prompt, context=context)
    return documents, completion.complete(rendered)
