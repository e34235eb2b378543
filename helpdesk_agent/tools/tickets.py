"""Ticket tools for the summary and letter agents.

Each tool reads from a ``TicketSnapshot`` and returns a markdown-ish
string the LLM can build its answer from.  Record-store errors are not
caught here: the agent's tools node turns them into observations, and
re-authentication is handled once, inside the record-store client.
"""

from __future__ import annotations

import logging

from helpdesk_agent.models import Message, Ticket
from helpdesk_agent.services.record_store import RecordStoreClient
from helpdesk_agent.tools.registry import Tool

logger = logging.getLogger(__name__)

_TICKET_ID_HELP = "The ID of the support ticket, e.g. 'c3oi15w89jl52t3'."


class TicketSnapshot:
    """Per-run view of the record store.

    Each ticket and each message list is fetched at most once, so every
    tool call within one agent run sees the same data.
    """

    def __init__(self, store: RecordStoreClient) -> None:
        self._store = store
        self._tickets: dict[str, Ticket] = {}
        self._messages: dict[str, list[Message]] = {}

    def ticket(self, ticket_id: str) -> Ticket:
        if ticket_id not in self._tickets:
            self._tickets[ticket_id] = self._store.get_ticket(ticket_id)
        return self._tickets[ticket_id]

    def messages(self, ticket_id: str) -> list[Message]:
        if ticket_id not in self._messages:
            fetched = self._store.list_messages(ticket_id)
            self._messages[ticket_id] = sorted(fetched, key=lambda m: m.created)
            logger.debug("Snapshot: %d messages for ticket %s", len(fetched), ticket_id)
        return self._messages[ticket_id]


def _clean_id(raw: str) -> str:
    return raw.strip().strip("'\"`").strip()


def _format_ticket(ticket: Ticket, *, with_assignee: bool = False) -> str:
    lines = [
        f"## Ticket {ticket.id}",
        f"- **Title:** {ticket.title or 'N/A'}",
        f"- **Status:** {ticket.status or 'unknown'}",
        f"- **Created:** {ticket.created:%Y-%m-%d %H:%M} UTC",
    ]
    if with_assignee:
        if ticket.assignee is not None:
            name = ticket.assignee.name or "N/A"
            lines.append(f"- **Assignee:** {name} (id: {ticket.assignee.id})")
        else:
            lines.append("- **Assignee:** unassigned")
    return "\n".join(lines)


def _format_messages(messages: list[Message]) -> str:
    if not messages:
        return "No messages have been posted on this ticket."
    lines = [f"### Messages ({len(messages)}, oldest first)"]
    for i, message in enumerate(messages, start=1):
        lines.append(f"{i}. [{message.created:%Y-%m-%d %H:%M}] {message.content}")
    return "\n".join(lines)


# ── Tool builders ────────────────────────────────────────────────────


def ticket_with_messages_tool(snapshot: TicketSnapshot) -> Tool:
    def _run(ticket_id: str) -> str:
        ticket_id = _clean_id(ticket_id)
        ticket = snapshot.ticket(ticket_id)
        return f"{_format_ticket(ticket)}\n\n{_format_messages(snapshot.messages(ticket_id))}"

    return Tool(
        name="get_ticket_with_messages",
        description=(
            "Fetch a support ticket (title, status, creation date) together "
            "with all of its messages in chronological order."
        ),
        func=_run,
        input_description=_TICKET_ID_HELP,
    )


def ticket_messages_tool(snapshot: TicketSnapshot) -> Tool:
    def _run(ticket_id: str) -> str:
        return _format_messages(snapshot.messages(_clean_id(ticket_id)))

    return Tool(
        name="get_ticket_messages",
        description="Fetch all messages posted on a support ticket, oldest first.",
        func=_run,
        input_description=_TICKET_ID_HELP,
    )


def ticket_details_tool(snapshot: TicketSnapshot) -> Tool:
    def _run(ticket_id: str) -> str:
        return _format_ticket(snapshot.ticket(_clean_id(ticket_id)), with_assignee=True)

    return Tool(
        name="get_ticket_details",
        description=(
            "Fetch a support ticket's details: title, status, creation date "
            "and the name of the assigned support agent."
        ),
        func=_run,
        input_description=_TICKET_ID_HELP,
    )
