"""Helpdesk Agent: LLM-backed HTTP services for a customer support desk.

Services
========

1. **query** (``POST /query``): retrieval-augmented Q&A.  The question is
   embedded with OpenAI, the closest chunks come from a Pinecone index, and
   a chat model answers with that context in the prompt.

2. **summary** (``POST /summary``): a tool-calling agent reads a ticket
   and its messages from PocketBase and writes a markdown summary.

3. **letter** (``POST /letter``): a tool-calling agent reads the ticket
   details (including the assignee) and messages, and writes a status
   letter to the customer with a fixed structure.

Agent loop: agent → (tool call?) → tools → agent, capped at
``AGENT_MAX_ITERATIONS`` tool calls (3 by default).  See ``agent.py``.

Key Design Decisions
--------------------
- **Explicit flows**: each agent flow declares its own tool set and prompts
  (``flows.py``); nothing is inherited from a shared default.
- **No automatic retries**: upstream failures become a generic HTTP 500.
  The one exception is the PocketBase client, which re-authenticates and
  retries exactly once when its admin token is rejected.
- **Per-run snapshot**: within one agent run a ticket and its messages are
  fetched at most once.

Package Structure
-----------------
- ``helpdesk_agent/agent.py`` — LangGraph StateGraph for the ticket agents
- ``helpdesk_agent/flows.py`` — Q&A flow and the summary/letter flow configs
- ``helpdesk_agent/prompts.py`` — prompt templates and rendering
- ``helpdesk_agent/config.py`` — configuration from environment variables
- ``helpdesk_agent/errors.py`` — exception hierarchy
- ``helpdesk_agent/models.py`` — documents, tickets, messages, agent runs
- ``helpdesk_agent/server.py`` — FastAPI application factory
- ``helpdesk_agent/main.py`` — CLI runner
- ``helpdesk_agent/services/`` — OpenAI, Pinecone and PocketBase clients, metrics
- ``helpdesk_agent/tools/`` — tool registry and ticket tools
- ``helpdesk_agent/api/`` — FastAPI routes and Pydantic schemas
"""
