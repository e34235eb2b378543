"""LangGraph tool-calling agent used by the summary and letter flows.

Architecture:
  A two-node StateGraph:

    1. **agent**  — one THINKING step: the chat model sees the system
                    instruction, the task and the scratchpad so far, and
                    either names one tool or answers.
    2. **tools**  — one TOOL_CALL step: resolves the named tool in the
                    registry, invokes it and appends the result (or the
                    error text) as an observation.

  Routing:
    agent → (tool call, under the cap?) → tools → agent (loop)
          → (tool call, at the cap?)    → END  (ITERATION_CAP)
          → (no tool call?)             → END  (FINAL)

  At most ``max_iterations`` tool invocations and ``max_iterations + 1``
  completion calls happen per run.  A tool name the registry does not
  know aborts the run with ``ToolResolutionError``, even when it is not
  the first call of the step.  A call whose arguments could not be parsed
  is answered with an ``Error: ...`` observation and counts as a step.
"""

from __future__ import annotations

import logging
from typing import Annotated

from langchain_core.messages import AIMessage, AnyMessage, HumanMessage, SystemMessage, ToolMessage
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from helpdesk_agent.config import AGENT_MAX_ITERATIONS, AGENT_MODEL, AGENT_TEMPERATURE
from helpdesk_agent.models import AgentRun, AgentStep, RunStatus
from helpdesk_agent.services.completion import CompletionClient, message_text
from helpdesk_agent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

ITERATION_CAP_OUTPUT = "Agent stopped due to max iterations."
SKIPPED_CALL_OUTPUT = "Skipped: only one tool may be called per step."


# ── State schema ─────────────────────────────────────────────────────


class AgentState(TypedDict):
    """The state that flows through the graph.

    ``messages`` is the task plus the scratchpad, appended to by both
    nodes through the ``add_messages`` reducer.  ``tool_calls`` counts
    TOOL_CALL transitions so the router can enforce the cap.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    tool_calls: int


# ── Nodes ────────────────────────────────────────────────────────────


def _make_agent_node(
    completion: CompletionClient,
    registry: ToolRegistry,
    system_prompt: str,
):
    """Create the THINKING node.

    The LangChain tool wrappers are built once and captured in the
    closure, so repeated loop iterations share them.
    """
    tools = registry.as_langchain_tools()
    system = SystemMessage(content=system_prompt)

    def agent_node(state: AgentState) -> dict:
        logger.debug("agent node invoked — step %d", state.get("tool_calls", 0) + 1)
        response = completion.chat(
            [system] + state["messages"],
            tools=tools,
            model=AGENT_MODEL,
            temperature=AGENT_TEMPERATURE,
        )
        return {"messages": [response]}

    return agent_node


def _tool_input(args: dict) -> str:
    if "input" in args:
        return str(args["input"])
    if len(args) == 1:
        return str(next(iter(args.values())))
    return str(args)


def _has_pending_calls(message: AnyMessage) -> bool:
    return bool(
        getattr(message, "tool_calls", None) or getattr(message, "invalid_tool_calls", None)
    )


def _invalid_call_output(call: dict) -> str:
    detail = call.get("error") or f"could not parse arguments {call.get('args')!r}"
    return f"Error: invalid call to {call.get('name') or 'unnamed tool'}: {detail}"


def _make_tools_node(registry: ToolRegistry):
    """Create the TOOL_CALL node for one registry."""

    def tools_node(state: AgentState) -> dict:
        last = state["messages"][-1]
        calls = list(last.tool_calls)
        invalid = list(getattr(last, "invalid_tool_calls", None) or [])

        # Every name the model used must be registered before anything runs
        tools = [registry.resolve(call["name"]) for call in calls]
        for bad in invalid:
            if bad.get("name"):
                registry.resolve(bad["name"])

        messages: list[AnyMessage] = []
        if calls:
            call, tool = calls[0], tools[0]
            tool_input = _tool_input(call.get("args") or {})
            try:
                observation = tool.invoke(tool_input)
            except Exception as exc:
                logger.warning("Tool %s failed: %s", tool.name, exc)
                observation = f"Error: {exc}"
            messages.append(
                ToolMessage(content=observation, tool_call_id=call["id"], name=tool.name)
            )
            for skipped in calls[1:]:
                logger.warning("Ignoring extra tool call %s in one step", skipped["name"])
                messages.append(
                    ToolMessage(content=SKIPPED_CALL_OUTPUT, tool_call_id=skipped["id"])
                )

        for bad in invalid:
            logger.warning("Model produced an unparseable call to %s", bad.get("name"))
            messages.append(
                ToolMessage(content=_invalid_call_output(bad), tool_call_id=bad.get("id") or "")
            )
        return {"messages": messages, "tool_calls": state.get("tool_calls", 0) + 1}

    return tools_node


# ── Conditional edge ─────────────────────────────────────────────────


def make_should_use_tools(max_iterations: int):
    """Route to the tools node while the model asks for tools and the cap allows."""

    def should_use_tools(state: AgentState) -> str:
        last_message = state["messages"][-1]
        if not _has_pending_calls(last_message):
            return END
        if state.get("tool_calls", 0) >= max_iterations:
            logger.warning("Agent reached the iteration cap (%d tool calls)", max_iterations)
            return END
        return "tools"

    return should_use_tools


# ── Graph assembly ───────────────────────────────────────────────────


def create_ticket_agent(
    completion: CompletionClient,
    registry: ToolRegistry,
    system_prompt: str,
    max_iterations: int = AGENT_MAX_ITERATIONS,
):
    """Build and compile the agent graph for one registry and instruction.

    Returns a compiled graph invoked with:
        graph.invoke({"messages": [HumanMessage(content="...")], "tool_calls": 0})
    """
    graph = StateGraph(AgentState)
    graph.add_node("agent", _make_agent_node(completion, registry, system_prompt))
    graph.add_node("tools", _make_tools_node(registry))

    graph.set_entry_point("agent")
    graph.add_conditional_edges(
        "agent", make_should_use_tools(max_iterations), {"tools": "tools", END: END},
    )
    graph.add_edge("tools", "agent")

    compiled = graph.compile()
    logger.debug(
        "Ticket agent compiled — tools: %s, max_iterations: %d",
        registry.names(), max_iterations,
    )
    return compiled


# ── Running ──────────────────────────────────────────────────────────


def _collect_steps(messages: list[AnyMessage]) -> list[AgentStep]:
    observations = {
        m.tool_call_id: message_text(m) for m in messages if isinstance(m, ToolMessage)
    }
    steps: list[AgentStep] = []
    for message in messages:
        if not isinstance(message, AIMessage):
            continue
        thought = message_text(message)
        if message.tool_calls:
            call = message.tool_calls[0]
            steps.append(
                AgentStep(
                    thought=thought,
                    tool=call["name"],
                    tool_input=_tool_input(call.get("args") or {}),
                    observation=observations.get(call["id"]),
                )
            )
        elif message.invalid_tool_calls:
            bad = message.invalid_tool_calls[0]
            steps.append(
                AgentStep(
                    thought=thought,
                    tool=bad.get("name"),
                    tool_input=bad.get("args"),
                    observation=observations.get(bad.get("id") or ""),
                )
            )
        else:
            steps.append(AgentStep(thought=thought, final_answer=thought))
    return steps


def run_agent(
    completion: CompletionClient,
    registry: ToolRegistry,
    system_prompt: str,
    task: str,
    max_iterations: int = AGENT_MAX_ITERATIONS,
) -> AgentRun:
    """Run the agent to completion (or to the cap) for one task."""
    graph = create_ticket_agent(completion, registry, system_prompt, max_iterations)
    result = graph.invoke(
        {"messages": [HumanMessage(content=task)], "tool_calls": 0},
        config={"recursion_limit": 2 * max_iterations + 5},
    )

    messages = result.get("messages", [])
    steps = _collect_steps(messages)
    last = messages[-1]
    if _has_pending_calls(last):
        status = RunStatus.ITERATION_CAP
        output = message_text(last) or ITERATION_CAP_OUTPUT
    else:
        status = RunStatus.FINAL
        output = message_text(last)

    logger.info(
        "Agent run finished — status: %s, tool calls: %d",
        status.value, result.get("tool_calls", 0),
    )
    return AgentRun(input=task, output=output, status=status, steps=steps)
