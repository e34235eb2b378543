"""Chat-completion client (OpenAI via ``langchain-openai``).

Two entry points:

* ``complete`` turns one fully-rendered prompt into generated text
  (the ``/query`` flow).
* ``chat`` runs one THINKING step of an agent: the running transcript in,
  an ``AIMessage`` out, optionally with tool bindings.

Nothing here retries.  Every provider failure surfaces as
``CompletionError`` and the caller decides what to do with it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AnyMessage, HumanMessage
from langchain_core.tools import BaseTool
from langchain_openai import ChatOpenAI

from helpdesk_agent.config import COMPLETION_MODEL, COMPLETION_TEMPERATURE, OPENAI_API_KEY
from helpdesk_agent.errors import CompletionError
from helpdesk_agent.services.metrics import metrics

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[str, float], BaseChatModel]


def _build_openai_llm(model: str, temperature: float) -> BaseChatModel:
    return ChatOpenAI(model=model, temperature=temperature, api_key=OPENAI_API_KEY)


def message_text(message: Any) -> str:
    """Flatten a chat message's content into plain text."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content)


class CompletionClient:
    """Wraps chat-model construction, invocation and error mapping."""

    def __init__(
        self,
        *,
        model: str | None = None,
        temperature: float | None = None,
        llm_factory: ChatModelFactory | None = None,
    ):
        self._model = model or COMPLETION_MODEL
        self._temperature = COMPLETION_TEMPERATURE if temperature is None else temperature
        self._llm_factory = llm_factory or _build_openai_llm
        self._llms: dict[tuple[str, float], BaseChatModel] = {}
        self._llms_lock = threading.Lock()

    def _get_llm(self, model: str | None, temperature: float | None) -> BaseChatModel:
        model = model or self._model
        temperature = self._temperature if temperature is None else temperature
        if not 0.0 <= temperature <= 2.0:
            raise ValueError(f"temperature must be within [0, 2], got {temperature}")

        key = (model, temperature)
        with self._llms_lock:
            llm = self._llms.get(key)
            if llm is None:
                llm = self._llm_factory(model, temperature)
                self._llms[key] = llm
        return llm

    def _invoke(self, runnable: Any, messages: Sequence[AnyMessage], operation: str) -> AIMessage:
        try:
            with metrics.track("openai", operation):
                return runnable.invoke(list(messages))
        except Exception as exc:
            logger.warning("Completion call %s failed: %s", operation, type(exc).__name__)
            raise CompletionError(f"Completion failed: {exc}") from exc

    # ── Public API ───────────────────────────────────────────────────

    def complete(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        model: str | None = None,
    ) -> str:
        """Return the model's text for a fully-formed prompt."""
        llm = self._get_llm(model, temperature)
        response = self._invoke(llm, [HumanMessage(content=prompt)], "complete")
        return message_text(response)

    def chat(
        self,
        messages: Sequence[AnyMessage],
        *,
        tools: Sequence[BaseTool] | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> AIMessage:
        """Run one chat turn, letting the model call at most one tool."""
        llm = self._get_llm(model, temperature)
        runnable = llm.bind_tools(list(tools), parallel_tool_calls=False) if tools else llm
        return self._invoke(runnable, messages, "chat")
