"""Domain models shared by the clients, tools and agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator


def _normalise_timestamp(value: Any) -> Any:
    # PocketBase emits "2024-01-02 10:00:00.123Z"
    if isinstance(value, str):
        return value.strip().replace(" ", "T", 1).replace("Z", "+00:00")
    return value


@dataclass(frozen=True, slots=True)
class Document:
    """A retrieved document chunk with its similarity score."""

    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float | None = None


class Assignee(BaseModel):
    id: str
    name: str = ""


class Ticket(BaseModel):
    """A support ticket as stored in PocketBase (read-only here)."""

    id: str
    status: str = ""
    title: str = ""
    created: datetime
    assignee: Assignee | None = None

    @field_validator("created", mode="before")
    @classmethod
    def parse_created(cls, value: Any) -> Any:
        return _normalise_timestamp(value)


class Message(BaseModel):
    """One message posted on a ticket."""

    ticket_id: str
    content: str = ""
    created: datetime

    @field_validator("created", mode="before")
    @classmethod
    def parse_created(cls, value: Any) -> Any:
        return _normalise_timestamp(value)


class RunStatus(str, Enum):
    FINAL = "FINAL"
    ITERATION_CAP = "ITERATION_CAP"


@dataclass(slots=True)
class AgentStep:
    """One THINKING step of an agent run and what followed it."""

    thought: str
    tool: str | None = None
    tool_input: str | None = None
    observation: str | None = None
    final_answer: str | None = None


@dataclass(slots=True)
class AgentRun:
    """Outcome of a complete agent run."""

    input: str
    output: str
    status: RunStatus
    steps: list[AgentStep] = field(default_factory=list)

    @property
    def tool_invocations(self) -> int:
        return sum(1 for step in self.steps if step.observation is not None)
