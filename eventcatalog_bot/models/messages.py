"""Conversation and agent result models."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ConversationMessage(BaseModel):
    """A prior message in a Slack thread, tagged with who said it."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class ToolCallRecord(BaseModel):
    """A single tool invocation made by the agent."""

    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)


class AgentResponse(BaseModel):
    """Final answer of an agent run.

    ``tool_calls`` is ``None`` when the model never used a tool; otherwise it lists
    every call from every step in the order the steps completed.
    """

    text: str
    tool_calls: list[ToolCallRecord] | None = None

    def tool_names(self) -> list[str]:
        """Distinct tool names in order of first use."""
        if not self.tool_calls:
            return []
        return list(dict.fromkeys(call.tool_name for call in self.tool_calls))
