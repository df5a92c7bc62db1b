"""State definitions for the catalog agent graph."""

from collections.abc import Sequence
from typing import Annotated

from langchain_core.messages import BaseMessage
from langgraph.graph import add_messages
from pydantic import BaseModel, ConfigDict


class AgentState(BaseModel):
    """State passed between the agent and tool nodes.

    ``steps`` counts completed model calls so the loop can stop once
    ``max_steps`` rounds have run.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    messages: Annotated[Sequence[BaseMessage], add_messages]
    steps: int = 0
    max_steps: int = 5
