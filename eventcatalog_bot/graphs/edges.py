"""Edge logic and routing for the catalog agent graph."""

from typing import Literal

from langchain_core.messages import AIMessage

from eventcatalog_bot.graphs.state import AgentState
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)


def route_agent_output(state: AgentState) -> Literal["tools", "end"]:
    """Route to tool execution when the last model message requested tools."""
    last = state.messages[-1] if state.messages else None
    if isinstance(last, AIMessage) and last.tool_calls:
        return "tools"
    return "end"


def route_tool_output(state: AgentState) -> Literal["agent", "end"]:
    """Return to the agent unless the step budget is spent."""
    if state.steps >= state.max_steps:
        logger.info(f"Agent reached max steps ({state.max_steps}), stopping")
        return "end"
    return "agent"
