"""Node implementations for the catalog agent graph."""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool

from eventcatalog_bot.graphs.state import AgentState
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)

AgentNode = Callable[[AgentState, RunnableConfig], Awaitable[dict[str, Any]]]


def make_agent_node(model: BaseChatModel, tools: Sequence[BaseTool]) -> AgentNode:
    """Build the node that asks the model for its next move.

    Args:
        model: Chat model supporting tool calling
        tools: Catalog tools the model may call

    Returns:
        Async node function for the graph
    """
    bound = model.bind_tools(list(tools)) if tools else model

    async def agent_node(state: AgentState, config: RunnableConfig) -> dict[str, Any]:
        step = state.steps + 1
        logger.debug(f"Agent step {step}/{state.max_steps} with {len(state.messages)} messages")

        response = await bound.ainvoke(list(state.messages), config)

        tool_calls = getattr(response, "tool_calls", None) or []
        if tool_calls:
            logger.info(f"Agent requesting {len(tool_calls)} tool calls: {[tc['name'] for tc in tool_calls]}")

        return {"messages": [response], "steps": step}

    return agent_node
