"""Catalog agent graph: a model node looping over a tool node."""

from collections.abc import Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.tools import BaseTool
from langgraph.graph import END, StateGraph
from langgraph.prebuilt import ToolNode

from eventcatalog_bot.graphs.edges import route_agent_output, route_tool_output
from eventcatalog_bot.graphs.nodes import make_agent_node
from eventcatalog_bot.graphs.state import AgentState
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)


def create_agent_graph(model: BaseChatModel, tools: Sequence[BaseTool]):
    """Create the tool-calling agent graph.

    The agent node calls the model; when it requests tools the tool node
    runs them and control returns to the agent until the model answers
    without tools or the step budget in the state runs out.

    Args:
        model: Chat model supporting tool calling
        tools: Tools exposed to the model

    Returns:
        Compiled LangGraph workflow
    """
    logger.debug(f"Creating agent graph with {len(tools)} tools")

    workflow = StateGraph(AgentState)

    workflow.add_node("agent", make_agent_node(model, tools))
    workflow.add_node("tools", ToolNode(list(tools), handle_tool_errors=True))

    workflow.set_entry_point("agent")

    workflow.add_conditional_edges(
        "agent",
        route_agent_output,
        {
            "tools": "tools",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "tools",
        route_tool_output,
        {
            "agent": "agent",
            "end": END,
        },
    )

    return workflow.compile()


def recursion_limit(max_steps: int) -> int:
    """LangGraph recursion limit that lets ``max_steps`` agent/tool rounds finish."""
    return 2 * max_steps + 2
