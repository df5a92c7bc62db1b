"""Agent orchestration: runs the catalog graph and reports progress."""

import json
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.tools import BaseTool

from eventcatalog_bot.graphs.agent import create_agent_graph, recursion_limit
from eventcatalog_bot.models.messages import AgentResponse, ConversationMessage, ToolCallRecord
from eventcatalog_bot.services.system_prompt import get_system_prompt
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)

StatusCallback = Callable[[str], Awaitable[None]]

SEARCHING_MESSAGES = (
    "Searching your catalog...",
    "Diving into your architecture...",
    "Consulting the catalog...",
    "Hunting for answers...",
    "Scanning your architecture...",
)
GENERATING_MESSAGE = "Generating response..."

_TOOL_RESULT_LOG_LIMIT = 500


class ToolProvider(Protocol):
    def list_tools(self) -> dict[str, BaseTool]: ...


@dataclass
class AgentOptions:
    """Everything one agent run needs besides the conversation."""

    model: BaseChatModel
    tool_provider: ToolProvider
    catalog_url: str
    max_steps: int = 5
    temperature: float | None = None


def _with_temperature(model: BaseChatModel, temperature: float | None) -> BaseChatModel:
    if temperature is None or "temperature" not in type(model).model_fields:
        return model
    if getattr(model, "temperature", None) == temperature:
        return model
    return model.model_copy(update={"temperature": temperature})


def _message_text(message: BaseMessage | None) -> str:
    """Plain text of a model message, joining text blocks of list content."""
    if message is None:
        return ""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _build_messages(
    message: str, catalog_url: str, history: list[ConversationMessage] | None
) -> list[BaseMessage]:
    messages: list[BaseMessage] = [SystemMessage(content=get_system_prompt(catalog_url))]
    for entry in history or []:
        if entry.role == "assistant":
            messages.append(AIMessage(content=entry.content))
        else:
            messages.append(HumanMessage(content=entry.content))
    messages.append(HumanMessage(content=message))
    return messages


def _log_tool_results(messages: list[Any]) -> None:
    for result in messages:
        if not isinstance(result, ToolMessage):
            continue
        text = result.content if isinstance(result.content, str) else json.dumps(result.content, default=str)
        if len(text) > _TOOL_RESULT_LOG_LIMIT:
            text = text[:_TOOL_RESULT_LOG_LIMIT] + "..."
        logger.debug(f"Tool result ({result.name}): {text}")


async def run_agent(
    message: str,
    options: AgentOptions,
    history: list[ConversationMessage] | None = None,
    on_status: StatusCallback | None = None,
) -> AgentResponse:
    """Answer a question with the catalog tools, reporting progress as it goes.

    Status notifications are sent in order: one random "working" phrase before
    the model is called, ``Querying EventCatalog: <tools>`` after every step
    that ran tools, and ``Generating response...`` once the loop ends.

    Model and tool errors are not caught here.

    Args:
        message: The user's question
        options: Model, tools and limits for this run
        history: Prior thread messages, oldest first
        on_status: Async callback receiving status strings

    Returns:
        Final text and every tool call made, in step order
    """
    tools = list(options.tool_provider.list_tools().values())
    model = _with_temperature(options.model, options.temperature)
    graph = create_agent_graph(model, tools)

    logger.info(
        f"Running agent with {len(tools)} tools, max {options.max_steps} steps, "
        f"{len(history or [])} history messages"
    )

    if on_status:
        await on_status(random.choice(SEARCHING_MESSAGES))

    collected: list[ToolCallRecord] = []
    pending: list[ToolCallRecord] = []
    last_reply: AIMessage | None = None

    initial = {
        "messages": _build_messages(message, options.catalog_url, history),
        "steps": 0,
        "max_steps": options.max_steps,
    }
    config = {"recursion_limit": recursion_limit(options.max_steps)}

    async for update in graph.astream(initial, config, stream_mode="updates"):
        for node, changes in update.items():
            produced = (changes or {}).get("messages") or []

            if node == "agent":
                for reply in produced:
                    if isinstance(reply, AIMessage):
                        last_reply = reply
                        pending = [
                            ToolCallRecord(tool_name=call["name"], args=call.get("args") or {})
                            for call in reply.tool_calls
                        ]

            elif node == "tools" and pending:
                _log_tool_results(produced)
                for call in pending:
                    logger.info(f"Tool call: {call.tool_name} {call.args}")
                collected.extend(pending)
                pending = []

                if on_status:
                    names = list(dict.fromkeys(call.tool_name for call in collected))
                    await on_status(f"Querying EventCatalog: {', '.join(names)}")

    if on_status:
        await on_status(GENERATING_MESSAGE)

    text = _message_text(last_reply)
    logger.info(f"Agent finished with {len(collected)} tool calls and {len(text)} characters of text")

    return AgentResponse(text=text, tool_calls=collected or None)
