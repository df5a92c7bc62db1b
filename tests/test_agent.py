"""Tests for the catalog agent loop."""

from unittest.mock import Mock

import pytest
from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_core.tools import tool

from eventcatalog_bot.graphs.agent import recursion_limit
from eventcatalog_bot.models.messages import ConversationMessage, ToolCallRecord
from eventcatalog_bot.services.agent import (
    GENERATING_MESSAGE,
    SEARCHING_MESSAGES,
    AgentOptions,
    _build_messages,
    _message_text,
    run_agent,
)


class ToolCallingFakeModel(GenericFakeChatModel):
    """Fake chat model that replays scripted messages and accepts tool binding."""

    def bind_tools(self, tools, **kwargs):
        return self


class FailingModel(ToolCallingFakeModel):
    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        raise RuntimeError("model unavailable")


@tool
def search(query: str) -> str:
    """Search the catalog for resources."""
    return f"results for {query}"


@tool
def fetch(resource_id: str) -> str:
    """Fetch a single catalog resource."""
    return f"details of {resource_id}"


def _tool_call(name: str, call_id: str, **args) -> dict:
    return {"name": name, "args": args, "id": call_id, "type": "tool_call"}


def _options(messages: list[AIMessage], max_steps: int = 5, model_cls=ToolCallingFakeModel) -> AgentOptions:
    provider = Mock()
    provider.list_tools.return_value = {"search": search, "fetch": fetch}
    return AgentOptions(
        model=model_cls(messages=iter(messages)),
        tool_provider=provider,
        catalog_url="https://catalog.example.com",
        max_steps=max_steps,
        temperature=0.4,
    )


class StatusRecorder:
    def __init__(self):
        self.statuses: list[str] = []

    async def __call__(self, status: str) -> None:
        self.statuses.append(status)


class TestRunAgent:
    """Tests for run_agent."""

    @pytest.mark.asyncio
    async def test_collects_tool_calls_across_steps(self):
        """Test that two tool steps yield every call in order and progress updates."""
        options = _options(
            [
                AIMessage(
                    content="",
                    tool_calls=[
                        _tool_call("search", "call_1", query="orders"),
                        _tool_call("search", "call_2", query="payments"),
                    ],
                ),
                AIMessage(content="", tool_calls=[_tool_call("fetch", "call_3", resource_id="OrderCreated")]),
                AIMessage(content="**OrderCreated** is published by the OrderService."),
            ]
        )
        recorder = StatusRecorder()

        response = await run_agent("Who publishes OrderCreated?", options, on_status=recorder)

        assert response.text == "**OrderCreated** is published by the OrderService."
        assert response.tool_calls == [
            ToolCallRecord(tool_name="search", args={"query": "orders"}),
            ToolCallRecord(tool_name="search", args={"query": "payments"}),
            ToolCallRecord(tool_name="fetch", args={"resource_id": "OrderCreated"}),
        ]
        assert recorder.statuses[0] in SEARCHING_MESSAGES
        assert recorder.statuses[1:] == [
            "Querying EventCatalog: search",
            "Querying EventCatalog: search, fetch",
            GENERATING_MESSAGE,
        ]

    @pytest.mark.asyncio
    async def test_no_tools_used(self):
        """Test that a direct answer reports no tool calls."""
        options = _options([AIMessage(content="Hello there")])
        recorder = StatusRecorder()

        response = await run_agent("hi", options, on_status=recorder)

        assert response.text == "Hello there"
        assert response.tool_calls is None
        assert len(recorder.statuses) == 2
        assert recorder.statuses[-1] == GENERATING_MESSAGE

    @pytest.mark.asyncio
    async def test_stops_at_max_steps(self):
        """Test that the loop ends after max_steps model calls even if more tools are wanted."""
        options = _options(
            [AIMessage(content="", tool_calls=[_tool_call("search", "call_1", query="orders")])],
            max_steps=1,
        )

        response = await run_agent("Find orders", options)

        assert response.text == ""
        assert response.tool_calls == [ToolCallRecord(tool_name="search", args={"query": "orders"})]

    @pytest.mark.asyncio
    async def test_works_without_status_callback(self):
        options = _options([AIMessage(content="Done")])
        response = await run_agent("hi", options)
        assert response.text == "Done"

    @pytest.mark.asyncio
    async def test_model_errors_propagate(self):
        """Test that model failures reach the caller."""
        options = _options([], model_cls=FailingModel)

        with pytest.raises(RuntimeError, match="model unavailable"):
            await run_agent("hi", options)


class TestMessageBuilding:
    """Tests for assembling the model input."""

    def test_system_prompt_history_then_question(self):
        history = [
            ConversationMessage(role="user", content="What is OrderCreated?"),
            ConversationMessage(role="assistant", content="An event."),
        ]

        messages = _build_messages("Who consumes it?", "https://catalog.example.com", history)

        assert isinstance(messages[0], SystemMessage)
        assert "https://catalog.example.com/docs/events/{eventName}" in messages[0].content
        assert isinstance(messages[1], HumanMessage)
        assert isinstance(messages[2], AIMessage)
        assert messages[2].content == "An event."
        assert isinstance(messages[3], HumanMessage)
        assert messages[3].content == "Who consumes it?"

    def test_message_text_joins_text_blocks(self):
        """Test that list content keeps only text blocks."""
        message = AIMessage(
            content=[
                {"type": "text", "text": "Part one. "},
                {"type": "tool_use", "id": "x", "name": "search", "input": {}},
                {"type": "text", "text": "Part two."},
            ]
        )
        assert _message_text(message) == "Part one. Part two."

    def test_message_text_none(self):
        assert _message_text(None) == ""

    def test_recursion_limit_covers_steps(self):
        assert recursion_limit(5) == 12
