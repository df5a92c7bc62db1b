"""MCP client for the EventCatalog tool endpoint."""

from contextlib import AsyncExitStack

from langchain_core.tools import BaseTool
from langchain_mcp_adapters.tools import load_mcp_tools
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.streamable_http import streamablehttp_client

from eventcatalog_bot.config.schema import EventCatalogConfig
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)

_CONNECTION_REFUSED_MARKERS = ("connection refused", "connecterror", "connection closed", "all connection attempts failed")


class MCPConnectionError(Exception):
    """The catalog's MCP endpoint could not be reached."""

    def __init__(self, message: str, url: str, cause: BaseException | None = None):
        super().__init__(message)
        self.url = url
        self.cause = cause


def _is_connection_refused(error: BaseException) -> bool:
    text = f"{type(error).__name__} {error}".lower()
    if any(marker in text for marker in _CONNECTION_REFUSED_MARKERS):
        return True
    # anyio task groups wrap transport failures in an ExceptionGroup
    if isinstance(error, BaseExceptionGroup):
        return any(_is_connection_refused(inner) for inner in error.exceptions)
    return False


class CatalogToolProvider:
    """Holds one MCP session open for the life of the process and exposes its tools."""

    def __init__(self, config: EventCatalogConfig):
        self.config = config
        self.url = config.mcp_url
        self._stack: AsyncExitStack | None = None
        self._tools: dict[str, BaseTool] = {}

    @property
    def connected(self) -> bool:
        return self._stack is not None

    async def connect(self) -> dict[str, BaseTool]:
        """Open the MCP session and load the tool list once.

        Raises:
            MCPConnectionError: If the catalog is unreachable
        """
        logger.info(f"Connecting to EventCatalog MCP at {self.url} ({self.config.transport})")
        stack = AsyncExitStack()
        headers = self.config.headers or None

        try:
            if self.config.transport == "sse":
                read, write = await stack.enter_async_context(sse_client(self.url, headers=headers))
            else:
                read, write, _ = await stack.enter_async_context(streamablehttp_client(self.url, headers=headers))

            session = await stack.enter_async_context(ClientSession(read, write))
            await session.initialize()
            tools = await load_mcp_tools(session)
        except BaseException as e:
            await stack.aclose()
            if isinstance(e, Exception | BaseExceptionGroup) and _is_connection_refused(e):
                base = self.config.base_url
                raise MCPConnectionError(
                    f"Could not connect to EventCatalog at {base}\n\n"
                    "Please check:\n"
                    f"  1. EventCatalog is running at {base}\n"
                    "  2. MCP is enabled in your EventCatalog configuration\n"
                    "  3. The URL is correct in eventcatalog-bot.config.json",
                    self.url,
                    e,
                ) from e
            raise

        self._stack = stack
        self._tools = {tool.name: tool for tool in tools}
        logger.info(f"MCP client connected with {len(self._tools)} tools")
        return self._tools

    def list_tools(self) -> dict[str, BaseTool]:
        """Tools discovered at connect time, keyed by name."""
        if not self.connected:
            raise RuntimeError("MCP client is not connected")
        return dict(self._tools)

    async def close(self) -> None:
        """Close the MCP session. Safe to call more than once."""
        if self._stack is None:
            return
        stack, self._stack = self._stack, None
        self._tools = {}
        await stack.aclose()
        logger.info("MCP client closed")
