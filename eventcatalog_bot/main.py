"""Main FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from eventcatalog_bot import __version__
from eventcatalog_bot.api.endpoints import router
from eventcatalog_bot.clients.llm import create_chat_model
from eventcatalog_bot.clients.mcp import CatalogToolProvider
from eventcatalog_bot.clients.slack import SlackClient, SlackClientConfig
from eventcatalog_bot.config.env import BotEnvironment
from eventcatalog_bot.config.schema import BotConfig
from eventcatalog_bot.services.agent import AgentOptions
from eventcatalog_bot.services.responder import ResponsePipeline
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)


def build_slack_client(config: BotConfig, env: BotEnvironment) -> SlackClient:
    """Create the Slack Web API client with the configured reply paging cap."""
    return SlackClient(env.SLACK_BOT_TOKEN, config=SlackClientConfig(max_reply_pages=config.slack.max_reply_pages))


def build_agent_options(config: BotConfig, env: BotEnvironment, tool_provider: CatalogToolProvider) -> AgentOptions:
    """Assemble agent options from config, creating the chat model."""
    return AgentOptions(
        model=create_chat_model(config.ai, env.api_key(config.ai.provider)),
        tool_provider=tool_provider,
        catalog_url=config.event_catalog.base_url,
        max_steps=config.ai.max_steps,
        temperature=config.ai.temperature,
    )


def create_app(
    config: BotConfig,
    env: BotEnvironment,
    pipeline: ResponsePipeline | None = None,
    tool_provider: CatalogToolProvider | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Without a ready ``pipeline`` the app connects to the catalog, builds the
    model and Slack client on startup and closes them on shutdown.

    Args:
        config: Validated bot configuration
        env: Validated environment
        pipeline: Pre-built response pipeline
        tool_provider: Tool provider backing ``pipeline``, reported by ``/health``

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.pipeline is not None:
            yield
            return

        provider = CatalogToolProvider(config.event_catalog)
        await provider.connect()
        slack = build_slack_client(config, env)

        app.state.tool_provider = provider
        app.state.pipeline = ResponsePipeline(
            slack,
            build_agent_options(config, env, provider),
            slack_config=config.slack,
        )
        if config.slack.auto_reply_channels:
            logger.info(f"Auto-reply enabled for channels: {', '.join(config.slack.auto_reply_channels)}")
        logger.info("EventCatalog bot is ready")

        try:
            yield
        finally:
            logger.info("Shutting down")
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"Error closing MCP client: {e}")
            await slack.aclose()

    app = FastAPI(
        title="EventCatalog Slack Bot",
        description="Answers Slack questions about an EventCatalog using a tool-calling assistant.",
        version=__version__,
        lifespan=lifespan,
        tags_metadata=[
            {
                "name": "Slack",
                "description": "Slack Events API callbacks.",
            },
            {
                "name": "Health",
                "description": "Service health monitoring and status checks.",
            },
        ],
    )

    app.state.signing_secret = env.SLACK_SIGNING_SECRET
    app.state.pipeline = pipeline
    app.state.tool_provider = tool_provider

    app.include_router(router)
    return app
