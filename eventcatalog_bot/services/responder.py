"""Response pipeline: turns a Slack event into a threaded answer."""

import asyncio
from functools import partial

from eventcatalog_bot.clients.slack import SlackClient
from eventcatalog_bot.config.schema import SlackConfig
from eventcatalog_bot.formatters.slack_markup import markdown_to_slack
from eventcatalog_bot.models.messages import AgentResponse
from eventcatalog_bot.models.slack import ExchangeState, PendingExchange, SlackEvent
from eventcatalog_bot.services.agent import AgentOptions, run_agent
from eventcatalog_bot.services.thread_history import get_thread_history, strip_mentions
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_TEXT = "_Processing request..._"
GREETING_TEXT = (
    "Hi! I'm your EventCatalog assistant. Ask me about events, services, domains, "
    "or any other resources in your catalog."
)
EMPTY_ANSWER_TEXT = (
    "I found information in your catalog but couldn't generate a response. Please try rephrasing your question."
)
MENTION_ERROR_TEXT = "Sorry, I encountered an error while processing your request. Please try again."
MESSAGE_ERROR_TEXT = "Sorry, I encountered an error while processing your message. Please try again."
TRUNCATION_NOTICE = "\n\n_...response truncated due to length_"

# Slack rejects messages over ~40k characters
MAX_MESSAGE_LENGTH = 39000

# Subtypes that still carry a human-written top-level message
_ANSWERABLE_SUBTYPES = {None, "file_share"}


def format_status(status: str) -> str:
    return f"_{status}_"


def format_response(response: AgentResponse, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Render an agent answer as a Slack message.

    Empty answers become a fixed fallback that is sent as-is. Otherwise the
    markdown is converted, a footer naming the tools used is appended and the
    result is cut to ``max_length`` with a truncation notice.

    Args:
        response: Agent result
        max_length: Maximum length before truncation

    Returns:
        Slack mrkdwn text
    """
    if not response.text or not response.text.strip():
        logger.warning("Empty response from agent, sending fallback message")
        return EMPTY_ANSWER_TEXT

    message = markdown_to_slack(response.text)

    tool_names = response.tool_names()
    if tool_names:
        message += f"\n\n_Tools used: {', '.join(tool_names)}_"

    if len(message) > max_length:
        logger.warning(f"Response truncated from {len(message)} to {max_length} characters")
        message = message[:max_length] + TRUNCATION_NOTICE

    return message


class BotIdentity:
    """The bot's own Slack user id, looked up once per process.

    A failed lookup is remembered as ``""`` (unknown), after which only
    ``bot_id`` marks messages as the bot's.
    """

    def __init__(self, slack: SlackClient):
        self.slack = slack
        self._user_id: str | None = None
        self._lock = asyncio.Lock()

    async def user_id(self) -> str:
        if self._user_id is not None:
            return self._user_id

        async with self._lock:
            if self._user_id is None:
                try:
                    self._user_id = await self.slack.auth_test()
                    logger.info(f"Resolved bot user id {self._user_id}")
                except Exception as e:
                    logger.warning(f"Could not resolve bot user id: {e}")
                    self._user_id = ""
        return self._user_id


class ResponsePipeline:
    """Answers Slack mentions and auto-reply channel messages.

    Each request posts a placeholder, streams agent status into it, then
    replaces it with the final answer. Errors during answering are reported
    to the user in the same thread and never raised to the caller; only a
    failing final post propagates.
    """

    def __init__(
        self,
        slack: SlackClient,
        agent_options: AgentOptions,
        slack_config: SlackConfig | None = None,
        identity: BotIdentity | None = None,
    ):
        self.slack = slack
        self.agent_options = agent_options
        self.slack_config = slack_config or SlackConfig()
        self.identity = identity or BotIdentity(slack)
        self.message_options = self.slack_config.message_options()

    async def handle_mention(self, event: SlackEvent) -> PendingExchange:
        """Answer an ``app_mention`` in the thread it belongs to."""
        exchange = PendingExchange(
            channel=event.channel,
            message_ts=event.ts,
            thread_ts=event.thread_ts or event.ts,
        )
        bot_user_id = await self.identity.user_id()

        question = strip_mentions(event.text)
        if not question:
            await self._post(exchange, GREETING_TEXT)
            exchange.state = ExchangeState.GREETED
            return exchange

        logger.info(f"[{exchange.exchange_id}] Received mention in {event.channel}: {question!r}")

        return await self._answer(
            exchange,
            question,
            error_text=MENTION_ERROR_TEXT,
            in_thread=bool(event.thread_ts),
            bot_user_id=bot_user_id,
        )

    async def handle_message(self, event: SlackEvent) -> PendingExchange | None:
        """Answer a top-level message in an auto-reply channel.

        Returns:
            The exchange, or ``None`` when the message is not for the bot
        """
        if not self.should_auto_reply(event):
            return None

        question = (event.text or "").strip()
        if not question:
            return None

        # Mentions are answered by the mention handler
        bot_user_id = await self.identity.user_id()
        if bot_user_id and f"<@{bot_user_id}>" in question:
            logger.debug(f"Skipping auto-reply for message {event.ts} that mentions the bot")
            return None

        exchange = PendingExchange(channel=event.channel, message_ts=event.ts, thread_ts=event.ts)
        logger.info(f"[{exchange.exchange_id}] Auto-reply message in {event.channel}: {question!r}")

        return await self._answer(exchange, question, error_text=MESSAGE_ERROR_TEXT)

    def should_auto_reply(self, event: SlackEvent) -> bool:
        """Whether a channel message qualifies for an automatic answer."""
        if event.is_bot:
            return False
        if event.subtype not in _ANSWERABLE_SUBTYPES:
            return False
        if event.channel not in self.slack_config.auto_reply_channels:
            return False
        return not event.is_thread_reply

    async def _answer(
        self,
        exchange: PendingExchange,
        question: str,
        error_text: str,
        in_thread: bool = False,
        bot_user_id: str | None = None,
    ) -> PendingExchange:
        exchange.state = ExchangeState.PLACEHOLDER_POSTING
        exchange.placeholder_ts = await self._post_placeholder(exchange)

        try:
            exchange.state = ExchangeState.ANSWERING
            history = None
            if in_thread:
                history = await get_thread_history(
                    self.slack,
                    exchange.channel,
                    exchange.thread_ts,
                    exchange.message_ts,
                    bot_user_id=bot_user_id,
                )
                if history:
                    logger.info(f"[{exchange.exchange_id}] Found {len(history)} messages in thread")

            response = await run_agent(
                question,
                self.agent_options,
                history=history,
                on_status=partial(self._update_status, exchange),
            )
            if response.tool_calls:
                logger.info(f"[{exchange.exchange_id}] Tool calls: {', '.join(response.tool_names())}")

            exchange.state = ExchangeState.FORMATTING
            message = format_response(response)
        except Exception as e:
            logger.error(f"[{exchange.exchange_id}] Error answering message: {e}", exc_info=True)
            exchange.state = ExchangeState.FAILED
            await self._deliver(exchange, error_text)
            return exchange

        logger.debug(f"[{exchange.exchange_id}] Response length: {len(message)} characters")
        exchange.state = ExchangeState.DELIVERING
        exchange.state = await self._deliver(exchange, message)
        logger.info(f"[{exchange.exchange_id}] Response sent ({exchange.state}) in {exchange.elapsed_seconds:.1f}s")
        return exchange

    async def _post(self, exchange: PendingExchange, text: str) -> str:
        return await self.slack.post_message(
            exchange.channel, text, thread_ts=exchange.thread_ts, **self.message_options
        )

    async def _post_placeholder(self, exchange: PendingExchange) -> str | None:
        try:
            return await self._post(exchange, PLACEHOLDER_TEXT)
        except Exception as e:
            logger.warning(f"[{exchange.exchange_id}] Could not post placeholder, continuing without: {e}")
            return None

    async def _update_status(self, exchange: PendingExchange, status: str) -> None:
        if not exchange.has_placeholder:
            return
        try:
            await self.slack.update_message(exchange.channel, exchange.placeholder_ts, format_status(status))
        except Exception as e:
            logger.debug(f"[{exchange.exchange_id}] Status update failed: {e}")

    async def _deliver(self, exchange: PendingExchange, text: str) -> ExchangeState:
        """Replace the placeholder with ``text``, posting a new message if that fails."""
        if not exchange.has_placeholder:
            await self._post(exchange, text)
            return ExchangeState.DELIVERED

        try:
            await self.slack.update_message(exchange.channel, exchange.placeholder_ts, text)
            return ExchangeState.DELIVERED
        except Exception as e:
            logger.warning(f"[{exchange.exchange_id}] Failed to update placeholder, posting new message: {e}")

        await self._post(exchange, text)
        return ExchangeState.DELIVERED_VIA_FALLBACK
