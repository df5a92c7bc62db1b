"""Rebuild conversation history from a Slack thread."""

import re

from eventcatalog_bot.clients.slack import SlackClient
from eventcatalog_bot.models.messages import ConversationMessage
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)

MENTION_PATTERN = re.compile(r"<@[A-Z0-9]+>")

DEFAULT_MAX_MESSAGES = 20


def strip_mentions(text: str | None) -> str:
    """Remove ``<@U123>`` mention tokens and surrounding whitespace."""
    return MENTION_PATTERN.sub("", text or "").strip()


async def get_thread_history(
    slack: SlackClient,
    channel: str,
    thread_ts: str,
    current_ts: str,
    bot_user_id: str | None = None,
    max_messages: int = DEFAULT_MAX_MESSAGES,
) -> list[ConversationMessage]:
    """Fetch prior messages of a thread as role-tagged history, oldest first.

    The message being answered is left out. Failures are logged and produce
    an empty history so the answer can still go out.

    Args:
        slack: Slack Web API client
        channel: Channel id
        thread_ts: Thread root ts
        current_ts: ts of the message being answered
        bot_user_id: The bot's own user id, if known
        max_messages: How many recent thread messages to consider

    Returns:
        Conversation messages in thread order
    """
    try:
        replies = await slack.fetch_thread_replies(channel, thread_ts, limit=max_messages)
    except Exception as e:
        logger.warning(f"Failed to fetch thread history for {channel}/{thread_ts}: {e}")
        return []

    history: list[ConversationMessage] = []
    for reply in replies:
        if reply.ts == current_ts:
            continue

        content = strip_mentions(reply.text)
        if not content:
            continue

        from_bot = bool(reply.bot_id) or (bool(bot_user_id) and reply.user == bot_user_id)
        history.append(ConversationMessage(role="assistant" if from_bot else "user", content=content))

    logger.debug(f"Rebuilt {len(history)} history messages from thread {thread_ts}")
    return history
