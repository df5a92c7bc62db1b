"""Slack wire models and per-request exchange state."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from cuid2 import cuid_wrapper
from pydantic import BaseModel, ConfigDict

cuid = cuid_wrapper()


class SlackEvent(BaseModel):
    """Inner ``event`` object of an Events API callback."""

    model_config = ConfigDict(extra="ignore")

    type: str
    channel: str
    ts: str
    text: str | None = None
    thread_ts: str | None = None
    user: str | None = None
    bot_id: str | None = None
    subtype: str | None = None

    @property
    def is_bot(self) -> bool:
        """Whether the event was produced by a bot (including this one)."""
        return bool(self.bot_id) or self.subtype == "bot_message"

    @property
    def is_thread_reply(self) -> bool:
        """Whether the event is a reply inside an existing thread."""
        return bool(self.thread_ts) and self.thread_ts != self.ts


class ThreadMessage(BaseModel):
    """A message as returned by ``conversations.replies``."""

    model_config = ConfigDict(extra="ignore")

    text: str | None = None
    user: str | None = None
    bot_id: str | None = None
    ts: str | None = None


class ExchangeState(StrEnum):
    """Lifecycle of a single inbound request."""

    RECEIVED = "received"
    PLACEHOLDER_POSTING = "placeholder_posting"
    ANSWERING = "answering"
    FORMATTING = "formatting"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    DELIVERED_VIA_FALLBACK = "delivered_via_fallback"
    FAILED = "failed"
    GREETED = "greeted"


@dataclass
class PendingExchange:
    """Correlates an inbound message with the placeholder posted for it."""

    channel: str
    message_ts: str
    thread_ts: str
    placeholder_ts: str | None = None
    state: ExchangeState = ExchangeState.RECEIVED
    exchange_id: str = field(default_factory=cuid)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def has_placeholder(self) -> bool:
        return self.placeholder_ts is not None

    @property
    def elapsed_seconds(self) -> float:
        """Seconds since the exchange was received."""
        return (datetime.now(UTC) - self.started_at).total_seconds()
