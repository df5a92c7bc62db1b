"""Slack Web API client with rate limiting and error handling."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import httpx
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from eventcatalog_bot.models.slack import ThreadMessage
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)


class SlackAPIError(Exception):
    """A Slack Web API call failed or returned ``ok: false``."""

    def __init__(self, method: str, error: str, status_code: int | None = None):
        super().__init__(f"Slack API {method} failed: {error}")
        self.method = method
        self.error = error
        self.status_code = status_code


@dataclass
class SlackClientConfig:
    """Configuration for the Slack Web API client."""

    base_url: str = "https://slack.com/api"
    timeout: float = 20.0
    max_retries: int = 3
    retry_delay: float = 1.0

    # Tier 3 methods (chat.update, conversations.replies) allow ~50/minute
    calls_per_minute: int = 50

    # conversations.replies pagination
    replies_page_size: int = 200
    max_reply_pages: int = 5


class SlackRateLimiter:
    """Moving-window limiter keyed by API method and channel."""

    def __init__(self, calls_per_minute: int = 50):
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)
        self.limit = parse(f"{calls_per_minute}/minute")

    async def wait(self, identifier: str) -> None:
        """Block until a call for ``identifier`` fits in the window."""
        while not self.limiter.hit(self.limit, identifier):
            window_stats = self.limiter.get_window_stats(self.limit, identifier)
            wait_time = max(0.0, window_stats.reset_time - time.time()) if window_stats else 1.0
            logger.warning(f"Slack rate limit reached for {identifier}, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time or 0.1)


class SlackClient:
    """Thin async wrapper over the Slack Web API methods the bot needs."""

    def __init__(
        self,
        token: str,
        config: SlackClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize Slack client.

        Args:
            token: Bot token (``xoxb-...``)
            config: Client configuration
            http_client: Optional pre-configured HTTP client
        """
        if not token:
            raise ValueError("SLACK_BOT_TOKEN is required")

        self.config = config or SlackClientConfig()
        self.http = http_client or httpx.AsyncClient(timeout=self.config.timeout)
        self.rate_limiter = SlackRateLimiter(self.config.calls_per_minute)
        self._headers = {"Authorization": f"Bearer {token}"}

    async def post_message(
        self, channel: str, text: str, thread_ts: str | None = None, **options: Any
    ) -> str:
        """Post a message and return its ``ts``.

        Args:
            channel: Channel id
            text: Message text in Slack mrkdwn
            thread_ts: Thread root to reply under
            **options: Extra ``chat.postMessage`` fields such as ``icon_url`` or ``username``
        """
        payload: dict[str, Any] = {"channel": channel, "text": text, **options}
        if thread_ts:
            payload["thread_ts"] = thread_ts

        data = await self._call("chat.postMessage", json=payload, identifier=f"chat.postMessage:{channel}")
        ts = data.get("ts")
        if not ts:
            raise SlackAPIError("chat.postMessage", "missing_ts")
        return str(ts)

    async def update_message(self, channel: str, ts: str, text: str) -> None:
        """Replace the text of an existing message."""
        await self._call(
            "chat.update",
            json={"channel": channel, "ts": ts, "text": text},
            identifier=f"chat.update:{channel}",
        )

    async def fetch_thread_replies(self, channel: str, thread_ts: str, limit: int = 20) -> list[ThreadMessage]:
        """Fetch the most recent ``limit`` messages of a thread, oldest first.

        Slack pages replies oldest first, so this follows cursors up to
        ``max_reply_pages`` and keeps the tail.
        """
        messages: list[ThreadMessage] = []
        cursor: str | None = None

        for _ in range(self.config.max_reply_pages):
            params: dict[str, Any] = {
                "channel": channel,
                "ts": thread_ts,
                "limit": self.config.replies_page_size,
            }
            if cursor:
                params["cursor"] = cursor

            data = await self._call("conversations.replies", params=params, identifier=f"replies:{channel}")
            messages.extend(ThreadMessage.model_validate(m) for m in data.get("messages") or [])

            cursor = (data.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor or not data.get("has_more", True):
                break
        else:
            logger.warning(f"Thread {thread_ts} has more than {self.config.max_reply_pages} pages of replies")

        return messages[-limit:] if limit > 0 else []

    async def auth_test(self) -> str:
        """Return the user id of the bot token's identity."""
        data = await self._call("auth.test", params={}, identifier="auth.test")
        return str(data.get("user_id") or "")

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _call(
        self,
        method: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        identifier: str | None = None,
    ) -> dict[str, Any]:
        """Call a Web API method, POSTing ``json`` or GETting with ``params``.

        Raises:
            SlackAPIError: On HTTP failure after retries, or when Slack answers ``ok: false``
        """
        await self.rate_limiter.wait(identifier or method)
        url = f"{self.config.base_url}/{method}"

        logger.debug(f"Calling Slack {method}")
        response = await self._request_with_retries(
            method,
            lambda: (
                self.http.post(url, headers=self._headers, json=json)
                if json is not None
                else self.http.get(url, headers=self._headers, params=params or {})
            ),
        )

        try:
            data = response.json()
        except ValueError as e:
            raise SlackAPIError(method, "invalid_response", response.status_code) from e

        if not isinstance(data, dict):
            raise SlackAPIError(method, "invalid_response", response.status_code)
        if not data.get("ok"):
            raise SlackAPIError(method, str(data.get("error") or "unknown_error"), response.status_code)
        return data

    async def _request_with_retries(self, method: str, send) -> httpx.Response:
        """Execute a Slack request, retrying rate limits, server errors and transport errors."""
        for attempt in range(self.config.max_retries):
            last_attempt = attempt == self.config.max_retries - 1
            try:
                response = await send()
            except httpx.TransportError as e:
                if not last_attempt:
                    logger.warning(f"Slack {method} transport error ({e}), retrying")
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise SlackAPIError(method, "request_failed") from e

            if response.status_code == 429:
                retry_after = int(response.headers.get("retry-after", 1))
                if retry_after < 60 and not last_attempt:
                    logger.warning(f"Slack {method} rate limited, retrying after {retry_after}s")
                    await asyncio.sleep(retry_after)
                    continue
                raise SlackAPIError(method, "ratelimited", 429)

            if response.status_code >= 500:
                if not last_attempt:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise SlackAPIError(method, f"http_{response.status_code}", response.status_code)

            return response

        raise SlackAPIError(method, f"failed after {self.config.max_retries} attempts")
