"""API endpoints for the Slack bot."""

import hashlib
import hmac
import json
import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from pydantic import ValidationError

from eventcatalog_bot import __version__
from eventcatalog_bot.models.api import EventAck, HealthResponse
from eventcatalog_bot.models.slack import SlackEvent
from eventcatalog_bot.services.responder import ResponsePipeline
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Slack signs requests with a timestamp; anything older is treated as a replay
MAX_REQUEST_AGE_SECONDS = 60 * 5


def verify_slack_signature(
    secret: str,
    body: bytes,
    timestamp: str | None,
    signature: str | None,
    now: float | None = None,
) -> None:
    """Check a request against Slack's v0 HMAC-SHA256 signing scheme.

    Raises:
        HTTPException: 401 when headers are missing, stale or do not match
    """
    ts = (timestamp or "").strip()
    sig = (signature or "").strip()
    if not ts or not sig:
        logger.warning("Slack request rejected: missing signature headers")
        raise HTTPException(status_code=401, detail="Invalid Slack signature")

    try:
        ts_i = int(ts)
    except ValueError:
        logger.warning(f"Slack request rejected: invalid timestamp {ts!r}")
        raise HTTPException(status_code=401, detail="Invalid Slack signature") from None

    current = time.time() if now is None else now
    if abs(current - ts_i) > MAX_REQUEST_AGE_SECONDS:
        logger.warning(f"Slack request rejected: stale timestamp {ts_i}")
        raise HTTPException(status_code=401, detail="Invalid Slack signature")

    base = b"v0:" + ts.encode("utf-8") + b":" + body
    expected = "v0=" + hmac.new(secret.encode("utf-8"), base, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, sig):
        logger.warning("Slack request rejected: signature mismatch")
        raise HTTPException(status_code=401, detail="Invalid Slack signature")


async def _dispatch(pipeline: ResponsePipeline, event: SlackEvent) -> None:
    """Run the pipeline for one event; failures end here."""
    try:
        if event.type == "app_mention":
            await pipeline.handle_mention(event)
        else:
            await pipeline.handle_message(event)
    except Exception as e:
        logger.error(f"Failed to handle Slack {event.type} event {event.ts}: {e}", exc_info=True)


@router.post("/slack/events", tags=["Slack"])
async def slack_events(request: Request, background_tasks: BackgroundTasks) -> dict[str, Any]:
    """Receive Events API callbacks, acknowledge at once and answer in the background."""
    body = await request.body()
    verify_slack_signature(
        request.app.state.signing_secret,
        body,
        timestamp=request.headers.get("X-Slack-Request-Timestamp"),
        signature=request.headers.get("X-Slack-Signature"),
    )

    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    # Slack redelivers when an ack is slow; the first delivery is already being handled
    retry_num = request.headers.get("X-Slack-Retry-Num")
    if retry_num:
        logger.info(
            f"Ignoring Slack retry #{retry_num} ({request.headers.get('X-Slack-Retry-Reason') or 'unknown reason'})"
        )
        return EventAck().model_dump()

    if payload.get("type") != "event_callback":
        logger.debug(f"Ignoring Slack payload of type {payload.get('type')}")
        return EventAck().model_dump()

    raw_event = payload.get("event") or {}
    if raw_event.get("type") not in ("app_mention", "message"):
        logger.debug(f"Ignoring Slack event type {raw_event.get('type')}")
        return EventAck().model_dump()

    try:
        event = SlackEvent.model_validate(raw_event)
    except ValidationError as e:
        logger.debug(f"Ignoring unparseable Slack {raw_event.get('type')} event: {e}")
        return EventAck().model_dump()

    background_tasks.add_task(_dispatch, request.app.state.pipeline, event)
    return EventAck().model_dump()


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint."""
    tool_provider = getattr(request.app.state, "tool_provider", None)
    tools = len(tool_provider.list_tools()) if tool_provider is not None and tool_provider.connected else 0
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
        tools=tools,
    )
