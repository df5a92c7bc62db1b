"""HTTP response models."""

from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
    tools: int = 0


class EventAck(BaseModel):
    """Acknowledgement returned to Slack for every accepted delivery."""

    ok: bool = True
