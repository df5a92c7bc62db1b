"""Bot configuration schema."""

from enum import StrEnum
from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator


class AIProvider(StrEnum):
    """Supported model providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"


DEFAULT_MODELS: dict[AIProvider, str] = {
    AIProvider.ANTHROPIC: "claude-sonnet-4-20250514",
    AIProvider.OPENAI: "gpt-4o",
    AIProvider.GOOGLE: "gemini-2.0-flash",
}


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class EventCatalogConfig(_ConfigModel):
    """Where the catalog lives and how to reach its MCP endpoint."""

    url: AnyHttpUrl
    headers: dict[str, str] | None = None
    transport: Literal["streamable_http", "sse"] = "streamable_http"

    @property
    def base_url(self) -> str:
        """Catalog URL without a trailing slash."""
        return str(self.url).rstrip("/")

    @property
    def mcp_url(self) -> str:
        return f"{self.base_url}/docs/mcp"


class AIConfig(_ConfigModel):
    """Model selection and sampling settings."""

    provider: AIProvider = AIProvider.ANTHROPIC
    model: str | None = None
    max_steps: int = Field(default=5, ge=1, le=20, alias="maxSteps")
    temperature: float = Field(default=0.4, ge=0, le=2)

    @property
    def model_id(self) -> str:
        """Configured model, or the provider default."""
        return self.model or DEFAULT_MODELS[self.provider]


class SlackConfig(_ConfigModel):
    """Slack posting behaviour."""

    auto_reply_channels: list[str] = Field(default_factory=list, alias="autoReplyChannels")
    max_reply_pages: int = Field(default=5, ge=1, le=20, alias="maxReplyPages")
    icon: AnyHttpUrl | None = None
    username: str | None = None

    @field_validator("auto_reply_channels")
    @classmethod
    def strip_channels(cls, v: list[str]) -> list[str]:
        """Drop blank channel ids."""
        return [channel.strip() for channel in v if channel.strip()]

    def message_options(self) -> dict[str, str]:
        """Extra ``chat.postMessage`` arguments for icon and username overrides."""
        options: dict[str, str] = {}
        if self.icon:
            options["icon_url"] = str(self.icon)
        if self.username:
            options["username"] = self.username
        return options


class BotConfig(_ConfigModel):
    """Complete bot configuration."""

    event_catalog: EventCatalogConfig = Field(alias="eventCatalog")
    ai: AIConfig = Field(default_factory=AIConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
