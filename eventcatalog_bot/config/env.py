"""Environment variable validation."""

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from eventcatalog_bot.config.errors import EnvironmentConfigError
from eventcatalog_bot.config.schema import AIProvider

PROVIDER_KEYS: dict[AIProvider, str] = {
    AIProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    AIProvider.OPENAI: "OPENAI_API_KEY",
    AIProvider.GOOGLE: "GOOGLE_API_KEY",
}


class BotEnvironment(BaseModel):
    """Secrets and tokens read from the process environment."""

    model_config = ConfigDict(extra="ignore")

    SLACK_BOT_TOKEN: str = Field(..., min_length=1)
    SLACK_SIGNING_SECRET: str = Field(..., min_length=1)
    ANTHROPIC_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    GOOGLE_API_KEY: str | None = None

    def api_key(self, provider: AIProvider) -> str | None:
        """API key for the given provider, if set."""
        return getattr(self, PROVIDER_KEYS[provider])


def validate_env(provider: AIProvider, environ: Mapping[str, str] | None = None) -> BotEnvironment:
    """Validate required environment variables for Slack and the chosen provider.

    Args:
        provider: Model provider the bot is configured to use
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        Parsed environment

    Raises:
        EnvironmentConfigError: If a Slack variable or the provider key is missing
    """
    source = dict(os.environ if environ is None else environ)
    # Empty strings count as missing
    source = {key: value for key, value in source.items() if value}

    try:
        env = BotEnvironment.model_validate(source)
    except ValidationError as e:
        problems = [f"  - {'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise EnvironmentConfigError("Missing or invalid environment variables:\n" + "\n".join(problems)) from e

    require_provider_key(provider, source)
    return env


def require_provider_key(provider: AIProvider, environ: Mapping[str, str] | None = None) -> str:
    """Return the provider's API key without requiring the Slack variables.

    Raises:
        EnvironmentConfigError: If the key is not set
    """
    source = os.environ if environ is None else environ
    key_name = PROVIDER_KEYS[provider]
    value = source.get(key_name)
    if not value:
        raise EnvironmentConfigError(f'Missing API key for provider "{provider}": {key_name} is required')
    return value
