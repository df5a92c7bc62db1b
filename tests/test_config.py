"""Tests for config schema, environment validation and config loading."""

import json

import pytest

from eventcatalog_bot.config.env import BotEnvironment, require_provider_key, validate_env
from eventcatalog_bot.config.errors import ConfigError, EnvironmentConfigError
from eventcatalog_bot.config.loader import find_config_file, load_config, parse_config
from eventcatalog_bot.config.schema import DEFAULT_MODELS, AIProvider, BotConfig
from eventcatalog_bot.main import build_slack_client

MINIMAL = {"eventCatalog": {"url": "https://example.com"}}


def _config(**sections) -> dict:
    return {**MINIMAL, **sections}


class TestEventCatalogConfig:
    """Tests for the eventCatalog section."""

    def test_valid_url(self):
        config = BotConfig.model_validate({"eventCatalog": {"url": "https://eventcatalog.example.com"}})
        assert config.event_catalog.base_url == "https://eventcatalog.example.com"

    def test_rejects_invalid_url(self):
        with pytest.raises(ConfigError):
            parse_config({"eventCatalog": {"url": "not-a-url"}})

    def test_requires_event_catalog(self):
        with pytest.raises(ConfigError, match="eventCatalog"):
            parse_config({})

    def test_optional_headers(self):
        config = BotConfig.model_validate(
            {"eventCatalog": {"url": "https://example.com", "headers": {"Authorization": "Bearer token"}}}
        )
        assert config.event_catalog.headers == {"Authorization": "Bearer token"}

    def test_mcp_url_strips_trailing_slash(self):
        """Test that the MCP endpoint is derived from the catalog URL."""
        config = BotConfig.model_validate({"eventCatalog": {"url": "https://example.com/"}})
        assert config.event_catalog.mcp_url == "https://example.com/docs/mcp"

    def test_transport_defaults_to_streamable_http(self):
        config = BotConfig.model_validate(MINIMAL)
        assert config.event_catalog.transport == "streamable_http"


class TestAIConfig:
    """Tests for the ai section."""

    def test_defaults(self):
        config = BotConfig.model_validate(MINIMAL)
        assert config.ai.provider == AIProvider.ANTHROPIC
        assert config.ai.max_steps == 5
        assert config.ai.temperature == 0.4
        assert config.ai.model_id == DEFAULT_MODELS[AIProvider.ANTHROPIC]

    @pytest.mark.parametrize("provider", ["anthropic", "openai", "google"])
    def test_accepts_known_providers(self, provider):
        config = BotConfig.model_validate(_config(ai={"provider": provider}))
        assert config.ai.provider == provider

    def test_rejects_unknown_provider(self):
        with pytest.raises(ConfigError):
            parse_config(_config(ai={"provider": "invalid-provider"}))

    @pytest.mark.parametrize("max_steps", [0, 21])
    def test_max_steps_bounds(self, max_steps):
        with pytest.raises(ConfigError, match="maxSteps"):
            parse_config(_config(ai={"maxSteps": max_steps}))

    def test_max_steps_in_range(self):
        assert parse_config(_config(ai={"maxSteps": 10})).ai.max_steps == 10

    @pytest.mark.parametrize("temperature", [-0.1, 2.1])
    def test_temperature_bounds(self, temperature):
        with pytest.raises(ConfigError, match="temperature"):
            parse_config(_config(ai={"temperature": temperature}))

    def test_explicit_model_overrides_default(self):
        config = parse_config(_config(ai={"provider": "openai", "model": "gpt-4o-mini"}))
        assert config.ai.model_id == "gpt-4o-mini"

    def test_provider_default_model(self):
        assert parse_config(_config(ai={"provider": "google"})).ai.model_id == "gemini-2.0-flash"


class TestSlackConfig:
    """Tests for the slack section."""

    def test_defaults_to_no_auto_reply_channels(self):
        assert BotConfig.model_validate(MINIMAL).slack.auto_reply_channels == []

    def test_auto_reply_channels(self):
        config = parse_config(_config(slack={"autoReplyChannels": ["C123", "C456"]}))
        assert config.slack.auto_reply_channels == ["C123", "C456"]

    def test_icon_must_be_url(self):
        with pytest.raises(ConfigError):
            parse_config(_config(slack={"icon": "not-a-url"}))

    def test_message_options(self):
        """Test that icon and username become chat.postMessage overrides."""
        config = parse_config(_config(slack={"icon": "https://example.com/icon.png", "username": "Catalog"}))
        assert config.slack.message_options() == {
            "icon_url": "https://example.com/icon.png",
            "username": "Catalog",
        }

    def test_message_options_empty_by_default(self):
        assert BotConfig.model_validate(MINIMAL).slack.message_options() == {}

    def test_max_reply_pages_defaults_to_five(self):
        assert BotConfig.model_validate(MINIMAL).slack.max_reply_pages == 5

    def test_max_reply_pages(self):
        assert parse_config(_config(slack={"maxReplyPages": 2})).slack.max_reply_pages == 2

    @pytest.mark.parametrize("pages", [0, 21])
    def test_max_reply_pages_bounds(self, pages):
        with pytest.raises(ConfigError, match="maxReplyPages"):
            parse_config(_config(slack={"maxReplyPages": pages}))

    def test_slack_client_uses_max_reply_pages(self):
        """Test that the app's Slack client pages thread replies as configured."""
        config = parse_config(_config(slack={"maxReplyPages": 3}))
        env = BotEnvironment(SLACK_BOT_TOKEN="xoxb-test", SLACK_SIGNING_SECRET="secret")

        assert build_slack_client(config, env).config.max_reply_pages == 3


class TestEnvironment:
    """Tests for environment variable validation."""

    SLACK_ENV = {"SLACK_BOT_TOKEN": "xoxb-test", "SLACK_SIGNING_SECRET": "secret"}

    def test_valid_environment(self):
        env = validate_env(AIProvider.ANTHROPIC, {**self.SLACK_ENV, "ANTHROPIC_API_KEY": "sk-ant"})
        assert env.SLACK_BOT_TOKEN == "xoxb-test"
        assert env.api_key(AIProvider.ANTHROPIC) == "sk-ant"

    def test_missing_slack_token(self):
        with pytest.raises(EnvironmentConfigError, match="SLACK_BOT_TOKEN"):
            validate_env(AIProvider.ANTHROPIC, {"SLACK_SIGNING_SECRET": "secret", "ANTHROPIC_API_KEY": "sk-ant"})

    def test_empty_value_counts_as_missing(self):
        with pytest.raises(EnvironmentConfigError, match="SLACK_SIGNING_SECRET"):
            validate_env(
                AIProvider.ANTHROPIC,
                {"SLACK_BOT_TOKEN": "xoxb-test", "SLACK_SIGNING_SECRET": "", "ANTHROPIC_API_KEY": "sk-ant"},
            )

    @pytest.mark.parametrize(
        ("provider", "key"),
        [
            (AIProvider.ANTHROPIC, "ANTHROPIC_API_KEY"),
            (AIProvider.OPENAI, "OPENAI_API_KEY"),
            (AIProvider.GOOGLE, "GOOGLE_API_KEY"),
        ],
    )
    def test_missing_provider_key(self, provider, key):
        """Test that the error names the provider and the variable it needs."""
        with pytest.raises(EnvironmentConfigError) as exc_info:
            validate_env(provider, self.SLACK_ENV)
        assert str(exc_info.value) == f'Missing API key for provider "{provider}": {key} is required'

    def test_other_provider_key_is_not_enough(self):
        with pytest.raises(EnvironmentConfigError, match="OPENAI_API_KEY"):
            validate_env(AIProvider.OPENAI, {**self.SLACK_ENV, "ANTHROPIC_API_KEY": "sk-ant"})

    def test_require_provider_key_ignores_slack(self):
        assert require_provider_key(AIProvider.GOOGLE, {"GOOGLE_API_KEY": "g-key"}) == "g-key"


class TestLoader:
    """Tests for finding and loading the config file."""

    def test_loads_default_file(self, tmp_path):
        (tmp_path / "eventcatalog-bot.config.json").write_text(
            json.dumps({"eventCatalog": {"url": "http://localhost:3000"}, "ai": {"maxSteps": 3}})
        )
        config = load_config(cwd=tmp_path)
        assert config.event_catalog.base_url == "http://localhost:3000"
        assert config.ai.max_steps == 3

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps(MINIMAL))
        assert find_config_file("custom.json", cwd=tmp_path) == path.resolve()

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(ConfigError, match="Config file not found"):
            find_config_file("nope.json", cwd=tmp_path)

    def test_no_default_file(self, tmp_path):
        with pytest.raises(ConfigError, match="No config file found"):
            load_config(cwd=tmp_path)

    def test_invalid_json(self, tmp_path):
        (tmp_path / "eventcatalog-bot.config.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Failed to load config file"):
            load_config(cwd=tmp_path)

    def test_invalid_config_lists_fields(self, tmp_path):
        (tmp_path / "eventcatalog-bot.config.json").write_text(
            json.dumps({"eventCatalog": {"url": "https://example.com"}, "ai": {"maxSteps": 50}})
        )
        with pytest.raises(ConfigError, match=r"Invalid config:\n  - ai\.maxSteps"):
            load_config(cwd=tmp_path)
