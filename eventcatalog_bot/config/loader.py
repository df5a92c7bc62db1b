"""Config file discovery and loading."""

import json
from pathlib import Path

from pydantic import ValidationError

from eventcatalog_bot.config.errors import ConfigError
from eventcatalog_bot.config.schema import BotConfig
from eventcatalog_bot.utils.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILES = ("eventcatalog-bot.config.json",)


def find_config_file(config_path: str | Path | None = None, cwd: Path | None = None) -> Path:
    """Resolve the config file to load.

    Args:
        config_path: Explicit path (relative paths resolve against ``cwd``)
        cwd: Directory to search, defaults to the current working directory

    Raises:
        ConfigError: If the explicit file does not exist or no default file is found
    """
    base = cwd or Path.cwd()

    if config_path:
        path = (base / config_path).resolve()
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        return path

    for name in CONFIG_FILES:
        candidate = base / name
        if candidate.exists():
            return candidate.resolve()

    raise ConfigError(f"No config file found. Create one of: {', '.join(CONFIG_FILES)}")


def parse_config(raw: object) -> BotConfig:
    """Validate a decoded config document.

    Raises:
        ConfigError: With one line per invalid field
    """
    try:
        return BotConfig.model_validate(raw)
    except ValidationError as e:
        problems = [f"  - {'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ConfigError("Invalid config:\n" + "\n".join(problems)) from e


def load_config(config_path: str | Path | None = None, cwd: Path | None = None) -> BotConfig:
    """Find, read and validate the bot configuration."""
    path = find_config_file(config_path, cwd)
    logger.info(f"Loading config from {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to load config file: {e}") from e

    return parse_config(raw)
