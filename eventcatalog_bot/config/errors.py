"""Configuration errors."""


class ConfigError(Exception):
    """Raised when the config file is missing, unreadable or invalid."""


class EnvironmentConfigError(ConfigError):
    """Raised when required environment variables are missing."""
