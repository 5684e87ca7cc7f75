"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values cannot be loaded."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""


class InvalidConfigurationError(ConfigurationError, ValueError):
    """Raised when a configured value is malformed or outside its allowed range."""
