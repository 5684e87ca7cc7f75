"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, require_env_vars
from .errors import ConfigurationError, InvalidConfigurationError, MissingConfigurationError
from .logging import configure_logging, level_from_name
from .providers import (
    ProviderEndpointConfig,
    RateLimit,
    get_provider_configs,
    require_provider_config,
)
from .reconciliation import (
    get_confidence_config,
    get_merge_config,
    get_migration_config,
    get_resolver_config,
    parse_strategy,
)
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "ProviderEndpointConfig",
    "RateLimit",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "get_confidence_config",
    "get_database_config",
    "get_database_uri",
    "get_merge_config",
    "get_migration_config",
    "get_provider_configs",
    "get_resolver_config",
    "get_storage_config",
    "level_from_name",
    "parse_strategy",
    "require_env_vars",
    "require_provider_config",
]
