"""設定管理モジュール。"""

from prpilot.config._inspection import ConfigInspection, build_inspection
from prpilot.config._loader import ConfigError, ConfigReader, JsonConfigReader
from prpilot.config._locator import CONFIG_ENV_VAR, ConfigSource, config_sources
from prpilot.config._providers import (
    CredentialResolution,
    ProviderResolution,
    Which,
    command_exists,
    resolve_host_token,
    resolve_provider_credential,
    resolve_provider_specs,
)
from prpilot.config._resolver import (
    BUILTIN_DEFAULTS,
    LoadedConfig,
    deep_merge,
    merge_config_layers,
    resolve_config,
)

__all__ = [
    "BUILTIN_DEFAULTS",
    "CONFIG_ENV_VAR",
    "ConfigError",
    "ConfigInspection",
    "ConfigReader",
    "ConfigSource",
    "CredentialResolution",
    "JsonConfigReader",
    "LoadedConfig",
    "ProviderResolution",
    "Which",
    "build_inspection",
    "command_exists",
    "config_sources",
    "deep_merge",
    "merge_config_layers",
    "resolve_config",
    "resolve_host_token",
    "resolve_provider_credential",
    "resolve_provider_specs",
]
