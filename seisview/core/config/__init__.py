"""Configuration management module."""

from seisview.core.config.settings import (
    DEFAULT_BASE_URL,
    ConfigManager,
    DecoderConfig,
    FetchConfig,
    LoggingConfig,
    PipelineConfig,
    SeisviewConfig,
    get_default_config,
    load_config_from_env,
)

__all__ = [
    "DEFAULT_BASE_URL",
    "ConfigManager",
    "DecoderConfig",
    "FetchConfig",
    "LoggingConfig",
    "PipelineConfig",
    "SeisviewConfig",
    "get_default_config",
    "load_config_from_env",
]
