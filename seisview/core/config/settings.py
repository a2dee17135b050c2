"""Configuration management for seisview."""

from __future__ import annotations

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from seisview.core.exceptions import ConfigurationError

DEFAULT_BASE_URL = "https://service.iris.edu"


@dataclass
class PipelineConfig:
    """Decimation and display scaling parameters."""

    bins: int = 1000
    gap_tolerance: float = 0.5
    lower_percentile: float = 1.0
    upper_percentile: float = 99.0
    padding_fraction: float = 0.1
    min_padding: float = 1.0
    trim_to_window: bool = True

    def __post_init__(self) -> None:
        if self.bins <= 0:
            raise ConfigurationError("bins must be positive", field="bins")
        if self.gap_tolerance < 0:
            raise ConfigurationError("gap_tolerance must be non-negative", field="gap_tolerance")
        if not 0 <= self.lower_percentile < self.upper_percentile <= 100:
            raise ConfigurationError(
                "percentiles must satisfy 0 <= lower < upper <= 100",
                field="lower_percentile",
            )
        if self.padding_fraction < 0:
            raise ConfigurationError("padding_fraction must be non-negative", field="padding_fraction")
        if self.min_padding <= 0:
            raise ConfigurationError("min_padding must be positive", field="min_padding")


@dataclass
class DecoderConfig:
    """Fallbacks for records that carry no blockette 1000."""

    fallback_record_length: int | None = None
    fallback_encoding: int | None = None

    def __post_init__(self) -> None:
        length = self.fallback_record_length
        if length is not None and (length < 128 or length & (length - 1)):
            raise ConfigurationError(
                "fallback_record_length must be a power of two >= 128",
                field="fallback_record_length",
            )
        if (length is None) != (self.fallback_encoding is None):
            raise ConfigurationError(
                "fallback_record_length and fallback_encoding must be set together",
                field="fallback_encoding",
            )


@dataclass
class FetchConfig:
    """Dataselect client settings."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = 60.0
    user_agent: str = "seisview/0.1.0"

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigurationError("base_url cannot be empty", field="base_url")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive", field="timeout")


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "WARNING"
    file: str | None = None


@dataclass
class SeisviewConfig:
    """Top-level seisview configuration."""

    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> SeisviewConfig:
        """Build a configuration from a nested dictionary."""
        try:
            return cls(
                pipeline=PipelineConfig(**config_dict.get("pipeline", {})),
                decoder=DecoderConfig(**config_dict.get("decoder", {})),
                fetch=FetchConfig(**config_dict.get("fetch", {})),
                logging=LoggingConfig(**config_dict.get("logging", {})),
            )
        except TypeError as exc:
            raise ConfigurationError(f"unknown configuration key: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        """Convert to a nested dictionary, dropping unset values."""

        def _clean(section: Any) -> dict[str, Any]:
            return {k: v for k, v in asdict(section).items() if v is not None}

        return {
            "pipeline": _clean(self.pipeline),
            "decoder": _clean(self.decoder),
            "fetch": _clean(self.fetch),
            "logging": _clean(self.logging),
        }


class ConfigManager:
    """Load and persist the TOML configuration file."""

    def __init__(self, config_path: Path | None = None):
        """Initialise the manager.

        Args:
            config_path: configuration file; defaults to ``~/.seisview/config.toml``
        """
        self.config_path = config_path or Path.home() / ".seisview" / "config.toml"
        self.config = self._load_config()

    def _load_config(self) -> SeisviewConfig:
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                logger.warning("Failed to load config from {path}: {error}", path=str(self.config_path), error=str(exc))
                config_dict = {}
        return SeisviewConfig.from_dict(_deep_update(config_dict, load_config_from_env()))

    def get_config(self) -> SeisviewConfig:
        """Return the active configuration."""
        return self.config

    def update_config(self, **updates: Any) -> None:
        """Apply nested updates, e.g. ``update_config(pipeline={"bins": 500})``."""
        self.config = SeisviewConfig.from_dict(_deep_update(self.config.to_dict(), updates))

    def save_config(self) -> None:
        """Write the active configuration back to disk."""
        import tomli_w

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "wb") as f:
            tomli_w.dump(self.config.to_dict(), f)


def _deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = _deep_update(dict(d.get(k, {})), v)
        else:
            d[k] = v
    return d


def get_default_config() -> SeisviewConfig:
    """Return a configuration with every default applied."""
    return SeisviewConfig()


def load_config_from_env() -> dict[str, Any]:
    """Read ``SEISVIEW_*`` environment overrides."""
    config: dict[str, Any] = {}

    pipeline_config: dict[str, Any] = {}
    bins = os.getenv("SEISVIEW_PIPELINE_BINS")
    if bins is not None:
        pipeline_config["bins"] = int(bins)
    gap_tolerance = os.getenv("SEISVIEW_PIPELINE_GAP_TOLERANCE")
    if gap_tolerance is not None:
        pipeline_config["gap_tolerance"] = float(gap_tolerance)
    trim = os.getenv("SEISVIEW_PIPELINE_TRIM_TO_WINDOW")
    if trim is not None:
        pipeline_config["trim_to_window"] = trim.lower() == "true"
    if pipeline_config:
        config["pipeline"] = pipeline_config

    fetch_config: dict[str, Any] = {}
    base_url = os.getenv("SEISVIEW_FETCH_BASE_URL")
    if base_url:
        fetch_config["base_url"] = base_url
    timeout = os.getenv("SEISVIEW_FETCH_TIMEOUT")
    if timeout is not None:
        fetch_config["timeout"] = float(timeout)
    if fetch_config:
        config["fetch"] = fetch_config

    logging_config: dict[str, Any] = {}
    level = os.getenv("SEISVIEW_LOGGING_LEVEL")
    if level is not None:
        logging_config["level"] = level
    log_file = os.getenv("SEISVIEW_LOGGING_FILE")
    if log_file is not None:
        logging_config["file"] = log_file
    if logging_config:
        config["logging"] = logging_config

    return config
