"""Configuration loading, schema, and defaults."""

from safepatch.config.loader import CONFIG_FILENAME, ConfigError, load_config
from safepatch.config.schema import ApplyConfig, OutputConfig, PlanConfig, SafePatchConfig

__all__ = [
    "CONFIG_FILENAME",
    "ApplyConfig",
    "ConfigError",
    "OutputConfig",
    "PlanConfig",
    "SafePatchConfig",
    "load_config",
]
