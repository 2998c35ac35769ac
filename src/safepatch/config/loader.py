"""Load configuration from .safepatch.toml and SAFEPATCH_* env vars."""

from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from safepatch.config.schema import ApplyConfig, OutputConfig, PlanConfig, SafePatchConfig

CONFIG_FILENAME = ".safepatch.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    raw = data.get(section, {})
    if not isinstance(raw, dict):
        raise ConfigError(f"[{section}] must be a table")
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    return cls(**{k: v for k, v in raw.items() if k in valid_fields})


def _validate(cfg: SafePatchConfig) -> None:
    fuzz = cfg.apply.fuzz_window
    if isinstance(fuzz, bool) or not isinstance(fuzz, int) or fuzz < 0:
        raise ConfigError(f"apply.fuzz_window must be a non-negative integer, got {fuzz!r}")
    for name in ("ignore_trailing_whitespace", "normalize_eol"):
        if not isinstance(getattr(cfg.apply, name), bool):
            raise ConfigError(f"apply.{name} must be true or false")
    if not isinstance(cfg.plan.id_prefix, str) or not cfg.plan.id_prefix:
        raise ConfigError("plan.id_prefix must be a non-empty string")
    if cfg.output.format not in ("terminal", "json"):
        raise ConfigError(f"output.format must be 'terminal' or 'json', got {cfg.output.format!r}")


def _merge_env_overrides(cfg: SafePatchConfig) -> None:
    """Apply SAFEPATCH_* environment variable overrides; bad values are ignored."""
    if val := os.environ.get("SAFEPATCH_FUZZ_WINDOW"):
        try:
            fuzz = int(val)
        except ValueError:
            fuzz = -1
        if fuzz >= 0:
            cfg.apply.fuzz_window = fuzz
    if os.environ.get("SAFEPATCH_STRICT_WHITESPACE") == "1":
        cfg.apply.ignore_trailing_whitespace = False
    if val := os.environ.get("SAFEPATCH_FORMAT"):
        if val in ("terminal", "json"):
            cfg.output.format = val  # type: ignore[assignment]


def load_config(
    root: Path,
    config_override: Optional[str] = None,
) -> SafePatchConfig:
    """Load, validate, and return a SafePatchConfig."""
    config_path = find_config_file(root, config_override)

    if config_path is None:
        cfg = SafePatchConfig()
    else:
        raw = _parse_toml(config_path)
        cfg = SafePatchConfig(
            version=str(raw.get("version", "1.0")),
            apply=_build_section(raw, ApplyConfig, "apply"),
            plan=_build_section(raw, PlanConfig, "plan"),
            output=_build_section(raw, OutputConfig, "output"),
        )
        _validate(cfg)

    _merge_env_overrides(cfg)
    return cfg
