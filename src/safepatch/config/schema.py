"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from safepatch.patch.applier import ApplyOptions

OutputFormat = Literal["terminal", "json"]


@dataclass
class ApplyConfig:
    fuzz_window: int = 3  # lines either side of the recorded position
    ignore_trailing_whitespace: bool = True
    normalize_eol: bool = True

    def to_options(self) -> ApplyOptions:
        return ApplyOptions(
            fuzz_window=self.fuzz_window,
            ignore_trailing_whitespace=self.ignore_trailing_whitespace,
            normalize_eol=self.normalize_eol,
        )


@dataclass
class PlanConfig:
    id_prefix: str = "chg"


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"
    show_summary: bool = True


@dataclass
class SafePatchConfig:
    version: str = "1.0"
    apply: ApplyConfig = field(default_factory=ApplyConfig)
    plan: PlanConfig = field(default_factory=PlanConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
