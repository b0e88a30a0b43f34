"""Engine configuration: filter parameters, gesture thresholds, presets.

Configuration lives in a YAML file:

    preset: responsive          # optional, fills in filter parameters
    filters:
      draw_point: {min_cutoff: 2.2, beta: 0.18, d_cutoff: 1.2}
    fist_threshold: 0.12
    pinch_threshold_px: 50
    cooldown_ms: 1000
    canvas_width: 1280
    canvas_height: 720
    smoothing:
      mode: ema
      ema_alpha: 0.4
    stale_filter_policy: reset

Keys that are left out keep their defaults. Unknown keys are an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional

import yaml

from pinchdraw.filters import FilterBank, FilterParams
from pinchdraw.smoothing import SmoothingConfig

# What to do with filter state when the hand disappears and comes back
STALE_FILTER_POLICIES = ("reset", "clamp", "keep")

# Filter parameters used by the two shipped front ends
PRESETS: dict[str, FilterParams] = {
    "default": FilterParams(min_cutoff=1.0, beta=0.05, d_cutoff=0.8),
    "responsive": FilterParams(min_cutoff=2.2, beta=0.18, d_cutoff=1.2),
}


def _preset_filters(name: str) -> dict[str, FilterParams]:
    if name not in PRESETS:
        raise ValueError(f"unknown preset {name!r}; choose from {sorted(PRESETS)}")
    return {key: PRESETS[name] for key in FilterBank.KEYS}


@dataclass
class EngineConfig:
    """All tunables of the drawing pipeline."""
    filters: dict[str, FilterParams] = field(default_factory=lambda: _preset_filters("default"))
    fist_threshold: float = 0.12
    pinch_threshold_px: float = 50.0
    cooldown_ms: float = 1000.0
    canvas_width: int = 640
    canvas_height: int = 480
    mirror_x: bool = True
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    stale_filter_policy: str = "reset"
    max_elapsed: Optional[float] = None  # seconds; only used by the "clamp" policy

    def __post_init__(self):
        missing = set(FilterBank.KEYS) - set(self.filters)
        if missing:
            raise ValueError(f"missing filter parameters for {sorted(missing)}")
        if not self.fist_threshold > 0:
            raise ValueError(f"fist_threshold must be > 0, got {self.fist_threshold!r}")
        if not self.pinch_threshold_px > 0:
            raise ValueError(f"pinch_threshold_px must be > 0, got {self.pinch_threshold_px!r}")
        if not self.cooldown_ms >= 0:
            raise ValueError(f"cooldown_ms must be >= 0, got {self.cooldown_ms!r}")
        if self.canvas_width <= 0 or self.canvas_height <= 0:
            raise ValueError(
                f"canvas size must be positive, got {self.canvas_width}x{self.canvas_height}"
            )
        if self.stale_filter_policy not in STALE_FILTER_POLICIES:
            raise ValueError(
                f"stale_filter_policy must be one of {STALE_FILTER_POLICIES}, "
                f"got {self.stale_filter_policy!r}"
            )
        if self.max_elapsed is not None and not self.max_elapsed > 0:
            raise ValueError(f"max_elapsed must be > 0, got {self.max_elapsed!r}")

    @property
    def effective_max_elapsed(self) -> Optional[float]:
        """Elapsed-time clamp handed to the filters."""
        if self.stale_filter_policy != "clamp":
            return None
        return self.max_elapsed if self.max_elapsed is not None else 0.1

    @classmethod
    def preset(cls, name: str, **overrides) -> EngineConfig:
        """Config with the named preset's filter parameters on every filter."""
        return cls(filters=_preset_filters(name), **overrides)

    def with_overrides(self, **overrides) -> EngineConfig:
        return replace(self, **overrides)

    def to_dict(self) -> dict:
        return {
            "filters": {k: p.to_dict() for k, p in self.filters.items()},
            "fist_threshold": self.fist_threshold,
            "pinch_threshold_px": self.pinch_threshold_px,
            "cooldown_ms": self.cooldown_ms,
            "canvas_width": self.canvas_width,
            "canvas_height": self.canvas_height,
            "mirror_x": self.mirror_x,
            "smoothing": self.smoothing.to_dict(),
            "stale_filter_policy": self.stale_filter_policy,
            "max_elapsed": self.max_elapsed,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> EngineConfig:
        data = dict(data or {})
        known = {f.name for f in fields(cls)} | {"preset"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown config key(s): {sorted(unknown)}")

        filters = _preset_filters(data.pop("preset", "default"))
        for key, params in (data.pop("filters", None) or {}).items():
            if key not in FilterBank.KEYS:
                raise ValueError(f"unknown filter {key!r}; expected one of {FilterBank.KEYS}")
            merged = {**filters[key].to_dict(), **(params or {})}
            filters[key] = FilterParams.from_dict(merged)

        smoothing = data.pop("smoothing", None)
        if smoothing is not None:
            data["smoothing"] = SmoothingConfig.from_dict(smoothing)

        return cls(filters=filters, **data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load configuration from a YAML file."""
        with open(path) as f:
            return cls.from_dict(yaml.safe_load(f))

    def to_yaml(self, path: str | Path):
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
