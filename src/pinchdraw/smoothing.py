"""Optional smoothing stages applied to the stroke point after the adaptive filter.

Three modes:
- RAW: use the adaptive filter output as-is.
- EMA: add a fixed-alpha exponential moving average.
- INTERPOLATED: EMA, then ease toward the target while the pen is down so
  strokes stay continuous when frames arrive in bursts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np


class SmoothingMode(Enum):
    RAW = "raw"
    EMA = "ema"
    INTERPOLATED = "interpolated"


@dataclass(frozen=True)
class SmoothingConfig:
    mode: SmoothingMode = SmoothingMode.RAW
    ema_alpha: float = 0.4
    interpolation_window: float = 0.05  # seconds
    max_factor: float = 0.3

    def __post_init__(self):
        if not 0 < self.ema_alpha <= 1:
            raise ValueError(f"ema_alpha must be in (0, 1], got {self.ema_alpha!r}")
        if not self.interpolation_window > 0:
            raise ValueError(
                f"interpolation_window must be > 0, got {self.interpolation_window!r}"
            )
        if not 0 < self.max_factor <= 1:
            raise ValueError(f"max_factor must be in (0, 1], got {self.max_factor!r}")

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "ema_alpha": self.ema_alpha,
            "interpolation_window": self.interpolation_window,
            "max_factor": self.max_factor,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SmoothingConfig:
        unknown = set(data) - {"mode", "ema_alpha", "interpolation_window", "max_factor"}
        if unknown:
            raise ValueError(f"unknown smoothing option(s): {sorted(unknown)}")
        kwargs = dict(data)
        if "mode" in kwargs:
            kwargs["mode"] = SmoothingMode(kwargs["mode"])
        return cls(**kwargs)


class SimpleEMA:
    """Exponential moving average; the first sample passes through unchanged."""

    def __init__(self, alpha: float = 0.4):
        self.alpha = alpha
        self._value: Optional[np.ndarray] = None

    def update(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        if self._value is None:
            self._value = x.copy()
        else:
            self._value = self.alpha * x + (1.0 - self.alpha) * self._value
        return self._value.copy()

    def reset(self):
        self._value = None

    @property
    def value(self) -> Optional[np.ndarray]:
        return None if self._value is None else self._value.copy()


class PointInterpolator:
    """Moves part of the way toward each new target while updates are frequent.

    If the previous output is younger than `window` seconds, the output is
    `last + (target - last) * min(max_factor, dt / window)`. Older (or no)
    history snaps straight to the target.
    """

    def __init__(self, window: float = 0.05, max_factor: float = 0.3):
        self.window = window
        self.max_factor = max_factor
        self._last: Optional[np.ndarray] = None
        self._last_time = 0.0

    def update(self, t: float, target) -> np.ndarray:
        target = np.asarray(target, dtype=np.float64)
        out = target
        if self._last is not None:
            dt = t - self._last_time
            if 0 <= dt < self.window:
                factor = min(self.max_factor, dt / self.window)
                out = self._last + (target - self._last) * factor
        self._last = out.copy()
        self._last_time = t
        return out.copy()

    def reset(self):
        self._last = None


class StrokeSmoother:
    """Applies the configured post-filter stages to the stroke point."""

    def __init__(self, config: Optional[SmoothingConfig] = None):
        self.config = config or SmoothingConfig()
        self._ema = SimpleEMA(self.config.ema_alpha)
        self._interp = PointInterpolator(
            self.config.interpolation_window, self.config.max_factor
        )

    def update(self, t: float, point, pen_down: bool) -> np.ndarray:
        """Smooth one point.

        The EMA runs on every drawable frame so it stays warm between
        strokes; interpolation only runs while the pen is down.
        """
        point = np.asarray(point, dtype=np.float64)
        mode = self.config.mode
        if mode == SmoothingMode.RAW:
            return point.copy()

        point = self._ema.update(point)
        if mode == SmoothingMode.INTERPOLATED and pen_down:
            point = self._interp.update(t, point)
        return point

    def lift(self):
        """Pen lifted: the next stroke starts without interpolation history."""
        self._interp.reset()

    def reset(self):
        self._ema.reset()
        self._interp.reset()
