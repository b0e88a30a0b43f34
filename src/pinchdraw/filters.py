"""Adaptive low-latency smoothing (One Euro filter) for landmark signals.

Each filter smooths one signal: a scalar or a fixed-width vector such as an
(x, y) point. Signals are 1-D numpy arrays; a scalar is a width-1 array, so
the same element-wise arithmetic covers both.

The cutoff frequency adapts to the estimated speed of the signal:

    cutoff = min_cutoff + beta * |dx_hat|

Slow movement gets a low cutoff (heavy smoothing, no jitter), fast movement
a high one (little lag). See Casiez et al., "1 Euro Filter", CHI 2012.

Usage:
    f = AdaptiveFilter(t0, [0.5, 0.5], min_cutoff=1.0, beta=0.05, d_cutoff=0.8)
    smoothed = f.update(t, [x, y])
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional

import numpy as np


def as_signal(value) -> np.ndarray:
    """Coerce a scalar or sequence into a 1-D float array."""
    return np.atleast_1d(np.asarray(value, dtype=np.float64)).ravel()


def smoothing_factor(elapsed, cutoff):
    """One-pole low-pass coefficient in (0, 1) for a time step and cutoff (Hz)."""
    r = 2.0 * math.pi * cutoff * elapsed
    return r / (r + 1.0)


def exponential_smoothing(a, x, x_prev):
    return a * x + (1.0 - a) * x_prev


@dataclass(frozen=True)
class FilterParams:
    """Static parameters of one adaptive filter.

    min_cutoff: Hz, lower = smoother but more lag.
    beta: speed coefficient, higher = less lag on fast motion, more jitter.
    d_cutoff: Hz, cutoff of the derivative estimate.
    """
    min_cutoff: float = 1.0
    beta: float = 0.05
    d_cutoff: float = 0.8

    def __post_init__(self):
        for name in ("min_cutoff", "beta", "d_cutoff"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"{name} must be > 0, got {value!r}")

    def to_dict(self) -> dict:
        return {"min_cutoff": self.min_cutoff, "beta": self.beta, "d_cutoff": self.d_cutoff}

    @classmethod
    def from_dict(cls, data: dict) -> FilterParams:
        unknown = set(data) - {"min_cutoff", "beta", "d_cutoff"}
        if unknown:
            raise ValueError(f"unknown filter parameter(s): {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in data.items()})


class AdaptiveFilter:
    """Stateful One Euro filter for a single signal.

    Parameters are broadcast to the signal width at construction and never
    change afterwards. Updates with a timestamp that does not advance are
    no-ops returning the previous output.
    """

    def __init__(
        self,
        t0: float,
        x0,
        dx0: float = 0.0,
        min_cutoff: float = 1.0,
        beta: float = 0.05,
        d_cutoff: float = 0.8,
        max_elapsed: Optional[float] = None,
    ):
        params = FilterParams(min_cutoff=min_cutoff, beta=beta, d_cutoff=d_cutoff)
        if max_elapsed is not None and not max_elapsed > 0:
            raise ValueError(f"max_elapsed must be > 0, got {max_elapsed!r}")

        x0 = as_signal(x0)
        width = x0.shape[0]

        self.params = params
        self._min_cutoff = np.full(width, params.min_cutoff)
        self._beta = np.full(width, params.beta)
        self._d_cutoff = np.full(width, params.d_cutoff)
        self._max_elapsed = max_elapsed

        self._x_prev = x0.copy()
        self._dx_prev = np.full(width, float(dx0))
        self._t_prev = float(t0)

    @classmethod
    def from_params(
        cls, t0: float, x0, params: FilterParams, max_elapsed: Optional[float] = None
    ) -> AdaptiveFilter:
        return cls(
            t0, x0,
            min_cutoff=params.min_cutoff,
            beta=params.beta,
            d_cutoff=params.d_cutoff,
            max_elapsed=max_elapsed,
        )

    def update(self, t: float, x) -> np.ndarray:
        """Filter a new sample taken at time `t` (seconds)."""
        x = self._check_width(x)

        elapsed = t - self._t_prev
        if not 0 < elapsed < math.inf:
            return self._x_prev.copy()
        if self._max_elapsed is not None:
            elapsed = min(elapsed, self._max_elapsed)

        # Derivative, smoothed at a fixed cutoff
        a_d = smoothing_factor(elapsed, self._d_cutoff)
        dx = (x - self._x_prev) / elapsed
        dx_hat = exponential_smoothing(a_d, dx, self._dx_prev)

        # Value, smoothed at a speed-dependent cutoff
        cutoff = self.adaptive_cutoff(dx_hat)
        a = smoothing_factor(elapsed, cutoff)
        x_hat = exponential_smoothing(a, x, self._x_prev)

        self._x_prev = x_hat
        self._dx_prev = dx_hat
        self._t_prev = float(t)
        return x_hat.copy()

    def adaptive_cutoff(self, derivative) -> np.ndarray:
        """Cutoff frequency used for a given (smoothed) derivative."""
        return self._min_cutoff + self._beta * np.abs(as_signal(derivative))

    def reset(self, t: float, x):
        """Reseed the filter at a new time and value, dropping the derivative.

        The filter clock never moves backwards: reseeding at or before the
        current timestamp, or at a non-finite one, keeps that timestamp.
        """
        x = self._check_width(x)
        self._x_prev = x.copy()
        self._dx_prev = np.zeros_like(x)
        if self._t_prev < t < math.inf:
            self._t_prev = float(t)

    def _check_width(self, x) -> np.ndarray:
        x = as_signal(x)
        if x.shape != (self.width,):
            raise ValueError(f"signal width changed: expected {self.width}, got {x.shape[0]}")
        return x

    @property
    def value(self) -> np.ndarray:
        return self._x_prev.copy()

    @property
    def derivative(self) -> np.ndarray:
        return self._dx_prev.copy()

    @property
    def timestamp(self) -> float:
        return self._t_prev

    @property
    def width(self) -> int:
        return self._x_prev.shape[0]


class FilterBank:
    """Named, independent filters advanced together once per frame.

    The drawing pipeline tracks three 2-D points: the stroke point, and the
    thumb and index tips used only for pinch detection. Filtering the index
    tip twice with separate state keeps pinch stability from coupling into
    stroke smoothness.
    """

    DRAW_POINT = "draw_point"
    PINCH_THUMB = "pinch_thumb"
    PINCH_INDEX = "pinch_index"
    KEYS = (DRAW_POINT, PINCH_THUMB, PINCH_INDEX)

    def __init__(self, filters: Mapping[str, AdaptiveFilter]):
        self._filters: dict[str, AdaptiveFilter] = dict(filters)

    @classmethod
    def from_params(
        cls,
        t0: float,
        params: Mapping[str, FilterParams],
        x0=(0.0, 0.0),
        max_elapsed: Optional[float] = None,
    ) -> FilterBank:
        """Build one filter per key, all seeded at `x0` and time `t0`."""
        return cls({
            key: AdaptiveFilter.from_params(t0, x0, p, max_elapsed=max_elapsed)
            for key, p in params.items()
        })

    @classmethod
    def from_config(cls, t0: float, config, max_elapsed: Optional[float] = None) -> FilterBank:
        """Build the bank described by an EngineConfig."""
        return cls.from_params(t0, config.filters, max_elapsed=max_elapsed)

    def advance(self, timestamp: float, raw_values: Mapping) -> dict[str, np.ndarray]:
        """Update each named filter with its raw value; returns filtered values."""
        out = {}
        for key, raw in raw_values.items():
            out[key] = self[key].update(timestamp, raw)
        return out

    def reset(self, timestamp: float, values: Mapping):
        """Reseed the named filters at `timestamp` with the given values."""
        for key, value in values.items():
            self[key].reset(timestamp, value)

    def __getitem__(self, key: str) -> AdaptiveFilter:
        try:
            return self._filters[key]
        except KeyError:
            raise KeyError(f"no filter named {key!r}") from None

    def __contains__(self, key: str) -> bool:
        return key in self._filters

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self):
        return iter(self._filters)

    def keys(self):
        return self._filters.keys()
