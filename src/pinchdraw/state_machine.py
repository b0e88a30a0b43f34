"""Gesture state machine: turns per-frame gesture flags into drawing commands.

States:
    IDLE      no hand in view
    TRACKING  hand in view, drawing allowed (pen up or down)
    CLEARING  fist just detected; the canvas is cleared once per fist
    COOLDOWN  drawing suppressed for `cooldown_ms` after a clear

Rules are evaluated once per frame, in order:
1. No hand: lift the pen, go IDLE.
2. Fist not yet handled: CLEAR_CANVAS, then COOLDOWN. Any fist frame ends
   processing for that frame.
3. No fist: re-arm clearing for the next fist.
4. Inside the cooldown window: no drawing.
5. Otherwise TRACKING: pinch puts the pen down and moves it; releasing the
   pinch lifts it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

import numpy as np

from pinchdraw.classifier import GestureClassifier
from pinchdraw.commands import CommandType, DrawCommand
from pinchdraw.filters import FilterBank
from pinchdraw.smoothing import StrokeSmoother

logger = logging.getLogger("pinchdraw.state_machine")

DEFAULT_COOLDOWN_MS = 1000.0


class GestureState(Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    CLEARING = "clearing"
    COOLDOWN = "cooldown"


class PenState(Enum):
    UP = "up"
    DOWN = "down"


@dataclass
class GestureSession:
    """Mutable per-session state, owned by exactly one state machine."""
    state: GestureState = GestureState.IDLE
    pen: PenState = PenState.UP
    is_clearing: bool = False
    cleared_this_fist: bool = False
    last_clear_timestamp: Optional[float] = None
    last_point: Optional[tuple[float, float]] = None

    @property
    def is_pen_down(self) -> bool:
        return self.pen == PenState.DOWN


class GestureStateMachine:
    """Converts fist flags and filtered points into an ordered command stream.

    The stroke point is the independently filtered `draw_point` signal, not
    the pinch index point, so pinch stability and stroke smoothness can be
    tuned separately.
    """

    def __init__(
        self,
        classifier: Optional[GestureClassifier] = None,
        width_px: float = 640,
        height_px: float = 480,
        cooldown_ms: float = DEFAULT_COOLDOWN_MS,
        smoother: Optional[StrokeSmoother] = None,
    ):
        if not cooldown_ms >= 0:
            raise ValueError(f"cooldown_ms must be >= 0, got {cooldown_ms!r}")
        self.classifier = classifier or GestureClassifier()
        self.width_px = width_px
        self.height_px = height_px
        self.cooldown_ms = cooldown_ms
        self.smoother = smoother or StrokeSmoother()
        self.session = GestureSession()

    def step(
        self,
        filtered: Optional[Mapping[str, np.ndarray]],
        is_fist: bool,
        timestamp: float,
    ) -> list[DrawCommand]:
        """Advance one frame.

        Args:
            filtered: FilterBank output for this frame, or None if no hand.
            is_fist: Fist predicate on the raw frame (ignored without a hand).
            timestamp: Frame time in seconds.

        Returns:
            Commands to emit, in order.
        """
        s = self.session
        commands: list[DrawCommand] = []
        s.is_clearing = False

        # 1. Hand lost
        if filtered is None:
            if s.is_pen_down:
                commands.append(DrawCommand(CommandType.PEN_UP, timestamp=timestamp))
                logger.debug("Hand lost with pen down; lifting pen")
            s.pen = PenState.UP
            s.cleared_this_fist = False
            s.last_point = None
            s.state = GestureState.IDLE
            self.smoother.reset()
            return commands

        # 2. Fist: clear once per continuous fist, never draw
        if is_fist:
            if not s.cleared_this_fist:
                commands.append(DrawCommand(CommandType.CLEAR_CANVAS, timestamp=timestamp))
                s.last_clear_timestamp = timestamp
                s.cleared_this_fist = True
                s.is_clearing = True
                s.state = GestureState.CLEARING
                logger.info("Fist detected at t=%.3f; clearing canvas", timestamp)
            s.pen = PenState.UP
            s.state = GestureState.COOLDOWN
            self.smoother.lift()
            return commands

        # 3. Re-arm for the next fist
        s.cleared_this_fist = False

        # 4. Cooldown after a clear
        if self.in_cooldown(timestamp):
            s.state = GestureState.COOLDOWN
            return commands

        # 5. Drawing
        s.state = GestureState.TRACKING
        pinching = self.classifier.is_pinching(
            filtered[FilterBank.PINCH_THUMB],
            filtered[FilterBank.PINCH_INDEX],
            self.width_px,
            self.height_px,
        )
        draw = np.asarray(filtered[FilterBank.DRAW_POINT], dtype=np.float64)
        point_px = draw[:2] * (self.width_px, self.height_px)
        point_px = self.smoother.update(timestamp, point_px, pen_down=pinching)
        x, y = float(point_px[0]), float(point_px[1])

        if pinching:
            if not s.is_pen_down:
                commands.append(DrawCommand(CommandType.PEN_DOWN, x, y, timestamp))
                s.pen = PenState.DOWN
                logger.debug("Pen down at (%.1f, %.1f)", x, y)
            commands.append(DrawCommand(CommandType.MOVE_TO, x, y, timestamp))
            s.last_point = (x, y)
        else:
            if s.is_pen_down:
                commands.append(DrawCommand(CommandType.PEN_UP, timestamp=timestamp))
                logger.debug("Pen up at t=%.3f", timestamp)
            s.pen = PenState.UP
            self.smoother.lift()

        return commands

    def in_cooldown(self, timestamp: float) -> bool:
        last = self.session.last_clear_timestamp
        if last is None:
            return False
        return (timestamp - last) * 1000.0 < self.cooldown_ms

    def reset(self):
        """Return to the initial session (IDLE, pen up, no clear history)."""
        self.session = GestureSession()
        self.smoother.reset()

    @property
    def state(self) -> GestureState:
        return self.session.state

    @property
    def is_pen_down(self) -> bool:
        return self.session.is_pen_down
