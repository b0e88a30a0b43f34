"""Frame-driven drawing pipeline: landmarks → gestures → filtered points → commands."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from pinchdraw.classifier import GestureClassifier
from pinchdraw.commands import CommandType, DrawCommand, OutputSink
from pinchdraw.config import EngineConfig
from pinchdraw.filters import FilterBank
from pinchdraw.landmarks import (
    FrameInput,
    HandLandmark,
    as_landmark_frame,
    mirror_horizontal,
    point_xy,
)
from pinchdraw.profiler import PipelineProfiler
from pinchdraw.smoothing import StrokeSmoother
from pinchdraw.state_machine import GestureState, GestureStateMachine

logger = logging.getLogger("pinchdraw.pipeline")


@dataclass
class PipelineStats:
    """Counters for a drawing session."""
    total_frames: int
    frames_with_hand: int
    total_commands: int
    clears: int
    state: str
    commands_by_type: dict = field(default_factory=dict)
    profiler_summary: dict = field(default_factory=dict)


class DrawingPipeline:
    """End-to-end pipeline for one drawing session.

    Per frame:
    - validate and (optionally) mirror the landmarks
    - classify fist on the raw frame
    - advance the filter bank, also during fist/cooldown frames so the
      filters stay warm
    - step the gesture state machine
    - hand the resulting commands to sinks and callbacks

    Not thread-safe; feed it from a single loop. Use one pipeline per
    independent drawing surface.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        sinks: Optional[list[OutputSink]] = None,
        enable_profiling: bool = True,
    ):
        self.config = config or EngineConfig()
        self.classifier = GestureClassifier(
            fist_threshold=self.config.fist_threshold,
            pinch_threshold_px=self.config.pinch_threshold_px,
        )
        self.state_machine = GestureStateMachine(
            classifier=self.classifier,
            width_px=self.config.canvas_width,
            height_px=self.config.canvas_height,
            cooldown_ms=self.config.cooldown_ms,
            smoother=StrokeSmoother(self.config.smoothing),
        )
        self.filters: Optional[FilterBank] = None
        self.profiler = PipelineProfiler(enabled=enable_profiling)

        self._sinks: list[OutputSink] = list(sinks or [])
        self._callbacks: list[Callable[[DrawCommand], None]] = []
        self._hand_present = False
        self._filters_seeded = False
        self._last_timestamp: Optional[float] = None

        self._total_frames = 0
        self._frames_with_hand = 0
        self._command_counts: Counter = Counter()

    def add_sink(self, sink: OutputSink):
        """Register a renderer (anything with `handle(command)`)."""
        self._sinks.append(sink)

    def on_command(self, callback: Callable[[DrawCommand], None]):
        """Register a callback invoked for every emitted command."""
        self._callbacks.append(callback)

    def process_landmarks(self, timestamp: float, landmarks=None) -> list[DrawCommand]:
        """Shorthand for `process(FrameInput(timestamp, landmarks))`."""
        return self.process(FrameInput(timestamp=timestamp, landmarks=landmarks))

    def process(self, frame: FrameInput) -> list[DrawCommand]:
        """Process one tracker frame and return the commands it produced.

        Raises:
            LandmarkShapeError: if the landmarks are not a (21, 2|3) array.
                No state is touched in that case.
        """
        t = float(frame.timestamp)

        landmarks = None
        if frame.landmarks is not None:
            landmarks = as_landmark_frame(frame.landmarks)
            if self.config.mirror_x:
                landmarks = mirror_horizontal(landmarks)

        if not math.isfinite(t):
            logger.warning("Dropping frame with non-finite timestamp %r", t)
            return []

        if self._last_timestamp is not None and not t > self._last_timestamp:
            logger.debug(
                "Non-increasing timestamp %.6f (previous %.6f); filters will hold",
                t, self._last_timestamp,
            )
        else:
            self._last_timestamp = t

        self._total_frames += 1
        if self.filters is None:
            self.filters = FilterBank.from_config(
                t, self.config, max_elapsed=self.config.effective_max_elapsed
            )

        if landmarks is None:
            if self._hand_present:
                logger.info("Hand lost at t=%.3f", t)
            self._hand_present = False
            with self.profiler.stage("state_machine"):
                commands = self.state_machine.step(None, False, t)
        else:
            self._frames_with_hand += 1
            acquired = not self._hand_present
            self._hand_present = True

            with self.profiler.stage("classification"):
                flags = self.classifier.classify(landmarks)

            with self.profiler.stage("filtering"):
                filtered = self._filter(t, landmarks, acquired)

            with self.profiler.stage("state_machine"):
                commands = self.state_machine.step(filtered, flags.is_fist, t)

        with self.profiler.stage("dispatch"):
            self._dispatch(commands)

        return commands

    def _filter(self, t: float, landmarks: np.ndarray, acquired: bool) -> dict[str, np.ndarray]:
        raw = {
            FilterBank.DRAW_POINT: point_xy(landmarks, HandLandmark.INDEX_TIP),
            FilterBank.PINCH_THUMB: point_xy(landmarks, HandLandmark.THUMB_TIP),
            FilterBank.PINCH_INDEX: point_xy(landmarks, HandLandmark.INDEX_TIP),
        }
        if acquired:
            logger.info("Hand acquired at t=%.3f", t)
            # The first sighting always seeds; later ones only under "reset"
            if self.config.stale_filter_policy == "reset" or not self._filters_seeded:
                self._filters_seeded = True
                self.filters.reset(t, raw)
                return {k: v.copy() for k, v in raw.items()}
        return self.filters.advance(t, raw)

    def _dispatch(self, commands: list[DrawCommand]):
        for cmd in commands:
            self._command_counts[cmd.type] += 1
            for sink in self._sinks:
                sink.handle(cmd)
            for cb in self._callbacks:
                cb(cmd)

    def resize(self, width: int, height: int):
        """Change the canvas size used for pixel coordinates and pinch thresholds."""
        if width <= 0 or height <= 0:
            raise ValueError(f"canvas size must be positive, got {width}x{height}")
        self.config = self.config.with_overrides(canvas_width=width, canvas_height=height)
        self.state_machine.width_px = width
        self.state_machine.height_px = height

    @property
    def state(self) -> GestureState:
        return self.state_machine.state

    @property
    def stats(self) -> PipelineStats:
        return PipelineStats(
            total_frames=self._total_frames,
            frames_with_hand=self._frames_with_hand,
            total_commands=sum(self._command_counts.values()),
            clears=self._command_counts[CommandType.CLEAR_CANVAS],
            state=self.state.value,
            commands_by_type={t.value: n for t, n in self._command_counts.items()},
            profiler_summary=self.profiler.summary(),
        )

    def reset(self):
        """Drop all session state; the next frame starts a new stream."""
        self.state_machine.reset()
        self.filters = None
        self._hand_present = False
        self._filters_seeded = False
        self._last_timestamp = None
        self._total_frames = 0
        self._frames_with_hand = 0
        self._command_counts.clear()
        self.profiler.reset()
