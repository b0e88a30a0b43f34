"""In-memory stroke canvas: the reference consumer of drawing commands.

Builds polyline strokes from the command stream so that a renderer (or a
late-joining client) can replay the current drawing:

- PEN_DOWN starts a stroke at the given point
- MOVE_TO appends to the open stroke
- PEN_UP closes it
- CLEAR_CANVAS drops everything

Usage:
    canvas = StrokeCanvas()
    pipeline.add_sink(canvas)
    ...
    state = canvas.get_full_state()
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Optional

from pinchdraw.commands import CommandType, DrawCommand

logger = logging.getLogger("pinchdraw.canvas")


@dataclass
class Stroke:
    """A finished or in-progress polyline."""
    id: str
    points: list[tuple[float, float]] = field(default_factory=list)
    color: str = "#000000"
    width: float = 5.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            # flat [x0, y0, x1, y1, ...] like a canvas polyline
            "points": [round(c, 1) for p in self.points for c in p],
            "stroke": self.color,
            "stroke_width": self.width,
            "line_cap": "round",
            "line_join": "round",
        }


class StrokeCanvas:
    """Accumulates strokes from drawing commands."""

    def __init__(self, color: str = "#000000", line_width: float = 5.0, max_strokes: int = 1000):
        self.color = color
        self.line_width = line_width
        self._max_strokes = max_strokes
        self._strokes: list[Stroke] = []
        self._current: Optional[Stroke] = None
        self._clear_count = 0
        self._stroke_ids = itertools.count()

    def handle(self, command: DrawCommand) -> None:
        if command.type == CommandType.CLEAR_CANVAS:
            self.clear()

        elif command.type == CommandType.PEN_DOWN:
            if self._current is not None:
                logger.warning("PEN_DOWN while a stroke is open; closing it")
                self._finish()
            self._current = Stroke(
                id=f"stroke-{next(self._stroke_ids)}",
                points=[command.point],
                color=self.color,
                width=self.line_width,
            )

        elif command.type == CommandType.MOVE_TO:
            if self._current is None:
                logger.warning("MOVE_TO without PEN_DOWN ignored")
                return
            self._current.points.append(command.point)

        elif command.type == CommandType.PEN_UP:
            self._finish()

    def _finish(self):
        if self._current is None:
            return
        self._strokes.append(self._current)
        self._current = None
        if len(self._strokes) > self._max_strokes:
            self._strokes = self._strokes[-self._max_strokes:]

    def clear(self):
        """Drop all strokes, including the open one."""
        self._strokes = []
        self._current = None
        self._clear_count += 1

    def export_stroke(self) -> Optional[dict]:
        """The open stroke as a dict, or None if the pen is up."""
        if self._current is None or not self._current.points:
            return None
        return self._current.to_dict()

    def get_full_state(self) -> list[dict]:
        """All strokes (finished, then the open one) for client sync."""
        strokes = [s.to_dict() for s in self._strokes]
        if self._current is not None:
            strokes.append(self._current.to_dict())
        return strokes

    @property
    def strokes(self) -> list[Stroke]:
        return list(self._strokes)

    @property
    def current_stroke(self) -> Optional[Stroke]:
        return self._current

    @property
    def is_drawing(self) -> bool:
        return self._current is not None

    @property
    def clear_count(self) -> int:
        return self._clear_count
