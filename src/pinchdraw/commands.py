"""Drawing commands emitted to renderers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class CommandType(Enum):
    CLEAR_CANVAS = "clear_canvas"
    PEN_DOWN = "pen_down"
    MOVE_TO = "move_to"
    PEN_UP = "pen_up"


# Commands that carry a point
POSITIONED = {CommandType.PEN_DOWN, CommandType.MOVE_TO}


@dataclass
class DrawCommand:
    """A single drawing command. Coordinates are canvas pixels."""
    type: CommandType
    x: float = 0.0
    y: float = 0.0
    timestamp: float = 0.0

    def to_dict(self) -> dict:
        if self.type in POSITIONED:
            return {
                "type": self.type.value,
                "x": round(self.x, 1),
                "y": round(self.y, 1),
                "t": round(self.timestamp, 4),
            }
        return {"type": self.type.value, "t": round(self.timestamp, 4)}

    @classmethod
    def from_dict(cls, data: dict) -> DrawCommand:
        return cls(
            type=CommandType(data["type"]),
            x=data.get("x", 0.0),
            y=data.get("y", 0.0),
            timestamp=data.get("t", 0.0),
        )

    @property
    def point(self) -> tuple[float, float]:
        return self.x, self.y


class OutputSink(Protocol):
    """Anything that consumes drawing commands, e.g. a renderer."""

    def handle(self, command: DrawCommand) -> None:
        ...
