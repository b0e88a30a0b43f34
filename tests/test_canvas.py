"""Tests for drawing commands and the stroke canvas."""

import logging

import pytest

from pinchdraw.canvas import StrokeCanvas
from pinchdraw.commands import CommandType, DrawCommand


def down(x, y):
    return DrawCommand(CommandType.PEN_DOWN, x, y)


def move(x, y):
    return DrawCommand(CommandType.MOVE_TO, x, y)


UP = DrawCommand(CommandType.PEN_UP)
CLEAR = DrawCommand(CommandType.CLEAR_CANVAS)


def feed(canvas, commands):
    for c in commands:
        canvas.handle(c)


class TestDrawCommand:
    def test_move_to_dict(self):
        d = DrawCommand(CommandType.MOVE_TO, 12.345, 67.891, timestamp=1.5).to_dict()
        assert d == {"type": "move_to", "x": 12.3, "y": 67.9, "t": 1.5}

    def test_clear_to_dict(self):
        assert DrawCommand(CommandType.CLEAR_CANVAS).to_dict() == {"type": "clear_canvas", "t": 0.0}

    def test_pen_up_has_no_point(self):
        assert "x" not in DrawCommand(CommandType.PEN_UP, 1.0, 2.0).to_dict()

    def test_from_dict(self):
        cmd = DrawCommand.from_dict({"type": "pen_down", "x": 3.0, "y": 4.0, "t": 0.5})
        assert cmd == DrawCommand(CommandType.PEN_DOWN, 3.0, 4.0, 0.5)


class TestStrokeCanvas:
    def test_builds_stroke(self):
        canvas = StrokeCanvas()
        feed(canvas, [down(0, 0), move(0, 0), move(10, 5), UP])
        assert len(canvas.strokes) == 1
        assert canvas.strokes[0].points == [(0, 0), (0, 0), (10, 5)]
        assert not canvas.is_drawing

    def test_open_stroke(self):
        canvas = StrokeCanvas()
        feed(canvas, [down(1, 2), move(3, 4)])
        assert canvas.is_drawing
        assert canvas.export_stroke()["points"] == [1, 2, 3, 4]
        assert canvas.strokes == []

    def test_full_state_includes_open_stroke(self):
        canvas = StrokeCanvas()
        feed(canvas, [down(0, 0), UP, down(5, 5), move(6, 6)])
        state = canvas.get_full_state()
        assert len(state) == 2
        assert state[0]["id"] != state[1]["id"]

    def test_clear(self):
        canvas = StrokeCanvas()
        feed(canvas, [down(0, 0), UP, down(1, 1), CLEAR])
        assert canvas.get_full_state() == []
        assert not canvas.is_drawing
        assert canvas.clear_count == 1

    def test_move_without_pen_down_ignored(self, caplog):
        canvas = StrokeCanvas()
        with caplog.at_level(logging.WARNING, logger="pinchdraw.canvas"):
            canvas.handle(move(1, 1))
        assert canvas.get_full_state() == []
        assert "MOVE_TO without PEN_DOWN" in caplog.text

    def test_pen_up_without_stroke(self):
        canvas = StrokeCanvas()
        canvas.handle(UP)
        assert canvas.strokes == []

    def test_export_none_when_pen_up(self):
        assert StrokeCanvas().export_stroke() is None

    def test_history_trimmed(self):
        canvas = StrokeCanvas(max_strokes=3)
        for i in range(5):
            feed(canvas, [down(i, i), UP])
        assert len(canvas.strokes) == 3
        assert canvas.strokes[0].points == [(2, 2)]

    def test_stroke_ids_per_canvas(self):
        a, b = StrokeCanvas(), StrokeCanvas()
        feed(a, [down(0, 0), UP, down(1, 1), UP])
        feed(b, [down(0, 0), UP])
        assert [s.id for s in a.strokes] == ["stroke-0", "stroke-1"]
        assert b.strokes[0].id == "stroke-0"

    def test_style(self):
        canvas = StrokeCanvas(color="#ff0000", line_width=2.0)
        feed(canvas, [down(0, 0), UP])
        d = canvas.get_full_state()[0]
        assert d["stroke"] == "#ff0000"
        assert d["stroke_width"] == 2.0
