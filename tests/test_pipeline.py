"""Tests for the end-to-end drawing pipeline."""

import logging
import math

import numpy as np
import pytest

from pinchdraw.canvas import StrokeCanvas
from pinchdraw.commands import CommandType
from pinchdraw.config import EngineConfig
from pinchdraw.landmarks import LandmarkShapeError
from pinchdraw.pipeline import DrawingPipeline
from pinchdraw.recorder import SessionPlayer, SessionRecorder
from pinchdraw.state_machine import GestureState
from pinchdraw.synthetic import drawing_session, make_hand

DOWN, MOVE, UP, CLEAR = (
    CommandType.PEN_DOWN, CommandType.MOVE_TO, CommandType.PEN_UP, CommandType.CLEAR_CANVAS,
)
DT = 1 / 30


def square_config(**kwargs):
    """1000x1000 canvas without mirroring, so pixels read as normalized × 1000."""
    kwargs.setdefault("mirror_x", False)
    return EngineConfig(canvas_width=1000, canvas_height=1000, **kwargs)


def types(commands):
    return [c.type for c in commands]


def run(pipeline, hands, t0=0.0):
    out = []
    for i, lm in enumerate(hands):
        out += pipeline.process_landmarks(t0 + i * DT, lm)
    return out


def assert_valid_grammar(commands):
    pen = False
    for i, cmd in enumerate(commands):
        if cmd.type == DOWN:
            assert not pen, f"PEN_DOWN while pen down at {i}"
            assert commands[i + 1].type == MOVE
            pen = True
        elif cmd.type == MOVE:
            assert pen, f"MOVE_TO while pen up at {i}"
        elif cmd.type == UP:
            assert pen, f"PEN_UP while pen up at {i}"
            pen = False
        else:
            pen = False


class TestDrawing:
    def test_first_point_is_raw(self):
        pipeline = DrawingPipeline(square_config())
        cmds = pipeline.process_landmarks(0.0, make_hand(pinch=True))
        assert types(cmds) == [DOWN, MOVE]
        # index tip of a hand centered at (0.5, 0.5)
        assert (cmds[0].x, cmds[0].y) == pytest.approx((455.0, 280.0))

    def test_mirror(self):
        pipeline = DrawingPipeline(square_config(mirror_x=True))
        cmd = pipeline.process_landmarks(0.0, make_hand(pinch=True))[0]
        assert (cmd.x, cmd.y) == pytest.approx((545.0, 280.0))

    def test_steady_pinch(self):
        pipeline = DrawingPipeline(square_config())
        cmds = run(pipeline, [make_hand(pinch=True)] * 5)
        assert types(cmds) == [DOWN] + [MOVE] * 5
        for c in cmds:
            assert (c.x, c.y) == pytest.approx((455.0, 280.0))

    def test_release_lifts_pen(self):
        pipeline = DrawingPipeline(square_config())
        cmds = run(pipeline, [make_hand(pinch=True)] * 3 + [make_hand()] * 15)
        assert types(cmds)[:2] == [DOWN, MOVE]
        assert types(cmds)[-1] == UP
        assert types(cmds).count(UP) == 1
        assert types(cmds).count(DOWN) == 1
        assert not pipeline.state_machine.is_pen_down

    def test_open_hand_draws_nothing(self):
        pipeline = DrawingPipeline()
        assert run(pipeline, [make_hand()] * 10) == []
        assert pipeline.state == GestureState.TRACKING

    def test_two_column_landmarks(self):
        pipeline = DrawingPipeline(square_config())
        cmds = pipeline.process_landmarks(0.0, make_hand(pinch=True)[:, :2])
        assert types(cmds) == [DOWN, MOVE]

    def test_non_increasing_timestamp(self, caplog):
        pipeline = DrawingPipeline(square_config())
        pipeline.process_landmarks(1.0, make_hand(pinch=True))
        with caplog.at_level(logging.DEBUG, logger="pinchdraw.pipeline"):
            cmds = pipeline.process_landmarks(1.0, make_hand(center=(0.6, 0.6), pinch=True))
        assert types(cmds) == [MOVE]
        assert (cmds[0].x, cmds[0].y) == pytest.approx((455.0, 280.0))
        assert "Non-increasing timestamp" in caplog.text

    def test_nan_timestamp_dropped(self, caplog):
        pipeline = DrawingPipeline(square_config(stale_filter_policy="keep"))
        pipeline.process_landmarks(0.0, make_hand(pinch=True))
        with caplog.at_level(logging.WARNING, logger="pinchdraw.pipeline"):
            assert pipeline.process_landmarks(float("nan"), make_hand(pinch=True)) == []
        assert "non-finite timestamp" in caplog.text
        assert pipeline.stats.total_frames == 1

        cmds = pipeline.process_landmarks(DT, make_hand(pinch=True))
        assert types(cmds) == [MOVE]
        assert (cmds[0].x, cmds[0].y) == pytest.approx((455.0, 280.0))

    def test_nan_first_frame(self):
        pipeline = DrawingPipeline(square_config())
        assert pipeline.process_landmarks(float("nan"), make_hand(pinch=True)) == []
        assert pipeline.filters is None
        assert types(pipeline.process_landmarks(0.0, make_hand(pinch=True))) == [DOWN, MOVE]


class TestClearing:
    def test_fist_clears_once(self):
        pipeline = DrawingPipeline(square_config())
        cmds = run(pipeline, [make_hand(fist=True)] * 5)
        assert types(cmds) == [CLEAR]
        assert pipeline.stats.clears == 1

    def test_cooldown_blocks_drawing(self):
        pipeline = DrawingPipeline(square_config())
        cmds = run(pipeline, [make_hand(fist=True)] + [make_hand(pinch=True)] * 20)
        assert types(cmds) == [CLEAR]
        assert pipeline.state == GestureState.COOLDOWN

    def test_drawing_resumes_after_cooldown(self):
        pipeline = DrawingPipeline(square_config())
        pipeline.process_landmarks(0.0, make_hand(fist=True))
        cmds = run(pipeline, [make_hand(pinch=True)] * 10, t0=1.0)
        assert types(cmds)[:2] == [DOWN, MOVE]

    def test_fist_while_drawing(self):
        canvas = StrokeCanvas()
        pipeline = DrawingPipeline(square_config(), sinks=[canvas])
        cmds = run(pipeline, [make_hand(pinch=True)] * 3 + [make_hand(fist=True)])
        assert types(cmds)[-1] == CLEAR
        assert UP not in types(cmds)
        assert canvas.get_full_state() == []


class TestHandLoss:
    def test_loss_while_drawing(self):
        pipeline = DrawingPipeline(square_config())
        cmds = run(pipeline, [make_hand(pinch=True)] * 3 + [None])
        assert types(cmds)[-1] == UP
        assert pipeline.state == GestureState.IDLE

    def test_no_hand_from_start(self):
        pipeline = DrawingPipeline()
        assert run(pipeline, [None] * 5) == []
        assert pipeline.stats.total_frames == 5
        assert pipeline.stats.frames_with_hand == 0

    def test_bad_shape_touches_nothing(self):
        pipeline = DrawingPipeline()
        with pytest.raises(LandmarkShapeError):
            pipeline.process_landmarks(0.0, np.zeros((5, 3)))
        assert pipeline.stats.total_frames == 0
        assert pipeline.filters is None


class TestStaleFilters:
    def reacquire(self, policy):
        """Pinch at A, lose the hand for five seconds, pinch again at B."""
        pipeline = DrawingPipeline(square_config(stale_filter_policy=policy))
        run(pipeline, [make_hand(center=(0.3, 0.5), pinch=True)] * 30)
        pipeline.process_landmarks(1.0, None)
        cmds = pipeline.process_landmarks(6.0, make_hand(center=(0.6, 0.7), pinch=True))
        assert types(cmds) == [DOWN, MOVE]
        # B's index tip
        return math.hypot(cmds[0].x - 555.0, cmds[0].y - 480.0)

    def test_reset_starts_at_new_point(self):
        assert self.reacquire("reset") == pytest.approx(0.0, abs=1e-6)

    def test_keep_and_clamp_lag(self):
        keep = self.reacquire("keep")
        clamp = self.reacquire("clamp")
        assert keep > 1.0
        assert clamp > keep

    def test_reacquire_at_earlier_timestamp_keeps_clock(self):
        pipeline = DrawingPipeline(square_config())
        pipeline.process_landmarks(1.0, make_hand(pinch=True))
        pipeline.process_landmarks(1.1, None)
        cmd = pipeline.process_landmarks(0.5, make_hand(center=(0.6, 0.7), pinch=True))[0]
        assert (cmd.x, cmd.y) == pytest.approx((555.0, 480.0))
        for key in pipeline.filters:
            assert pipeline.filters[key].timestamp == 1.0

    def test_first_sighting_seeds_every_policy(self):
        for policy in ("reset", "clamp", "keep"):
            pipeline = DrawingPipeline(square_config(stale_filter_policy=policy))
            pipeline.process_landmarks(0.5, None)
            cmd = pipeline.process_landmarks(0.6, make_hand(pinch=True))[0]
            assert (cmd.x, cmd.y) == pytest.approx((455.0, 280.0))


class TestOutputs:
    def test_sink_receives_commands(self):
        canvas = StrokeCanvas()
        pipeline = DrawingPipeline(square_config(), sinks=[canvas])
        run(pipeline, [make_hand(pinch=True)] * 3 + [None])
        assert len(canvas.strokes) == 1
        assert len(canvas.strokes[0].points) == 4

    def test_callbacks_in_order(self):
        pipeline = DrawingPipeline(square_config())
        seen = []
        pipeline.on_command(seen.append)
        returned = run(pipeline, [make_hand(pinch=True)] * 2)
        assert seen == returned

    def test_add_sink(self):
        pipeline = DrawingPipeline(square_config())
        canvas = StrokeCanvas()
        pipeline.add_sink(canvas)
        pipeline.process_landmarks(0.0, make_hand(pinch=True))
        assert canvas.is_drawing

    def test_callback_error_propagates(self):
        pipeline = DrawingPipeline(square_config())

        def broken(cmd):
            raise RuntimeError("renderer gone")

        pipeline.on_command(broken)
        with pytest.raises(RuntimeError):
            pipeline.process_landmarks(0.0, make_hand(pinch=True))


class TestLifecycle:
    def test_stats(self):
        pipeline = DrawingPipeline(square_config())
        run(pipeline, [None, make_hand(pinch=True), make_hand(pinch=True)])
        stats = pipeline.stats
        assert stats.total_frames == 3
        assert stats.frames_with_hand == 2
        assert stats.total_commands == 3
        assert stats.commands_by_type == {"pen_down": 1, "move_to": 2}
        assert stats.state == "tracking"
        assert "filtering" in stats.profiler_summary

    def test_profiling_disabled(self):
        pipeline = DrawingPipeline(square_config(), enable_profiling=False)
        pipeline.process_landmarks(0.0, make_hand())
        assert pipeline.stats.profiler_summary == {}

    def test_resize(self):
        pipeline = DrawingPipeline(square_config())
        pipeline.resize(2000, 2000)
        cmd = pipeline.process_landmarks(0.0, make_hand(pinch=True))[0]
        assert (cmd.x, cmd.y) == pytest.approx((910.0, 560.0))
        assert pipeline.config.canvas_width == 2000

    def test_resize_rejects_zero(self):
        with pytest.raises(ValueError):
            DrawingPipeline().resize(0, 480)

    def test_reset(self):
        pipeline = DrawingPipeline(square_config())
        pipeline.process_landmarks(0.0, make_hand(fist=True))
        pipeline.reset()
        assert pipeline.stats.total_frames == 0
        assert pipeline.state == GestureState.IDLE
        assert types(pipeline.process_landmarks(0.1, make_hand(pinch=True))) == [DOWN, MOVE]


class TestSyntheticSession:
    def test_scripted_session(self):
        canvas = StrokeCanvas()
        pipeline = DrawingPipeline(sinks=[canvas])
        cmds = []
        for frame in drawing_session(fps=30):
            cmds += pipeline.process(frame)

        kinds = types(cmds)
        assert pipeline.stats.clears == 1
        assert DOWN in kinds
        assert kinds.index(DOWN) < kinds.index(CLEAR)
        assert_valid_grammar(cmds)
        assert canvas.clear_count == 1

    def test_noisy_session_grammar(self):
        pipeline = DrawingPipeline()
        cmds = []
        for frame in drawing_session(fps=60, noise=0.003, seed=7):
            cmds += pipeline.process(frame)
        assert_valid_grammar(cmds)

    def test_replay_reproduces_commands(self, tmp_path):
        frames = drawing_session(fps=30)
        recorder = SessionRecorder()
        recorder.start()
        for frame in frames:
            recorder.add(frame)
        recorder.save(tmp_path / "session.json")

        live = DrawingPipeline()
        expected = [c for f in frames for c in live.process(f)]

        replayed = DrawingPipeline()
        player = SessionPlayer.load(tmp_path / "session.json")
        actual = [c for f in player.play() for c in replayed.process(f)]
        assert actual == expected
