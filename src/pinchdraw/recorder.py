"""Record and replay tracker sessions.

A recording is the raw input stream: one timestamp per frame plus the hand's
21 landmarks, or nothing when the hand was not detected. Replaying a
recording through a pipeline reproduces the drawing exactly, which makes it
useful for regression tests and for tuning filter parameters offline.

Formats:
- JSON (`.json`): readable, `{"version": 1, "frames": [{"t": ..., "landmarks": [[x, y, z], ...] | null}]}`
- NPZ (`.npz`): compact; landmarks array with a `has_hand` mask.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from pinchdraw.landmarks import FrameInput, HandLandmark, as_landmark_frame

logger = logging.getLogger("pinchdraw.recorder")

FORMAT_VERSION = 1


class SessionRecorder:
    """Collects tracker frames for later replay.

    Usage:
        recorder = SessionRecorder()
        recorder.start()
        # In the frame loop:
        recorder.add_frame(timestamp, landmarks_or_none)
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[FrameInput] = []
        self._recording = False

    def start(self):
        self._frames = []
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    def add_frame(self, timestamp: float, landmarks=None):
        """Append a frame; ignored unless recording."""
        if not self._recording:
            return
        if landmarks is not None:
            landmarks = as_landmark_frame(landmarks)
        self._frames.append(FrameInput(timestamp=float(timestamp), landmarks=landmarks))

    def add(self, frame: FrameInput):
        self.add_frame(frame.timestamp, frame.landmarks)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if len(self._frames) < 2:
            return 0.0
        return self._frames[-1].timestamp - self._frames[0].timestamp

    def save(self, path: str | Path):
        """Save as JSON, or as NPZ when the path ends in `.npz`."""
        path = Path(path)
        if path.suffix == ".npz":
            self.save_compact(path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": FORMAT_VERSION,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [
                {
                    "t": f.timestamp,
                    "landmarks": None if f.landmarks is None else f.landmarks.tolist(),
                }
                for f in self._frames
            ],
        }
        with open(path, "w") as f:
            json.dump(data, f)
        logger.info("Saved %d frames to %s", len(self._frames), path)

    def save_compact(self, path: str | Path):
        """Save in compressed numpy format."""
        path = Path(path).with_suffix(".npz")
        path.parent.mkdir(parents=True, exist_ok=True)

        n = len(self._frames)
        shape = (n, HandLandmark.NUM_LANDMARKS, HandLandmark.LANDMARK_DIM)
        landmarks = np.zeros(shape, dtype=np.float32)
        has_hand = np.zeros(n, dtype=bool)
        for i, f in enumerate(self._frames):
            if f.landmarks is not None:
                landmarks[i] = f.landmarks
                has_hand[i] = True

        np.savez_compressed(
            path,
            version=np.array(FORMAT_VERSION),
            timestamps=np.array([f.timestamp for f in self._frames], dtype=np.float64),
            landmarks=landmarks,
            has_hand=has_hand,
        )
        logger.info("Saved %d frames to %s", n, path)


class SessionPlayer:
    """Replays a recorded session.

    Usage:
        player = SessionPlayer.load("session.json")
        for frame in player.play():
            pipeline.process(frame)
    """

    def __init__(self, frames: list[FrameInput]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> SessionPlayer:
        """Load a JSON or NPZ recording.

        Raises:
            ValueError: unknown format version or malformed frames.
        """
        path = Path(path)
        if path.suffix == ".npz":
            return cls._load_compact(path)

        with open(path) as f:
            data = json.load(f)

        version = data.get("version")
        if version != FORMAT_VERSION:
            raise ValueError(f"unsupported recording version {version!r} in {path}")

        frames = []
        for i, entry in enumerate(data.get("frames", [])):
            try:
                t = float(entry["t"])
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"frame {i} in {path} has no valid timestamp") from e
            lm = entry.get("landmarks")
            frames.append(FrameInput(
                timestamp=t,
                landmarks=None if lm is None else as_landmark_frame(lm),
            ))
        return cls(frames)

    @classmethod
    def _load_compact(cls, path: Path) -> SessionPlayer:
        data = np.load(path, allow_pickle=False)
        version = int(data["version"])
        if version != FORMAT_VERSION:
            raise ValueError(f"unsupported recording version {version!r} in {path}")

        timestamps = data["timestamps"]
        landmarks = data["landmarks"]
        has_hand = data["has_hand"]
        if not (len(timestamps) == len(landmarks) == len(has_hand)):
            raise ValueError(f"inconsistent array lengths in {path}")

        frames = [
            FrameInput(
                timestamp=float(timestamps[i]),
                landmarks=as_landmark_frame(landmarks[i]) if has_hand[i] else None,
            )
            for i in range(len(timestamps))
        ]
        return cls(frames)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if len(self._frames) < 2:
            return 0.0
        return self._frames[-1].timestamp - self._frames[0].timestamp

    def play(self) -> Iterator[FrameInput]:
        """Yield every frame immediately."""
        yield from self._frames

    def play_realtime(self, speed: float = 1.0) -> Iterator[FrameInput]:
        """Yield frames at their recorded pace (scaled by `speed`)."""
        if not self._frames:
            return

        start = time.monotonic()
        t0 = self._frames[0].timestamp
        for frame in self._frames:
            target = (frame.timestamp - t0) / speed
            elapsed = time.monotonic() - start
            if target > elapsed:
                time.sleep(target - elapsed)
            yield frame

    def get_frame(self, index: int) -> Optional[FrameInput]:
        if 0 <= index < len(self._frames):
            return self._frames[index]
        return None
