"""Fist and pinch predicates over hand landmarks."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pinchdraw.landmarks import HandLandmark, as_landmark_frame

DEFAULT_FIST_THRESHOLD = 0.12
DEFAULT_PINCH_THRESHOLD_PX = 50.0


def palm_center(frame: np.ndarray) -> np.ndarray:
    """Mean (x, y) of the wrist and the four finger bases."""
    frame = as_landmark_frame(frame)
    return frame[list(HandLandmark.PALM_BASE), :2].mean(axis=0)


def fingertip_distances(frame: np.ndarray) -> np.ndarray:
    """Distance of each fingertip (thumb → pinky) to the palm center, in (x, y)."""
    frame = as_landmark_frame(frame)
    tips = frame[list(HandLandmark.FINGER_TIPS), :2]
    return np.linalg.norm(tips - palm_center(frame), axis=1)


def is_fist(frame: np.ndarray, threshold: float = DEFAULT_FIST_THRESHOLD) -> bool:
    """True iff all five fingertips are strictly closer than `threshold` to the palm.

    Distances are in normalized image coordinates. A partially closed hand is
    not a fist.
    """
    return bool(np.all(fingertip_distances(frame) < threshold))


def pinch_delta_px(thumb, index, width_px: float, height_px: float) -> tuple[float, float]:
    """Absolute per-axis pixel distance between two normalized points."""
    thumb = np.asarray(thumb, dtype=np.float64)
    index = np.asarray(index, dtype=np.float64)
    dx = (thumb[0] - index[0]) * width_px
    dy = (thumb[1] - index[1]) * height_px
    return abs(float(dx)), abs(float(dy))


def is_pinching(
    thumb,
    index,
    width_px: float,
    height_px: float,
    threshold_px: float = DEFAULT_PINCH_THRESHOLD_PX,
) -> bool:
    """True iff thumb and index are within `threshold_px` on *both* axes.

    This is a per-axis box test, not a radius, so it tolerates canvases with
    very different width and height.
    """
    dx, dy = pinch_delta_px(thumb, index, width_px, height_px)
    return dx < threshold_px and dy < threshold_px


@dataclass
class GestureFlags:
    """Classifier output for one frame."""
    is_fist: bool
    palm_center: np.ndarray
    fingertip_distances: np.ndarray


class GestureClassifier:
    """Holds gesture thresholds and classifies landmark frames.

    Fist detection runs on the raw frame. Pinch detection runs on filtered
    thumb/index points, so it is exposed separately via `is_pinching`.
    """

    def __init__(
        self,
        fist_threshold: float = DEFAULT_FIST_THRESHOLD,
        pinch_threshold_px: float = DEFAULT_PINCH_THRESHOLD_PX,
    ):
        if not fist_threshold > 0:
            raise ValueError(f"fist_threshold must be > 0, got {fist_threshold!r}")
        if not pinch_threshold_px > 0:
            raise ValueError(f"pinch_threshold_px must be > 0, got {pinch_threshold_px!r}")
        self.fist_threshold = fist_threshold
        self.pinch_threshold_px = pinch_threshold_px

    def classify(self, frame: np.ndarray) -> GestureFlags:
        frame = as_landmark_frame(frame)
        distances = fingertip_distances(frame)
        return GestureFlags(
            is_fist=bool(np.all(distances < self.fist_threshold)),
            palm_center=palm_center(frame),
            fingertip_distances=distances,
        )

    def is_pinching(self, thumb, index, width_px: float, height_px: float) -> bool:
        return is_pinching(thumb, index, width_px, height_px, self.pinch_threshold_px)
