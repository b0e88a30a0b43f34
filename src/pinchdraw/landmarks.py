"""Landmark frame contract shared with the external hand tracker."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


class LandmarkShapeError(ValueError):
    """Raised when a landmark frame does not have the (21, 2|3) shape."""


class HandLandmark:
    """MediaPipe hand landmark indices.

    The tracker delivers 21 points per hand in this fixed order. Each point is
    (x, y, z) normalized to [0, 1] relative to the image; z is ignored here.
    """

    WRIST = 0
    THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
    INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
    MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
    RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
    PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

    FINGER_TIPS = (THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP)
    PALM_BASE = (WRIST, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)

    NUM_LANDMARKS = 21
    LANDMARK_DIM = 3  # x, y, z


def as_landmark_frame(landmarks) -> np.ndarray:
    """Validate landmarks and return them as a float array of shape (21, 3).

    Accepts any array-like of shape (21, 2) or (21, 3). Two-column input is
    padded with z = 0.

    Raises:
        LandmarkShapeError: if the input has any other shape.
    """
    arr = np.asarray(landmarks, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] != HandLandmark.NUM_LANDMARKS or arr.shape[1] not in (2, 3):
        raise LandmarkShapeError(
            f"expected landmarks of shape (21, 2) or (21, 3), got {arr.shape}"
        )
    if arr.shape[1] == 2:
        arr = np.hstack([arr, np.zeros((HandLandmark.NUM_LANDMARKS, 1))])
    return arr


def mirror_horizontal(frame: np.ndarray) -> np.ndarray:
    """Flip x so a selfie-view camera draws in the direction the hand moves."""
    mirrored = frame.copy()
    mirrored[:, 0] = 1.0 - mirrored[:, 0]
    return mirrored


def point_xy(frame: np.ndarray, index: int) -> np.ndarray:
    """Return the (x, y) of one landmark as a width-2 signal."""
    return frame[index, :2].copy()


@dataclass
class FrameInput:
    """One frame from the tracker.

    `landmarks` is None when no hand was detected in the frame.
    """
    timestamp: float  # seconds
    landmarks: Optional[np.ndarray] = None

    @property
    def has_hand(self) -> bool:
        return self.landmarks is not None
