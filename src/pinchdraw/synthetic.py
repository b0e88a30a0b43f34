"""Synthetic hand landmarks for benchmarks, demos and tests. No camera required."""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from pinchdraw.landmarks import FrameInput, HandLandmark as HL

# Open-hand fingertip offsets from the palm center (thumb → pinky)
_OPEN_TIPS = ((-0.12, -0.02), (-0.045, -0.22), (-0.015, -0.24), (0.015, -0.22), (0.045, -0.18))
# Curled fingertip offsets, all 0.04 from the palm center
_FIST_TIPS = tuple(
    (0.04 * math.cos(a), -0.04 * math.sin(a))
    for a in (math.pi, 3 * math.pi / 4, math.pi / 2, math.pi / 4, 0.0)
)

_FINGER_BASES = (HL.INDEX_MCP, HL.MIDDLE_MCP, HL.RING_MCP, HL.PINKY_MCP)


def make_hand(
    center: tuple[float, float] = (0.5, 0.5),
    index_tip: Optional[tuple[float, float]] = None,
    thumb_tip: Optional[tuple[float, float]] = None,
    fist: bool = False,
    pinch: bool = False,
    noise: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Build a (21, 3) hand whose palm center is exactly `center`.

    Args:
        center: Palm center (mean of wrist and finger bases).
        index_tip: Override the index fingertip position.
        thumb_tip: Override the thumb tip position.
        fist: Curl every fingertip to 0.04 from the palm center.
        pinch: Put the thumb tip next to the index tip.
        noise: Std-dev of gaussian jitter added to x and y.
    """
    cx, cy = center
    lm = np.zeros((HL.NUM_LANDMARKS, 3), dtype=np.float64)

    # Wrist and finger bases average to the center
    lm[HL.WRIST, :2] = (cx, cy + 0.12)
    for i, base in enumerate(_FINGER_BASES):
        lm[base, :2] = (cx - 0.045 + 0.03 * i, cy - 0.03)

    offsets = _FIST_TIPS if fist else _OPEN_TIPS
    tips = [np.array((cx + dx, cy + dy)) for dx, dy in offsets]
    if index_tip is not None:
        tips[1] = np.array(index_tip, dtype=np.float64)
    if thumb_tip is not None:
        tips[0] = np.array(thumb_tip, dtype=np.float64)
    elif pinch:
        tips[0] = tips[1] + (0.01, 0.01)

    # Thumb chain from the wrist, other fingers from their bases
    wrist = lm[HL.WRIST, :2]
    for k, idx in enumerate((HL.THUMB_CMC, HL.THUMB_MCP, HL.THUMB_IP), start=1):
        lm[idx, :2] = wrist + (tips[0] - wrist) * k / 4
    lm[HL.THUMB_TIP, :2] = tips[0]

    for base, tip in zip(_FINGER_BASES, tips[1:]):
        start = lm[base, :2]
        lm[base + 1, :2] = start + (tip - start) / 3
        lm[base + 2, :2] = start + (tip - start) * 2 / 3
        lm[base + 3, :2] = tip

    if noise > 0:
        rng = rng or np.random.default_rng()
        lm[:, :2] += rng.normal(0.0, noise, size=(HL.NUM_LANDMARKS, 2))
    return lm


def drawing_session(
    fps: float = 30.0,
    t0: float = 0.0,
    noise: float = 0.0,
    seed: int = 0,
) -> list[FrameInput]:
    """A short scripted session: hover, draw a circle, release, lose the hand, clear.

    Timeline (seconds from t0):
        0.0–0.5  open hand hovering
        0.5–2.5  pinching while tracing a circle
        2.5–3.0  open hand (pen up)
        3.0–3.3  no hand
        3.3–3.6  fist (clear)
        3.6–5.0  open hand, then pinching again after the cooldown
    """
    rng = np.random.default_rng(seed)
    dt = 1.0 / fps
    frames: list[FrameInput] = []
    n = int(round(5.0 * fps))

    for i in range(n):
        s = i * dt
        t = t0 + s
        if s < 0.5:
            lm = make_hand(noise=noise, rng=rng)
        elif s < 2.5:
            angle = 2 * math.pi * (s - 0.5) / 2.0
            tip = (0.5 + 0.15 * math.cos(angle), 0.35 + 0.15 * math.sin(angle))
            lm = make_hand(center=(tip[0] + 0.045, tip[1] + 0.22), index_tip=tip,
                           pinch=True, noise=noise, rng=rng)
        elif s < 3.0:
            lm = make_hand(noise=noise, rng=rng)
        elif s < 3.3:
            lm = None
        elif s < 3.6:
            lm = make_hand(fist=True, noise=noise, rng=rng)
        elif s < 4.8:
            lm = make_hand(noise=noise, rng=rng)
        else:
            lm = make_hand(pinch=True, noise=noise, rng=rng)
        frames.append(FrameInput(timestamp=t, landmarks=lm))

    return frames
