
"""Visualization helpers for the live feed.

- draw_overlays: draw the face rectangle and "<emotion> <confidence>%" label on a frame
- OverlaySurface: holds the last annotated frame; cleared when detection stops
"""
from __future__ import annotations
import cv2
import numpy as np
from typing import Dict, Optional, Tuple

from moodcore.models import ClassificationResult

# BGR
EMOTION_COLORS: Dict[str, Tuple[int, int, int]] = {
    "neutral": (160, 160, 160),
    "happy": (80, 200, 60),
    "sad": (220, 120, 40),
    "angry": (50, 50, 230),
    "surprised": (40, 210, 230),
    "fear": (200, 60, 150),
    "disgust": (60, 160, 60),
}


def format_label(emotion: str, confidence: float) -> str:
    return f"{emotion} {int(round(confidence * 100))}%"


def draw_overlays(frame: np.ndarray,
                  result: Optional[ClassificationResult] = None,
                  color: Optional[Tuple[int, int, int]] = None) -> np.ndarray:
    """Draw the detection box and label on a copy of the frame.

    Args:
        frame: BGR image
        result: classification to draw; None returns an unannotated copy
        color: BGR override; defaults to the emotion's colour

    Returns:
        Annotated copy of the frame
    """
    out = frame.copy()
    if result is None:
        return out
    h, w = out.shape[:2]
    color = color or EMOTION_COLORS.get(result.emotion, (0, 255, 0))
    label = format_label(result.emotion, result.confidence)

    reg = result.region
    if reg is None or reg.w <= 0 or reg.h <= 0:
        cv2.putText(out, label, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2, cv2.LINE_AA)
        return out

    # clamp to image bounds
    x = max(0, min(reg.x, w-1)); y = max(0, min(reg.y, h-1))
    fw = max(0, min(reg.w, w-x)); fh = max(0, min(reg.h, h-y))

    cv2.rectangle(out, (x, y), (x+fw, y+fh), color, 2)
    cv2.putText(out, label, (x, max(0, y-10)), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2, cv2.LINE_AA)
    return out


class OverlaySurface:
    """Last annotated frame for the presentation layer."""

    def __init__(self):
        self.frame: Optional[np.ndarray] = None

    def render(self, frame: np.ndarray, result: ClassificationResult) -> np.ndarray:
        self.frame = draw_overlays(frame, result)
        return self.frame

    def clear(self) -> None:
        self.frame = None

    @property
    def empty(self) -> bool:
        return self.frame is None
