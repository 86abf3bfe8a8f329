"""
Facial emotion classification.

EmotionClassifier is the capability the inference loop depends on;
DeepFaceClassifier implements it with DeepFace (imported lazily in load()).
"""
# moodcore/emotion.py
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, Optional
import asyncio
import logging

import numpy as np

from moodcore.config import Settings
from moodcore.errors import InferenceError, InvalidFrameError, ModelLoadError
from moodcore.models import EMOTION_LABELS, ClassificationResult, FaceRegion

logger = logging.getLogger(__name__)

# Backend label -> EmotionLabel
LABEL_ALIASES: Dict[str, str] = {
    "surprise": "surprised",
    "happiness": "happy",
    "sadness": "sad",
    "anger": "angry",
    "scared": "fear",
    "fearful": "fear",
    "disgusted": "disgust",
    "calm": "neutral",
}


def normalize_emotion(label: Optional[str]) -> Optional[str]:
    """Map a backend label onto the closed EmotionLabel set (None if unknown)."""
    if not label:
        return None
    key = label.strip().lower()
    if key in EMOTION_LABELS:
        return key
    return LABEL_ALIASES.get(key)


def frame_has_size(frame) -> bool:
    """True if the frame is decoded and has non-zero width and height."""
    if frame is None:
        return False
    shape = getattr(frame, "shape", None)
    if not shape or len(shape) < 2:
        return False
    return shape[0] > 0 and shape[1] > 0


class EmotionClassifier(ABC):
    """Frame -> (emotion, confidence, per-class scores)."""

    @property
    @abstractmethod
    def ready(self) -> bool:
        ...

    @abstractmethod
    async def load(self) -> None:
        """Initialize the backend. Raises ModelLoadError."""

    @abstractmethod
    async def classify(self, frame: np.ndarray) -> ClassificationResult:
        """Raises InvalidFrameError for empty frames, InferenceError otherwise."""

    @abstractmethod
    def dispose(self) -> None:
        """Release backend resources. Safe to call more than once."""


class DeepFaceClassifier(EmotionClassifier):
    """DeepFace emotion model (7 classes, percentage scores)."""

    def __init__(self, settings: Settings):
        self.s = settings
        self._deepface = None
        self._ready = False
        self._disposed = False

    @property
    def ready(self) -> bool:
        return self._ready and not self._disposed

    async def load(self) -> None:
        if self._disposed:
            raise ModelLoadError("classifier already disposed")
        logger.debug(f"[model] loading DeepFace emotion model backend={self.s.DETECTOR_BACKEND}")
        try:
            # Lazy import so tests can monkeypatch sys.modules['deepface']
            from deepface import DeepFace
        except Exception as e:
            raise ModelLoadError("DeepFace import failed. Ensure deepface/tensorflow stack is installed.") from e

        try:
            # Warm-up on a blank frame builds and caches the emotion model
            blank = np.zeros((48, 48, 3), dtype=np.uint8)
            await asyncio.to_thread(
                DeepFace.analyze,
                blank,
                actions=["emotion"],
                enforce_detection=False,
                detector_backend=self.s.DETECTOR_BACKEND,
            )
        except Exception as e:
            raise ModelLoadError(f"DeepFace warm-up failed: {e}") from e

        self._deepface = DeepFace
        self._ready = True
        logger.debug("[model] DeepFace emotion model ready")

    async def classify(self, frame: np.ndarray) -> ClassificationResult:
        if not frame_has_size(frame):
            raise InvalidFrameError("frame has zero width or height")
        if not self.ready:
            raise InferenceError("classifier is not ready")

        try:
            res = await asyncio.to_thread(
                self._deepface.analyze,
                frame,
                actions=["emotion"],
                enforce_detection=False,
                detector_backend=self.s.DETECTOR_BACKEND,
            )
        except ValueError as e:
            # DeepFace raises ValueError when no face can be detected
            raise InferenceError(f"no face detected: {e}") from e
        except Exception as e:
            raise InferenceError(f"emotion inference failed: {e}") from e

        # DeepFace returns list[dict] or dict depending on version; normalize to list
        res = res if isinstance(res, list) else [res]
        if not res:
            raise InferenceError("no face detected")
        return self._parse(res[0] or {})

    def _parse(self, r0: Dict) -> ClassificationResult:
        face_conf = r0.get("face_confidence", 1.0)
        try:
            face_conf = float(face_conf)
        except (TypeError, ValueError):
            face_conf = 1.0
        if face_conf < self.s.MIN_FACE_CONFIDENCE:
            raise InferenceError(f"no face detected (face_confidence={face_conf:.2f})")

        raw = r0.get("emotion") if isinstance(r0.get("emotion"), dict) else {}
        scores = {label: 0.0 for label in EMOTION_LABELS}
        for k, v in raw.items():
            label = normalize_emotion(k)
            if label is not None:
                scores[label] = float(v)

        emotion = normalize_emotion(r0.get("dominant_emotion"))
        if emotion is None:
            if not raw:
                raise InferenceError("backend returned no emotion scores")
            emotion = max(scores, key=scores.get)

        # DeepFace reports percentages; other backends may already be in [0, 1]
        top = scores[emotion]
        confidence = top / 100.0 if top > 1.0 else top
        confidence = max(0.0, min(1.0, confidence))

        reg = r0.get("region") or {}
        region = FaceRegion(
            x=int(reg.get("x", 0)), y=int(reg.get("y", 0)),
            w=int(reg.get("w", 0)), h=int(reg.get("h", 0)),
        ) if reg else None

        return ClassificationResult(
            emotion=emotion,
            confidence=confidence,
            all_scores=scores,
            region=region,
        )

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._ready = False
        self._deepface = None
        logger.debug("[model] DeepFace classifier disposed")
