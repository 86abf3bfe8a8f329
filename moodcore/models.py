"""
Pydantic data models for detections and session state.
"""
from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Literal, get_args

EmotionLabel = Literal["neutral", "happy", "sad", "angry", "surprised", "fear", "disgust"]
EMOTION_LABELS: tuple[str, ...] = get_args(EmotionLabel)


class FaceRegion(BaseModel):
    x: int = 0
    y: int = 0
    w: int = 0
    h: int = 0


class ClassificationResult(BaseModel):
    """Output of one EmotionClassifier.classify call."""
    emotion: EmotionLabel
    confidence: float = Field(ge=0.0, le=1.0)
    all_scores: Dict[EmotionLabel, float] = Field(default_factory=dict)
    region: Optional[FaceRegion] = None


class EmotionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    emotion: EmotionLabel
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=datetime.now)
    all_scores: Dict[EmotionLabel, float] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: ClassificationResult) -> "EmotionRecord":
        return cls(
            emotion=result.emotion,
            confidence=result.confidence,
            all_scores=dict(result.all_scores),
        )


# session state

class PermissionState(str, Enum):
    UNKNOWN = "unknown"
    REQUESTING = "requesting"
    GRANTED = "granted"
    DENIED = "denied"


class ModelStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class DetectionState(str, Enum):
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    PERMISSION_DENIED = "permission_denied"
    MODEL_LOADING = "model_loading"
    MODEL_ERROR = "model_error"
    MODEL_READY = "model_ready"
    DETECTING = "detecting"
    UNMOUNTED = "unmounted"


class SessionStatus(BaseModel):
    state: DetectionState
    permission: PermissionState
    model_status: ModelStatus
    is_detecting: bool
    detection_error: Optional[str] = None
    model_error: Optional[str] = None
    current_emotion: Optional[EmotionRecord] = None
    history: List[EmotionRecord] = Field(default_factory=list)
    sad_streak: int = 0
    navigations: List[str] = Field(default_factory=list)
