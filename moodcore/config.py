"""
Configuration for the emotion detection session.
"""
from pydantic import BaseModel
import os

class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    FRAME_WIDTH: int = int(os.getenv("FRAME_WIDTH", "640"))
    FRAME_HEIGHT: int = int(os.getenv("FRAME_HEIGHT", "480"))
    FACING_MODE: str = os.getenv("FACING_MODE", "user")
    STREAM_READ_FAILURES: int = int(os.getenv("STREAM_READ_FAILURES", "5"))

    DETECTOR_BACKEND: str = os.getenv("DETECTOR_BACKEND", "opencv")
    MIN_FACE_CONFIDENCE: float = float(os.getenv("MIN_FACE_CONFIDENCE", "0.5"))

    DETECTION_INTERVAL: float = float(os.getenv("DETECTION_INTERVAL", "1.0"))
    HISTORY_SIZE: int = int(os.getenv("HISTORY_SIZE", "5"))

    SAD_STREAK_THRESHOLD: int = int(os.getenv("SAD_STREAK_THRESHOLD", "2"))
    ESCALATION_DELAY: float = float(os.getenv("ESCALATION_DELAY", "2.0"))
    ESCALATION_TARGET: str = os.getenv("ESCALATION_TARGET", "/therapy-session")
    ESCALATION_POLICY: str = os.getenv("ESCALATION_POLICY", "once")
    LOGIN_TARGET: str = os.getenv("LOGIN_TARGET", "/login")

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize ESCALATION_POLICY: lower-case, validate
        policy = (self.ESCALATION_POLICY or "once").strip().lower()
        if policy not in ("once", "repeat"):
            policy = "once"
        object.__setattr__(self, "ESCALATION_POLICY", policy)
