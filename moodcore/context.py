"""
Session-level shared state store.

Longer-lived than a single detection session (it survives navigation away
and back) and injected into the session constructor.
"""
from __future__ import annotations
from typing import List, Optional

from moodcore.models import EmotionRecord


class SessionContext:
    def __init__(self, user: Optional[str] = None):
        self.user = user
        self._current: Optional[EmotionRecord] = None
        self._log: List[EmotionRecord] = []
        self._sad_streak = 0

    @property
    def current_emotion(self) -> Optional[EmotionRecord]:
        return self._current

    def set_current_emotion(self, record: EmotionRecord) -> None:
        self._current = record

    def append_emotion_history(self, record: EmotionRecord) -> None:
        self._log.append(record)

    def emotion_history(self) -> List[EmotionRecord]:
        return list(self._log)

    def get_sad_streak(self) -> int:
        return self._sad_streak

    def set_sad_streak(self, n: int) -> None:
        self._sad_streak = int(n)
