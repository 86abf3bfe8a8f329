"""
Bounded, newest-first record of recent detections for display.
"""
from __future__ import annotations
from collections import deque
from typing import Deque, List, Optional

from moodcore.models import EmotionRecord


class HistoryTracker:
    def __init__(self, maxlen: int = 5):
        self._records: Deque[EmotionRecord] = deque(maxlen=max(1, int(maxlen)))

    def push(self, record: EmotionRecord) -> None:
        # appendleft on a bounded deque drops the oldest (rightmost) entry
        self._records.appendleft(record)

    @property
    def maxlen(self) -> int:
        return self._records.maxlen

    def latest(self) -> Optional[EmotionRecord]:
        return self._records[0] if self._records else None

    def items(self) -> List[EmotionRecord]:
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(list(self._records))
