"""
Sad-streak escalation.

Each "sad" detection increments the streak kept in the SessionContext. Once
the streak reaches the threshold, a navigation to the support flow is
scheduled after a fixed delay.

Policies:
  - "once":   schedule at most one navigation per policy instance (latch)
  - "repeat": schedule again on every sad detection at/above threshold
The streak itself is never reset.
"""
from __future__ import annotations
from typing import List, Optional, Protocol, Set
import asyncio
import logging

from moodcore.config import Settings
from moodcore.context import SessionContext

logger = logging.getLogger(__name__)


class Navigator(Protocol):
    def navigate(self, target: str) -> None: ...


class QueuedNavigator:
    """Collects navigation requests for a client to poll."""

    def __init__(self):
        self.targets: List[str] = []

    def navigate(self, target: str) -> None:
        logger.info(f"[escalation] navigate -> {target}")
        self.targets.append(target)

    def drain(self) -> List[str]:
        out, self.targets = self.targets, []
        return out


class EscalationPolicy:
    def __init__(self, context: SessionContext, navigator: Navigator, settings: Settings):
        self.context = context
        self.navigator = navigator
        self.threshold = settings.SAD_STREAK_THRESHOLD
        self.delay = settings.ESCALATION_DELAY
        self.target = settings.ESCALATION_TARGET
        self.policy = settings.ESCALATION_POLICY
        self._latched = False
        self._pending: Set[asyncio.TimerHandle] = set()

    @property
    def latched(self) -> bool:
        return self._latched

    @property
    def pending(self) -> int:
        return len(self._pending)

    def on_detection(self, emotion: str) -> bool:
        """Returns True if a navigation was scheduled. Must run inside the event loop."""
        if emotion != "sad":
            return False
        streak = self.context.get_sad_streak() + 1
        self.context.set_sad_streak(streak)
        logger.debug(f"[escalation] sad streak={streak} threshold={self.threshold}")

        if streak < self.threshold:
            return False
        if self.policy == "once" and self._latched:
            return False
        self._latched = True
        self._schedule()
        return True

    def _schedule(self) -> None:
        loop = asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def fire():
            self._pending.discard(handle)
            try:
                self.navigator.navigate(self.target)
            except Exception:
                logger.exception(f"[escalation] navigation to {self.target} failed")

        handle = loop.call_later(self.delay, fire)
        self._pending.add(handle)
        logger.info(f"[escalation] navigation to {self.target} scheduled in {self.delay}s")

    def cancel_pending(self) -> None:
        for h in self._pending:
            h.cancel()
        self._pending.clear()
