# moodcore/live.py
"""
Live (real-time) emotion detection loop.

One runner task per detection run:
- an immediate tick when detection starts, then one tick every DETECTION_INTERVAL seconds
- ticks are serialized: a tick never starts while another is in flight, so
  history order equals invocation order (a slow tick delays the next one
  instead of overlapping it)
- stop() cancels the runner; nothing scheduled after the cancellation point runs

Each successful tick publishes an EmotionRecord to the SessionContext, the
HistoryTracker, the EscalationPolicy and the overlay surface.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from moodcore.camera import PermissionManager
from moodcore.context import SessionContext
from moodcore.emotion import frame_has_size
from moodcore.errors import InferenceError, InvalidFrameError
from moodcore.escalation import EscalationPolicy
from moodcore.history import HistoryTracker
from moodcore.lifecycle import ModelLifecycle
from moodcore.models import EmotionRecord
from moodcore.visual import OverlaySurface

logger = logging.getLogger(__name__)

DETECTION_ERROR_MESSAGE = "Error during emotion detection. Please try again."


class InferenceLoop:
    """Periodic classification over the granted camera stream."""
    def __init__(self,
                 permission: PermissionManager,
                 lifecycle: ModelLifecycle,
                 history: HistoryTracker,
                 escalation: EscalationPolicy,
                 context: SessionContext,
                 overlay: Optional[OverlaySurface] = None,
                 interval: float = 1.0):
        self.permission = permission
        self.lifecycle = lifecycle
        self.history = history
        self.escalation = escalation
        self.context = context
        self.overlay = overlay or OverlaySurface()
        self.interval = float(interval)
        self.detection_error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._busy = False

    # ---- lifecycle ----
    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def busy(self) -> bool:
        return self._busy

    def can_run(self) -> bool:
        return self.permission.granted and self.lifecycle.ready

    def start(self) -> bool:
        """Start ticking. Returns False (and does nothing) unless permission and model are ready."""
        if self.running:
            return True
        if not self.can_run():
            logger.debug(f"[loop] start refused permission={self.permission.state.value} "
                         f"model={self.lifecycle.status.value}")
            return False
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"[loop] detection started interval={self.interval}s")
        return True

    async def stop(self) -> None:
        """Cancel the runner and clear the overlay. Safe to call when not running."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("[loop] detection stopped")
        self.overlay.clear()

    # ---- loop ----
    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            if not self.can_run():
                logger.warning("[loop] permission or model lost; runner exiting")
                self.overlay.clear()
                return
            started = loop.time()
            await self.tick()
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self.interval - elapsed))

    async def tick(self) -> Optional[EmotionRecord]:
        """One classification step. Returns the new record, or None if skipped or failed."""
        if self._busy:
            logger.debug("[loop] previous tick still in flight; skipping")
            return None
        self._busy = True
        try:
            return await self._tick()
        finally:
            self._busy = False

    async def _tick(self) -> Optional[EmotionRecord]:
        classifier = self.lifecycle.classifier
        if classifier is None or not self.lifecycle.ready:
            return None

        frame = await self.permission.read_frame()
        if not frame_has_size(frame):
            return None

        try:
            result = await classifier.classify(frame)
        except InvalidFrameError:
            return None
        except InferenceError as e:
            logger.warning(f"[loop] inference failed: {e}")
            self.detection_error = DETECTION_ERROR_MESSAGE
            return None
        except Exception:
            logger.exception("[loop] unexpected classifier error")
            self.detection_error = DETECTION_ERROR_MESSAGE
            return None

        record = EmotionRecord.from_result(result)
        self.detection_error = None
        self.context.set_current_emotion(record)
        self.context.append_emotion_history(record)
        self.history.push(record)
        self.escalation.on_detection(record.emotion)
        self.overlay.render(frame, result)
        logger.debug(f"[loop] {record.emotion} confidence={record.confidence:.2f}")
        return record
