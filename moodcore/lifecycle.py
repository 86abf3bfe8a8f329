"""
Asynchronous load / ready / error lifecycle of the emotion classifier.
"""
from __future__ import annotations
from typing import Callable, Optional
import asyncio
import logging

from moodcore.emotion import EmotionClassifier
from moodcore.errors import ModelLoadError
from moodcore.models import ModelStatus

logger = logging.getLogger(__name__)


class ModelLifecycle:
    """Owns the classifier instance from construction to disposal.

    ensure_ready() is idempotent: a load in flight is awaited, a finished
    load (ready or error) is not repeated. Use reset() to allow a fresh load
    after an error.
    """

    def __init__(self, factory: Callable[[], EmotionClassifier]):
        self._factory = factory
        self._classifier: Optional[EmotionClassifier] = None
        self._load_task: Optional[asyncio.Task] = None
        self._disposed = False
        self.status = ModelStatus.IDLE
        self.error: Optional[str] = None

    @property
    def classifier(self) -> Optional[EmotionClassifier]:
        return self._classifier

    @property
    def ready(self) -> bool:
        return self.status == ModelStatus.READY and self._classifier is not None and self._classifier.ready

    @property
    def loading(self) -> bool:
        return self.status == ModelStatus.LOADING

    async def ensure_ready(self) -> bool:
        if self._disposed:
            logger.warning("[model] ensure_ready called after dispose; ignoring")
            return False
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._load())
        try:
            # shield: cancelling one waiter must not abort a load others are waiting on
            await asyncio.shield(self._load_task)
        except asyncio.CancelledError:
            if not self._load_task.cancelled():
                raise
            # load aborted by dispose()
        return self.ready

    async def _load(self) -> None:
        self.status = ModelStatus.LOADING
        self.error = None
        try:
            self._classifier = self._factory()
            await self._classifier.load()
        except Exception as e:
            if isinstance(e, ModelLoadError):
                logger.exception("[model] classifier failed to load")
            else:
                logger.exception("[model] unexpected error while loading classifier")
            self.status = ModelStatus.ERROR
            self.error = f"Failed to load emotion model: {e}"
            return

        if self._disposed:
            # dispose() ran while the load was in flight and already released it
            return
        self.status = ModelStatus.READY
        logger.info("[model] classifier ready")

    def reset(self) -> None:
        """Dispose a failed classifier so the next ensure_ready() loads again."""
        if self.status != ModelStatus.ERROR or self._disposed:
            return
        if self._classifier is not None:
            self._classifier.dispose()
        self._classifier = None
        self._load_task = None
        self.status = ModelStatus.IDLE
        self.error = None

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self._classifier is not None:
            try:
                self._classifier.dispose()
            except Exception:
                logger.exception("[model] classifier dispose failed")
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._classifier = None
        self.status = ModelStatus.IDLE
        logger.debug("[model] lifecycle disposed")
