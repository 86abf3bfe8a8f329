"""
Detection session: composition root for camera, classifier and loop.

Owns the camera stream (PermissionManager) and the classifier
(ModelLifecycle) and guarantees a single teardown path:

    stop timer -> cancel pending escalation -> dispose classifier -> release stream

release() is idempotent and safe from any state; the session is unusable
(UNMOUNTED) afterwards.
"""
from __future__ import annotations
from typing import Callable, List, Optional
import logging

from moodcore.camera import CameraConstraints, OpenCVCamera, PermissionManager, VideoDevice
from moodcore.config import Settings
from moodcore.context import SessionContext
from moodcore.emotion import DeepFaceClassifier, EmotionClassifier
from moodcore.escalation import EscalationPolicy, Navigator
from moodcore.history import HistoryTracker
from moodcore.lifecycle import ModelLifecycle
from moodcore.live import InferenceLoop
from moodcore.models import DetectionState, ModelStatus, PermissionState, SessionStatus
from moodcore.visual import OverlaySurface

logger = logging.getLogger(__name__)

MODEL_LOADING_MESSAGE = "Emotion detection model is still loading. Please wait..."


class DetectionSession:
    def __init__(self,
                 settings: Settings,
                 context: SessionContext,
                 navigator: Navigator,
                 device: Optional[VideoDevice] = None,
                 classifier_factory: Optional[Callable[[], EmotionClassifier]] = None):
        self.s = settings
        self.context = context
        self.navigator = navigator

        device = device or OpenCVCamera(settings.CAMERA_INDEX, max_failures=settings.STREAM_READ_FAILURES)
        classifier_factory = classifier_factory or (lambda: DeepFaceClassifier(settings))

        self.permission = PermissionManager(device, CameraConstraints.from_settings(settings))
        self.lifecycle = ModelLifecycle(classifier_factory)
        self.history = HistoryTracker(settings.HISTORY_SIZE)
        self.escalation = EscalationPolicy(context, navigator, settings)
        self.overlay = OverlaySurface()
        self.loop = InferenceLoop(
            self.permission,
            self.lifecycle,
            self.history,
            self.escalation,
            context,
            overlay=self.overlay,
            interval=settings.DETECTION_INTERVAL,
        )
        self._released = False

    # ---- state ----
    @property
    def released(self) -> bool:
        return self._released

    @property
    def is_detecting(self) -> bool:
        return self.loop.running

    @property
    def detection_error(self) -> Optional[str]:
        return self.loop.detection_error

    @property
    def state(self) -> DetectionState:
        if self._released:
            return DetectionState.UNMOUNTED
        perm = self.permission.state
        if perm == PermissionState.REQUESTING:
            return DetectionState.REQUESTING_PERMISSION
        if perm == PermissionState.DENIED:
            return DetectionState.PERMISSION_DENIED
        if not self.permission.granted:
            return DetectionState.IDLE
        status = self.lifecycle.status
        if status == ModelStatus.LOADING:
            return DetectionState.MODEL_LOADING
        if status == ModelStatus.ERROR:
            return DetectionState.MODEL_ERROR
        if status == ModelStatus.READY and self.lifecycle.ready:
            return DetectionState.DETECTING if self.is_detecting else DetectionState.MODEL_READY
        return DetectionState.IDLE

    def status(self, navigations: Optional[List[str]] = None) -> SessionStatus:
        return SessionStatus(
            state=self.state,
            permission=self.permission.state,
            model_status=self.lifecycle.status,
            is_detecting=self.is_detecting,
            detection_error=self.detection_error,
            model_error=self.lifecycle.error,
            current_emotion=self.context.current_emotion,
            history=self.history.items(),
            sad_streak=self.context.get_sad_streak(),
            navigations=list(navigations or []),
        )

    # ---- operations ----
    async def acquire(self) -> DetectionState:
        """Request the camera, then load the classifier once the stream is granted."""
        if self._released:
            logger.warning("[session] acquire on a released session")
            return self.state
        if self.context.user is None:
            logger.info("[session] no signed-in user; redirecting to login")
            self.navigator.navigate(self.s.LOGIN_TARGET)
            return self.state

        if not self.permission.granted:
            await self.permission.request_access()
        if self._released:
            # released while the camera request was in flight
            self.permission.release()
            return self.state
        if not self.permission.granted:
            return self.state

        await self.lifecycle.ensure_ready()
        if self.lifecycle.status == ModelStatus.ERROR:
            self.loop.detection_error = self.lifecycle.error
        return self.state

    async def retry_model(self) -> DetectionState:
        """Re-initialize a classifier that failed to load (host-initiated)."""
        if self._released:
            return self.state
        self.lifecycle.reset()
        self.loop.detection_error = None
        return await self.acquire()

    async def start_detection(self) -> bool:
        if self._released:
            return False
        if self.permission.granted and self.lifecycle.ready:
            return self.loop.start()
        if self.permission.granted:
            self.loop.detection_error = self.lifecycle.error or MODEL_LOADING_MESSAGE
            return False
        if self.permission.state == PermissionState.REQUESTING:
            logger.debug("[session] camera request already in flight")
            return False
        # no stream: explicit user retry of camera acquisition
        await self.acquire()
        return False

    async def stop_detection(self) -> None:
        await self.loop.stop()
        self.loop.detection_error = None

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        logger.debug("[session] releasing")
        try:
            await self.loop.stop()
        finally:
            self.escalation.cancel_pending()
            self.lifecycle.dispose()
            self.permission.release()
        logger.info("[session] released")

    async def __aenter__(self) -> "DetectionSession":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()
