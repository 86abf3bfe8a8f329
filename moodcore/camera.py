"""
Camera access: OpenCV video device and the permission manager that owns the stream.
"""
from __future__ import annotations
from typing import Optional, Protocol
import asyncio
import logging

import cv2
import numpy as np
from pydantic import BaseModel

from moodcore.config import Settings
from moodcore.errors import PermissionDeniedError, StreamClosedError
from moodcore.models import PermissionState

logger = logging.getLogger(__name__)


class CameraConstraints(BaseModel):
    width: int = 640
    height: int = 480
    facing_mode: str = "user"

    @classmethod
    def from_settings(cls, settings: Settings) -> "CameraConstraints":
        return cls(
            width=settings.FRAME_WIDTH,
            height=settings.FRAME_HEIGHT,
            facing_mode=settings.FACING_MODE,
        )


class VideoStream(Protocol):
    def read(self) -> Optional[np.ndarray]: ...
    def stop(self) -> None: ...


class VideoDevice(Protocol):
    def acquire(self, constraints: CameraConstraints) -> VideoStream: ...


class OpenCVStream:
    """A granted cv2.VideoCapture. read() returns None for a not-yet-decoded frame."""

    def __init__(self, cap, max_failures: int = 5):
        self.cap = cap
        self.max_failures = max(1, int(max_failures))
        self._failures = 0
        self._stopped = False

    def read(self) -> Optional[np.ndarray]:
        if self._stopped:
            raise StreamClosedError("stream already stopped")
        ok, frame = self.cap.read()
        if ok and frame is not None:
            self._failures = 0
            return frame
        self._failures += 1
        if not self.cap.isOpened() or self._failures >= self.max_failures:
            raise StreamClosedError(f"camera stopped delivering frames after {self._failures} reads")
        return None

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self.cap.release()


class OpenCVCamera:
    """Local webcam via cv2.VideoCapture.

    OpenCV has no facing-mode selection; the camera index picks the device and
    the facing hint is only logged.
    """

    def __init__(self, camera_index: int = 0, max_failures: int = 5):
        self.camera_index = camera_index
        self.max_failures = max_failures

    def acquire(self, constraints: CameraConstraints) -> OpenCVStream:
        logger.debug(f"[camera] open index={self.camera_index} {constraints.width}x{constraints.height} "
                     f"facing={constraints.facing_mode}")
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            cap.release()
            raise PermissionDeniedError(f"Could not open camera index {self.camera_index}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)
        return OpenCVStream(cap, max_failures=self.max_failures)


class PermissionManager:
    """Acquires and releases the camera stream and tracks the permission state."""

    def __init__(self, device: VideoDevice, constraints: Optional[CameraConstraints] = None):
        self.device = device
        self.constraints = constraints or CameraConstraints()
        self.state = PermissionState.UNKNOWN
        self._stream: Optional[VideoStream] = None
        self._request_task: Optional[asyncio.Future] = None

    @property
    def granted(self) -> bool:
        return self.state == PermissionState.GRANTED and self._stream is not None

    @property
    def stream(self) -> Optional[VideoStream]:
        return self._stream

    async def request_access(self) -> PermissionState:
        """Ask the device for a stream. No automatic retries; call again after a denial.

        Overlapping callers share the in-flight request, so the device opens one stream.
        """
        if self.granted:
            return self.state
        if self._request_task is None or self._request_task.done():
            self._request_task = asyncio.ensure_future(self._request())
        return await asyncio.shield(self._request_task)

    async def _request(self) -> PermissionState:
        self.state = PermissionState.REQUESTING
        try:
            stream = await asyncio.to_thread(self.device.acquire, self.constraints)
        except PermissionDeniedError as e:
            logger.warning(f"[camera] permission denied: {e}")
            self.state = PermissionState.DENIED
            return self.state
        except Exception:
            logger.exception("[camera] camera acquisition failed")
            self.state = PermissionState.DENIED
            return self.state

        self._stream = stream
        self.state = PermissionState.GRANTED
        logger.info("[camera] permission granted")
        return self.state

    async def read_frame(self) -> Optional[np.ndarray]:
        """Latest frame, or None if no stream or the frame is not decoded yet.

        A stream closed by the device is released and the state becomes DENIED.
        """
        if not self.granted:
            return None
        try:
            return await asyncio.to_thread(self._stream.read)
        except StreamClosedError as e:
            logger.warning(f"[camera] stream closed by device: {e}")
        except Exception:
            logger.exception("[camera] frame read failed; treating stream as closed")
        self.release()
        self.state = PermissionState.DENIED
        return None

    def release(self) -> None:
        """Stop every track. Idempotent."""
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        except Exception:
            logger.exception("[camera] stream stop failed")
        if self.state == PermissionState.GRANTED:
            self.state = PermissionState.UNKNOWN
        logger.debug("[camera] stream released")
