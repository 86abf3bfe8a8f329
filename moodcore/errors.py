"""
Error taxonomy for the detection session.

Each error is raised at one asynchronous boundary (camera, model load,
classification) and converted into session state by its owner.
"""


class DetectionError(Exception):
    """Base class for detection-session errors."""


class PermissionDeniedError(DetectionError):
    """Camera access was refused or the device could not be opened."""


class StreamClosedError(DetectionError):
    """The device closed a stream that had been granted."""


class ModelLoadError(DetectionError):
    """The classification backend failed to initialize."""


class InferenceError(DetectionError):
    """A single classification failed (no face, backend error). Non-fatal."""


class InvalidFrameError(DetectionError):
    """The frame has zero spatial dimensions. Callers skip the tick silently."""
