import asyncio
import time
import numpy as np
import pytest

from moodcore.config import Settings
from moodcore.context import SessionContext
from moodcore.emotion import EmotionClassifier, frame_has_size
from moodcore.errors import InferenceError, InvalidFrameError, ModelLoadError, PermissionDeniedError
from moodcore.escalation import QueuedNavigator
from moodcore.models import EMOTION_LABELS, ClassificationResult


def result(emotion, confidence):
    scores = {label: 0.0 for label in EMOTION_LABELS}
    scores[emotion] = confidence
    return ClassificationResult(emotion=emotion, confidence=confidence, all_scores=scores)


class FakeClassifier(EmotionClassifier):
    """Replays scripted results; an Exception instance in the script is raised."""
    def __init__(self, script=None, load_error=None, load_delay=0.0, classify_delay=0.0):
        self.script = list(script or [])
        self.load_error = load_error
        self.load_delay = load_delay
        self.classify_delay = classify_delay
        self._ready = False
        self.loads = 0
        self.calls = 0
        self.disposed = 0

    @property
    def ready(self):
        return self._ready and not self.disposed

    async def load(self):
        self.loads += 1
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        if self.load_error:
            raise ModelLoadError(self.load_error)
        self._ready = True

    async def classify(self, frame):
        if not frame_has_size(frame):
            raise InvalidFrameError("empty")
        self.calls += 1
        if self.classify_delay:
            await asyncio.sleep(self.classify_delay)
        item = self.script.pop(0) if self.script else result("neutral", 0.5)
        if isinstance(item, Exception):
            raise item
        return item

    def dispose(self):
        self.disposed += 1
        self._ready = False


class FakeStream:
    def __init__(self, frame=None):
        self.frame = np.zeros((48, 64, 3), dtype=np.uint8) if frame is None else frame
        self.stops = 0
        self.closed = False

    def read(self):
        if self.closed:
            from moodcore.errors import StreamClosedError
            raise StreamClosedError("unplugged")
        return self.frame

    def stop(self):
        self.stops += 1


class FakeDevice:
    def __init__(self, deny=False, frame=None, delay=0.0):
        self.deny = deny
        self.frame = frame
        self.delay = delay
        self.acquired = 0
        self.streams = []
        self.last_constraints = None

    def acquire(self, constraints):
        self.acquired += 1
        self.last_constraints = constraints
        if self.delay:
            time.sleep(self.delay)
        if self.deny:
            raise PermissionDeniedError("user said no")
        stream = FakeStream(self.frame)
        self.streams.append(stream)
        return stream


@pytest.fixture
def settings():
    return Settings(DETECTION_INTERVAL=0.05, ESCALATION_DELAY=0.05)


@pytest.fixture
def context():
    return SessionContext(user="alice")


@pytest.fixture
def navigator():
    return QueuedNavigator()


@pytest.fixture
def fake_classifier_cls():
    return FakeClassifier


@pytest.fixture
def fake_device_cls():
    return FakeDevice


@pytest.fixture
def make_result():
    return result


@pytest.fixture
def inference_error():
    return InferenceError("no face detected")
