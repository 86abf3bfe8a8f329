import asyncio, sys, types
import numpy as np
import pytest

import moodcore.emotion as emotion_mod
from moodcore.config import Settings
from moodcore.errors import InferenceError, InvalidFrameError, ModelLoadError


class DummyDeepFace:
    """Answers the blank warm-up frame, then returns `reply` for real frames."""
    reply = None
    calls = 0

    @staticmethod
    def analyze(frame, actions, enforce_detection, detector_backend):
        DummyDeepFace.calls += 1
        if not np.any(frame):
            return [{"dominant_emotion": "neutral", "emotion": {"neutral": 99.0}, "face_confidence": 0.0}]
        reply = DummyDeepFace.reply
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def deepface(monkeypatch):
    # ✅ Inject a fake 'deepface' module so `from deepface import DeepFace` works
    DummyDeepFace.reply = None
    DummyDeepFace.calls = 0
    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=DummyDeepFace))
    return DummyDeepFace


def _frame():
    return np.full((48, 48, 3), 120, dtype=np.uint8)


def _loaded(deepface):
    clf = emotion_mod.DeepFaceClassifier(Settings())
    asyncio.run(clf.load())
    return clf


def test_normalize_emotion():
    assert emotion_mod.normalize_emotion("surprise") == "surprised"
    assert emotion_mod.normalize_emotion("Happiness") == "happy"
    assert emotion_mod.normalize_emotion("sad") == "sad"
    assert emotion_mod.normalize_emotion("confused") is None
    assert emotion_mod.normalize_emotion("") is None


def test_frame_has_size():
    assert emotion_mod.frame_has_size(_frame())
    assert not emotion_mod.frame_has_size(None)
    assert not emotion_mod.frame_has_size(np.zeros((0, 640, 3), dtype=np.uint8))
    assert not emotion_mod.frame_has_size(np.zeros((480, 0, 3), dtype=np.uint8))


def test_load_and_classify(deepface):
    deepface.reply = [{
        "dominant_emotion": "surprise",
        "emotion": {"angry": 1.0, "disgust": 0.5, "fear": 2.0, "happy": 3.0,
                    "sad": 1.5, "surprise": 88.0, "neutral": 4.0},
        "region": {"x": 4, "y": 6, "w": 30, "h": 32},
        "face_confidence": 0.97,
    }]
    clf = _loaded(deepface)
    assert clf.ready

    res = asyncio.run(clf.classify(_frame()))
    assert res.emotion == "surprised"
    assert res.confidence == pytest.approx(0.88)
    assert set(res.all_scores) == {"neutral", "happy", "sad", "angry", "surprised", "fear", "disgust"}
    assert res.all_scores["surprised"] == 88.0
    assert res.region.w == 30


def test_missing_classes_filled_and_dict_reply(deepface):
    deepface.reply = {"emotion": {"happy": 0.92, "sad": 0.05}}
    clf = _loaded(deepface)
    res = asyncio.run(clf.classify(_frame()))
    assert res.emotion == "happy"
    assert res.confidence == pytest.approx(0.92)
    assert res.all_scores["disgust"] == 0.0


def test_no_face_is_inference_error(deepface):
    clf = _loaded(deepface)
    deepface.reply = [{"dominant_emotion": "neutral", "emotion": {"neutral": 90.0}, "face_confidence": 0.0}]
    with pytest.raises(InferenceError):
        asyncio.run(clf.classify(_frame()))
    deepface.reply = ValueError("Face could not be detected")
    with pytest.raises(InferenceError):
        asyncio.run(clf.classify(_frame()))
    deepface.reply = []
    with pytest.raises(InferenceError):
        asyncio.run(clf.classify(_frame()))


def test_zero_frame_rejected_without_backend_call(deepface):
    clf = _loaded(deepface)
    calls = deepface.calls
    with pytest.raises(InvalidFrameError):
        asyncio.run(clf.classify(np.zeros((0, 0, 3), dtype=np.uint8)))
    assert deepface.calls == calls


def test_classify_before_load(deepface):
    clf = emotion_mod.DeepFaceClassifier(Settings())
    with pytest.raises(InferenceError):
        asyncio.run(clf.classify(_frame()))


def test_load_failure(monkeypatch):
    class BrokenDeepFace:
        @staticmethod
        def analyze(*a, **k):
            raise RuntimeError("weights download failed")
    monkeypatch.setitem(sys.modules, "deepface", types.SimpleNamespace(DeepFace=BrokenDeepFace))
    clf = emotion_mod.DeepFaceClassifier(Settings())
    with pytest.raises(ModelLoadError):
        asyncio.run(clf.load())
    assert not clf.ready


def test_dispose_idempotent(deepface):
    clf = _loaded(deepface)
    clf.dispose()
    clf.dispose()
    assert not clf.ready
    with pytest.raises(ModelLoadError):
        asyncio.run(clf.load())
