"""
Shared pytest fixtures: a scripted face detector, a nearest-neighbour
classifier and helpers that write small grayscale photos to a corpus.
"""
import threading
from pathlib import Path

import cv2
import numpy as np
import pytest

from faceid.service import FaceIDService

ALICE = 200
BOB = 100
CAROL = 40


class FakeDetector:
    """Whole image is one face unless it is completely black."""

    def __init__(self, regions=None):
        self.regions = regions
        self.calls = 0

    def detect_face_regions(self, gray):
        self.calls += 1
        if self.regions is not None:
            return list(self.regions)
        if gray.max() == 0:
            return []
        h, w = gray.shape[:2]
        return [(0, 0, w, h)]


class NearestClassifier:
    """Nearest neighbour on mean absolute pixel difference."""

    active = 0
    max_active = 0
    _lock = threading.Lock()

    def __init__(self, delay=0.0):
        self.delay = delay
        self.samples = []
        self.labels = []

    @classmethod
    def reset_counters(cls):
        cls.active = 0
        cls.max_active = 0

    def _enter(self):
        with NearestClassifier._lock:
            NearestClassifier.active += 1
            NearestClassifier.max_active = max(NearestClassifier.max_active, NearestClassifier.active)

    def _exit(self):
        with NearestClassifier._lock:
            NearestClassifier.active -= 1

    def train(self, samples, labels):
        self._enter()
        try:
            if self.delay:
                threading.Event().wait(self.delay)
            self.samples = [s.astype(np.float64) for s in samples]
            self.labels = list(labels)
        finally:
            self._exit()

    def predict(self, sample):
        self._enter()
        try:
            if self.delay:
                threading.Event().wait(self.delay)
            query = sample.astype(np.float64)
            distances = [float(np.abs(s - query).mean()) for s in self.samples]
            best = int(np.argmin(distances))
            return self.labels[best], distances[best]
        finally:
            self._exit()


class FixedDistanceClassifier:
    def __init__(self, distance, label=0):
        self.distance = distance
        self.label = label

    def train(self, samples, labels):
        pass

    def predict(self, sample):
        return self.label, self.distance


def face_image(level: int, seed: int = 0, size=(120, 120)) -> np.ndarray:
    rng = np.random.default_rng(seed)
    noise = rng.integers(-3, 4, size=size)
    return np.clip(level + noise, 1, 255).astype(np.uint8)


def write_image(path: Path, image: np.ndarray) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    ok, data = cv2.imencode(".png", image)
    assert ok
    path.write_bytes(data.tobytes())
    return path


def write_face(path: Path, level: int, seed: int = 0) -> Path:
    return write_image(path, face_image(level, seed))


def write_blank(path: Path) -> Path:
    return write_image(path, np.zeros((120, 120), dtype=np.uint8))


def write_corrupt(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"this is not an image")
    return path


def png_bytes(image: np.ndarray) -> bytes:
    ok, data = cv2.imencode(".png", image)
    assert ok
    return data.tobytes()


@pytest.fixture
def corpus(tmp_path):
    return tmp_path / "knowledge"


@pytest.fixture
def detector():
    return FakeDetector()


@pytest.fixture
def service(corpus, detector):
    NearestClassifier.reset_counters()
    return FaceIDService(corpus, detector, NearestClassifier)


@pytest.fixture
def alice_bob_corpus(corpus):
    for i in range(3):
        write_face(corpus / "alice" / f"alice_{i}.png", ALICE, seed=i)
    write_face(corpus / "bob" / "bob_0.png", BOB, seed=10)
    write_corrupt(corpus / "bob" / "broken.jpg")
    return corpus
