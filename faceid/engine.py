"""OpenCV adapters for face detection and LBPH classification.

The rest of the package only relies on two small capabilities:

* a detector with ``detect_face_regions(gray) -> list[(x, y, w, h)]``
* a trainable classifier with ``train(samples, labels)`` and
  ``predict(sample) -> (label, distance)``

Anything implementing those methods can replace the OpenCV classes below.
"""
import logging
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

from . import config
from .errors import EngineError

logger = logging.getLogger(__name__)

Rect = Tuple[int, int, int, int]


class FaceDetector(Protocol):
    def detect_face_regions(self, gray: np.ndarray) -> List[Rect]: ...


class TrainableClassifier(Protocol):
    def train(self, samples: Sequence[np.ndarray], labels: Sequence[int]) -> None: ...

    def predict(self, sample: np.ndarray) -> Tuple[int, float]: ...


ClassifierFactory = Callable[[], TrainableClassifier]


class HaarFaceDetector:
    def __init__(
        self,
        cascade_path: Optional[str] = None,
        scale_factor: float = config.DETECT_SCALE_FACTOR,
        min_neighbors: int = config.DETECT_MIN_NEIGHBORS,
        min_size: Tuple[int, int] = config.DETECT_MIN_SIZE,
    ):
        if cascade_path is None:
            cascade_path = cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
        self.cascade = cv2.CascadeClassifier(cascade_path)
        if self.cascade.empty():
            raise EngineError(f"Failed to load Haar cascade from {cascade_path}")
        logger.info("Loaded Haar cascade from %s", cascade_path)
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size

    def detect_face_regions(self, gray: np.ndarray) -> List[Rect]:
        # maxSize left at its default (0, 0): no upper bound
        faces = self.cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
        )
        return [(int(x), int(y), int(w), int(h)) for (x, y, w, h) in faces]


class LBPHClassifier:
    def __init__(
        self,
        radius: int = config.LBPH_RADIUS,
        neighbors: int = config.LBPH_NEIGHBORS,
        grid_x: int = config.LBPH_GRID_X,
        grid_y: int = config.LBPH_GRID_Y,
        threshold: float = config.LBPH_THRESHOLD,
    ):
        if not hasattr(cv2, "face"):
            raise EngineError("cv2.face is missing; install opencv-contrib-python")
        self.recognizer = cv2.face.LBPHFaceRecognizer_create(
            radius, neighbors, grid_x, grid_y, threshold
        )

    def train(self, samples: Sequence[np.ndarray], labels: Sequence[int]) -> None:
        self.recognizer.train(list(samples), np.array(labels, dtype=np.int32))

    def predict(self, sample: np.ndarray) -> Tuple[int, float]:
        label, distance = self.recognizer.predict(sample)
        return int(label), float(distance)
