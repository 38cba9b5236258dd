from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np

from . import config
from .engine import FaceDetector
from .errors import ImageLoadError, NoFaceDetected


class FaceExtractor:
    """Turns an image file into a normalized grayscale face sample.

    Only the first region returned by the detector is used, whatever its size.
    """

    def __init__(self, detector: FaceDetector, face_size: Tuple[int, int] = config.FACE_SIZE):
        self.detector = detector
        self.face_size = face_size

    def load_gray(self, image_path: Union[str, Path]) -> np.ndarray:
        image = cv2.imread(str(image_path), cv2.IMREAD_GRAYSCALE)
        if image is None or image.size == 0:
            raise ImageLoadError("Failed to load image", path=str(image_path))
        return image

    def extract(self, image_path: Union[str, Path]) -> np.ndarray:
        gray = self.load_gray(image_path)
        faces = self.detector.detect_face_regions(gray)
        if len(faces) == 0:
            raise NoFaceDetected("No face detected in image", path=str(image_path))
        return self.crop(gray, faces[0])

    def crop(self, gray: np.ndarray, rect) -> np.ndarray:
        x, y, w, h = rect
        face = gray[y : y + h, x : x + w]
        if face.size == 0:
            raise NoFaceDetected("Detected face region is empty")
        return cv2.resize(face, self.face_size, interpolation=cv2.INTER_LINEAR)
