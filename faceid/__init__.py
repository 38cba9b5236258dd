from .errors import (
    CorpusIOError,
    FaceIDError,
    ImageLoadError,
    ModelNotTrained,
    NoFaceDetected,
    TrainingError,
)
from .service import FaceIDService, build_service

__all__ = [
    "CorpusIOError",
    "FaceIDError",
    "FaceIDService",
    "ImageLoadError",
    "ModelNotTrained",
    "NoFaceDetected",
    "TrainingError",
    "build_service",
]
