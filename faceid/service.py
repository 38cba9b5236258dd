import logging
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from . import config
from .classifier import ClassifierWrapper, TrainedModel
from .engine import ClassifierFactory, FaceDetector, HaarFaceDetector, LBPHClassifier
from .errors import CorpusIOError, EnrollmentError, InvalidIdentityError
from .extractor import FaceExtractor
from .gate import ModelGate
from .identify import DetectionResult, IdentificationOrchestrator
from .training import TrainingOrchestrator, TrainingSummary

logger = logging.getLogger(__name__)


@dataclass
class EnrollmentResult:
    user_id: str
    images_saved: int
    saved_paths: List[str] = field(default_factory=list)
    training: Optional[TrainingSummary] = None


def validate_user_id(user_id: Optional[str]) -> str:
    user_id = (user_id or "").strip()
    if not user_id:
        raise InvalidIdentityError("User ID is required")
    if user_id in (".", "..") or Path(user_id).name != user_id or "\\" in user_id:
        raise InvalidIdentityError(f"Invalid user ID: {user_id!r}")
    return user_id


class FaceIDService:
    """Enroll and identify against one shared model.

    Both operations go through the same ``ModelGate``.
    """

    def __init__(
        self,
        corpus_root: Union[str, Path],
        detector: FaceDetector,
        classifier_factory: ClassifierFactory = LBPHClassifier,
        threshold: float = config.MATCH_THRESHOLD,
    ):
        self.corpus_root = Path(corpus_root)
        self.extractor = FaceExtractor(detector)
        self.gate = ModelGate(ClassifierWrapper(classifier_factory, threshold))
        self.trainer = TrainingOrchestrator(self.extractor, self.gate)
        self.identifier = IdentificationOrchestrator(self.extractor, self.gate)

    @property
    def is_trained(self) -> bool:
        return self.gate.is_trained

    @property
    def model(self) -> Optional[TrainedModel]:
        return self.gate.model

    def rebuild(self) -> TrainingSummary:
        return self.trainer.rebuild(self.corpus_root)

    def save_photos(self, user_id: str, photo_paths: Iterable[Union[str, Path]]) -> List[str]:
        """Copy photos into the user's corpus directory without retraining."""
        user_id = validate_user_id(user_id)
        user_dir = self.corpus_root / user_id
        try:
            user_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CorpusIOError(f"Cannot create user directory: {exc}", path=str(user_dir)) from exc

        saved: List[str] = []
        for photo_path in photo_paths:
            photo_path = Path(photo_path)
            suffix = photo_path.suffix.lower()
            if suffix not in config.IMAGE_EXTENSIONS:
                logger.warning("Skipping %s: unsupported image type", photo_path.name)
                continue

            target = user_dir / photo_path.name
            if target.exists():
                target = user_dir / f"{uuid.uuid4().hex}{suffix}"
            try:
                shutil.copyfile(photo_path, target)
            except OSError as exc:
                raise CorpusIOError(f"Cannot save photo: {exc}", path=str(target)) from exc
            saved.append(str(target))
            logger.info("Saved image: %s", target)

        if not saved:
            raise EnrollmentError("No photos were uploaded")
        return saved

    def enroll(self, user_id: str, photo_paths: Iterable[Union[str, Path]]) -> EnrollmentResult:
        user_id = validate_user_id(user_id)
        saved = self.save_photos(user_id, photo_paths)
        summary = self.rebuild()
        logger.info("Enrolled %d images for user %s", len(saved), user_id)
        return EnrollmentResult(user_id, len(saved), saved, summary)

    def identify(self, photo_path: Union[str, Path]) -> Optional[str]:
        return self.identifier.identify(photo_path)

    def identify_detailed(self, photo_path: Union[str, Path]) -> DetectionResult:
        return self.identifier.identify_detailed(photo_path)


def build_service(
    corpus_root: Union[str, Path] = config.KNOWLEDGE_DIR,
    cascade_path: Optional[str] = config.CASCADE_PATH,
    threshold: float = config.MATCH_THRESHOLD,
) -> FaceIDService:
    return FaceIDService(corpus_root, HaarFaceDetector(cascade_path), LBPHClassifier, threshold)
