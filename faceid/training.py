import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple, Union

import cv2
import numpy as np

from . import config
from .errors import CorpusIOError, ImageLoadError, NoFaceDetected
from .extractor import FaceExtractor
from .gate import ModelGate
from .labels import LabelRegistry

logger = logging.getLogger(__name__)


@dataclass
class TrainingSummary:
    trained: bool = False
    sample_count: int = 0
    identities: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def list_identity_dirs(corpus_root: Path) -> List[Path]:
    try:
        return sorted(p for p in corpus_root.iterdir() if p.is_dir() and p.name.strip())
    except OSError as exc:
        raise CorpusIOError(f"Cannot list corpus: {exc}", path=str(corpus_root)) from exc


def list_image_files(person_dir: Path) -> List[Path]:
    try:
        return sorted(
            p
            for p in person_dir.iterdir()
            if p.is_file() and p.suffix.lower() in config.IMAGE_EXTENSIONS
        )
    except OSError as exc:
        raise CorpusIOError(f"Cannot list images: {exc}", path=str(person_dir)) from exc


class TrainingOrchestrator:
    """Rebuilds the live model from ``<corpus_root>/<user_id>/<photo>`` on disk."""

    def __init__(self, extractor: FaceExtractor, gate: ModelGate):
        self.extractor = extractor
        self.gate = gate

    def rebuild(self, corpus_root: Union[str, Path]) -> TrainingSummary:
        corpus_root = Path(corpus_root)
        with self.gate.exclusive() as classifier:
            if not corpus_root.exists():
                try:
                    corpus_root.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    raise CorpusIOError(f"Cannot create corpus: {exc}", path=str(corpus_root)) from exc
                logger.info("Created empty corpus at %s", corpus_root)
                return TrainingSummary(trained=classifier.is_trained)

            samples, registry, skipped = self.collect_samples(corpus_root)
            summary = TrainingSummary(
                sample_count=len(samples),
                identities=registry.identities(),
                skipped=skipped,
            )

            if not samples:
                logger.info("No usable face samples in %s, keeping current model", corpus_root)
                summary.trained = classifier.is_trained
                return summary

            classifier.train(samples, registry)
            summary.trained = True

        logger.info(
            "Model trained with %d images and %d users", len(samples), len(registry)
        )
        return summary

    def collect_samples(
        self, corpus_root: Path
    ) -> Tuple[List[Tuple[np.ndarray, int]], LabelRegistry, List[str]]:
        samples: List[Tuple[np.ndarray, int]] = []
        registry = LabelRegistry()
        skipped: List[str] = []

        for person_dir in list_identity_dirs(corpus_root):
            faces = []
            for image_path in list_image_files(person_dir):
                try:
                    faces.append(self.extractor.extract(image_path))
                except (ImageLoadError, NoFaceDetected, cv2.error) as exc:
                    logger.warning("Failed to process %s: %s", image_path, exc)
                    skipped.append(str(image_path))

            if not faces:
                logger.info("No face samples for %s, leaving it out", person_dir.name)
                continue

            label = registry.register(person_dir.name)
            samples.extend((face, label) for face in faces)

        return samples, registry, skipped
