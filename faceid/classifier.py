import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from . import config
from .engine import ClassifierFactory, LBPHClassifier, TrainableClassifier
from .errors import EngineError, ModelNotTrained, TrainingError
from .labels import LabelRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainedModel:
    classifier: TrainableClassifier
    registry: LabelRegistry
    sample_count: int


@dataclass(frozen=True)
class Prediction:
    label: int
    distance: float
    # resolved against the registry trained together with the classifier
    identity: Optional[str]


class ClassifierWrapper:
    """Owns the live classifier and its label registry.

    The pair is held in a single ``TrainedModel`` and replaced by one
    assignment, so a reader sees either the old pair or the new one.
    """

    def __init__(
        self,
        classifier_factory: ClassifierFactory = LBPHClassifier,
        threshold: float = config.MATCH_THRESHOLD,
    ):
        self.classifier_factory = classifier_factory
        self.threshold = threshold
        self._model: Optional[TrainedModel] = None

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    @property
    def model(self) -> Optional[TrainedModel]:
        return self._model

    def train(self, samples: Sequence[Tuple[np.ndarray, int]], registry: LabelRegistry) -> None:
        if len(samples) == 0:
            raise TrainingError("Cannot train on an empty sample set")

        faces = [face for face, _ in samples]
        labels = [label for _, label in samples]
        classifier = self.classifier_factory()
        try:
            classifier.train(faces, labels)
        except cv2.error as exc:
            raise TrainingError(f"Classifier rejected the training set: {exc}") from exc

        self._model = TrainedModel(classifier, registry, len(samples))

    def predict(self, sample: np.ndarray) -> Prediction:
        model = self._model
        if model is None:
            raise ModelNotTrained()

        try:
            label, distance = model.classifier.predict(sample)
        except cv2.error as exc:
            raise EngineError(f"Classifier failed to predict: {exc}") from exc

        logger.debug("Predicted label: %s, distance: %.2f", label, distance)
        return Prediction(label, float(distance), model.registry.resolve(label))

    def accepts(self, distance: float) -> bool:
        return distance < self.threshold
