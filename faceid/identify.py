import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .extractor import FaceExtractor
from .gate import ModelGate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionResult:
    identity: Optional[str]
    accepted: bool
    distance: float


class IdentificationOrchestrator:
    def __init__(self, extractor: FaceExtractor, gate: ModelGate):
        self.extractor = extractor
        self.gate = gate

    def identify(self, image_path: Union[str, Path]) -> Optional[str]:
        return self.identify_detailed(image_path).identity

    def identify_detailed(self, image_path: Union[str, Path]) -> DetectionResult:
        """Match one photo against the live model.

        Raises ``ImageLoadError`` or ``NoFaceDetected`` for a bad image and
        ``ModelNotTrained`` before the first successful rebuild.
        """
        with self.gate.exclusive() as classifier:
            sample = self.extractor.extract(image_path)
            prediction = classifier.predict(sample)
            accepted = classifier.accepts(prediction.distance)

        # a label the registry does not know is treated as no match
        identity = prediction.identity if accepted else None
        if identity is None:
            accepted = False
        logger.info(
            "Identify %s -> %s (distance %.2f)",
            Path(image_path).name,
            identity or "unknown",
            prediction.distance,
        )
        return DetectionResult(identity, accepted, prediction.distance)
