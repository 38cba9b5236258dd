import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from .classifier import ClassifierWrapper, TrainedModel


class ModelGate:
    """Serializes every train and predict call on one ClassifierWrapper.

    Create one per process and hand it to both orchestrators.
    """

    def __init__(self, classifier: ClassifierWrapper):
        self._classifier = classifier
        self._lock = threading.Lock()

    @contextmanager
    def exclusive(self) -> Iterator[ClassifierWrapper]:
        with self._lock:
            yield self._classifier

    @property
    def is_trained(self) -> bool:
        with self._lock:
            return self._classifier.is_trained

    @property
    def model(self) -> Optional[TrainedModel]:
        with self._lock:
            return self._classifier.model

    def locked(self) -> bool:
        return self._lock.locked()
