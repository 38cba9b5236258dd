from typing import Dict, List, Optional


class LabelRegistry:
    """Maps the classifier's integer labels to user ids for one trained model.

    Labels are dense, start at 0 and follow registration order. They mean
    nothing outside the model they were built with, so never store them.
    """

    def __init__(self):
        self._by_label: Dict[int, str] = {}
        self._by_identity: Dict[str, int] = {}

    def register(self, identity: str) -> int:
        if identity in self._by_identity:
            return self._by_identity[identity]
        label = len(self._by_label)
        self._by_label[label] = identity
        self._by_identity[identity] = label
        return label

    def resolve(self, label: int) -> Optional[str]:
        return self._by_label.get(label)

    def label_of(self, identity: str) -> Optional[int]:
        return self._by_identity.get(identity)

    def identities(self) -> List[str]:
        return [self._by_label[label] for label in range(len(self._by_label))]

    def to_dict(self) -> Dict[int, str]:
        return dict(self._by_label)

    def __len__(self) -> int:
        return len(self._by_label)

    def __contains__(self, identity: str) -> bool:
        return identity in self._by_identity
