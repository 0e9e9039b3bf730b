"""
Classification label model.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ClassificationLabel(str, Enum):
    """
    Material classes the bin can report.

    NONE is a valid answer (empty bin, or a hand inside the box).
    UNKNOWN means the classifier failed or answered outside the label set.
    """
    PLASTIC = "plastic"
    ORGANIC = "organic"
    METAL = "metal"
    NONE = "none"
    UNKNOWN = "unknown"

    @classmethod
    def from_response(cls, text: Optional[str]) -> "ClassificationLabel":
        """
        Map a raw classifier answer onto a label.

        The answer is trimmed and lowercased; only the four textual labels
        of the prompt contract are recognised ("null" meaning an empty bin).
        """
        if text is None:
            return cls.UNKNOWN
        return _RESPONSE_LABELS.get(text.strip().lower(), cls.UNKNOWN)

    @property
    def is_valid(self) -> bool:
        return self is not ClassificationLabel.UNKNOWN


_RESPONSE_LABELS = {
    "plastic": ClassificationLabel.PLASTIC,
    "organic": ClassificationLabel.ORGANIC,
    "metal": ClassificationLabel.METAL,
    "null": ClassificationLabel.NONE,
}
