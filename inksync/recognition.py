"""
Recognizer interface for InkSync.

The handwriting recognizer itself lives outside this package; the engine only
needs something that turns strokes into recognized lines.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from .models import RecognizedLine, Stroke


class BaseRecognizer(ABC):
    """
    Abstract base class for handwriting recognizers.
    """

    @abstractmethod
    def recognize(self, strokes: Sequence[Stroke]) -> List[RecognizedLine]:
        """
        Recognize the text lines written by the given strokes.

        Returns:
            Lines with text, indent level and vertical bounds

        Raises:
            RecognitionError: If recognition fails
        """
        pass


class StaticRecognizer(BaseRecognizer):
    """
    Recognizer that returns a fixed set of lines.

    Used for tests and for replaying a saved recognition result.
    """

    def __init__(self, lines: Sequence[RecognizedLine]):
        self.lines = list(lines)
        self.calls = 0

    def recognize(self, strokes: Sequence[Stroke]) -> List[RecognizedLine]:
        self.calls += 1
        return [line.model_copy(deep=True) for line in self.lines]
