"""
Data Models for the Translate-In-Place System

This module defines the data structures used throughout the pipeline.
"""

from dataclasses import dataclass, field
from typing import List, Tuple, Optional
from enum import Enum
import numpy as np

# RGB colour with channels in the 0..1 range
Color = Tuple[float, float, float]


@dataclass(frozen=True)
class NormalizedRect:
    """
    A rectangle in normalized image coordinates (0..1).

    The origin is the bottom-left corner of the image, so ``y`` is the
    bottom edge and grows upward.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_y(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class BoundingBox:
    """Represents a pixel bounding box (top-left origin)."""
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)

    def intersection(self, other: 'BoundingBox') -> Optional['BoundingBox']:
        """Calculate intersection with another bounding box."""
        x1 = max(self.x1, other.x1)
        y1 = max(self.y1, other.y1)
        x2 = min(self.x2, other.x2)
        y2 = min(self.y2, other.y2)

        if x1 < x2 and y1 < y2:
            return BoundingBox(x1, y1, x2, y2)
        return None

    def union(self, other: 'BoundingBox') -> 'BoundingBox':
        """Smallest box covering both boxes."""
        return BoundingBox(
            min(self.x1, other.x1),
            min(self.y1, other.y1),
            max(self.x2, other.x2),
            max(self.y2, other.y2),
        )

    def expanded(self, dx: float, dy: float) -> 'BoundingBox':
        """Grow the box by ``dx`` on the left/right and ``dy`` on top/bottom."""
        return BoundingBox(self.x1 - dx, self.y1 - dy, self.x2 + dx, self.y2 + dy)

    def clipped(self, width: int, height: int) -> Optional['BoundingBox']:
        """Clip to an image of the given size, or None if nothing remains."""
        return self.intersection(BoundingBox(0, 0, width, height))


@dataclass(frozen=True)
class TextObservation:
    """One OCR-detected line of text with its location and confidence."""
    text: str
    confidence: float
    bounding_box: NormalizedRect
    detected_language: Optional[str] = None


@dataclass(frozen=True)
class TextGroup:
    """One or more adjacent observations merged into a translation unit."""
    combined_text: str
    pixel_bounding_box: BoundingBox


@dataclass(frozen=True)
class Language:
    """A language identifier plus a human-readable display name."""
    code: str
    display_name: str = ""

    @property
    def base_code(self) -> str:
        # Imported lazily to keep models free of module cycles
        from .language import base_language_code
        return base_language_code(self.code)


@dataclass(frozen=True)
class TranslationRequest:
    source_text: str


@dataclass(frozen=True)
class TranslationResponse:
    target_text: str


@dataclass
class RenderPlan:
    """Everything needed to draw one bubble. Discarded after compositing."""
    group: TextGroup
    translated_text: str
    bubble_color: Color
    text_color: Color
    font_size: int
    lines: List[str] = field(default_factory=list)


class StateKind(Enum):
    """Stages of one translation run."""
    LOADING_IMAGE = "loading_image"
    RECOGNIZING_TEXT = "recognizing_text"
    TRANSLATING = "translating"
    RENDERING = "rendering"
    FINISHED = "finished"
    ERROR = "error"


@dataclass(frozen=True, eq=False)
class ProcessingState:
    """
    The single source of truth the presentation layer observes.

    ``image`` is only set for FINISHED and ``message`` only for ERROR.
    Use the factory constructors rather than building instances directly.
    """
    kind: StateKind
    image: Optional[np.ndarray] = None
    message: Optional[str] = None

    @classmethod
    def loading_image(cls) -> 'ProcessingState':
        return cls(StateKind.LOADING_IMAGE)

    @classmethod
    def recognizing_text(cls) -> 'ProcessingState':
        return cls(StateKind.RECOGNIZING_TEXT)

    @classmethod
    def translating(cls) -> 'ProcessingState':
        return cls(StateKind.TRANSLATING)

    @classmethod
    def rendering(cls) -> 'ProcessingState':
        return cls(StateKind.RENDERING)

    @classmethod
    def finished(cls, image: np.ndarray) -> 'ProcessingState':
        return cls(StateKind.FINISHED, image=image)

    @classmethod
    def error(cls, message: str) -> 'ProcessingState':
        return cls(StateKind.ERROR, message=message)

    @property
    def is_terminal(self) -> bool:
        return self.kind in (StateKind.FINISHED, StateKind.ERROR)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ProcessingState):
            return NotImplemented
        # Images compare by identity, like the finished bitmap they wrap
        return (
            self.kind == other.kind
            and self.message == other.message
            and self.image is other.image
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.message, id(self.image)))

    def __repr__(self) -> str:
        if self.kind == StateKind.FINISHED and self.image is not None:
            return f"ProcessingState.finished(shape={self.image.shape})"
        if self.kind == StateKind.ERROR:
            return f"ProcessingState.error({self.message!r})"
        return f"ProcessingState.{self.kind.value}()"
