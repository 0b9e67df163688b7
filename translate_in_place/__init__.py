"""
Translate-In-Place

Finds the text in a photo, translates it, and paints each translated block
back onto the photo inside a colour-matched bubble.
"""

__version__ = "1.0.0"

from .models import Language, ProcessingState, StateKind, TextGroup, TextObservation
from .grouper import TextBlockGrouper
from .renderer import BubbleRenderer
from .pipeline import TranslationPipeline

__all__ = [
    "Language",
    "ProcessingState",
    "StateKind",
    "TextGroup",
    "TextObservation",
    "TextBlockGrouper",
    "BubbleRenderer",
    "TranslationPipeline",
]
