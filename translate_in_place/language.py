"""
Language helpers: base-code handling, language identification of
recognized lines, and the language picker catalog.
"""

import logging
import re
from typing import Iterable, List, Optional

from langdetect import DetectorFactory, LangDetectException, detect

from .models import Language

logger = logging.getLogger(__name__)

# langdetect is probabilistic; a fixed seed keeps grouping deterministic
DetectorFactory.seed = 0

_SEPARATORS = re.compile(r"[-_]")


def base_language_code(code: Optional[str]) -> Optional[str]:
    """
    Reduce a language identifier to its base language code.

    "zh-Hans-CN" -> "zh", "pt_BR" -> "pt", "EN" -> "en".
    """
    if not code:
        return None
    base = _SEPARATORS.split(code.strip(), maxsplit=1)[0].lower()
    return base or None


class LanguageIdentifier:
    """
    Identifies the dominant language of a short piece of text.

    Text identification runs first; when it cannot decide (digits,
    punctuation, very short strings) the OCR service's hint is used.
    """

    def __call__(self, text: str, hint: Optional[str] = None) -> Optional[str]:
        return self.identify(text, hint)

    def identify(self, text: str, hint: Optional[str] = None) -> Optional[str]:
        if text and text.strip():
            try:
                return detect(text)
            except LangDetectException as e:
                logger.debug(f"Language detection failed for '{text[:20]}': {e}")
        return hint


def build_language_picker(languages: Iterable[Language]) -> List[Language]:
    """
    Sort languages by display name and keep one entry per base code.

    The first language (alphabetically) of each base code wins.
    """
    ordered = sorted(languages, key=lambda lang: (lang.display_name or lang.code).casefold())

    picker: List[Language] = []
    seen = set()
    for language in ordered:
        base = base_language_code(language.code)
        if base is None or base in seen:
            continue
        seen.add(base)
        picker.append(language)
    return picker
