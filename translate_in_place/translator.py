"""
Translation Module

This module maps recognized text groups to the user's target language.
Supports Google Translate (googletrans) and DeepL backends.
"""

import asyncio
import inspect
import logging
import os
import threading
from typing import List
from abc import ABC, abstractmethod

from .errors import TranslationServiceFailed
from .models import Language, TranslationRequest, TranslationResponse

logger = logging.getLogger(__name__)


class TranslationBackend(ABC):
    """Abstract base class for translation backends."""

    @abstractmethod
    def translate_batch(self, texts: List[str], target_lang: str) -> List[str]:
        """Translate a batch of texts, one result per input, same order."""
        pass

    @abstractmethod
    def supported_languages(self) -> List[Language]:
        """Languages this backend can translate into."""
        pass


class GoogleTranslateBackend(TranslationBackend):
    """Google Translate backend using the free googletrans client."""

    def __init__(self, timeout: float = 10.0):
        try:
            from googletrans import Translator, LANGUAGES
            import httpx
        except ImportError:
            raise ImportError(
                "googletrans is not installed. Install it with: pip install googletrans"
            )
        self.translator = Translator(timeout=httpx.Timeout(timeout))
        self.languages = dict(LANGUAGES)

        # Newer googletrans releases are async; keep one loop for their calls
        self._loop = asyncio.new_event_loop()
        self._lock = threading.Lock()
        logger.info("Google Translate (free API) initialized")

    def _resolve(self, result):
        if inspect.isawaitable(result):
            with self._lock:
                return self._loop.run_until_complete(result)
        return result

    def translate_batch(self, texts: List[str], target_lang: str) -> List[str]:
        """Translate a batch of texts using Google Translate."""
        target = target_lang.lower()
        if target not in self.languages:
            target = target.split("-")[0]

        results = self._resolve(self.translator.translate(texts, src="auto", dest=target))
        if not isinstance(results, list):
            results = [results]
        return [r.text for r in results]

    def supported_languages(self) -> List[Language]:
        return [
            Language(code=code, display_name=name.title())
            for code, name in self.languages.items()
        ]


class DeepLBackend(TranslationBackend):
    """DeepL API backend."""

    # DeepL needs a regional variant for these targets
    TARGET_VARIANTS = {"en": "EN-US", "pt": "PT-PT"}

    def __init__(self, api_key: str = None):
        """
        Initialize DeepL backend.

        Args:
            api_key: DeepL API key (if None, uses DEEPL_API_KEY env var)
        """
        self.api_key = api_key or os.environ.get("DEEPL_API_KEY")
        if not self.api_key:
            raise ValueError("DeepL API key not provided (set DEEPL_API_KEY)")

        try:
            import deepl
        except ImportError:
            raise ImportError("deepl package not installed. Install it with: pip install deepl")
        self.translator = deepl.Translator(self.api_key)
        logger.info("DeepL translator initialized")

    def _target_code(self, target_lang: str) -> str:
        base = target_lang.split("-")[0].lower()
        if base == "zh":
            return "ZH"
        return self.TARGET_VARIANTS.get(base, target_lang.upper())

    def translate_batch(self, texts: List[str], target_lang: str) -> List[str]:
        """Translate a batch of texts using DeepL."""
        results = self.translator.translate_text(texts, target_lang=self._target_code(target_lang))
        if not isinstance(results, list):
            results = [results]
        return [r.text for r in results]

    def supported_languages(self) -> List[Language]:
        return [
            Language(code=lang.code, display_name=lang.name)
            for lang in self.translator.get_target_languages()
        ]


class Translator:
    """
    Main translator class used by the pipeline.

    There is no fallback chain: a failing backend fails the whole batch, and
    the user decides whether to try again.
    """

    def __init__(
        self,
        service="google",
        api_key: str = None,
        timeout: float = 10.0
    ):
        """
        Initialize the translator.

        Args:
            service: 'google', 'deepl' or a TranslationBackend instance
            api_key: API key for services that need one
            timeout: Request timeout in seconds (Google)
        """
        if isinstance(service, TranslationBackend):
            self.backend = service
        else:
            self.backend = self._create_backend(service, api_key, timeout)
        logger.info(f"Translator initialized with {type(self.backend).__name__}")

    def _create_backend(self, service: str, api_key: str, timeout: float) -> TranslationBackend:
        """Create the appropriate translation backend."""
        service_lower = service.lower()
        if service_lower == "google":
            return GoogleTranslateBackend(timeout=timeout)
        elif service_lower == "deepl":
            return DeepLBackend(api_key)
        raise ValueError(f"Unknown translation service: {service}")

    def translate_batch(
        self,
        requests: List[TranslationRequest],
        target_language: Language
    ) -> List[TranslationResponse]:
        """
        Translate requests into the target language, preserving order.

        Raises:
            TranslationServiceFailed: if the backend fails or returns a
                different number of results than requested
        """
        if not requests:
            return []

        logger.info(f"Translating {len(requests)} text groups into '{target_language.code}'...")
        texts = [r.source_text for r in requests]
        try:
            translated = self.backend.translate_batch(texts, target_language.code)
        except Exception as e:
            raise TranslationServiceFailed(f"Translation failed: {e}") from e

        if len(translated) != len(requests):
            raise TranslationServiceFailed(
                f"Translation failed: expected {len(requests)} results, got {len(translated)}"
            )
        return [TranslationResponse(target_text=t) for t in translated]

    def supported_languages(self) -> List[Language]:
        return self.backend.supported_languages()
