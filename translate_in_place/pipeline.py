"""
Translate-In-Place Pipeline

This module orchestrates the complete translation pipeline as an explicit
state machine: load image -> recognize text -> group and translate ->
render -> finished (or error).
"""

import asyncio
import functools
import logging
import os
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import yaml

from .errors import (
    ImageUnavailable,
    OCRServiceFailed,
    PipelineError,
    TranslationServiceFailed,
    UserCancelled,
)
from .grouper import TextBlockGrouper
from .host import HostContext
from .image_io import decode_image, resize_to_fit
from .language import build_language_picker
from .models import (
    Language,
    ProcessingState,
    StateKind,
    TextGroup,
    TextObservation,
    TranslationRequest,
)
from .renderer import BubbleRenderer

logger = logging.getLogger(__name__)

StateListener = Callable[[ProcessingState], None]


class TranslationPipeline:
    """
    Main orchestrator for translating the text in one shared image.

    The pipeline owns the current ProcessingState and the target language.
    Each pass of grouping -> translation -> rendering is a "run". Changing
    the target language starts a new run from grouping, reusing the loaded
    image and the OCR results. Every run carries a generation number and
    only the newest run may publish state.

    Blocking work (image decode, OCR, translation, rendering) runs in a
    thread pool; state is only ever written from the event loop.
    """

    def __init__(
        self,
        host: HostContext,
        config: Dict[str, Any] = None,
        config_path: str = None,
        text_detector=None,
        translator=None,
        grouper: TextBlockGrouper = None,
        renderer: BubbleRenderer = None,
        executor: Executor = None
    ):
        """
        Initialize the translation pipeline.

        Args:
            host: Host channel supplying the image and receiving the result
            config: Configuration dictionary
            config_path: Path to YAML configuration file
            text_detector: OCR service with ``detect(image)``; built from
                config when None
            translator: Translation service with
                ``translate_batch(requests, language)`` and
                ``supported_languages()``; built from config when None
            grouper: Text grouper; built from config when None
            renderer: Bubble renderer; built from config when None
            executor: Pool for blocking work; a thread pool when None
        """
        self.host = host
        self.config = self._load_config(config, config_path)

        self.text_detector = text_detector
        self.translator = translator
        self.grouper = grouper
        self.renderer = renderer
        self._init_components()

        general = self.config["general"]
        self._executor = executor or ThreadPoolExecutor(
            max_workers=general.get("max_workers", 4),
            thread_name_prefix="translate-in-place",
        )

        target = self.config["translation"].get("target_language", "en")
        self._target_language = Language(code=target, display_name=target)

        self._state = ProcessingState.loading_image()
        self._listeners: List[StateListener] = []
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

        self.available_languages: List[Language] = []
        self.source_image: Optional[np.ndarray] = None
        self.final_image: Optional[np.ndarray] = None
        self._observations: Optional[List[TextObservation]] = None
        self._groups: List[TextGroup] = []

        logger.info("TranslationPipeline initialized")

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "general": {
                "max_image_dimension": 1024,
                "max_workers": 4,
            },
            "ocr": {
                "engine": "paddleocr",
                "confidence_threshold": 0.5,
                "use_gpu": False,
            },
            "translation": {
                "service": "google",
                "target_language": "en",
                "timeout": 10.0,
            },
            "grouping": {
                "gap_ratio": 0.5,
            },
            "rendering": {
                "font_path": None,
                "min_font_size": 5,
                "horizontal_padding": 8,
                "vertical_padding": 4,
                "corner_radius": 8,
            },
        }

    def _load_config(self, config: Dict[str, Any], config_path: str) -> Dict[str, Any]:
        """Overlay the YAML file (or dict) on top of the defaults, per section."""
        if config_path and os.path.exists(config_path):
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f) or {}

        merged = self._get_default_config()
        for section, values in (config or {}).items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(values)
            else:
                merged[section] = values
        return merged

    def _init_components(self):
        """Build every collaborator that was not supplied."""
        ocr_config = dict(self.config.get("ocr", {}))
        trans_config = self.config.get("translation", {})
        group_config = self.config.get("grouping", {})
        render_config = self.config.get("rendering", {})

        if self.text_detector is None:
            from .text_detector import TextDetector
            backend = ocr_config.pop("engine", "paddleocr")
            self.text_detector = TextDetector(
                backend=backend,
                confidence_threshold=ocr_config.pop("confidence_threshold", 0.5),
                use_gpu=ocr_config.pop("use_gpu", False),
                **ocr_config
            )

        if self.translator is None:
            from .translator import Translator
            self.translator = Translator(
                service=trans_config.get("service", "google"),
                api_key=trans_config.get("api_key"),
                timeout=trans_config.get("timeout", 10.0),
            )

        if self.grouper is None:
            self.grouper = TextBlockGrouper(gap_ratio=group_config.get("gap_ratio", 0.5))

        if self.renderer is None:
            self.renderer = BubbleRenderer(
                font_path=render_config.get("font_path"),
                min_font_size=render_config.get("min_font_size", 5),
                horizontal_padding=render_config.get("horizontal_padding", 8),
                vertical_padding=render_config.get("vertical_padding", 4),
                corner_radius=render_config.get("corner_radius", 8),
            )

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ProcessingState:
        return self._state

    @property
    def target_language(self) -> Language:
        return self._target_language

    @property
    def observations(self) -> List[TextObservation]:
        return list(self._observations or [])

    @property
    def groups(self) -> List[TextGroup]:
        return list(self._groups)

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a callback for every published state.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _set_state(self, state: ProcessingState):
        self._state = state
        logger.debug(f"State -> {state!r}")
        for listener in list(self._listeners):
            listener(state)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and not self._cancelled

    def _publish(self, generation: int, state: ProcessingState) -> bool:
        """Publish ``state`` only if ``generation`` is still the newest run."""
        if not self._is_current(generation):
            logger.debug(f"Dropping stale state {state!r} from run {generation}")
            return False
        self._set_state(state)
        return True

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def start(self):
        """Load the shared image and run the whole pipeline once."""
        await self._load_languages()
        await self._launch(self._run_from_image)

    async def retranslate(self, target_language: Language = None):
        """
        Re-run grouping, translation and rendering for a new target language.

        OCR is not repeated. Any run still in flight is superseded.
        """
        if target_language is not None:
            self._target_language = target_language
        if self._cancelled:
            logger.info("Pipeline cancelled, ignoring retranslate")
            return
        if self._observations is None:
            # The first run has not reached grouping yet and will pick up
            # the new language when it does
            logger.info("Text recognition still pending, language change deferred")
            return

        logger.info(f"Retranslating into '{self._target_language.code}'")
        await self._launch(self._run_from_grouping)

    def cancel(self, reason: str = None):
        """Abandon the request. Pending work can no longer publish state."""
        if self._cancelled:
            return
        reason = reason or UserCancelled.default_message
        self._cancelled = True
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info(f"Pipeline cancelled: {reason}")
        self.host.cancel_request(reason)

    def dismiss_error(self):
        """Dismissing the error message closes the request."""
        self.cancel()

    def complete(self) -> bool:
        """
        Hand the final image to the host.

        Only a finished run has an image to hand over.

        Returns:
            True if an image was handed over
        """
        if self._cancelled:
            logger.info("Pipeline cancelled, nothing to complete")
            return False
        if self._state.kind != StateKind.FINISHED or self.final_image is None:
            self._set_state(ProcessingState.error("Final image is not available."))
            return False
        self.host.complete_request(self.final_image)
        logger.info("Final image handed to host")
        return True

    def shutdown(self, wait: bool = False):
        """Release the worker threads."""
        self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def _launch(self, run):
        """Supersede any in-flight run, then start and await a new one."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()

        generation = self._generation
        task = asyncio.ensure_future(run(generation))
        self._task = task

        # A superseded task ends cancelled; that is not our caller's problem
        await asyncio.wait([task])
        if not task.cancelled() and task.exception() is not None:
            raise task.exception()

    async def _call(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    async def _load_languages(self):
        """Fill the language picker once."""
        try:
            languages = await self._call(self.translator.supported_languages)
        except Exception as e:
            logger.warning(f"Could not load supported languages: {e}")
            return
        self.available_languages = build_language_picker(languages)
        logger.info(f"{len(self.available_languages)} target languages available")

    def _load_image(self) -> np.ndarray:
        try:
            payload = self.host.load_item()
        except Exception as e:
            raise ImageUnavailable(f"Error loading image: {e}") from e

        image = decode_image(payload)
        return resize_to_fit(image, self.config["general"].get("max_image_dimension", 1024))

    def _detect(self, image: np.ndarray) -> List[TextObservation]:
        try:
            return list(self.text_detector.detect(image))
        except PipelineError:
            raise
        except Exception as e:
            raise OCRServiceFailed(f"Failed to perform text recognition: {e}") from e

    def _translate(self, texts: List[str], target_language: Language) -> List[str]:
        requests = [TranslationRequest(source_text=t) for t in texts]
        try:
            responses = self.translator.translate_batch(requests, target_language)
        except PipelineError:
            raise
        except Exception as e:
            raise TranslationServiceFailed(f"Translation failed: {e}") from e

        if len(responses) != len(requests):
            raise TranslationServiceFailed(
                f"Translation failed: expected {len(requests)} results, got {len(responses)}"
            )
        return [r.target_text for r in responses]

    async def _run_from_image(self, generation: int):
        logger.info("Step 1: Loading image...")
        try:
            image = await self._call(self._load_image)
            if not self._is_current(generation):
                return
            self.source_image = image
            if not self._publish(generation, ProcessingState.recognizing_text()):
                return

            logger.info("Step 2: Recognizing text...")
            observations = await self._call(self._detect, image)
            if not self._is_current(generation):
                return
            self._observations = observations
            logger.info(f"Recognized {len(observations)} text lines")

            await self._translate_and_render(generation)
        except PipelineError as e:
            self._fail(generation, e)

    async def _run_from_grouping(self, generation: int):
        try:
            if not self._publish(generation, ProcessingState.recognizing_text()):
                return
            await self._translate_and_render(generation)
        except PipelineError as e:
            self._fail(generation, e)

    async def _translate_and_render(self, generation: int):
        target_language = self._target_language
        h, w = self.source_image.shape[:2]
        self.final_image = None

        logger.info(f"Step 3: Grouping text for '{target_language.code}'...")
        groups = self.grouper.group(self._observations, target_language, (w, h))
        self._groups = groups
        if not self._publish(generation, ProcessingState.translating()):
            return

        logger.info(f"Step 4: Translating {len(groups)} text groups...")
        translations = await self._call(
            self._translate, [g.combined_text for g in groups], target_language
        )
        if not self._publish(generation, ProcessingState.rendering()):
            return

        logger.info("Step 5: Rendering translated image...")
        final_image = await self._call(
            self.renderer.render, self.source_image, groups, translations
        )
        if not self._is_current(generation):
            return
        self.final_image = final_image
        self._publish(generation, ProcessingState.finished(final_image))
        logger.info("Translation complete")

    def _fail(self, generation: int, error: PipelineError):
        logger.error(f"Pipeline failed: {error.message}")
        self._publish(generation, ProcessingState.error(error.message))
