"""
Text Detection Module

This module wraps the OCR engines that turn pixels into line-level text
observations. Supports multiple OCR backends: PaddleOCR, EasyOCR, and
Tesseract.
"""

import logging
from typing import List, Optional, Dict, Any
from abc import ABC, abstractmethod
import numpy as np
import cv2

from .errors import OCRServiceFailed
from .models import NormalizedRect, TextObservation

logger = logging.getLogger(__name__)


class OCRBackend(ABC):
    """Abstract base class for OCR backends."""

    @abstractmethod
    def detect_and_recognize(self, image: np.ndarray) -> List[Dict[str, Any]]:
        """
        Detect and recognize text lines in an image.

        Args:
            image: Input image as numpy array (RGB format)

        Returns:
            List of dictionaries with keys: 'bbox' (x1, y1, x2, y2 in
            pixels, top-left origin), 'text', 'confidence'
        """
        pass


def _polygon_to_bbox(points) -> List[float]:
    xs = [float(p[0]) for p in points]
    ys = [float(p[1]) for p in points]
    return [min(xs), min(ys), max(xs), max(ys)]


class PaddleOCRBackend(OCRBackend):
    """PaddleOCR backend for text detection and recognition."""

    def __init__(self, use_gpu: bool = False, lang: str = "en",
                 use_angle_cls: bool = True, show_log: bool = False, **kwargs):
        """
        Initialize PaddleOCR backend.

        Args:
            use_gpu: Whether to use GPU acceleration
            lang: Recognition model language
            use_angle_cls: Whether to use angle classification
            show_log: Whether to show PaddleOCR logs
            **kwargs: Additional arguments for PaddleOCR
        """
        try:
            from paddleocr import PaddleOCR
        except ImportError:
            raise ImportError(
                "PaddleOCR is not installed. "
                "Install it with: pip install paddleocr paddlepaddle"
            )
        self.ocr = PaddleOCR(
            use_angle_cls=use_angle_cls,
            lang=lang,
            use_gpu=use_gpu,
            show_log=show_log,
            **kwargs
        )
        logger.info("PaddleOCR backend initialized successfully")

    def detect_and_recognize(self, image: np.ndarray) -> List[Dict[str, Any]]:
        """Detect and recognize text lines using PaddleOCR."""
        # PaddleOCR reads arrays the way OpenCV does (BGR)
        image_bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
        ocr_result = self.ocr.ocr(image_bgr, cls=True)

        results = []
        for page in ocr_result or []:
            if page is None:
                continue
            for detection in page:
                if detection is None or len(detection) < 2:
                    continue
                points, (text, confidence) = detection[0], detection[1]
                if len(points) < 4 or not text:
                    continue
                results.append({
                    'bbox': _polygon_to_bbox(points),
                    'text': text,
                    'confidence': float(confidence),
                })
        return results


class EasyOCRBackend(OCRBackend):
    """EasyOCR backend for text detection and recognition."""

    def __init__(self, languages: List[str] = None, gpu: bool = False):
        """
        Initialize EasyOCR backend.

        Args:
            languages: List of language codes
            gpu: Whether to use GPU
        """
        try:
            import easyocr
        except ImportError:
            raise ImportError(
                "EasyOCR is not installed. Install it with: pip install easyocr"
            )
        self.reader = easyocr.Reader(languages or ['en'], gpu=gpu)
        logger.info("EasyOCR backend initialized successfully")

    def detect_and_recognize(self, image: np.ndarray) -> List[Dict[str, Any]]:
        """Detect and recognize text lines using EasyOCR."""
        results = []
        for points, text, confidence in self.reader.readtext(image):
            if not text:
                continue
            results.append({
                'bbox': _polygon_to_bbox(points),
                'text': text,
                'confidence': float(confidence),
            })
        return results


class TesseractBackend(OCRBackend):
    """
    Tesseract OCR backend.

    Tesseract reports words; words sharing a block, paragraph and line
    number are joined back into one line.
    """

    def __init__(self, lang: str = "eng"):
        try:
            import pytesseract
        except ImportError:
            raise ImportError(
                "pytesseract is not installed. Install it with: pip install pytesseract"
            )
        self.pytesseract = pytesseract
        self.lang = lang
        logger.info("Tesseract backend initialized successfully")

    def detect_and_recognize(self, image: np.ndarray) -> List[Dict[str, Any]]:
        """Detect and recognize text lines using Tesseract."""
        data = self.pytesseract.image_to_data(
            image,
            lang=self.lang,
            output_type=self.pytesseract.Output.DICT
        )

        lines: Dict[tuple, Dict[str, Any]] = {}
        for i in range(len(data['text'])):
            text = data['text'][i].strip()
            conf = float(data['conf'][i])
            if not text or conf < 0:
                continue

            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            x, y, w, h = data['left'][i], data['top'][i], data['width'][i], data['height'][i]
            line = lines.setdefault(key, {'words': [], 'confs': [], 'bbox': [x, y, x + w, y + h]})
            line['words'].append(text)
            line['confs'].append(conf)
            box = line['bbox']
            line['bbox'] = [min(box[0], x), min(box[1], y), max(box[2], x + w), max(box[3], y + h)]

        return [
            {
                'bbox': [float(v) for v in line['bbox']],
                'text': " ".join(line['words']),
                'confidence': sum(line['confs']) / len(line['confs']) / 100.0,
            }
            for line in lines.values()
        ]


class TextDetector:
    """
    Main text detector class that coordinates OCR operations.

    Produces TextObservation objects with normalized, bottom-left origin
    bounding boxes.
    """

    def __init__(
        self,
        backend: str = "paddleocr",
        confidence_threshold: float = 0.5,
        use_gpu: bool = False,
        language_hint: Optional[str] = None,
        **backend_kwargs
    ):
        """
        Initialize the text detector.

        Args:
            backend: OCR backend to use ('paddleocr', 'easyocr', 'tesseract')
                or an OCRBackend instance
            confidence_threshold: Minimum confidence for accepting detections
            use_gpu: Whether to use GPU acceleration
            language_hint: Language code attached to every observation
            **backend_kwargs: Additional arguments for the OCR backend
        """
        self.confidence_threshold = confidence_threshold
        self.language_hint = language_hint

        if isinstance(backend, OCRBackend):
            self.backend = backend
            name = type(backend).__name__
        else:
            self.backend = self._create_backend(backend, use_gpu, **backend_kwargs)
            name = backend

        logger.info(f"TextDetector initialized with {name} backend")

    def _create_backend(
        self,
        backend: str,
        use_gpu: bool,
        **kwargs
    ) -> OCRBackend:
        """Create and return the appropriate OCR backend."""
        backend_lower = backend.lower()

        if backend_lower == "paddleocr":
            return PaddleOCRBackend(
                use_gpu=use_gpu,
                lang=kwargs.pop('lang', 'en'),
                use_angle_cls=kwargs.pop('use_angle_cls', True),
                show_log=kwargs.pop('show_log', False),
                **kwargs
            )
        elif backend_lower == "easyocr":
            return EasyOCRBackend(
                languages=kwargs.get('languages', ['en']),
                gpu=use_gpu
            )
        elif backend_lower == "tesseract":
            return TesseractBackend(
                lang=kwargs.get('lang', 'eng')
            )
        else:
            raise ValueError(f"Unknown OCR backend: {backend}")

    @staticmethod
    def normalize_bbox(bbox, image_width: int, image_height: int) -> NormalizedRect:
        """Convert a top-left pixel box to a normalized bottom-left rectangle."""
        x1, y1, x2, y2 = bbox
        x1, x2 = max(0.0, x1), min(float(image_width), x2)
        y1, y2 = max(0.0, y1), min(float(image_height), y2)
        return NormalizedRect(
            x=x1 / image_width,
            y=(image_height - y2) / image_height,
            width=(x2 - x1) / image_width,
            height=(y2 - y1) / image_height,
        )

    def detect(self, image: np.ndarray) -> List[TextObservation]:
        """
        Detect and extract text lines from an image.

        Args:
            image: Input image as numpy array (RGB format)

        Returns:
            List of TextObservation objects

        Raises:
            OCRServiceFailed: if the OCR engine fails
        """
        logger.info("Starting text detection...")
        try:
            raw_results = self.backend.detect_and_recognize(image)
        except Exception as e:
            raise OCRServiceFailed(f"Failed to perform text recognition: {e}") from e
        logger.info(f"OCR detected {len(raw_results)} raw text lines")

        h, w = image.shape[:2]
        observations = []
        for result in raw_results:
            if result['confidence'] < self.confidence_threshold:
                continue
            box = self.normalize_bbox(result['bbox'], w, h)
            if box.width <= 0 or box.height <= 0:
                continue
            observations.append(TextObservation(
                text=result['text'],
                confidence=result['confidence'],
                bounding_box=box,
                detected_language=self.language_hint,
            ))

        logger.info(f"Kept {len(observations)} text lines after confidence filtering")
        return observations
