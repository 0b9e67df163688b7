"""
Image Input/Output Module

Turns whatever the host hands over into an RGB numpy array, and encodes
finished images for the host.
"""

import logging
import os
from pathlib import Path
from typing import Any

import cv2
import numpy as np
from PIL import Image

from .errors import ImageDecodeFailed, ImageUnavailable

logger = logging.getLogger(__name__)


def _from_array(array: np.ndarray) -> np.ndarray:
    """Normalize an RGB/RGBA/grayscale array to contiguous RGB uint8."""
    if array.dtype != np.uint8:
        raise ImageDecodeFailed()
    if array.ndim == 2:
        return cv2.cvtColor(array, cv2.COLOR_GRAY2RGB)
    if array.ndim == 3 and array.shape[2] == 4:
        return cv2.cvtColor(array, cv2.COLOR_RGBA2RGB)
    if array.ndim == 3 and array.shape[2] == 3:
        return np.ascontiguousarray(array)
    raise ImageDecodeFailed()


def _decode_bytes(data: bytes) -> np.ndarray:
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageDecodeFailed()
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def decode_image(payload: Any) -> np.ndarray:
    """
    Decode a host payload into an RGB image.

    Args:
        payload: Encoded bytes, a file path, an RGB(A) numpy array or a
            PIL image

    Returns:
        Image as numpy array (RGB format)

    Raises:
        ImageUnavailable: if the payload is missing or the file does not exist
        ImageDecodeFailed: if the payload cannot be decoded as an image
    """
    if payload is None:
        raise ImageUnavailable()

    if isinstance(payload, Image.Image):
        return np.array(payload.convert('RGB'))

    if isinstance(payload, np.ndarray):
        return _from_array(payload)

    if isinstance(payload, (bytes, bytearray, memoryview)):
        if len(payload) == 0:
            raise ImageUnavailable()
        return _decode_bytes(bytes(payload))

    if isinstance(payload, (str, Path)):
        if not os.path.exists(payload):
            raise ImageUnavailable(f"Image not found: {payload}")
        with open(payload, 'rb') as f:
            image = _decode_bytes(f.read())
        logger.info(f"Loaded image: {payload} (shape: {image.shape})")
        return image

    raise ImageDecodeFailed("Shared item is not a supported image type.")


def resize_to_fit(image: np.ndarray, max_dimension: int = 1024) -> np.ndarray:
    """Downscale so neither side exceeds ``max_dimension``; never upscale."""
    h, w = image.shape[:2]
    if max_dimension is None or (w <= max_dimension and h <= max_dimension):
        return image

    scale = min(max_dimension / w, max_dimension / h)
    new_size = (max(1, int(round(w * scale))), max(1, int(round(h * scale))))
    logger.debug(f"Resizing image from {w}x{h} to {new_size[0]}x{new_size[1]}")
    return cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)


def encode_image(image: np.ndarray, ext: str = ".png", quality: int = 95) -> bytes:
    """Encode an RGB image (PNG by default)."""
    bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
    ext = ext.lower()
    if ext in ['.jpg', '.jpeg']:
        params = [cv2.IMWRITE_JPEG_QUALITY, quality]
    elif ext == '.png':
        params = [cv2.IMWRITE_PNG_COMPRESSION, 9]
    else:
        params = []

    ok, buffer = cv2.imencode(ext, bgr, params)
    if not ok:
        raise ValueError(f"Failed to encode image as {ext}")
    return buffer.tobytes()


def save_image(image: np.ndarray, output_path: str, quality: int = 95) -> str:
    """
    Save an RGB image to file.

    Returns:
        Path to saved image
    """
    os.makedirs(os.path.dirname(output_path) or '.', exist_ok=True)

    ext = os.path.splitext(output_path)[1] or ".png"
    with open(output_path, 'wb') as f:
        f.write(encode_image(image, ext, quality))

    logger.info(f"Saved image: {output_path}")
    return output_path
