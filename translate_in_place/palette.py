"""
Palette Sampling Module

Samples representative colours from the source image and derives the
bubble and text colours used when rendering translations.
"""

import colorsys
import logging
from typing import Optional, Tuple

import numpy as np

from .models import BoundingBox, Color

logger = logging.getLogger(__name__)

NEUTRAL_GRAY: Color = (1 / 3, 1 / 3, 1 / 3)
BLACK: Color = (0.0, 0.0, 0.0)
WHITE: Color = (1.0, 1.0, 1.0)

SATURATION_DELTA = 0.4
MIN_SATURATION = 0.1
BRIGHTNESS_DELTA = 0.5
MAX_BRIGHTNESS = 0.95


def _rgb_pixels(image: np.ndarray) -> np.ndarray:
    """View an RGB, RGBA or grayscale image as RGB (alpha dropped)."""
    if image.ndim == 2:
        return np.repeat(image[:, :, np.newaxis], 3, axis=2)
    return image[:, :, :3]


def average_color(
    image: np.ndarray,
    region: BoundingBox = None,
    fallback: Optional[Color] = None
) -> Optional[Color]:
    """
    Mean R, G, B of the pixels inside ``region``.

    Args:
        image: RGB(A) image as a uint8 numpy array
        region: Pixel region to sample; the whole image when None
        fallback: Returned when the region does not overlap the image

    Returns:
        Colour with channels in 0..1, or ``fallback``
    """
    h, w = image.shape[:2]
    if region is None:
        region = BoundingBox(0, 0, w, h)

    clipped = region.clipped(w, h)
    if clipped is None:
        return fallback

    x1, y1 = int(np.floor(clipped.x1)), int(np.floor(clipped.y1))
    x2, y2 = int(np.ceil(clipped.x2)), int(np.ceil(clipped.y2))
    pixels = _rgb_pixels(image)[y1:y2, x1:x2]
    if pixels.size == 0:
        return fallback

    mean = pixels.reshape(-1, 3).astype(np.float64).mean(axis=0) / 255.0
    return (float(mean[0]), float(mean[1]), float(mean[2]))


def lighten(color: Color) -> Color:
    """
    Wash a colour out into a pale bubble tone.

    Saturated colours lose saturation and gain brightness in HSB space.
    Grays have no hue to keep, so only their gray level is raised.
    """
    r, g, b = color
    hue, saturation, brightness = colorsys.rgb_to_hsv(r, g, b)
    if saturation == 0:
        gray = min(brightness + BRIGHTNESS_DELTA, MAX_BRIGHTNESS)
        return (gray, gray, gray)

    new_saturation = max(saturation - SATURATION_DELTA, MIN_SATURATION)
    new_brightness = min(brightness + BRIGHTNESS_DELTA, MAX_BRIGHTNESS)
    return colorsys.hsv_to_rgb(hue, new_saturation, new_brightness)


def luminance(color: Color) -> float:
    r, g, b = color
    return 0.299 * r + 0.587 * g + 0.114 * b


def is_light(color: Color) -> bool:
    # Exactly 0.5 counts as dark
    return luminance(color) > 0.5


def text_color_for(bubble_color: Color) -> Color:
    """Black text on light bubbles, white text on dark ones."""
    return BLACK if is_light(bubble_color) else WHITE


def to_rgb8(color: Color) -> Tuple[int, int, int]:
    """Convert a 0..1 colour to the 8-bit tuple Pillow expects."""
    return tuple(int(round(min(max(c, 0.0), 1.0) * 255)) for c in color)
