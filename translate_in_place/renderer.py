"""
Bubble Rendering Module

This module picks bubble and text colours, fits a font size to each text
group and composites the translated text onto the source image.
"""

import logging
import os
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .models import BoundingBox, Color, RenderPlan, TextGroup
from .palette import NEUTRAL_GRAY, average_color, lighten, text_color_for, to_rgb8

logger = logging.getLogger(__name__)


class BubbleRenderer:
    """
    Draws one rounded "bubble" per text group with the translation on top.

    All bubbles share one colour derived from the whole image so they look
    consistent, and one text colour derived from that bubble colour.
    """

    # Fonts with wide script coverage, in order of preference
    DEFAULT_FONTS = [
        "NotoSans-SemiBold.ttf",
        "NotoSans-Regular.ttf",
        "DejaVuSans-Bold.ttf",
        "DejaVuSans.ttf",
        "Arial Unicode.ttf",
        "/usr/share/fonts/truetype/noto/NotoSans-SemiBold.ttf",
        "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    ]

    def __init__(
        self,
        font_path: str = None,
        min_font_size: int = 5,
        horizontal_padding: float = 8,
        vertical_padding: float = 4,
        corner_radius: float = 8,
        search_system_fonts: bool = True
    ):
        """
        Initialize the renderer.

        Args:
            font_path: Path to a TrueType font; searched for when None
            min_font_size: Floor of the font-fit search
            horizontal_padding: Bubble padding left and right of the text box
            vertical_padding: Bubble padding above and below the text box
            corner_radius: Bubble corner radius in pixels
            search_system_fonts: Look for an installed font when no path is given
        """
        if font_path is None and search_system_fonts:
            font_path = self._find_font()
        self.font_path = font_path
        self.min_font_size = min_font_size
        self.horizontal_padding = horizontal_padding
        self.vertical_padding = vertical_padding
        self.corner_radius = corner_radius

        self._font_cache: Dict[int, ImageFont.FreeTypeFont] = {}
        self._measure = ImageDraw.Draw(Image.new('RGB', (1, 1)))

        logger.info(f"BubbleRenderer initialized with font: {self.font_path or 'Pillow default'}")

    def _find_font(self) -> Optional[str]:
        """Find an available font on the system."""
        assets_fonts = [
            "./assets/fonts/NotoSans-SemiBold.ttf",
            "assets/fonts/NotoSans-SemiBold.ttf",
        ]

        for font_path in assets_fonts + self.DEFAULT_FONTS:
            if os.path.exists(font_path):
                return font_path

        font_dirs = [
            "/usr/share/fonts",
            "/usr/local/share/fonts",
            os.path.expanduser("~/.fonts"),
            "/System/Library/Fonts",  # macOS
            "C:\\Windows\\Fonts",  # Windows
        ]

        for font_dir in font_dirs:
            if os.path.exists(font_dir):
                for root, dirs, files in os.walk(font_dir):
                    for file in sorted(files):
                        name = file.lower()
                        if name.endswith(".ttf") and any(key in name for key in ['notosans', 'dejavusans', 'arial']):
                            return os.path.join(root, file)

        logger.warning("No TrueType font found, using Pillow's built-in font")
        return None

    def _get_font(self, size: int) -> ImageFont.FreeTypeFont:
        """Get a font object for the specified size (with caching)."""
        if size in self._font_cache:
            return self._font_cache[size]

        if self.font_path and os.path.exists(self.font_path):
            font = ImageFont.truetype(self.font_path, size)
        else:
            font = ImageFont.load_default(size=size)

        self._font_cache[size] = font
        return font

    def line_height(self, font: ImageFont.FreeTypeFont) -> int:
        ascent, descent = font.getmetrics()
        return ascent + descent

    def wrap_text(self, text: str, font: ImageFont.FreeTypeFont, max_width: float) -> List[str]:
        """
        Word-wrap text to ``max_width`` pixels.

        Explicit newlines always start a new line. A single word wider than
        the box is kept whole on its own line.
        """
        lines: List[str] = []
        for paragraph in text.split("\n"):
            words = paragraph.split()
            if not words:
                lines.append("")
                continue

            current = words[0]
            for word in words[1:]:
                candidate = f"{current} {word}"
                if self._measure.textlength(candidate, font=font) <= max_width:
                    current = candidate
                else:
                    lines.append(current)
                    current = word
            lines.append(current)
        return lines

    def measure(self, text: str, size: int, max_width: float) -> Tuple[List[str], int]:
        """Wrap text at the given font size and return (lines, block height)."""
        font = self._get_font(size)
        lines = self.wrap_text(text, font, max_width)
        return lines, self.line_height(font) * len(lines)

    def fit_font_size(self, text: str, box: BoundingBox) -> Tuple[int, List[str], int]:
        """
        Find the largest font size whose wrapped text fits the box height.

        Starts at box height divided by the number of lines and shrinks by
        one point at a time. Stops at ``min_font_size`` even if the text
        still overflows.

        Returns:
            (font size, wrapped lines, block height)
        """
        line_count = len(text.split("\n"))
        size = max(int(box.height / line_count), self.min_font_size)

        lines, height = self.measure(text, size, box.width)
        while height > box.height and size > self.min_font_size:
            size -= 1
            lines, height = self.measure(text, size, box.width)

        return size, lines, height

    def bubble_colors(self, image: np.ndarray) -> Tuple[Color, Color]:
        """One bubble colour and one text colour for the whole image."""
        overall = average_color(image, fallback=NEUTRAL_GRAY)
        bubble_color = lighten(overall)
        return bubble_color, text_color_for(bubble_color)

    def plan(
        self,
        image: np.ndarray,
        groups: Sequence[TextGroup],
        translations: Sequence[str]
    ) -> List[RenderPlan]:
        """
        Build one render plan per group that has a translation.

        Groups beyond the end of ``translations`` (or with a None entry)
        are skipped.
        """
        bubble_color, text_color = self.bubble_colors(image)

        plans = []
        for index, group in enumerate(groups):
            if index >= len(translations) or translations[index] is None:
                logger.debug(f"No translation for group {index}, skipping")
                continue
            text = translations[index]
            size, lines, _ = self.fit_font_size(text, group.pixel_bounding_box)
            plans.append(RenderPlan(
                group=group,
                translated_text=text,
                bubble_color=bubble_color,
                text_color=text_color,
                font_size=size,
                lines=lines,
            ))
        return plans

    def draw_plan(self, draw: ImageDraw.ImageDraw, plan: RenderPlan):
        """Draw one bubble and its centred text."""
        box = plan.group.pixel_bounding_box
        bubble = box.expanded(self.horizontal_padding, self.vertical_padding)
        draw.rounded_rectangle(
            bubble.to_tuple(),
            radius=self.corner_radius,
            fill=to_rgb8(plan.bubble_color),
        )

        font = self._get_font(plan.font_size)
        line_height = self.line_height(font)
        block_height = line_height * len(plan.lines)
        y = box.y1 + (box.height - block_height) / 2
        fill = to_rgb8(plan.text_color)

        for line in plan.lines:
            line_width = draw.textlength(line, font=font)
            x = box.x1 + (box.width - line_width) / 2
            draw.text((x, y), line, font=font, fill=fill)
            y += line_height

    def composite(self, image: np.ndarray, plans: Sequence[RenderPlan]) -> np.ndarray:
        """Draw plans in order onto a copy of the image."""
        canvas = Image.fromarray(np.ascontiguousarray(image[:, :, :3])).convert('RGB')
        draw = ImageDraw.Draw(canvas)
        for plan in plans:
            self.draw_plan(draw, plan)
        return np.array(canvas)

    def render(
        self,
        image: np.ndarray,
        groups: Sequence[TextGroup],
        translations: Sequence[str]
    ) -> np.ndarray:
        """
        Render translated text bubbles onto the source image.

        Args:
            image: Source image (RGB, uint8)
            groups: Text groups in drawing order
            translations: Translated text per group, same order

        Returns:
            New RGB image; the source array is left untouched
        """
        if image is None:
            raise ValueError("Source image is required for rendering")

        plans = self.plan(image, groups, translations)
        result = self.composite(image, plans)
        logger.info(f"Rendered {len(plans)} text bubbles")
        return result
