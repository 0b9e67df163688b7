"""
Unit tests for bubble rendering and font fitting.
"""

import os
import sys
import pytest
import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from translate_in_place.models import BoundingBox, TextGroup
from translate_in_place.palette import lighten, text_color_for, to_rgb8
from translate_in_place.renderer import BubbleRenderer

SOURCE_COLOR = (200, 100, 50)


@pytest.fixture(scope="module")
def renderer():
    return BubbleRenderer(search_system_fonts=False)


@pytest.fixture
def source():
    return np.full((120, 240, 3), SOURCE_COLOR, dtype=np.uint8)


class TestFontFit:

    def test_short_text_fits(self, renderer):
        box = BoundingBox(0, 0, 400, 40)
        size, lines, height = renderer.fit_font_size("Hi", box)
        assert 5 <= size <= 40
        assert lines == ["Hi"]
        assert height <= box.height

    def test_start_size_divides_by_line_count(self, renderer):
        box = BoundingBox(0, 0, 400, 60)
        size, lines, _ = renderer.fit_font_size("one\ntwo\nthree", box)
        assert size <= 20
        assert lines == ["one", "two", "three"]

    def test_overflowing_text_stops_at_floor(self, renderer):
        box = BoundingBox(0, 0, 30, 12)
        text = " ".join(["overflowing"] * 50)
        size, lines, height = renderer.fit_font_size(text, box)
        assert size == 5
        assert height > box.height

    @pytest.mark.parametrize("box_height", [0.5, 2, 7, 33, 250])
    def test_never_below_floor(self, renderer, box_height):
        box = BoundingBox(0, 0, 100, box_height)
        size, _, _ = renderer.fit_font_size("Some translated text here", box)
        assert size >= 5

    def test_custom_floor(self):
        renderer = BubbleRenderer(min_font_size=9, search_system_fonts=False)
        size, _, _ = renderer.fit_font_size("word " * 40, BoundingBox(0, 0, 20, 10))
        assert size == 9


class TestWrap:

    def test_explicit_newlines_are_kept(self, renderer):
        font = renderer._get_font(12)
        assert renderer.wrap_text("STOP\nROAD CLOSED", font, 1000) == ["STOP", "ROAD CLOSED"]

    def test_long_paragraph_wraps(self, renderer):
        font = renderer._get_font(12)
        lines = renderer.wrap_text("the quick brown fox jumps over the lazy dog", font, 60)
        assert len(lines) > 1
        assert " ".join(lines) == "the quick brown fox jumps over the lazy dog"

    def test_long_word_stays_whole(self, renderer):
        font = renderer._get_font(12)
        assert renderer.wrap_text("Donaudampfschifffahrt", font, 5) == ["Donaudampfschifffahrt"]


class TestRender:

    def test_uniform_colors_for_all_bubbles(self, renderer, source):
        groups = [
            TextGroup("Bonjour", BoundingBox(20, 10, 120, 40)),
            TextGroup("Au revoir", BoundingBox(20, 70, 200, 100)),
        ]
        plans = renderer.plan(source, groups, ["Hello", "Goodbye"])
        expected_bubble = lighten(tuple(c / 255 for c in SOURCE_COLOR))
        assert len(plans) == 2
        for plan in plans:
            assert plan.bubble_color == pytest.approx(expected_bubble)
            assert plan.text_color == text_color_for(expected_bubble)

    def test_group_without_translation_is_skipped(self, renderer, source):
        groups = [
            TextGroup("Bonjour", BoundingBox(20, 10, 120, 40)),
            TextGroup("Au revoir", BoundingBox(20, 70, 200, 100)),
        ]
        plans = renderer.plan(source, groups, ["Hello"])
        assert [p.translated_text for p in plans] == ["Hello"]

    def test_bubble_is_drawn_with_padding(self, renderer, source):
        groups = [TextGroup("Salut", BoundingBox(20, 20, 220, 60))]
        result = renderer.render(source, groups, ["Hi"])

        bubble = np.array(to_rgb8(lighten(tuple(c / 255 for c in SOURCE_COLOR))))
        # Inside the horizontal padding, away from text and corners
        assert np.abs(result[40, 14].astype(int) - bubble).max() <= 1
        # Outside the bubble the photo is untouched
        assert tuple(result[40, 5]) == SOURCE_COLOR
        assert tuple(result[100, 200]) == SOURCE_COLOR

    def test_text_is_drawn(self, renderer, source):
        groups = [TextGroup("Bonjour", BoundingBox(20, 20, 220, 100))]
        result = renderer.render(source, groups, ["Hello"])
        box = result[20:100, 20:220].reshape(-1, 3)
        assert len({tuple(p) for p in box}) > 1

    def test_source_is_not_modified(self, renderer, source):
        original = source.copy()
        result = renderer.render(source, [TextGroup("x", BoundingBox(10, 10, 50, 30))], ["y"])
        assert np.array_equal(source, original)
        assert result.shape == source.shape
        assert result is not source

    def test_missing_source_image(self, renderer):
        with pytest.raises(ValueError):
            renderer.render(None, [], [])
