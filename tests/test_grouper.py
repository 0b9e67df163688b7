"""
Unit tests for text block grouping.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from translate_in_place.errors import NoTextDetected, NoTranslatableText
from translate_in_place.grouper import TextBlockGrouper
from translate_in_place.models import BoundingBox, Language, NormalizedRect, TextObservation

ENGLISH = Language("en", "English")


def use_hint(text, hint):
    """Identify lines by the OCR hint only, so tests stay deterministic."""
    return hint


def line(text, y, height, lang="fr", x=0.1, width=0.5):
    return TextObservation(
        text=text,
        confidence=0.9,
        bounding_box=NormalizedRect(x=x, y=y, width=width, height=height),
        detected_language=lang,
    )


@pytest.fixture
def grouper():
    return TextBlockGrouper(identify_language=use_hint)


class TestLanguageFilter:

    def test_drops_lines_in_target_language(self, grouper):
        observations = [line("Bonjour", 0.8, 0.1), line("Hello", 0.5, 0.1, lang="en")]
        kept = grouper.filter_translatable(observations, ENGLISH)
        assert [o.text for o in kept] == ["Bonjour"]

    def test_compares_base_codes(self, grouper):
        observations = [line("Colour", 0.8, 0.1, lang="en-GB")]
        assert grouper.filter_translatable(observations, Language("en-US", "English")) == []

    def test_drops_unidentifiable_lines(self):
        grouper = TextBlockGrouper(identify_language=lambda text, hint: None)
        assert grouper.filter_translatable([line("1234", 0.5, 0.1)], ENGLISH) == []

    def test_filter_is_idempotent(self, grouper):
        observations = [
            line("Bonjour", 0.8, 0.1),
            line("Hello", 0.6, 0.1, lang="en"),
            line("Hola", 0.4, 0.1, lang="es"),
        ]
        once = grouper.filter_translatable(observations, ENGLISH)
        twice = grouper.filter_translatable(once, ENGLISH)
        assert twice == once


class TestClustering:

    def test_stop_road_closed_sign(self, grouper):
        """Two close lines of a sign become one group, top line first."""
        observations = [
            line("ROAD CLOSED", 0.82, 0.06, lang="de"),
            line("STOP", 0.90, 0.05, lang="de"),
        ]
        groups = grouper.group(observations, ENGLISH, (400, 300))
        assert len(groups) == 1
        assert groups[0].combined_text == "STOP\nROAD CLOSED"

    def test_close_lines_form_one_group(self, grouper):
        observations = [
            line("a", 0.80, 0.1),
            line("b", 0.66, 0.1),
            line("c", 0.52, 0.1),
        ]
        groups = grouper.group(observations, ENGLISH, (100, 100))
        assert [g.combined_text for g in groups] == ["a\nb\nc"]

    def test_gap_just_under_half_height_joins(self, grouper):
        # previous bottom 0.5, height 0.25 -> threshold 0.125; gap 0.123
        observations = [line("top", 0.5, 0.25), line("bottom", 0.252, 0.125)]
        groups = grouper.group(observations, ENGLISH, (100, 100))
        assert len(groups) == 1

    def test_gap_of_exactly_half_height_splits(self, grouper):
        observations = [line("top", 0.5, 0.25), line("bottom", 0.25, 0.125)]
        groups = grouper.group(observations, ENGLISH, (100, 100))
        assert [g.combined_text for g in groups] == ["top", "bottom"]

    def test_gap_just_over_half_height_splits(self, grouper):
        observations = [line("top", 0.5, 0.25), line("bottom", 0.248, 0.125)]
        groups = grouper.group(observations, ENGLISH, (100, 100))
        assert len(groups) == 2

    def test_only_consecutive_lines_merge(self, grouper):
        observations = [
            line("title", 0.85, 0.1),
            line("first", 0.40, 0.1),
            line("second", 0.29, 0.1),
        ]
        groups = grouper.group(observations, ENGLISH, (100, 100))
        assert [g.combined_text for g in groups] == ["title", "first\nsecond"]

    def test_grouping_is_deterministic(self, grouper):
        observations = [
            line("a", 0.8, 0.1),
            line("b", 0.7, 0.05, lang="ja"),
            line("c", 0.2, 0.1),
        ]
        first = grouper.group(observations, ENGLISH, (640, 480))
        second = grouper.group(observations, ENGLISH, (640, 480))
        assert first == second


class TestPixelBoxes:

    def test_converts_to_top_left_pixels(self, grouper):
        observations = [line("Bonjour", 0.5, 0.25, x=0.1, width=0.5)]
        group = grouper.group(observations, ENGLISH, (200, 100))[0]
        box = group.pixel_bounding_box
        assert box.x1 == pytest.approx(20)
        assert box.x2 == pytest.approx(120)
        assert box.y1 == pytest.approx(25)
        assert box.y2 == pytest.approx(50)

    def test_group_box_is_union_of_lines(self, grouper):
        observations = [
            line("wide line", 0.6, 0.1, x=0.1, width=0.8),
            line("short", 0.46, 0.1, x=0.3, width=0.2),
        ]
        group = grouper.group(observations, ENGLISH, (100, 100))[0]
        assert group.pixel_bounding_box == BoundingBox(
            pytest.approx(10), pytest.approx(30), pytest.approx(90), pytest.approx(54)
        )


class TestGroupingErrors:

    def test_no_observations(self, grouper):
        with pytest.raises(NoTextDetected):
            grouper.group([], ENGLISH, (100, 100))

    def test_everything_already_translated(self, grouper):
        with pytest.raises(NoTranslatableText) as excinfo:
            grouper.group([line("Hello", 0.5, 0.1, lang="en")], ENGLISH, (100, 100))
        assert excinfo.value.message == "All text is already in the target language."
