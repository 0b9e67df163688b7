"""
Unit tests for the data model.

Run with: pytest tests/ -v
"""

import os
import sys
import pytest
import numpy as np

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from translate_in_place.models import (
    BoundingBox,
    Language,
    NormalizedRect,
    ProcessingState,
    StateKind,
)


class TestBoundingBox:
    """Tests for BoundingBox data structure."""

    def test_bbox_dimensions(self):
        """Test width and height calculation."""
        bbox = BoundingBox(x1=10, y1=20, x2=100, y2=80)
        assert bbox.width == 90
        assert bbox.height == 60
        assert bbox.area == 90 * 60

    def test_bbox_center(self):
        bbox = BoundingBox(x1=0, y1=0, x2=100, y2=100)
        assert bbox.center == (50, 50)

    def test_union(self):
        a = BoundingBox(10, 10, 50, 30)
        b = BoundingBox(20, 25, 80, 60)
        assert a.union(b) == BoundingBox(10, 10, 80, 60)

    def test_expanded(self):
        """Bubble padding grows the box on every side."""
        bbox = BoundingBox(20, 20, 120, 60)
        assert bbox.expanded(8, 4) == BoundingBox(12, 16, 128, 64)

    def test_clipped(self):
        bbox = BoundingBox(-10, -10, 50, 50)
        assert bbox.clipped(40, 30) == BoundingBox(0, 0, 40, 30)

    def test_clipped_outside_image(self):
        bbox = BoundingBox(300, 300, 400, 400)
        assert bbox.clipped(100, 100) is None

    def test_bbox_no_intersection(self):
        bbox1 = BoundingBox(x1=0, y1=0, x2=50, y2=50)
        bbox2 = BoundingBox(x1=100, y1=100, x2=150, y2=150)
        assert bbox1.intersection(bbox2) is None


class TestNormalizedRect:

    def test_edges(self):
        rect = NormalizedRect(x=0.1, y=0.5, width=0.5, height=0.25)
        assert rect.min_y == 0.5
        assert rect.max_y == 0.75
        assert rect.max_x == pytest.approx(0.6)


class TestLanguage:

    def test_base_code(self):
        assert Language("zh-Hans-CN", "Chinese").base_code == "zh"
        assert Language("pt_BR", "Portuguese").base_code == "pt"
        assert Language("EN", "English").base_code == "en"


class TestProcessingState:
    """Tests for the state tagged union."""

    def test_simple_states_compare_by_kind(self):
        assert ProcessingState.translating() == ProcessingState.translating()
        assert ProcessingState.translating() != ProcessingState.rendering()

    def test_error_carries_message(self):
        state = ProcessingState.error("Translation failed: offline")
        assert state.kind == StateKind.ERROR
        assert state.message == "Translation failed: offline"
        assert state == ProcessingState.error("Translation failed: offline")
        assert state != ProcessingState.error("other")

    def test_finished_compares_image_identity(self):
        image = np.zeros((4, 4, 3), dtype=np.uint8)
        same = ProcessingState.finished(image)
        assert same == ProcessingState.finished(image)
        assert same != ProcessingState.finished(image.copy())
        assert same.is_terminal

    def test_loading_is_not_terminal(self):
        assert not ProcessingState.loading_image().is_terminal
