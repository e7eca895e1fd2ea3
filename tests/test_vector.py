"""
Tests the resvg shape masks
"""

import numpy as np
import pytest

from framestag.path import rect_path, rounded_rect_path
from framestag.vector import fill_element, render_mask, shapes_to_svg, stroke_element


class TestElements:

    def test_fill(self):
        element = fill_element(rect_path(10, 20, 30, 40))
        assert element.startswith('<path d="M 10.0000 20.0000 L 40.0000 20.0000')
        assert 'fill="#ffffff"' in element
        assert 'stroke="none"' in element

    def test_rounded_fill_uses_arcs(self):
        element = fill_element(rounded_rect_path(0, 0, 100, 50, 10))
        assert element.count(" A ") == 4
        assert "rx=" not in element

    def test_stroke_dash(self):
        element = stroke_element(rect_path(0, 0, 10, 10), 2, dash=(8, 4))
        assert 'stroke-width="2"' in element
        assert 'stroke-dasharray="8 4"' in element
        assert 'stroke-linecap="butt"' in element
        assert 'fill="none"' in element

    def test_solid_stroke_has_no_dash(self):
        assert "stroke-dasharray" not in stroke_element(rect_path(0, 0, 10, 10), 1.5)

    def test_zero_width_stroke(self):
        assert stroke_element(rect_path(0, 0, 10, 10), 0) == ""


def test_document_view_box():
    svg = shapes_to_svg([fill_element(rect_path(0, 0, 4, 4))], (10, 20, 14, 28), render_scale=4)
    assert 'width="16" height="32"' in svg
    assert 'viewBox="10 20 4 8"' in svg


class TestRenderMask:

    @pytest.mark.parametrize("supersample", [1, 4])
    def test_integer_rect_is_exact(self, supersample):
        mask = render_mask([fill_element(rect_path(2, 2, 4, 3))], (0, 0, 8, 8), supersample)
        assert mask.shape == (8, 8)
        assert mask[2:5, 2:6].min() >= 0.98
        assert mask[:2, :].max() <= 0.02
        assert mask[5:, :].max() <= 0.02
        assert mask[:, 6:].max() <= 0.02

    def test_box_offset(self):
        mask = render_mask([fill_element(rect_path(10, 10, 2, 2))], (10, 10, 14, 14), 2)
        assert mask.shape == (4, 4)
        assert mask[:2, :2].min() >= 0.98
        assert mask[2:, :].max() <= 0.02

    def test_rounded_corner_is_cut(self):
        mask = render_mask([fill_element(rounded_rect_path(0, 0, 40, 40, 20))], (0, 0, 40, 40), 4)
        assert mask[0, 0] == 0.0
        assert mask[20, 20] == 1.0
        assert 0.0 < mask[20, 0] <= 1.0

    def test_dashed_stroke_gap(self):
        element = stroke_element(rect_path(10, 10, 20, 20), 2, dash=(8, 4))
        mask = render_mask([element], (0, 0, 40, 40), 4)
        assert mask[10, 12] >= 0.98
        # first gap of the top edge is 18..22
        assert mask[10, 19] <= 0.02
        assert mask[10, 20] <= 0.02

    def test_empty(self):
        assert render_mask([], (0, 0, 4, 4)).max() == 0
        assert render_mask([""], (0, 0, 4, 4)).max() == 0
        assert render_mask([fill_element(rect_path(0, 0, 4, 4))], (0, 0, 0, 4)).size == 0

    def test_values_in_unit_range(self):
        mask = render_mask([fill_element(rounded_rect_path(0.5, 0.5, 9, 9, 3))], (0, 0, 10, 10), 2)
        assert mask.dtype == np.float32
        assert mask.min() >= 0.0 and mask.max() <= 1.0
