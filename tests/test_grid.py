"""Crop geometry, grid sampling and the pan gesture."""

import os
import sys

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from grid import (
    CropWindow, PanGesture, crop_is_needed, crop_rect, crop_to_target, cover_sample,
    drag_offset, grid_size, sample, sample_rgba,
)


class TestCropWindow:
    def test_defaults_centre(self):
        c = CropWindow()
        assert (c.offset_x, c.offset_y) == (0.5, 0.5)

    def test_offsets_clamped(self):
        c = CropWindow(-1.0, 2.5)
        assert (c.offset_x, c.offset_y) == (0.0, 1.0)


class TestCropRect:
    def test_matching_aspect_is_full_source(self):
        for off in (0.0, 0.3, 1.0):
            assert crop_rect((300, 200), (150, 100), CropWindow(off, off)) == (0.0, 0.0, 300.0, 200.0)

    def test_within_tolerance_is_not_cropped(self):
        assert not crop_is_needed((1000, 1000), (1005, 1000))
        assert crop_is_needed((1000, 1000), (1100, 1000))

    @pytest.mark.parametrize("offset,expected_x", [(0.0, 0.0), (0.5, 50.0), (1.0, 100.0)])
    def test_wide_source_pans_horizontally(self, offset, expected_x):
        assert crop_rect((200, 100), (100, 100), CropWindow(offset, 0.9)) == (expected_x, 0.0, 100.0, 100.0)

    def test_tall_source_pans_vertically(self):
        assert crop_rect((100, 200), (100, 100), CropWindow(0.2, 1.0)) == (0.0, 100.0, 100.0, 100.0)


class TestGridSize:
    def test_height_follows_target_aspect(self):
        assert grid_size(10, (1260, 2800)) == (10, 22)
        assert grid_size(60, (3840, 2160)) == (60, 34)

    def test_degenerate(self):
        assert grid_size(0, (100, 100)) == (0, 0)


class TestSample:
    def test_shape_and_dtype(self, gradient_image):
        grid = sample(gradient_image, CropWindow(), 12, 8)
        assert grid.shape == (8, 12, 3)
        assert grid.dtype == np.uint8

    def test_nearest_keeps_real_colours(self, halves_image):
        grid = sample(halves_image, CropWindow(), 2, 1)
        np.testing.assert_array_equal(grid[0, 0], [0, 0, 0])
        np.testing.assert_array_equal(grid[0, 1], [255, 255, 255])

    def test_crop_offset_selects_region(self):
        wide = Image.new("RGB", (200, 100), (0, 0, 0))
        wide.paste((255, 255, 255), (100, 0, 200, 100))
        left = sample(wide, CropWindow(0.0, 0.5), 4, 4, (100, 100))
        right = sample(wide, CropWindow(1.0, 0.5), 4, 4, (100, 100))
        assert left.max() == 0
        assert right.min() == 255

    def test_matching_aspect_ignores_crop_offsets(self, gradient_image):
        # 120x80 source into a 3:2 target: nothing to pan
        a = sample(gradient_image, CropWindow(0.0, 0.0), 12, 8, (300, 200))
        b = sample(gradient_image, CropWindow(1.0, 1.0), 12, 8, (300, 200))
        np.testing.assert_array_equal(a, b)

    def test_degenerate_grid_is_empty_not_error(self, gradient_image):
        assert sample(gradient_image, CropWindow(), 0, 5).shape == (5, 0, 3)
        assert sample(gradient_image, CropWindow(), 4, -1).shape == (0, 4, 3)

    def test_rgba_keeps_alpha(self, silhouette):
        grid = sample_rgba(silhouette, CropWindow(), 8, 6, silhouette.size)
        assert grid.shape == (6, 8, 4)
        assert grid[0, 0, 3] == 0
        assert grid[3, 4, 3] == 255

    def test_cover_sample_square(self, photo):
        assert cover_sample(photo, 9).shape == (9, 9, 3)

    def test_crop_to_target_size(self, photo):
        out = crop_to_target(photo, CropWindow(), (50, 40))
        assert out.size == (50, 40)
        assert out.mode == "RGB"


class TestPanGesture:
    def test_no_crop_needed_is_noop(self):
        g = PanGesture((200, 100), (400, 200))
        assert g.begin((0, 0), CropWindow()) is False
        assert not g.dragging
        assert g.move((10, 10), (100, 100)) is None
        assert g.end() is None

    def test_drag_moves_window_against_pointer(self):
        g = PanGesture((200, 100), (100, 100))
        assert g.begin((10, 10), CropWindow(0.5, 0.5))
        crop = g.move((60, 10), (100, 100))
        assert crop == CropWindow(0.0, 0.5)
        assert g.end() == CropWindow(0.0, 0.5)
        assert not g.dragging

    def test_click_without_move_commits_nothing(self):
        g = PanGesture((200, 100), (100, 100))
        g.begin((5, 5), CropWindow())
        assert g.end() is None

    def test_drag_offset_clamps(self):
        crop = drag_offset(CropWindow(0.5, 0.5), (-10_000, 0), (100, 100), (200, 100), (100, 100))
        assert crop.offset_x == 1.0
