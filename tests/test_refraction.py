import os
import sys

import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from blobs import Blob
from refraction import composite, edge_padding, lens_geometry, refract_scale


@pytest.fixture
def black():
    return Image.new("RGBA", (100, 100), (0, 0, 0, 255))


class TestGeometry:
    def test_refract_scale(self):
        assert refract_scale(0) == 1.0
        assert refract_scale(25) == pytest.approx(1.1)
        assert refract_scale(100) == pytest.approx(1.4)

    def test_padding_only_for_edge_blobs(self):
        assert edge_padding([Blob(3, 3, 2)], (10, 10), (100, 100), 100) == (0.0, 0.0)
        pad = edge_padding([Blob(0, 0, 2), Blob(3, 3, 1)], (10, 10), (100, 100), 100)
        assert pad == pytest.approx((4.0, 4.0))

    def test_no_refraction_no_padding(self):
        assert edge_padding([Blob(0, 0, 5)], (10, 10), (100, 100), 0) == (0.0, 0.0)

    def test_lens_centre_and_radius(self):
        (lens,) = lens_geometry([Blob(2, 3, 2)], (10, 10), (0, 0, 100, 100))
        assert (lens.cx, lens.cy, lens.radius) == (30.0, 40.0, 10.0)

    def test_gap_shrinks_radius(self):
        (lens,) = lens_geometry([Blob(2, 3, 2)], (10, 10), (0, 0, 100, 100), gap=0.1)
        assert lens.radius == pytest.approx(9.5)

    def test_invisible_lenses_dropped(self):
        assert lens_geometry([Blob(0, 0, 1)], (10, 10), (0, 0, 100, 100), gap=1.0) == []


class TestComposite:
    def test_lens_shows_backdrop(self, black):
        backdrop = Image.new("RGB", (100, 100), (255, 255, 255))
        lenses = composite(black, [Blob(3, 3, 4)], backdrop, 0, grid_size=(10, 10))
        assert len(lenses) == 1
        assert black.getpixel((50, 50)) == (255, 255, 255, 255)
        assert black.getpixel((5, 5)) == (0, 0, 0, 255)

    def test_no_blobs_leaves_output(self, black):
        backdrop = Image.new("RGB", (100, 100), (255, 255, 255))
        assert composite(black, [], backdrop, 50, grid_size=(10, 10)) == []
        assert black.getextrema()[0] == (0, 0)

    def test_degenerate_grid(self, black):
        backdrop = Image.new("RGB", (100, 100), (255, 255, 255))
        assert composite(black, [Blob(0, 0, 1)], backdrop, 50, grid_size=(0, 0)) == []

    def test_markers_need_enough_blur(self):
        gray = Image.new("RGB", (100, 100), (128, 128, 128))
        blob = Blob(3, 3, 4)

        low = Image.new("RGBA", (100, 100), (0, 0, 0, 255))
        composite(low, [blob], gray, 0, grid_size=(10, 10), markers=[blob], blur_intensity=10)
        assert low.getpixel((50, 50))[0] == 128

        high = Image.new("RGBA", (100, 100), (0, 0, 0, 255))
        composite(high, [blob], gray, 0, grid_size=(10, 10), markers=[blob], blur_intensity=100)
        # a white cross overlaid at half strength on mid-gray lightens it
        assert high.getpixel((50, 50))[0] > 150
        assert high.getpixel((50, 50))[3] == 255
