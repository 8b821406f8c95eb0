import os
import sys
from types import SimpleNamespace

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from blend import composite_overlay, overlay
from grain import add_grain, grain_contrast, grain_scale, noise_field, shape_mask


class TestNoise:
    def test_constants(self):
        assert grain_scale(0) == 1.0
        assert grain_scale(100) == 8.0
        assert grain_contrast(50) == pytest.approx(191.5)

    def test_shape_and_centre(self):
        n = noise_field((64, 48), 0, rng=np.random.default_rng(0))
        assert n.shape == (48, 64)
        assert abs(float(n.mean()) - 128) < 10

    def test_large_grain_is_blocky(self):
        n = noise_field((64, 64), 100, rng=np.random.default_rng(0))
        # 8x8 texels: every row inside a block repeats the first one
        np.testing.assert_array_equal(n[0], n[7])
        np.testing.assert_array_equal(n[:, 0], n[:, 7])


class TestAddGrain:
    def test_zero_amount_is_noop(self):
        img = Image.new("RGBA", (20, 20), (100, 100, 100, 255))
        add_grain(img, 0, 50, seed=1)
        assert img.getextrema()[0] == (100, 100)

    def test_seeded_and_alpha_kept(self):
        a = Image.new("RGBA", (32, 32), (100, 100, 100, 200))
        b = Image.new("RGBA", (32, 32), (100, 100, 100, 200))
        add_grain(a, 80, 10, seed=4)
        add_grain(b, 80, 10, seed=4)
        np.testing.assert_array_equal(np.asarray(a), np.asarray(b))
        assert a.getextrema()[3] == (200, 200)
        assert a.getextrema()[0] != (100, 100)

    def test_mask_limits_grain(self):
        img = Image.new("RGBA", (40, 40), (100, 100, 100, 255))
        mask = shape_mask((40, 40), [SimpleNamespace(cx=10, cy=10, radius=5)])
        add_grain(img, 100, 0, mask=mask, seed=2)
        assert img.getpixel((35, 35)) == (100, 100, 100, 255)
        assert mask.getpixel((10, 10)) == 255


class TestOverlay:
    def test_formula(self):
        base = np.array([0.25, 0.75])
        top = np.array([0.5, 0.5])
        np.testing.assert_allclose(overlay(base, top), [0.25, 0.75])
        np.testing.assert_allclose(overlay(np.array([0.25]), np.array([1.0])), [0.5])

    def test_transparent_layer_changes_nothing(self):
        out = Image.new("RGB", (4, 4), (10, 20, 30))
        composite_overlay(out, Image.new("RGBA", (4, 4), (255, 255, 255, 0)))
        assert out.getpixel((1, 1)) == (10, 20, 30)
