"""
Shared fixtures: small synthetic images, and a per-test log folder so crash dumps
written by errors.py never land in the working tree.
"""

import os
import sys

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logconf


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    log_dir = tmp_path / "logs"
    monkeypatch.setattr(logconf, "_LOG_DIR", str(log_dir))
    monkeypatch.setattr(logconf, "_LOG_FILE", str(log_dir / "matrices.log"))
    return log_dir


def _gradient(width, height):
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[:, :, 0] = np.linspace(0, 255, width, dtype=np.uint8)[None, :]
    arr[:, :, 1] = 128
    arr[:, :, 2] = np.linspace(255, 0, height, dtype=np.uint8)[:, None]
    return arr


@pytest.fixture
def gradient_image():
    """120x80 RGB gradient (red across, blue down)."""
    return Image.fromarray(_gradient(120, 80))


@pytest.fixture
def photo():
    """Deterministic 90x160 noisy portrait photo."""
    rng = np.random.RandomState(7)
    arr = rng.randint(0, 256, (160, 90, 3), dtype=np.uint8)
    return Image.fromarray(arr)


@pytest.fixture
def halves_image():
    """64x64: left half black, right half white."""
    arr = np.zeros((64, 64, 3), dtype=np.uint8)
    arr[:, 32:] = 255
    return Image.fromarray(arr)


@pytest.fixture
def silhouette():
    """80x60 RGBA: transparent frame around an opaque red block."""
    arr = np.zeros((60, 80, 4), dtype=np.uint8)
    arr[15:45, 20:60] = (200, 30, 30, 255)
    return Image.fromarray(arr)
