from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np

from coverage import coverage_size

# ITU-R BT.601 weights
LUMA_R, LUMA_G, LUMA_B = 0.299, 0.587, 0.114
NEUTRAL = 50  # slider midpoint: no exposure shift, unit contrast


def luma(rgb):
    """Luma of an RGB triple (float) or of every cell of an (..., 3) grid (float array)."""
    arr = np.asarray(rgb, dtype=np.float64)
    v = LUMA_R * arr[..., 0] + LUMA_G * arr[..., 1] + LUMA_B * arr[..., 2]
    return float(v) if v.ndim == 0 else v

def exposure_shift(exposure: float) -> float:
    return (exposure - NEUTRAL) * 2.0

def contrast_factor(contrast: float) -> float:
    # compresses below the midpoint (0..1), expands above it (1..3)
    if contrast <= NEUTRAL:
        return contrast / NEUTRAL
    return 1.0 + (contrast - NEUTRAL) / NEUTRAL * 2.0

def adjust_gray(gray, exposure: float = NEUTRAL, contrast: float = NEUTRAL):
    g = np.asarray(gray, dtype=np.float64)
    adjusted = ((g / 255.0 - 0.5) * contrast_factor(contrast) + 0.5) * 255.0 + exposure_shift(exposure)
    out = np.floor(np.clip(adjusted, 0.0, 255.0) + 0.5)
    return int(out) if out.ndim == 0 else out.astype(np.uint8)

def map_brightness(sample, exposure: float = NEUTRAL, contrast: float = NEUTRAL):
    """
    Gray level in [0,255] after exposure and contrast. `sample` is a luma value,
    an RGB triple, or an (H, W, 3) grid; scalars come back as int, grids as uint8.
    """
    arr = np.asarray(sample, dtype=np.float64)
    gray = arr if arr.ndim == 0 else luma(arr)
    return adjust_gray(gray, exposure, contrast)

def grayscale(grid: np.ndarray) -> np.ndarray:
    """Monochrome copy of an RGB grid (luma replicated into all three channels)."""
    g = np.floor(luma(grid) + 0.5).astype(np.uint8)
    return np.repeat(g[..., None], 3, axis=-1)


# ---------------- dot sizing ----------------
INKS = ("light", "dark")

def size_multiplier(gray, ink: str = "light"):
    """
    Fraction of the full dot size for a gray level. "light" ink (on black) grows with
    brightness; "dark" ink (on white) grows with darkness.
    """
    g = np.asarray(gray, dtype=np.float64)
    m = g / 255.0 if ink == "light" else (255.0 - g) / 255.0
    return float(m) if m.ndim == 0 else m

RESPONSES: Dict[str, Callable] = {
    "linear": lambda m: m,
    "sqrt": np.sqrt,
    "coverage": coverage_size,
}

def apply_response(multiplier, response: str = "linear"):
    return RESPONSES[response](np.asarray(multiplier, dtype=np.float64))


@dataclass(frozen=True)
class DotPolicy:
    """Per-effect choices: which extreme is ink, how size follows the multiplier, and
    the lower limit (0..100) a multiplier must exceed for the dot to be drawn at all."""
    ink: str = "light"
    response: str = "linear"
    lower_limit: float = 0.0

    def sizes(self, gray) -> np.ndarray:
        m = np.asarray(size_multiplier(gray, self.ink), dtype=np.float64)
        keep = m > (self.lower_limit / 100.0)
        return np.where(keep, apply_response(m, self.response), 0.0)
