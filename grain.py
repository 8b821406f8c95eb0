from __future__ import annotations
import logging
import math
from typing import Iterable, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from blend import composite_overlay

logger = logging.getLogger(__name__)

GRAIN_MAX_SCALE = 7          # size 100 -> noise texels 8x8 output pixels
GRAIN_OPACITY = 0.35         # amount 100 -> 35% overlay


def grain_scale(size: float) -> float:
    return 1.0 + size * GRAIN_MAX_SCALE / 100.0

def grain_contrast(contrast: float) -> float:
    return 128.0 + contrast / 100.0 * 127.0

def noise_field(size: Tuple[int, int], grain_size: float, contrast: float = 50,
                rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    (H, W) uint8 gray noise centred on 128. Generated at 1/scale resolution and blown
    up nearest-neighbour, so larger sizes give blocky grain rather than smooth noise.
    """
    rng = rng if rng is not None else np.random.default_rng()
    w, h = size
    scale = grain_scale(grain_size)
    nw, nh = max(1, math.ceil(w / scale)), max(1, math.ceil(h / scale))
    vals = 128.0 + (rng.random((nh, nw)) - 0.5) * grain_contrast(contrast)
    small = Image.fromarray(np.clip(np.rint(vals), 0, 255).astype(np.uint8))
    return np.asarray(small.resize((w, h), Image.Resampling.NEAREST))

def shape_mask(size: Tuple[int, int], lenses: Iterable) -> Image.Image:
    """L mask of the rendered discs (anything with cx, cy, radius)."""
    mask = Image.new("L", size, 0)
    d = ImageDraw.Draw(mask)
    for lens in lenses:
        r = lens.radius
        d.ellipse((lens.cx - r, lens.cy - r, lens.cx + r, lens.cy + r), fill=255)
    return mask

def add_grain(output: Image.Image, amount: float, size: float, contrast: float = 50,
              mask: Optional[Image.Image] = None, *, seed: Optional[int] = None) -> None:
    """Overlay procedural grain onto `output` in place, optionally only inside `mask`."""
    w, h = output.size
    if amount <= 0 or w <= 0 or h <= 0:
        return
    noise = noise_field((w, h), size, contrast, np.random.default_rng(seed))
    layer = Image.fromarray(noise).convert("RGBA")
    opacity = amount * GRAIN_OPACITY / 100.0
    logger.debug("grain %dx%d scale=%.2f opacity=%.3f masked=%s", w, h, grain_scale(size), opacity, mask is not None)
    composite_overlay(output, layer, opacity, mask)
