from __future__ import annotations
import logging
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, ImageFilter

logger = logging.getLogger(__name__)

# Empirically tuned; kept fixed so renders stay comparable.
BLEED = 0.20          # mirrored margin on each side, as a fraction of the source size
PASSES = 4
MIN_TILE = 5
TILE_DIVISOR = 20     # first-pass tile is ~1/20 of the width
BLUR_SCALE = 0.02     # intensity 100 -> blur radius 2% of the longer side


def warp_blur_radius(intensity: float, width: int, height: int) -> float:
    return max(0.0, intensity) / 100.0 * max(width, height) * BLUR_SCALE

def warp_schedule(width: int) -> List[Tuple[int, float]]:
    """(tile, distortion) per pass: tiles halve down to MIN_TILE, distortion halves every pass."""
    tile = max(MIN_TILE, width // TILE_DIVISOR)
    distortion = float(tile)
    passes = []
    for _ in range(PASSES):
        passes.append((tile, distortion))
        tile = max(MIN_TILE, tile // 2)
        distortion *= 0.5
    return passes

def _shuffle_pass(canvas: np.ndarray, tile: int, distortion: float, rng: np.random.Generator) -> np.ndarray:
    # each tile is replaced by a randomly displaced tile of the previous pass
    src = canvas.copy()
    ch, cw = canvas.shape[:2]
    d = int(round(distortion))
    for ty in range(0, ch, tile):
        th = min(tile, ch - ty)
        for tx in range(0, cw, tile):
            tw = min(tile, cw - tx)
            if d > 0:
                ox, oy = (int(v) for v in rng.integers(-d, d + 1, size=2))
            else:
                ox = oy = 0
            sx = min(max(tx + ox, 0), cw - tw)
            sy = min(max(ty + oy, 0), ch - th)
            canvas[ty:ty + th, tx:tx + tw] = src[sy:sy + th, sx:sx + tw]
    return canvas

def synthesize_warped_background(source: Image.Image, intensity: float, *, seed: Optional[int] = 0) -> Image.Image:
    """
    Stylized blur-warp backdrop, same size as `source` (RGB).

    The source is mirror-tiled into a canvas with a 20% bleed per side, then shuffled
    in 4 passes of shrinking tiles whose random displacement halves every pass
    (coarse warp first, fine detail last). A Gaussian blur scaled by `intensity` is
    applied twice and the centre is cropped back out. Same seed, same output.
    """
    img = source if source.mode == "RGB" else source.convert("RGB")
    w, h = img.size
    if w <= 0 or h <= 0:
        return img.copy()

    bx, by = int(round(w * BLEED)), int(round(h * BLEED))
    arr = np.asarray(img, dtype=np.uint8)
    canvas = np.pad(arr, ((by, by), (bx, bx), (0, 0)), mode="symmetric")

    rng = np.random.default_rng(seed)
    for i, (tile, distortion) in enumerate(warp_schedule(w)):
        logger.debug("warp pass %d: tile=%d distortion=%.2f", i, tile, distortion)
        canvas = _shuffle_pass(canvas, tile, distortion, rng)

    out = Image.fromarray(canvas)
    radius = warp_blur_radius(intensity, w, h)
    if radius > 0:
        blur = ImageFilter.GaussianBlur(radius)
        out = out.filter(blur).filter(blur)
    return out.crop((bx, by, bx + w, by + h))
