from __future__ import annotations
import logging
import math

import numpy as np

logger = logging.getLogger(__name__)

SUPERSAMPLE = 5          # sub-samples per axis for boundary cells
AA_BAND = 1.5            # cells this far outside the radius still get supersampled
COVERAGE_EXPONENT = 0.35


def pfp_diameter(resolution: float) -> int:
    """Odd disk diameter (in cells) for the profile-picture matrix; 9 at resolution 0."""
    return int(math.floor((0.32 * resolution + 9) / 2)) * 2 + 1

def coverage_size(coverage):
    """
    Rendered size factor for a cell with the given coverage. Sub-linear, so boundary
    cells shrink gradually instead of popping between empty and full size.
    """
    return np.power(coverage, COVERAGE_EXPONENT)

def build_coverage_mask(diameter: int, anti_aliased: bool = False) -> np.ndarray:
    """
    Coverage in [0,1] of a disk of the given diameter over a diameter x diameter lattice.
    A cell is inside when its centre is within the radius. With anti-aliasing, cells
    near the edge get the fraction of a 5x5 sub-sample grid that falls inside.
    """
    d = int(diameter)
    if d <= 0:
        return np.zeros((0, 0), dtype=np.float64)
    radius = d / 2.0
    r2 = radius * radius
    # offsets from the lattice centre; exact half-integers so the mask stays symmetric
    idx = np.arange(d, dtype=np.float64) - (d - 1) / 2.0
    dy, dx = idx[:, None], idx[None, :]
    dist2 = dx * dx + dy * dy
    inside = dist2 <= r2
    mask = inside.astype(np.float64)
    if not anti_aliased:
        return mask

    band = ~inside & (dist2 < (radius + AA_BAND) ** 2)
    offs = (np.arange(SUPERSAMPLE, dtype=np.float64) - (SUPERSAMPLE - 1) // 2) / SUPERSAMPLE
    total = SUPERSAMPLE * SUPERSAMPLE
    for y, x in zip(*np.nonzero(band)):
        sx = idx[x] + offs[None, :]
        sy = idx[y] + offs[:, None]
        mask[y, x] = np.count_nonzero(sx * sx + sy * sy <= r2) / total
    logger.debug("coverage mask d=%d aa=%s boundary cells=%d", d, anti_aliased, int(band.sum()))
    return mask
