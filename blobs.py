from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# colour-distance ceiling for 8-bit RGB that sensitivity 100 maps to
MAX_SIMILARITY_DISTANCE = 120.0
MARKER_FRACTION = 0.04

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class Blob:
    x: int
    y: int
    size: int

def similarity_threshold(sensitivity: float) -> float:
    """Sensitivity slider [0,100] -> colour distance [0,120]."""
    return sensitivity / 100.0 * MAX_SIMILARITY_DISTANCE

def color_distance(c1: Optional[Sequence[float]], c2: Optional[Sequence[float]]) -> float:
    if c1 is None or c2 is None:
        return math.inf
    dr, dg, db = c1[0] - c2[0], c1[1] - c2[1], c1[2] - c2[2]
    return math.sqrt(dr * dr + dg * dg + db * db)

def _rows(color_grid) -> List[List[Optional[RGB]]]:
    if isinstance(color_grid, np.ndarray):
        if color_grid.ndim != 3 or color_grid.size == 0:
            return []
        return [[tuple(px) for px in row] for row in color_grid[..., :3].astype(np.int64).tolist()]
    return [[None if px is None else tuple(px[:3]) for px in row] for row in color_grid]


def cluster(color_grid, threshold: float) -> List[Blob]:
    """
    Greedy square tiling of a colour grid.

    Cells are scanned row-major. Each unvisited cell anchors a blob that grows one
    ring at a time: going from side s to s+1 adds the right column (s+1 cells) and
    the bottom row (s cells), and every added cell must be unvisited and within
    `threshold` of the anchor colour. Growth stops at the first failing cell in
    either strip (no growth along one axis only) or at the grid edge. The result
    covers every cell exactly once; it is deterministic but not globally optimal.

    `color_grid` is an (H, W, 3) array or nested rows of RGB triples / None.
    None never matches anything, so it always ends up as a 1x1 blob.
    """
    rows = _rows(color_grid)
    h = len(rows)
    w = len(rows[0]) if h else 0
    if h == 0 or w == 0:
        return []

    visited = [[False] * w for _ in range(h)]
    blobs: List[Blob] = []

    def similar(anchor, x, y) -> bool:
        return not visited[y][x] and color_distance(anchor, rows[y][x]) <= threshold

    for y in range(h):
        for x in range(w):
            if visited[y][x]:
                continue
            anchor = rows[y][x]
            size = 1
            while y + size < h and x + size < w:
                col = x + size
                if not all(similar(anchor, col, y + i) for i in range(size + 1)):
                    break
                row = y + size
                if not all(similar(anchor, x + i, row) for i in range(size)):
                    break
                size += 1

            blobs.append(Blob(x, y, size))
            for j in range(y, y + size):
                vrow = visited[j]
                for i in range(x, x + size):
                    vrow[i] = True

    logger.debug("clustered %dx%d grid (threshold %.1f) into %d blobs", w, h, threshold, len(blobs))
    return blobs


def select_markers(blobs: Sequence[Blob]) -> List[Blob]:
    """The largest ceil(4%) of blobs; ties keep scan order."""
    count = math.ceil(len(blobs) * MARKER_FRACTION)
    return sorted(blobs, key=lambda b: b.size, reverse=True)[:count]

def filter_lower_limit(blobs: Sequence[Blob], lower_limit: float) -> List[Blob]:
    """Drop blobs smaller than lower_limit% of the largest blob."""
    max_size = max((b.size for b in blobs), default=1)
    cutoff = (lower_limit / 100.0) * max(1, max_size)
    return [b for b in blobs if b.size >= cutoff]

def coverage_counts(blobs: Sequence[Blob], shape: Tuple[int, int]) -> np.ndarray:
    """How many blobs cover each cell of an (H, W) grid; all ones for a valid tiling."""
    counts = np.zeros(shape, dtype=np.int32)
    for b in blobs:
        counts[b.y:b.y + b.size, b.x:b.x + b.size] += 1
    return counts
