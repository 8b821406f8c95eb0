from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

# Source/target aspect ratios closer than this are treated as equal: no crop, no pan.
ASPECT_TOLERANCE = 0.01

Size = Tuple[int, int]
Rect = Tuple[float, float, float, float]  # (x, y, width, height) in source pixels


def _clamp01(v: float) -> float:
    return max(0.0, min(1.0, float(v)))

def round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


@dataclass(frozen=True)
class CropWindow:
    """Normalized pan offsets into the croppable range of the source.
    0 pins the left/top edge, 1 the right/bottom edge; values are clamped into [0,1]."""
    offset_x: float = 0.5
    offset_y: float = 0.5

    def __post_init__(self):
        object.__setattr__(self, "offset_x", _clamp01(self.offset_x))
        object.__setattr__(self, "offset_y", _clamp01(self.offset_y))


# ---------------- crop geometry ----------------
def aspect(size: Size) -> float:
    w, h = size
    return float(w) / float(h) if h > 0 else 0.0

def crop_is_needed(source_size: Size, target_size: Size) -> bool:
    return abs(aspect(source_size) - aspect(target_size)) > ASPECT_TOLERANCE

def window_size(source_size: Size, target_size: Size) -> Tuple[float, float]:
    """Largest sub-rectangle of the source with the target's aspect ratio."""
    sw, sh = float(source_size[0]), float(source_size[1])
    src_a, dst_a = aspect(source_size), aspect(target_size)
    if src_a > dst_a:
        return sh * dst_a, sh
    if dst_a <= 0:
        return 0.0, 0.0
    return sw, sw / dst_a

def crop_rect(source_size: Size, target_size: Size, crop: CropWindow) -> Rect:
    sw, sh = float(source_size[0]), float(source_size[1])
    if not crop_is_needed(source_size, target_size):
        return 0.0, 0.0, sw, sh
    cw, ch = window_size(source_size, target_size)
    if aspect(source_size) > aspect(target_size):
        return (sw - cw) * crop.offset_x, 0.0, cw, sh
    return 0.0, (sh - ch) * crop.offset_y, sw, ch

def source_box(rect: Rect, source_size: Size) -> Tuple[float, float, float, float]:
    """PIL resize box for a crop rect, clipped so float error never leaves the source."""
    x, y, w, h = rect
    x0, y0 = max(0.0, x), max(0.0, y)
    return x0, y0, min(float(source_size[0]), x + w), min(float(source_size[1]), y + h)

def grid_size(grid_width: int, target_size: Size) -> Size:
    tw, th = target_size
    if grid_width <= 0 or tw <= 0 or th <= 0:
        return max(0, int(grid_width)), 0
    return int(grid_width), round_half_up(grid_width * (th / tw))


# ---------------- sampling ----------------
def _empty_grid(grid_width: int, grid_height: int, channels: int) -> np.ndarray:
    return np.zeros((max(0, int(grid_height)), max(0, int(grid_width)), channels), dtype=np.uint8)

def _sample(source: Image.Image, mode: str, crop: CropWindow, grid_width: int, grid_height: int,
            target_size: Optional[Size]) -> np.ndarray:
    channels = len(mode)
    if grid_width <= 0 or grid_height <= 0:
        logger.debug("degenerate grid %dx%d", grid_width, grid_height)
        return _empty_grid(grid_width, grid_height, channels)
    target_size = target_size or (grid_width, grid_height)
    sx, sy, sw, sh = crop_rect(source.size, target_size, crop)
    if sw <= 0 or sh <= 0:
        logger.debug("degenerate crop %.2fx%.2f from %s", sw, sh, source.size)
        return _empty_grid(grid_width, grid_height, channels)
    img = source if source.mode == mode else source.convert(mode)
    # nearest-neighbour: every cell keeps one real source colour
    small = img.resize((int(grid_width), int(grid_height)), Image.Resampling.NEAREST,
                       box=source_box((sx, sy, sw, sh), img.size))
    return np.array(small, dtype=np.uint8).reshape(int(grid_height), int(grid_width), channels)

def sample(source: Image.Image, crop: CropWindow, grid_width: int, grid_height: int,
           target_size: Optional[Size] = None) -> np.ndarray:
    """
    Crop `source` to the target aspect ratio (panned by `crop`) and downsample it
    into a (grid_height, grid_width, 3) uint8 RGB grid. `target_size` defaults to
    the grid dimensions. Degenerate geometry yields an all-zero grid; never raises.
    """
    return _sample(source, "RGB", crop, grid_width, grid_height, target_size)

def sample_rgba(source: Image.Image, crop: CropWindow, grid_width: int, grid_height: int,
                target_size: Optional[Size] = None) -> np.ndarray:
    return _sample(source, "RGBA", crop, grid_width, grid_height, target_size)

def cover_sample(source: Image.Image, size: int) -> np.ndarray:
    """Centred cover-fit of the source into a size x size grid."""
    return sample(source, CropWindow(), size, size, (size, size))

def crop_to_target(source: Image.Image, crop: CropWindow, target_size: Size,
                   resample=Image.Resampling.BILINEAR) -> Optional[Image.Image]:
    """Smoothly resampled RGB crop of the source at full target size (backdrops)."""
    tw, th = target_size
    sx, sy, sw, sh = crop_rect(source.size, target_size, crop)
    if tw <= 0 or th <= 0 or sw <= 0 or sh <= 0:
        return None
    img = source if source.mode == "RGB" else source.convert("RGB")
    return img.resize((int(tw), int(th)), resample, box=source_box((sx, sy, sw, sh), img.size))


# ---------------- pan gesture ----------------
def drag_offset(start: CropWindow, delta: Tuple[float, float], view_size: Tuple[float, float],
                source_size: Size, target_size: Size) -> CropWindow:
    """
    Map a pointer delta (in view pixels) to a new crop window. Dragging right moves
    the window left over the source, so content follows the pointer.
    """
    vw, vh = view_size
    if vw <= 0 or vh <= 0:
        return start
    cw, ch = window_size(source_size, target_size)
    range_x = float(source_size[0]) - cw
    range_y = float(source_size[1]) - ch
    ox, oy = start.offset_x, start.offset_y
    if range_x > 0:
        ox -= (delta[0] / vw) * cw / range_x
    if range_y > 0:
        oy -= (delta[1] / vh) * ch / range_y
    return CropWindow(ox, oy)


class _Dragging(NamedTuple):
    start_point: Tuple[float, float]
    start_crop: CropWindow


class PanGesture:
    """
    Crop panning as an explicit state machine: Idle -> Dragging(start, offset) -> Idle.
    The host feeds pointer positions; the gesture hands back crop windows to preview
    (`move`) and the final one to commit through history (`end`).
    """

    def __init__(self, source_size: Size, target_size: Size):
        self.source_size = source_size
        self.target_size = target_size
        self._drag: Optional[_Dragging] = None
        self._last: Optional[CropWindow] = None
        self.moved = False

    @property
    def dragging(self) -> bool:
        return self._drag is not None

    def begin(self, point: Tuple[float, float], crop: CropWindow) -> bool:
        if not crop_is_needed(self.source_size, self.target_size):
            return False
        self._drag = _Dragging(tuple(point), crop)
        self._last = crop
        self.moved = False
        return True

    def move(self, point: Tuple[float, float], view_size: Tuple[float, float]) -> Optional[CropWindow]:
        if self._drag is None:
            return None
        delta = (point[0] - self._drag.start_point[0], point[1] - self._drag.start_point[1])
        self._last = drag_offset(self._drag.start_crop, delta, view_size, self.source_size, self.target_size)
        self.moved = True
        return self._last

    def end(self) -> Optional[CropWindow]:
        """Back to Idle. Returns the crop to commit, or None if nothing moved."""
        if self._drag is None:
            return None
        result = self._last if self.moved else None
        self._drag = None
        self._last = None
        return result
