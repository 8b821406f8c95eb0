from __future__ import annotations
import logging
import math
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from attributes import DotPolicy, grayscale, map_brightness
from coverage import build_coverage_mask, coverage_size, pfp_diameter
from grid import CropWindow, cover_sample, grid_size, round_half_up, sample, sample_rgba
from variants_core import variant, Bool, Int, Float, Enum

logger = logging.getLogger(__name__)

Size = Tuple[int, int]

# Layout constants are calibrated against these canvases.
PFP_CANVAS = 1176
PFP_PADDING = 50
PFP_GAP = 27.6              # pixel_gap 100 -> 27.6 px between cells
PFP_EMPTY_GRAY = 107        # placeholder disk before an image is loaded

PHONE_WIDTH = 1260
DESKTOP_WIDTH = 3840

WALLPAPER_RESOLUTION = 56.16
WALLPAPER_GAP = 0.08832

ALIASING_RESOLUTION = 71.8848
ALIASING_GAP = 0.0423936

WIDGET_CANVAS = 1176
WIDGET_PADDING = 50
WIDGET_MIN_ALPHA = 10       # cells at or below this alpha are empty
MIN_DOT = 0.1               # px; smaller dots are not drawn

BACKGROUNDS = {"black": (0, 0, 0, 255), "white": (255, 255, 255, 255)}
WIDGET_BACKGROUNDS = {"transparent": (0, 0, 0, 0), "dark": (0x21, 0x21, 0x21, 255), "light": (0xF1, 0xF0, 0xF1, 255)}


# ========= drawing helpers =========
def landscape(size: Size) -> bool:
    return size[0] > size[1]

def reference_scale(size: Size) -> float:
    """Output width relative to the canvas the gap constants were tuned on."""
    return size[0] / (DESKTOP_WIDTH if landscape(size) else PHONE_WIDTH)

def canvas(size: Size, fill) -> Image.Image:
    return Image.new("RGBA", (max(1, int(size[0])), max(1, int(size[1]))), fill)

def draw_dot(d: ImageDraw.ImageDraw, cx: float, cy: float, w: float, h: float, fill, circular: bool) -> None:
    """Circle of diameter min(w, h) or a w x h square, centred on (cx, cy)."""
    if circular:
        r = min(w, h) / 2.0
        if r > MIN_DOT:
            d.ellipse((cx - r, cy - r, cx + r, cy + r), fill=fill)
    elif w > MIN_DOT and h > MIN_DOT:
        d.rectangle((cx - w / 2.0, cy - h / 2.0, cx + w / 2.0, cy + h / 2.0), fill=fill)

def cell_size(grid: Size, size: Size, gap: float) -> Tuple[float, float]:
    """Dot footprint when `grid` cells and the gaps between them fill `size` exactly."""
    gw, gh = grid
    return (size[0] - (gw - 1) * gap) / gw, (size[1] - (gh - 1) * gap) / gh

def content_bounds(valid: np.ndarray) -> Optional[Tuple[int, int, int, int]]:
    """(x0, y0, x1, y1) inclusive bounding box of the True cells, None when there are none."""
    ys, xs = np.nonzero(valid)
    if xs.size == 0:
        return None
    return int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max())

def fit_area(grid: Size, size: Size, padding: float) -> Tuple[float, float, float, float]:
    """Largest rectangle with the grid's aspect ratio centred in the padded canvas."""
    gw, gh = grid
    dw, dh = size[0] - 2 * padding, size[1] - 2 * padding
    a = gw / gh
    if dw / a <= dh:
        aw, ah = dw, dw / a
    else:
        aw, ah = dh * a, dh
    return padding + (dw - aw) / 2.0, padding + (dh - ah) / 2.0, aw, ah


# ========= profile picture =========
def pfp_grays(image: Optional[Image.Image], diameter: int, exposure: float, contrast: float) -> np.ndarray:
    if image is None:
        return np.full((diameter, diameter), PFP_EMPTY_GRAY, dtype=np.uint8)
    return map_brightness(cover_sample(image, diameter), exposure, contrast)

@variant(
    name="pfp",
    target="pfp",
    options={
        "resolution": Int(50, 0, 100),
        "exposure": Int(50, 0, 100),
        "contrast": Int(50, 0, 100),
        "pixel_gap": Int(50, 0, 100),
        "circular": Bool(False),
        "transparent": Bool(False),
        "anti_aliased": Bool(False),
    },
)
def _v_pfp(im: Optional[Image.Image], size: Size, *, resolution: int, exposure: int, contrast: int,
           pixel_gap: int, circular: bool, transparent: bool, anti_aliased: bool) -> Image.Image:
    out = canvas(size, (0, 0, 0, 0) if transparent else (0, 0, 0, 255))
    side = min(out.size)
    scale = side / PFP_CANVAS
    padding, gap = PFP_PADDING * scale, pixel_gap / 100.0 * PFP_GAP * scale
    diameter = pfp_diameter(resolution)
    pixel = (side - 2 * padding - (diameter - 1) * gap) / diameter
    if pixel <= 0:
        logger.debug("pfp: no room for %d cells in %d px", diameter, side)
        return out

    mask = build_coverage_mask(diameter, anti_aliased)
    grays = pfp_grays(im, diameter, exposure, contrast)
    ox = (out.width - side) / 2.0 + padding
    oy = (out.height - side) / 2.0 + padding
    d = ImageDraw.Draw(out)
    for y, x in zip(*np.nonzero(mask > 0)):
        s = pixel * float(coverage_size(mask[y, x]))
        g = int(grays[y, x])
        cx = ox + x * (pixel + gap) + pixel / 2.0
        cy = oy + y * (pixel + gap) + pixel / 2.0
        draw_dot(d, cx, cy, s, s, (g, g, g, 255), circular)
    return out


# ========= wallpaper =========
def wallpaper_grid_width(resolution: float, size: Size) -> int:
    k = 4 if landscape(size) else 1
    return int(math.floor(10 + resolution * k / 100.0 * WALLPAPER_RESOLUTION))

@variant(
    name="wallpaper",
    target="phone",
    options={
        "resolution": Int(50, 0, 100),
        "pixel_gap": Int(50, 0, 100),
        "circular": Bool(True),
        "background": Enum("black", BACKGROUNDS),
        "monochrome": Bool(False),
        "crop_x": Float(0.5, 0.0, 1.0),
        "crop_y": Float(0.5, 0.0, 1.0),
    },
)
def _v_wallpaper(im: Optional[Image.Image], size: Size, *, resolution: int, pixel_gap: int, circular: bool,
                 background: str, monochrome: bool, crop_x: float, crop_y: float) -> Image.Image:
    out = canvas(size, BACKGROUNDS[background])
    if im is None:
        return out
    gw, gh = grid_size(wallpaper_grid_width(resolution, size), size)
    grid = sample(im, CropWindow(crop_x, crop_y), gw, gh, size)
    if grid.size == 0:
        return out
    if monochrome:
        grid = grayscale(grid)
    gap = pixel_gap * WALLPAPER_GAP * reference_scale(out.size)
    pw, ph = cell_size((gw, gh), out.size, gap)
    logger.debug("wallpaper grid %dx%d cell %.2fx%.2f gap %.2f", gw, gh, pw, ph, gap)
    d = ImageDraw.Draw(out)
    for y in range(gh):
        for x in range(gw):
            r, g, b = (int(v) for v in grid[y, x])
            draw_dot(d, x * (pw + gap) + pw / 2.0, y * (ph + gap) + ph / 2.0, pw, ph, (r, g, b, 255), circular)
    return out


# ========= value aliasing =========
def value_aliasing_grid_width(resolution: float, size: Size) -> int:
    k = 4 if landscape(size) else 1.2
    return int(math.floor(10 + resolution * k / 100.0 * ALIASING_RESOLUTION))

@variant(
    name="value_aliasing",
    target="phone",
    options={
        "resolution": Int(50, 0, 100),
        "pixel_gap": Int(50, 0, 100),
        "background": Enum("black", BACKGROUNDS),
        "monochrome": Bool(True),
        "exposure": Int(50, 0, 100),
        "contrast": Int(50, 0, 100),
        "pure_value": Bool(False),
        "transparent": Bool(False),
        "lower_limit": Int(0, 0, 100),
        "crop_x": Float(0.5, 0.0, 1.0),
        "crop_y": Float(0.5, 0.0, 1.0),
    },
)
def _v_value_aliasing(im: Optional[Image.Image], size: Size, *, resolution: int, pixel_gap: int, background: str,
                      monochrome: bool, exposure: int, contrast: int, pure_value: bool, transparent: bool,
                      lower_limit: int, crop_x: float, crop_y: float) -> Image.Image:
    """
    Dots whose radius follows brightness: on black, light areas get big dots; on white,
    dark ones do. Dots at or under the lower limit are left out. In colour mode the
    dot keeps its sampled colour and only its size follows the mapped brightness.
    """
    out = canvas(size, (0, 0, 0, 0) if transparent else BACKGROUNDS[background])
    if im is None:
        return out
    gw, gh = grid_size(value_aliasing_grid_width(resolution, size), size)
    grid = sample(im, CropWindow(crop_x, crop_y), gw, gh, size)
    if grid.size == 0:
        return out
    grays = map_brightness(grid, exposure, contrast)
    ink = "light" if background == "black" else "dark"
    sizes = DotPolicy(ink=ink, response="linear", lower_limit=lower_limit).sizes(grays)
    pure = (255, 255, 255, 255) if ink == "light" else (0, 0, 0, 255)

    gap = pixel_gap * ALIASING_GAP * reference_scale(out.size)
    pw, ph = cell_size((gw, gh), out.size, gap)
    base = min(pw, ph)
    d = ImageDraw.Draw(out)
    drawn = 0
    for y, x in zip(*np.nonzero(sizes > 0)):
        if pure_value:
            fill = pure
        elif monochrome:
            g = int(grays[y, x])
            fill = (g, g, g, 255)
        else:
            r, g, b = (int(v) for v in grid[y, x])
            fill = (r, g, b, 255)
        dot = base * float(sizes[y, x])
        draw_dot(d, x * (pw + gap) + pw / 2.0, y * (ph + gap) + ph / 2.0, dot, dot, fill, True)
        drawn += 1
    logger.debug("value aliasing grid %dx%d: %d dots", gw, gh, drawn)
    return out


# ========= photo widget =========
def widget_grid_width(resolution: float) -> int:
    return 20 + int(math.floor(resolution * 0.6592 / 100.0 * 130))

def widget_gap_ratio(pixel_gap: float) -> float:
    return 0.28 * pixel_gap / 100.0 * 0.2765

def widget_matrix(im: Image.Image, resolution: float) -> Optional[np.ndarray]:
    """RGBA cell grid of the whole image, trimmed to its non-empty cells. None when empty."""
    gw = widget_grid_width(resolution)
    gh = round_half_up(gw * im.height / im.width) if im.width > 0 else 0
    grid = sample_rgba(im, CropWindow(), gw, gh, im.size)
    if grid.size == 0:
        return None
    valid = grid[..., 3] > WIDGET_MIN_ALPHA
    bounds = content_bounds(valid)
    if bounds is None:
        return None
    x0, y0, x1, y1 = bounds
    trimmed = grid[y0:y1 + 1, x0:x1 + 1].copy()
    trimmed[~valid[y0:y1 + 1, x0:x1 + 1]] = 0
    return trimmed

@variant(
    name="photo_widget",
    target="widget",
    options={
        "resolution": Int(50, 0, 100),
        "pixel_gap": Int(0, 0, 100),
        "circular": Bool(True),
        "anti_aliased": Bool(False),
        "output_mode": Enum("transparent", WIDGET_BACKGROUNDS),
    },
)
def _v_photo_widget(im: Optional[Image.Image], size: Size, *, resolution: int, pixel_gap: int, circular: bool,
                    anti_aliased: bool, output_mode: str) -> Image.Image:
    out = canvas(size, WIDGET_BACKGROUNDS[output_mode])
    if im is None:
        return out
    matrix = widget_matrix(im, resolution)
    if matrix is None:
        logger.debug("photo widget: image has no opaque content")
        return out
    gh, gw = matrix.shape[:2]
    padding = WIDGET_PADDING * min(out.size) / WIDGET_CANVAS
    ax, ay, aw, ah = fit_area((gw, gh), out.size, padding)
    if aw <= 0 or ah <= 0:
        return out
    cw, ch = aw / gw, ah / gh
    keep = 1.0 - widget_gap_ratio(pixel_gap)
    d = ImageDraw.Draw(out)
    for y, x in zip(*np.nonzero(matrix[..., 3] > 0)):
        r, g, b, a = (int(v) for v in matrix[y, x])
        k = math.sqrt(a / 255.0) if anti_aliased else 1.0
        draw_dot(d, ax + (x + 0.5) * cw, ay + (y + 0.5) * ch, cw * keep * k, ch * keep * k, (r, g, b, 255), circular)
    return out
