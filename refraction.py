from __future__ import annotations
import functools
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw

from attributes import luma
from blend import composite_overlay
from blobs import Blob

logger = logging.getLogger(__name__)

MAX_REFRACTION = 0.4         # ior 100 -> lenses magnify 1.4x
MIN_LENS_RADIUS = 0.1        # px
MARKER_BLUR_FLOOR = 20       # markers are pointless on a barely blurred backdrop
MARKER_SIZE = 0.5            # arm = MARKER_SIZE * radius * 0.5
MARKER_STROKE = 0.36         # stroke = MARKER_STROKE * radius * 0.05 + 1
MASK_SUPERSAMPLE = 4

Area = Tuple[float, float, float, float]  # (x, y, width, height) in output pixels


@dataclass(frozen=True)
class Lens:
    cx: float
    cy: float
    radius: float
    blob: Blob


def refract_scale(ior: float) -> float:
    return 1.0 + (ior / 100.0) * MAX_REFRACTION

def edge_padding(blobs: Sequence[Blob], grid_size: Tuple[int, int], output_size: Tuple[int, int],
                 ior: float) -> Tuple[float, float]:
    """
    Inset per axis so the largest blob touching a grid edge, magnified by the lens,
    still samples inside the backdrop: size_px * (refract_scale - 1) / 2.
    """
    gw, gh = grid_size
    w, h = output_size
    if gw <= 0 or gh <= 0:
        return 0.0, 0.0
    edge = [b.size for b in blobs if b.x == 0 or b.y == 0 or b.x + b.size >= gw or b.y + b.size >= gh]
    if not edge:
        return 0.0, 0.0
    k = refract_scale(ior) - 1.0
    largest = max(edge)
    return largest * (w / gw) * k / 2.0, largest * (h / gh) * k / 2.0

def lens_geometry(blobs: Iterable[Blob], grid_size: Tuple[int, int], area: Area, gap: float = 0.0) -> List[Lens]:
    """
    Circular lens per blob inside `area`. `gap` is the fraction of a cell left empty
    between neighbouring lenses. Lenses too small to see are dropped.
    """
    gw, gh = grid_size
    ax, ay, aw, ah = area
    cell_w, cell_h = aw / gw, ah / gh
    gap_x, gap_y = cell_w * gap, cell_h * gap
    lenses = []
    for b in blobs:
        bw, bh = cell_w * b.size, cell_h * b.size
        radius = min(bw - gap_x, bh - gap_y) / 2.0
        if radius > MIN_LENS_RADIUS:
            lenses.append(Lens(ax + b.x * cell_w + bw / 2.0, ay + b.y * cell_h + bh / 2.0, radius, b))
    return lenses


@functools.lru_cache(maxsize=256)
def _disc_mask(diameter: int) -> Image.Image:
    big = diameter * MASK_SUPERSAMPLE
    m = Image.new("L", (big, big), 0)
    ImageDraw.Draw(m).ellipse((0, 0, big - 1, big - 1), fill=255)
    return m.resize((diameter, diameter), Image.Resampling.BOX)

def _fit_box(x0: float, y0: float, x1: float, y1: float, w: int, h: int) -> Tuple[float, float, float, float]:
    # shift (and if needed shrink) a sample box to lie inside a w x h image
    bw, bh = min(x1 - x0, float(w)), min(y1 - y0, float(h))
    x0 = min(max(x0, 0.0), w - bw)
    y0 = min(max(y0, 0.0), h - bh)
    return x0, y0, x0 + bw, y0 + bh

def draw_lens(output: Image.Image, backdrop: Image.Image, lens: Lens, scale: float) -> None:
    """Fill the lens disc with the backdrop around its centre, magnified by `scale`."""
    d = int(round(lens.radius * 2))
    if d < 1:
        return
    fx, fy = backdrop.width / output.width, backdrop.height / output.height
    half = lens.radius * scale
    box = _fit_box((lens.cx - half) * fx, (lens.cy - half) * fy, (lens.cx + half) * fx, (lens.cy + half) * fy,
                   backdrop.width, backdrop.height)
    patch = backdrop.resize((d, d), Image.Resampling.BILINEAR, box=box)
    output.paste(patch, (int(round(lens.cx - d / 2.0)), int(round(lens.cy - d / 2.0))), _disc_mask(d))

def draw_markers(output: Image.Image, lenses: Sequence[Lens], sample_image: Image.Image) -> None:
    """Plus signs at lens centres, overlay-blended; dark on bright spots and vice versa."""
    if not lenses:
        return
    src = sample_image if sample_image.mode == "RGB" else sample_image.convert("RGB")
    fx, fy = src.width / output.width, src.height / output.height
    layer = Image.new("RGBA", output.size, (0, 0, 0, 0))
    d = ImageDraw.Draw(layer)
    for lens in lenses:
        px = min(max(int(round(lens.cx * fx)), 0), src.width - 1)
        py = min(max(int(round(lens.cy * fy)), 0), src.height - 1)
        color = (0, 0, 0, 128) if luma(src.getpixel((px, py))) > 128 else (255, 255, 255, 128)
        stroke = max(1, int(round(MARKER_STROKE * lens.radius * 0.05 + 1)))
        arm = MARKER_SIZE * lens.radius * 0.5
        d.line([(lens.cx - arm, lens.cy), (lens.cx + arm, lens.cy)], fill=color, width=stroke)
        d.line([(lens.cx, lens.cy - arm), (lens.cx, lens.cy + arm)], fill=color, width=stroke)
    composite_overlay(output, layer)

def composite(output: Image.Image, blobs: Sequence[Blob], backdrop: Image.Image, ior: float, *,
              grid_size: Tuple[int, int], gap: float = 0.0, markers: Iterable[Blob] = (),
              blur_intensity: float = 100.0, marker_source: Optional[Image.Image] = None) -> List[Lens]:
    """
    Draw one magnifying lens per blob onto `output` (in place) and return the lenses.

    The drawable area is the output inset by `edge_padding`; if that leaves nothing,
    nothing is drawn. Each lens shows the backdrop sampled over refract_scale(ior)
    times its own diameter around the same centre: a single magnified sample, not a
    ray-traced refraction. `markers` get a plus sign unless `blur_intensity` is
    under the marker floor.
    """
    w, h = output.size
    gw, gh = grid_size
    if gw <= 0 or gh <= 0 or not blobs:
        return []
    pad_x, pad_y = edge_padding(blobs, grid_size, (w, h), ior)
    area = (pad_x, pad_y, w - 2.0 * pad_x, h - 2.0 * pad_y)
    if area[2] <= 0 or area[3] <= 0:
        logger.debug("no drawable area after padding %.1fx%.1f", pad_x, pad_y)
        return []

    lenses = lens_geometry(blobs, grid_size, area, gap)
    scale = refract_scale(ior)
    src = backdrop if backdrop.mode == output.mode else backdrop.convert(output.mode)
    for lens in lenses:
        draw_lens(output, src, lens, scale)

    marker_set = set(markers)
    if marker_set and blur_intensity >= MARKER_BLUR_FLOOR:
        draw_markers(output, [l for l in lenses if l.blob in marker_set], marker_source or backdrop)
    logger.debug("composited %d lenses (pad %.1f, %.1f; scale %.2f)", len(lenses), pad_x, pad_y, scale)
    return lenses
