from __future__ import annotations
import logging
from typing import Optional, Tuple

from PIL import Image, ImageFilter, ImageOps

from blobs import cluster, filter_lower_limit, select_markers, similarity_threshold
from grain import add_grain, shape_mask
from grid import CropWindow, crop_to_target, grid_size, sample
from refraction import composite
from variants_core import variant, Bool, Int, Float
from warp import synthesize_warped_background

logger = logging.getLogger(__name__)

Size = Tuple[int, int]

BLUR_FLOOR = 12             # blur 0 still softens the lenses a little
BLUR_RANGE = 0.88
BLUR_SCALE = 0.02
GAP_RANGE = 16              # pixel_gap 100 -> 16% of a cell between lenses
GRAIN_SIZE_RANGE = 18
GRAIN_CONTRAST = 50


def effective_blur(blur_amount: float) -> float:
    return BLUR_FLOOR + blur_amount * BLUR_RANGE

def backdrop_blur_radius(blur_amount: float, size: Size) -> float:
    return effective_blur(blur_amount) / 100.0 * max(size) * BLUR_SCALE

def glass_grid_width(resolution: float) -> int:
    return int(10 + resolution)

def lens_gap(pixel_gap: float) -> float:
    """Fraction of a cell left between neighbouring lenses."""
    return pixel_gap * GAP_RANGE / 100.0 / 100.0

def prepare_source(im: Image.Image, size: Size, crop: CropWindow, monochrome: bool) -> Optional[Image.Image]:
    src = crop_to_target(im, crop, size)
    if src is not None and monochrome:
        src = ImageOps.grayscale(src).convert("RGB")
    return src


@variant(
    name="glass_dots",
    target="phone",
    options={
        "resolution": Int(50, 0, 100),
        "pixel_gap": Int(50, 0, 100),
        "blur_amount": Int(50, 0, 100),
        "monochrome": Bool(False),
        "grain": Bool(True),
        "grain_amount": Int(50, 0, 100),
        "grain_size": Int(0, 0, 100),
        "ior": Int(25, 0, 100),
        "similarity": Int(50, 0, 100),
        "background_blur": Bool(False),
        "lower_limit": Int(0, 0, 100),
        "markers": Bool(False),
        "crop_x": Float(0.5, 0.0, 1.0),
        "crop_y": Float(0.5, 0.0, 1.0),
        "seed": Int(0, 0, 2**31 - 1),
    },
)
def _v_glass_dots(im: Optional[Image.Image], size: Size, *, resolution: int, pixel_gap: int, blur_amount: int,
                  monochrome: bool, grain: bool, grain_amount: int, grain_size: int, ior: int, similarity: int,
                  background_blur: bool, lower_limit: int, markers: bool, crop_x: float, crop_y: float,
                  seed: int) -> Image.Image:
    """
    Glass lenses over the photo. Same-coloured square regions of a coarse grid merge
    into one blob; each blob becomes a disc that shows the blurred photo, magnified by
    the refractive index. With background blur on, the backdrop itself is the warped
    blur and grain covers the whole frame; otherwise grain only lands on the lenses.
    """
    w, h = max(1, int(size[0])), max(1, int(size[1]))
    if im is None:
        return Image.new("RGBA", (w, h), (0, 0, 0, 255))
    src = prepare_source(im, (w, h), CropWindow(crop_x, crop_y), monochrome)
    if src is None:
        return Image.new("RGBA", (w, h), (0, 0, 0, 255))

    radius = backdrop_blur_radius(blur_amount, (w, h))
    backdrop = src.filter(ImageFilter.GaussianBlur(radius)) if radius > 0 else src
    if background_blur:
        base = synthesize_warped_background(src, effective_blur(blur_amount), seed=seed)
    else:
        base = src
    out = base.convert("RGBA")

    gw, gh = grid_size(glass_grid_width(resolution), (w, h))
    colors = sample(src, CropWindow(), gw, gh, (w, h))
    if colors.size == 0:
        return out
    blobs = cluster(colors, similarity_threshold(similarity))
    marked = select_markers(blobs) if markers else []
    kept = filter_lower_limit(blobs, lower_limit)
    logger.debug("glass dots grid %dx%d: %d blobs, %d kept, %d marked", gw, gh, len(blobs), len(kept), len(marked))

    lenses = composite(out, kept, backdrop, ior, grid_size=(gw, gh), gap=lens_gap(pixel_gap),
                       markers=marked, blur_intensity=blur_amount, marker_source=src)

    if grain and grain_amount > 0 and (lenses or background_blur):
        mask = None if background_blur else shape_mask((w, h), lenses)
        add_grain(out, grain_amount, grain_size * GRAIN_SIZE_RANGE / 100.0, GRAIN_CONTRAST, mask, seed=seed)
    return out
