from __future__ import annotations
from typing import List, Tuple
from PIL import Image, ImageOps
import os
import math
import logging

logger = logging.getLogger(__name__)

MAX_PREVIEW_DIM = 1500
IMAGE_EXTS = (".png", ".jpg", ".jpeg", ".webp", ".bmp", ".tif", ".tiff", ".gif")


def load_image(path: str) -> Image.Image:
    img = Image.open(path)
    img = ImageOps.exif_transpose(img)
    # Pillow lazy loads; ensure it's loaded now
    img.load()
    return img


def list_images(src: str) -> List[str]:
    """`src` itself when it is a file, else the image files directly inside it, sorted."""
    if os.path.isfile(src):
        return [src]
    return sorted(
        os.path.join(src, n) for n in os.listdir(src)
        if n.lower().endswith(IMAGE_EXTS) and os.path.isfile(os.path.join(src, n))
    )


def save_png(img: Image.Image, path: str, overwrite: bool = True) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    if os.path.exists(path) and not overwrite:
        raise FileExistsError(path)
    img.save(path, format="PNG")


def make_output_path(out_dir: str, in_path: str, variant_name: str, ext: str = "png") -> str:
    base = os.path.splitext(os.path.basename(in_path))[0]
    filename = f"{base}_{variant_name}.{ext}"
    return os.path.join(out_dir, filename)


def preview_size(size: Tuple[int, int], max_dim: int = MAX_PREVIEW_DIM) -> Tuple[int, int]:
    """Same aspect ratio, longer side at most `max_dim`."""
    w, h = size
    scale = min(max_dim / max(w, h), 1.0) if max(w, h) > 0 else 1.0
    if scale < 1.0:
        return max(1, int(math.floor(w * scale))), max(1, int(math.floor(h * scale)))
    return w, h


def downscale_for_preview(img: Image.Image, max_dim: int = MAX_PREVIEW_DIM) -> Image.Image:
    size = preview_size(img.size, max_dim)
    if size != img.size:
        return img.resize(size, Image.Resampling.LANCZOS)
    return img
