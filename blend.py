from __future__ import annotations
from typing import Optional

import numpy as np
from PIL import Image


def overlay(base: np.ndarray, top: np.ndarray) -> np.ndarray:
    """Overlay on [0,1] floats: multiply where the base is dark, screen where it is light."""
    return np.where(base <= 0.5, 2.0 * base * top, 1.0 - 2.0 * (1.0 - base) * (1.0 - top))

def composite_overlay(output: Image.Image, layer: Image.Image, opacity: float = 1.0,
                      mask: Optional[Image.Image] = None) -> None:
    """
    Overlay-blend `layer` onto `output` in place. Per-pixel weight is the layer's alpha
    times `opacity`, times `mask` (L, 255 = full) when given. The output keeps its alpha.
    """
    if opacity <= 0:
        return
    out = np.asarray(output.convert("RGBA"), dtype=np.float32) / 255.0
    top = np.asarray(layer.convert("RGBA"), dtype=np.float32) / 255.0
    weight = top[..., 3:4] * float(opacity)
    if mask is not None:
        weight = weight * (np.asarray(mask.convert("L"), dtype=np.float32)[..., None] / 255.0)
    rgb = out[..., :3]
    out[..., :3] = rgb + (overlay(rgb, top[..., :3]) - rgb) * weight
    result = np.clip(out * 255.0 + 0.5, 0, 255).astype(np.uint8)
    output.paste(Image.fromarray(result).convert(output.mode))
