from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple

PRESET_VERSION = 1

# ---------------- output sizes ----------------
TARGET_SIZES: Dict[str, Tuple[int, int]] = {
    "phone": (1260, 2800),
    "desktop": (3840, 2160),
    "pfp": (1176, 1176),
    "widget": (1176, 1176),
}

PRINT_DPI = 300
RATIO_BASE_INCHES = 12


class PrintSize(NamedTuple):
    label: str
    w: float          # inches
    h: float
    group: str
    is_ratio: bool = False


PRINT_SIZES: Dict[str, PrintSize] = {
    "us_8x10": PrintSize("8 x 10 in", 8, 10, "US Standard"),
    "us_8.5x11": PrintSize("8.5 x 11 in", 8.5, 11, "US Standard"),
    "us_11x14": PrintSize("11 x 14 in", 11, 14, "US Standard"),
    "us_11x17": PrintSize("11 x 17 in", 11, 17, "US Standard"),
    "us_12x16": PrintSize("12 x 16 in", 12, 16, "US Standard"),
    "us_12x18": PrintSize("12 x 18 in", 12, 18, "US Standard"),
    "us_16x20": PrintSize("16 x 20 in", 16, 20, "US Standard"),
    "us_18x24": PrintSize("18 x 24 in", 18, 24, "US Standard"),
    "us_20x30": PrintSize("20 x 30 in", 20, 30, "US Standard"),
    "us_24x36": PrintSize("24 x 36 in", 24, 36, "US Standard"),
    "us_27x40": PrintSize("27 x 40 in", 27, 40, "US Standard"),
    "us_36x48": PrintSize("36 x 48 in", 36, 48, "US Standard"),
    "iso_a5": PrintSize("A5", 5.83, 8.27, "ISO"),
    "iso_a4": PrintSize("A4", 8.27, 11.69, "ISO"),
    "iso_a3": PrintSize("A3", 11.69, 16.54, "ISO"),
    "iso_a2": PrintSize("A2", 16.54, 23.39, "ISO"),
    "iso_a1": PrintSize("A1", 23.39, 33.11, "ISO"),
    "iso_a0": PrintSize("A0", 33.11, 46.81, "ISO"),
    "original": PrintSize("Original Ratio", 1, 1, "Ratio", True),
    "ratio_1:1": PrintSize("1:1", 12, 12, "Ratio", True),
    "ratio_5:4": PrintSize("5:4", 15, 12, "Ratio", True),
    "ratio_4:3": PrintSize("4:3", 16, 12, "Ratio", True),
    "ratio_3:2": PrintSize("3:2", 18, 12, "Ratio", True),
    "ratio_16:9": PrintSize("16:9", 21.33, 12, "Ratio", True),
    "ratio_1.85:1": PrintSize("1.85:1", 22.2, 12, "Ratio", True),
    "ratio_2:1": PrintSize("2:1", 24, 12, "Ratio", True),
    "ratio_2.35:1": PrintSize("2.35:1", 28.2, 12, "Ratio", True),
    "ratio_21:9": PrintSize("21:9", 28, 12, "Ratio", True),
    "ratio_3:1": PrintSize("3:1", 36, 12, "Ratio", True),
}


def print_canvas_size(key: str, orientation: str = "portrait",
                      image_size: Optional[Tuple[int, int]] = None, dpi: int = PRINT_DPI) -> Tuple[int, int]:
    """
    Pixel size of a print canvas. "original" keeps the image's aspect ratio with its
    longer side at 12 inches (a square 12 in canvas without an image). The orientation
    only decides which side is the long one.
    """
    info = PRINT_SIZES[key]
    if key == "original":
        base = RATIO_BASE_INCHES * dpi
        if not image_size or image_size[0] <= 0 or image_size[1] <= 0:
            w, h = base, base
        else:
            a = image_size[0] / image_size[1]
            if a >= 1:
                w, h = base, int(round(base / a))
            else:
                w, h = int(round(base * a)), base
    else:
        w, h = int(round(info.w * dpi)), int(round(info.h * dpi))
    if orientation == "landscape":
        return max(w, h), min(w, h)
    return min(w, h), max(w, h)

def is_landscape(size: Tuple[int, int]) -> bool:
    return size[0] > size[1]


# ---------------- effect configuration ----------------
@dataclass(frozen=True, eq=False)
class EffectConfig:
    """
    Immutable settings of one effect: variant name plus its option values. Two configs
    are equal when their canonical JSON is equal, which is what history dedupe uses.
    """
    variant: str
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    def to_dict(self) -> Dict[str, Any]:
        return {"variant": self.variant, "options": dict(self.options)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    def __eq__(self, other):
        if not isinstance(other, EffectConfig):
            return NotImplemented
        return self.to_json() == other.to_json()

    def __hash__(self):
        return hash(self.to_json())

    def get(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def with_options(self, **changes) -> "EffectConfig":
        return EffectConfig(self.variant, {**self.options, **changes})

    def merged(self, override: Any) -> "EffectConfig":
        """Config with `override` applied: another config's options, or a plain mapping
        (a "variant" key in it switches the variant)."""
        if isinstance(override, EffectConfig):
            override = override.options
        changes = dict(override)
        variant = changes.pop("variant", self.variant)
        return EffectConfig(variant, {**self.options, **changes})

    @staticmethod
    def from_dict(obj: Mapping[str, Any]) -> "EffectConfig":
        return EffectConfig(str(obj["variant"]), dict(obj.get("options", {})))

    @staticmethod
    def from_json(s: str) -> "EffectConfig":
        return EffectConfig.from_dict(json.loads(s))

    @classmethod
    def defaults(cls, meta) -> "EffectConfig":
        """Initial config of a registered variant (anything with .name and .options)."""
        return cls(meta.name, {k: opt.default for k, opt in meta.options.items()})


@dataclass
class Preset:
    version: int
    config: EffectConfig
    target: str = "phone"

    def to_json(self) -> str:
        return json.dumps({"version": self.version, "target": self.target, **self.config.to_dict()},
                          indent=2, sort_keys=True)

    @staticmethod
    def from_json(s: str) -> "Preset":
        obj = json.loads(s)
        return Preset(
            version=int(obj.get("version", PRESET_VERSION)),
            config=EffectConfig.from_dict(obj),
            target=str(obj.get("target", "phone")),
        )

    def save(self, path: str) -> None:
        d = os.path.dirname(path)
        if d:
            os.makedirs(d, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json())

    @staticmethod
    def load(path: str) -> "Preset":
        with open(path, "r", encoding="utf-8") as f:
            return Preset.from_json(f.read())
