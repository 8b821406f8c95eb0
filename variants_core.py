from __future__ import annotations
import importlib
import math
import pkgutil
import logging
from typing import Dict, Any, Callable, Mapping, Optional
from dataclasses import dataclass

from PIL import Image

logger = logging.getLogger(__name__)

# ---------------- registry & option descriptors ----------------
_registry: Dict[str, "VariantMeta"] = {}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _number(value: Any) -> float:
    """float(value); NaN raises ValueError, infinities are left for clamping."""
    v = float(value)
    if math.isnan(v):
        raise ValueError(f"not a number: {value!r}")
    return v


@dataclass
class Option:
    default: Any

    def clamp(self, value: Any) -> Any:
        return value

    def parse(self, text: str) -> Any:
        return text

class Bool(Option):
    def clamp(self, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in _TRUE
        return bool(value)

    def parse(self, text: str) -> bool:
        t = text.strip().lower()
        if t not in _TRUE | _FALSE:
            raise ValueError(f"expected a boolean, got {text!r}")
        return t in _TRUE

class Int(Option):
    def __init__(self, default: int, min_value: int, max_value: int, step: int = 1):
        super().__init__(default); self.min=min_value; self.max=max_value; self.step=step

    def clamp(self, value: Any) -> int:
        v = _number(value)
        # half up, like grid.round_half_up
        return int(math.floor(min(max(v, self.min), self.max) + 0.5))

    def parse(self, text: str) -> int:
        return self.clamp(float(text))

class Float(Option):
    def __init__(self, default: float, min_value: float, max_value: float, step: float = 0.01):
        super().__init__(default); self.min=min_value; self.max=max_value; self.step=step

    def clamp(self, value: Any) -> float:
        return float(min(max(_number(value), self.min), self.max))

    def parse(self, text: str) -> float:
        return self.clamp(float(text))

class Enum(Option):
    def __init__(self, default: str, choices):
        super().__init__(default); self.choices=list(choices)

    def clamp(self, value: Any) -> str:
        return value if value in self.choices else self.default

    def parse(self, text: str) -> str:
        if text not in self.choices:
            raise ValueError(f"expected one of {self.choices}, got {text!r}")
        return text

class Color(Option):
    """Hex colour string, '#rrggbb'."""
    def clamp(self, value: Any) -> str:
        s = str(value).strip()
        if len(s) == 7 and s.startswith("#"):
            try:
                int(s[1:], 16)
                return s.lower()
            except ValueError:
                pass
        return self.default


@dataclass
class VariantMeta:
    name: str
    func: Callable[..., Image.Image]
    options: Dict[str, Option]
    target: str

def variant(name: str, *, options: Dict[str, Option], target: str = "phone"):
    """Register `fn(image, size, **options) -> RGBA image` under `name`. `target` is the
    output size it is usually rendered at (a key of presets.TARGET_SIZES)."""
    def deco(fn: Callable[..., Image.Image]):
        _registry[name] = VariantMeta(name=name, func=fn, options=options, target=target)
        return fn
    return deco


# ---------------- discovery ----------------
def _import_variants_package(package: str = "variants") -> None:
    """Import the variants package and its submodules; surface exceptions."""
    pkg = importlib.import_module(package)
    if hasattr(pkg, "__path__"):
        for m in pkgutil.iter_modules(pkg.__path__):
            importlib.import_module(f"{package}.{m.name}")

def discover_variants(package: str = "variants") -> Dict[str, VariantMeta]:
    """Load every renderer module of the package and return the registry."""
    try:
        _import_variants_package(package)
    except Exception as e:
        logger.error("Variant discovery error importing package '%s': %s", package, e, exc_info=True)

    logger.info("Variants registered: %d -> %s", len(_registry), sorted(_registry.keys()))
    return dict(_registry)

def get_variant(name: str) -> VariantMeta:
    if name not in _registry:
        discover_variants()
    try:
        return _registry[name]
    except KeyError:
        raise KeyError(f"unknown variant {name!r}; known: {sorted(_registry)}") from None


# ---------------- option values ----------------
def clamp_options(meta: VariantMeta, values: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Full option set for `meta`: defaults, overlaid with `values` clamped into each
    descriptor's range. Unknown keys are dropped with a warning. Never raises for
    out-of-range or malformed values; those fall back to the default.
    """
    out = {k: opt.default for k, opt in meta.options.items()}
    for k, v in (values or {}).items():
        opt = meta.options.get(k)
        if opt is None:
            logger.warning("Variant %s: ignoring unknown option %r", meta.name, k)
            continue
        try:
            out[k] = opt.clamp(v)
        except (TypeError, ValueError):
            logger.warning("Variant %s: bad value %r for %s, using default", meta.name, v, k)
    return out

def parse_option_value(opt: Option, text: str) -> Any:
    """Convert a command-line string for `opt`; raises ValueError when it cannot."""
    return opt.parse(text)

def render(image: Optional[Image.Image], config, width: int, height: int) -> Image.Image:
    """Render `config` (an EffectConfig) at width x height. Raises KeyError for an unknown variant."""
    meta = get_variant(config.variant)
    opts = clamp_options(meta, config.options)
    logger.debug("render %s at %dx%d", meta.name, width, height)
    return meta.func(image, (int(width), int(height)), **opts)
