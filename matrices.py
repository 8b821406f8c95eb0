from __future__ import annotations
import argparse
import concurrent.futures as cf
import logging
import os
import sys
from typing import Dict, List, Optional, Sequence, Tuple

from errors import install_global_exception_hooks, safe_render
from io_utils import downscale_for_preview, list_images, load_image, make_output_path, preview_size, save_png
from logconf import setup_logging
from presets import TARGET_SIZES, EffectConfig, Preset
from variants_core import VariantMeta, discover_variants, get_variant, parse_option_value, render

logger = logging.getLogger("matrices")


def parse_size(text: str) -> Tuple[int, int]:
    try:
        w, h = (int(v) for v in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {text!r}") from None
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError(f"size must be positive, got {text!r}")
    return w, h

def parse_assignments(meta: VariantMeta, items: Sequence[str]) -> Dict[str, object]:
    """`key=value` strings -> typed option values. Raises ValueError on unknown keys or bad values."""
    out: Dict[str, object] = {}
    for item in items:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"expected key=value, got {item!r}")
        opt = meta.options.get(key)
        if opt is None:
            raise ValueError(f"{meta.name} has no option {key!r} (options: {', '.join(meta.options)})")
        out[key] = parse_option_value(opt, value.strip())
    return out

def describe_variants(registry: Dict[str, VariantMeta]) -> str:
    lines = []
    for name in sorted(registry):
        meta = registry[name]
        lines.append(f"{name} (target: {meta.target})")
        for key, opt in meta.options.items():
            extra = ""
            if hasattr(opt, "choices"):
                extra = f" one of {opt.choices}"
            elif hasattr(opt, "min"):
                extra = f" [{opt.min}..{opt.max}]"
            lines.append(f"  {key} = {opt.default!r}{extra}")
    return "\n".join(lines)


@safe_render
def render_file(path: str, config: EffectConfig, size: Tuple[int, int], out_dir: str, preview: bool = False) -> str:
    im = load_image(path)
    if preview:
        im = downscale_for_preview(im)
    img = render(im, config, size[0], size[1])
    dst = make_output_path(out_dir, path, config.variant)
    save_png(img, dst)
    return dst

def render_batch(files: List[str], config: EffectConfig, size: Tuple[int, int], out_dir: str,
                 workers: int = 4, preview: bool = False) -> Tuple[List[str], List[str]]:
    """Render every file; returns (written outputs, failed inputs). One failure never stops the batch."""
    written, failed = [], []
    with cf.ThreadPoolExecutor(max_workers=max(1, workers)) as ex:
        futures = {ex.submit(render_file, p, config, size, out_dir, preview): p for p in files}
        for fut in cf.as_completed(futures):
            dst = fut.result()
            if dst is None:
                logger.error("Failed: %s", futures[fut])
                failed.append(futures[fut])
            else:
                logger.info("Wrote %s", dst)
                written.append(dst)
    return sorted(written), sorted(failed)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="matrices", description="Render images as dot-matrix and glass-dot artwork.")
    ap.add_argument("src", nargs="?", help="image file or folder of images")
    group = ap.add_mutually_exclusive_group()
    group.add_argument("--variant", default="glass_dots", help="effect to render (see --list)")
    group.add_argument("--preset", help="preset JSON file (variant, options and target)")
    ap.add_argument("--target", choices=sorted(TARGET_SIZES), help="output size; defaults to the variant's own")
    ap.add_argument("--size", type=parse_size, help="explicit output size WIDTHxHEIGHT, overrides --target")
    ap.add_argument("--out", default="_Matrices", help="output folder (relative to SRC's folder)")
    ap.add_argument("--preview", action="store_true", help="quick render capped at preview resolution")
    ap.add_argument("--workers", type=int, default=4, help="render threads")
    ap.add_argument("--set", dest="assignments", action="append", default=[], metavar="KEY=VALUE",
                    help="override one option; repeatable")
    ap.add_argument("--list", action="store_true", help="list variants and their options, then exit")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging on the console")
    return ap

def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    install_global_exception_hooks()

    registry = discover_variants()
    if args.list:
        print(describe_variants(registry))
        return 0
    if not args.src:
        ap.error("SRC is required unless --list is given")
    if not os.path.exists(args.src):
        ap.error(f"no such file or folder: {args.src}")

    target = args.target
    if args.preset:
        preset = Preset.load(args.preset)
        config = preset.config
        target = target or preset.target
    else:
        config = None
    name = config.variant if config is not None else args.variant
    try:
        meta = get_variant(name)
    except KeyError as e:
        ap.error(str(e.args[0]))
    if config is None:
        config = EffectConfig.defaults(meta)
    try:
        config = config.merged(parse_assignments(meta, args.assignments))
    except ValueError as e:
        ap.error(str(e))

    size = args.size or TARGET_SIZES[target or meta.target]
    if args.preview:
        size = preview_size(size)
    files = list_images(args.src)
    if not files:
        logger.warning("No images found in %s", args.src)
        return 0
    base = args.src if os.path.isdir(args.src) else os.path.dirname(os.path.abspath(args.src))
    out_dir = args.out if os.path.isabs(args.out) else os.path.join(base, args.out)

    logger.info("Rendering %d file(s) with %s at %dx%d -> %s", len(files), config.variant, size[0], size[1], out_dir)
    written, failed = render_batch(files, config, size, out_dir, workers=args.workers, preview=args.preview)
    logger.info("Done: %d written, %d failed", len(written), len(failed))
    return 1 if failed else 0

if __name__ == "__main__":
    sys.exit(main())
