"""Derive the brand asset set from one source image.

Usage:
  python scripts/generate_brand_assets.py logo.png --out site/brand [--profile dark]
      [--page-color #FFFFFF] [--light-color #FFFFFF] [--dark-color #111111]
      [--background-kb 300] [--header-kb 10] [--banner-kb 50] [--square-kb 50]

Defaults come from config.yml (merged with config_<profile>.yml). Writes five
images plus brand_colors.txt, brand.css and assets_manifest.csv into --out.

Exit codes: 0 success (missed size caps are warnings), 2 invalid color or
argument, 3 unreadable source image, 4 encoder failure.
"""
from __future__ import annotations

import argparse
import logging
import math
import os
import sys
from typing import List, Optional

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from brandkit import config_params  # noqa: E402
from brandkit.config_loader import load_config  # noqa: E402
from brandkit.exceptions import EncodeFailure, InvalidColorFormat, SizeCapUnmet, SourceImageUnreadable  # noqa: E402
from brandkit.pipeline import derive_assets, resolve_palette  # noqa: E402
from brandkit.report import write_manifest  # noqa: E402
from brandkit.side_outputs import write_color_reference, write_stylesheet  # noqa: E402


def _parse_args(argv: List[str]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Generate brand assets from a source image")
    ap.add_argument("source", help="Source image path")
    ap.add_argument("--out", required=True, help="Output directory (created if missing)")
    ap.add_argument("--profile", default=None, help="Config profile (config_<profile>.yml)")
    ap.add_argument("--page-color", default=None)
    ap.add_argument("--light-color", default=None)
    ap.add_argument("--dark-color", default=None)
    for key in config_params.DEFAULT_CAPS_KB:
        ap.add_argument(f"--{key}-kb", type=float, default=None, help=f"{key} size cap in KB")
    ap.add_argument("--fit-policy", choices=["aspect", "limiting"], default=None)
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s %(message)s",
    )

    cfg = load_config(args.profile)
    colors = config_params.palette_hex(cfg)
    for role in colors:
        override = getattr(args, f"{role}_color")
        if override is not None:
            colors[role] = override
    try:
        palette = resolve_palette(colors["page"], colors["light"], colors["dark"])
    except InvalidColorFormat as exc:
        print(f"[brandkit] {exc}", file=sys.stderr)
        return 2

    caps = config_params.size_caps(cfg)
    for key in caps:
        kb = getattr(args, f"{key}_kb")
        if kb is not None:
            if not math.isfinite(kb) or kb <= 0:
                print(f"[brandkit] --{key}-kb must be positive", file=sys.stderr)
                return 2
            caps[key] = config_params.kb_to_bytes(kb)

    if not os.path.isfile(args.source):
        print(f"[brandkit] Source image not found: {args.source}", file=sys.stderr)
        return 3

    os.makedirs(args.out, exist_ok=True)
    warnings: List[SizeCapUnmet] = []
    try:
        results = derive_assets(
            args.source,
            args.out,
            palette,
            caps,
            ladder=config_params.quality_ladder(cfg),
            floor=config_params.floor_quality(cfg),
            fit_policy=args.fit_policy or config_params.fit_policy(cfg),
            warnings=warnings,
        )
    except SourceImageUnreadable as exc:
        print(f"[brandkit] {exc}", file=sys.stderr)
        return 3
    except EncodeFailure as exc:
        print(f"[brandkit] {exc}", file=sys.stderr)
        return 4

    for item in results:
        print(f"[brandkit] wrote {item.path} ({item.result.size} bytes, {item.state})")
    write_color_reference(palette, args.out)
    write_stylesheet(palette, results, args.out)
    manifest = write_manifest(results, args.out)
    print(f"[brandkit] wrote {manifest}")
    for warning in warnings:
        print(f"[brandkit] warning: {warning}")
    print(f"[brandkit] Done. {len(results)} assets, {len(warnings)} warning(s).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
