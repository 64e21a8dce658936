"""Derive the five brand assets from one source image.

Usage:
  from brandkit.pipeline import derive_assets, resolve_palette
  palette = resolve_palette("#FFFFFF", "#FFFFFF", "#111111")
  warnings = []
  results = derive_assets("logo.png", "out", palette, caps, warnings=warnings)

Assets, in derivation order:
  background          1920x1080  pad-to-fit on page color, JPEG only
  header_logo          245x36    fit-exact on transparency, PNG first
  banner_logo          245x36    same geometry, own cap
  square_logo_light    240x240   center-square crop on light color, PNG first
  square_logo_dark     240x240   the same crop on dark color, PNG first

Everything is composited and encoded in memory first; files are only written
once all five encodings succeeded, so a fatal error leaves the output
directory untouched.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from PIL import Image, UnidentifiedImageError

from brandkit.atomic_write import write_atomic
from brandkit.colors import Color, resolve_color
from brandkit.compositor import center_square_crop, fit_exact, pad_to_fit
from brandkit.encoder import (
    DEFAULT_FLOOR_QUALITY,
    DEFAULT_QUALITY_LADDER,
    FORMATS,
    EncodeResult,
    FormatCapability,
)
from brandkit.exceptions import SizeCapUnmet, SourceImageUnreadable
from brandkit.selector import Selection, select_format, select_lossy

logger = logging.getLogger(__name__)

LOSSLESS_FIRST = "lossless-first"
LOSSY_ONLY = "lossy-only"

PAD_FIT = "pad-fit"
FIT_EXACT_LONGER_AXIS = "fit-exact-longer-axis"
FIT_EXACT_HEIGHT_PREFERRED = "fit-exact-height-preferred"
SQUARE_CROP = "square-crop"

CAP_KEYS = ("background", "header", "banner", "square")
PALETTE_ROLES = ("page", "light", "dark")

BACKGROUND_SIZE = (1920, 1080)
LOGO_SIZE = (245, 36)
SQUARE_SIZE = (240, 240)


@dataclass(frozen=True)
class Palette:
    page: Color
    light: Color
    dark: Color

    def role(self, name: str) -> Color:
        if name not in PALETTE_ROLES:
            raise KeyError(f"Unknown palette role {name!r}")
        return getattr(self, name)


def resolve_palette(page: str, light: str, dark: str) -> Palette:
    """Validate all three colors up front; raises InvalidColorFormat."""
    return Palette(page=resolve_color(page), light=resolve_color(light), dark=resolve_color(dark))


@dataclass(frozen=True)
class AssetSpec:
    name: str
    width: int
    height: int
    cap: int
    preferred: str
    strategy: str
    backdrop: Optional[str]
    fallback: str

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def filename(self, extension: str) -> str:
        return f"{self.name}_{self.width}x{self.height}{extension}"


@dataclass
class AssetResult:
    spec: AssetSpec
    selection: Selection
    path: Optional[str] = None

    @property
    def result(self) -> EncodeResult:
        return self.selection.result

    @property
    def state(self) -> str:
        return self.selection.state

    @property
    def met_cap(self) -> bool:
        return self.selection.met_cap

    @property
    def filename(self) -> str:
        return self.spec.filename(self.result.extension)


def _validate_caps(caps: Mapping[str, int]) -> Dict[str, int]:
    missing = [k for k in CAP_KEYS if k not in caps]
    if missing:
        raise ValueError(f"Missing size caps: {', '.join(missing)}")
    out: Dict[str, int] = {}
    for key in CAP_KEYS:
        value = int(caps[key])
        if value <= 0:
            raise ValueError(f"Size cap for {key} must be positive, got {value}")
        out[key] = value
    return out


def build_asset_specs(caps: Mapping[str, int], fit_policy: str = "aspect") -> List[AssetSpec]:
    """The fixed five-asset plan; ``caps`` are byte limits keyed by CAP_KEYS."""
    caps = _validate_caps(caps)
    if fit_policy == "aspect":
        logo_strategy = FIT_EXACT_HEIGHT_PREFERRED
    elif fit_policy == "limiting":
        logo_strategy = FIT_EXACT_LONGER_AXIS
    else:
        raise ValueError(f"Unknown fit policy {fit_policy!r}")
    return [
        AssetSpec("background", *BACKGROUND_SIZE, caps["background"], LOSSY_ONLY, PAD_FIT, "page", "page"),
        AssetSpec("header_logo", *LOGO_SIZE, caps["header"], LOSSLESS_FIRST, logo_strategy, None, "page"),
        AssetSpec("banner_logo", *LOGO_SIZE, caps["banner"], LOSSLESS_FIRST, logo_strategy, None, "page"),
        AssetSpec("square_logo_light", *SQUARE_SIZE, caps["square"], LOSSLESS_FIRST, SQUARE_CROP, "light", "light"),
        AssetSpec("square_logo_dark", *SQUARE_SIZE, caps["square"], LOSSLESS_FIRST, SQUARE_CROP, "dark", "dark"),
    ]


def open_source(path: str) -> Image.Image:
    """Decode ``path`` fully into an RGBA raster owned by the caller."""
    try:
        with Image.open(path) as img:
            img.load()
            return img.convert("RGBA")
    except FileNotFoundError as exc:
        raise SourceImageUnreadable(path, "file not found") from exc
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise SourceImageUnreadable(path, exc) from exc


def composite_asset(
    spec: AssetSpec,
    source: Image.Image,
    square: Optional[Image.Image],
    palette: Palette,
) -> Image.Image:
    backdrop = palette.role(spec.backdrop) if spec.backdrop else None
    if spec.strategy == PAD_FIT:
        return pad_to_fit(source, spec.size, backdrop)
    if spec.strategy == FIT_EXACT_LONGER_AXIS:
        return fit_exact(source, spec.size, backdrop, policy="limiting")
    if spec.strategy == FIT_EXACT_HEIGHT_PREFERRED:
        return fit_exact(source, spec.size, backdrop, policy="aspect")
    if spec.strategy == SQUARE_CROP:
        if square is None:
            raise ValueError("square-crop strategy needs the shared crop")
        return pad_to_fit(square, spec.size, backdrop)
    raise ValueError(f"Unknown strategy {spec.strategy!r}")


def _encode_asset(
    spec: AssetSpec,
    canvas: Image.Image,
    palette: Palette,
    ladder: Sequence[int],
    floor: int,
    formats: Mapping[str, FormatCapability],
    warnings: Optional[List[SizeCapUnmet]],
) -> Selection:
    select = select_lossy if spec.preferred == LOSSY_ONLY else select_format
    return select(
        canvas,
        spec.cap,
        palette.role(spec.fallback),
        name=spec.name,
        ladder=ladder,
        floor=floor,
        formats=formats,
        warnings=warnings,
    )


def render_assets(
    source: Image.Image,
    specs: Iterable[AssetSpec],
    palette: Palette,
    *,
    ladder: Sequence[int] = DEFAULT_QUALITY_LADDER,
    floor: int = DEFAULT_FLOOR_QUALITY,
    formats: Mapping[str, FormatCapability] = FORMATS,
    warnings: Optional[List[SizeCapUnmet]] = None,
) -> List[AssetResult]:
    """Composite and encode every spec in memory; nothing touches disk."""
    square: Optional[Image.Image] = None
    results: List[AssetResult] = []
    try:
        for spec in specs:
            if spec.strategy == SQUARE_CROP and square is None:
                square = center_square_crop(source)
            canvas = composite_asset(spec, source, square, palette)
            try:
                selection = _encode_asset(spec, canvas, palette, ladder, floor, formats, warnings)
            finally:
                canvas.close()
            logger.info(
                "%s: %s %d bytes (cap %d, %s)",
                spec.name,
                selection.result.fmt.pil_format,
                selection.result.size,
                spec.cap,
                selection.state,
            )
            results.append(AssetResult(spec=spec, selection=selection))
    finally:
        if square is not None:
            square.close()
    return results


def _remove_stale(output_dir: str, item: AssetResult, formats: Mapping[str, FormatCapability]) -> None:
    for fmt in formats.values():
        if fmt.extension == item.result.extension:
            continue
        stale = os.path.join(output_dir, item.spec.filename(fmt.extension))
        if os.path.exists(stale):
            os.remove(stale)
            logger.debug("Removed stale %s", stale)


def persist_assets(
    results: Iterable[AssetResult],
    output_dir: str,
    formats: Mapping[str, FormatCapability] = FORMATS,
) -> List[AssetResult]:
    written: List[AssetResult] = []
    for item in results:
        path = os.path.join(output_dir, item.filename)
        write_atomic(path, item.result.data)
        _remove_stale(output_dir, item, formats)
        item.path = path
        written.append(item)
    return written


def derive_assets(
    source_path: str,
    output_dir: str,
    palette: Union[Palette, Mapping[str, str]],
    caps: Mapping[str, int],
    *,
    ladder: Sequence[int] = DEFAULT_QUALITY_LADDER,
    floor: int = DEFAULT_FLOOR_QUALITY,
    fit_policy: str = "aspect",
    formats: Mapping[str, FormatCapability] = FORMATS,
    warnings: Optional[List[SizeCapUnmet]] = None,
) -> List[AssetResult]:
    """Run the whole derivation and write five files into ``output_dir``.

    ``palette`` may be a resolved Palette or a mapping of hex strings keyed by
    page/light/dark. Missed byte caps are appended to ``warnings`` and do not
    stop the run; bad colors, unreadable sources and codec failures raise.
    """
    if not isinstance(palette, Palette):
        palette = resolve_palette(palette["page"], palette["light"], palette["dark"])
    specs = build_asset_specs(caps, fit_policy)
    if not os.path.isdir(output_dir):
        raise NotADirectoryError(f"Output directory does not exist: {output_dir}")

    source = open_source(source_path)
    try:
        logger.info("Deriving assets from %s (%dx%d)", source_path, *source.size)
        results = render_assets(
            source,
            specs,
            palette,
            ladder=ladder,
            floor=floor,
            formats=formats,
            warnings=warnings,
        )
    finally:
        source.close()
    return persist_assets(results, output_dir, formats)


__all__ = [
    "AssetResult",
    "AssetSpec",
    "CAP_KEYS",
    "FIT_EXACT_HEIGHT_PREFERRED",
    "FIT_EXACT_LONGER_AXIS",
    "LOSSLESS_FIRST",
    "LOSSY_ONLY",
    "PAD_FIT",
    "Palette",
    "SQUARE_CROP",
    "build_asset_specs",
    "composite_asset",
    "derive_assets",
    "open_source",
    "persist_assets",
    "render_assets",
    "resolve_palette",
]
