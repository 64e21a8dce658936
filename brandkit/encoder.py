"""Byte-budgeted encoding of composited rasters.

Supported formats are described by an explicit capability table instead of
Pillow's global plugin registry, so callers (and tests) can see and swap the
exact encoder settings in use.

Usage:
  from brandkit.encoder import encode_within_cap
  result = encode_within_cap(image, cap=50 * 1024)
  if not result.met_cap:
      ...  # best-effort floor-quality artifact, still usable
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from PIL import Image

from brandkit.compositor import is_opaque
from brandkit.exceptions import EncodeFailure

logger = logging.getLogger(__name__)

DEFAULT_QUALITY_LADDER: Tuple[int, ...] = (95, 90, 85, 80, 75, 70, 65, 60, 55, 50, 45, 40, 38, 36)
DEFAULT_FLOOR_QUALITY = 30


@dataclass(frozen=True)
class FormatCapability:
    key: str
    pil_format: str
    extension: str
    lossy: bool
    supports_alpha: bool
    save_options: Mapping[str, Any] = field(default_factory=dict)


FORMATS: Dict[str, FormatCapability] = {
    "png": FormatCapability(
        key="png",
        pil_format="PNG",
        extension=".png",
        lossy=False,
        supports_alpha=True,
        save_options={"optimize": True, "compress_level": 9},
    ),
    "jpeg": FormatCapability(
        key="jpeg",
        pil_format="JPEG",
        extension=".jpg",
        lossy=True,
        supports_alpha=False,
        save_options={"optimize": True, "progressive": False},
    ),
}
LOSSLESS_FORMAT = "png"
LOSSY_FORMAT = "jpeg"


@dataclass(frozen=True)
class EncodeResult:
    fmt: FormatCapability
    data: bytes
    quality: Optional[int] = None
    met_cap: bool = True

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return self.fmt.extension


def _lookup(formats: Mapping[str, FormatCapability], key: str, lossy: bool) -> FormatCapability:
    cap = formats.get(key)
    if cap is None:
        raise KeyError(f"Format {key!r} missing from capability table")
    if cap.lossy is not lossy:
        raise ValueError(f"Format {key!r} is {'lossy' if cap.lossy else 'lossless'}")
    return cap


def encode_bytes(image: Image.Image, fmt: FormatCapability, quality: Optional[int] = None) -> bytes:
    """Encode ``image`` in memory with the fixed options of ``fmt``."""
    options = dict(fmt.save_options)
    if fmt.lossy:
        if quality is None:
            raise ValueError(f"{fmt.pil_format} encoding needs a quality level")
        options["quality"] = int(quality)
    if not fmt.supports_alpha and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buf = BytesIO()
    try:
        image.save(buf, format=fmt.pil_format, **options)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeFailure(fmt.pil_format, exc) from exc
    data = buf.getvalue()
    if not data:
        raise EncodeFailure(fmt.pil_format, "empty output")
    return data


def normalize_ladder(ladder: Iterable[int]) -> Tuple[int, ...]:
    """Descending, de-duplicated quality levels; each must be 1-100."""
    levels = set()
    for q in ladder:
        q = int(q)
        if not 1 <= q <= 100:
            raise ValueError(f"Quality level {q} outside 1-100")
        levels.add(q)
    return tuple(sorted(levels, reverse=True))


def encode_lossless(
    image: Image.Image,
    formats: Mapping[str, FormatCapability] = FORMATS,
    key: str = LOSSLESS_FORMAT,
) -> EncodeResult:
    fmt = _lookup(formats, key, lossy=False)
    # Fully opaque RGBA composites compress better without the alpha plane.
    if image.mode == "RGBA" and is_opaque(image):
        image = image.convert("RGB")
    return EncodeResult(fmt=fmt, data=encode_bytes(image, fmt))


def encode_within_cap(
    image: Image.Image,
    cap: int,
    ladder: Iterable[int] = DEFAULT_QUALITY_LADDER,
    floor: int = DEFAULT_FLOOR_QUALITY,
    formats: Mapping[str, FormatCapability] = FORMATS,
    key: str = LOSSY_FORMAT,
) -> EncodeResult:
    """Return the highest-quality lossy encoding whose length is <= ``cap``.

    Walks the ladder from the top. If no level fits, the image is encoded at
    ``floor`` and returned with ``met_cap=False``; exceeding the cap is never
    an error here.
    """
    fmt = _lookup(formats, key, lossy=True)
    levels = normalize_ladder(ladder)
    floor = normalize_ladder([floor])[0]
    for quality in levels:
        data = encode_bytes(image, fmt, quality)
        logger.debug("%s q=%d -> %d bytes (cap %d)", fmt.pil_format, quality, len(data), cap)
        if len(data) <= cap:
            return EncodeResult(fmt=fmt, data=data, quality=quality, met_cap=True)
    data = encode_bytes(image, fmt, floor)
    logger.debug("%s floor q=%d -> %d bytes (cap %d)", fmt.pil_format, floor, len(data), cap)
    return EncodeResult(fmt=fmt, data=data, quality=floor, met_cap=len(data) <= cap)


__all__ = [
    "DEFAULT_FLOOR_QUALITY",
    "DEFAULT_QUALITY_LADDER",
    "EncodeResult",
    "FORMATS",
    "FormatCapability",
    "LOSSLESS_FORMAT",
    "LOSSY_FORMAT",
    "encode_bytes",
    "encode_lossless",
    "encode_within_cap",
    "normalize_ladder",
]
