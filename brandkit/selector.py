"""Lossless-first format selection with a flattened lossy fallback."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional

from PIL import Image

from brandkit.colors import Color
from brandkit.compositor import flatten
from brandkit.encoder import (
    DEFAULT_FLOOR_QUALITY,
    DEFAULT_QUALITY_LADDER,
    FORMATS,
    EncodeResult,
    FormatCapability,
    encode_lossless,
    encode_within_cap,
)
from brandkit.exceptions import SizeCapUnmet

logger = logging.getLogger(__name__)

LOSSLESS_ACCEPTED = "lossless-accepted"
LOSSY_ACCEPTED = "lossy-accepted"
BEST_EFFORT_KEPT = "best-effort-kept"


@dataclass(frozen=True)
class Selection:
    result: EncodeResult
    state: str

    @property
    def met_cap(self) -> bool:
        return self.state != BEST_EFFORT_KEPT


def _record_unmet(
    name: str,
    cap: int,
    kept: EncodeResult,
    warnings: Optional[List[SizeCapUnmet]],
) -> None:
    warning = SizeCapUnmet(name, cap, kept.size, kept.fmt.pil_format)
    logger.warning("%s", warning)
    if warnings is not None:
        warnings.append(warning)


def select_format(
    image: Image.Image,
    cap: int,
    fallback: Color,
    *,
    name: str = "asset",
    ladder: Iterable[int] = DEFAULT_QUALITY_LADDER,
    floor: int = DEFAULT_FLOOR_QUALITY,
    formats: Mapping[str, FormatCapability] = FORMATS,
    warnings: Optional[List[SizeCapUnmet]] = None,
) -> Selection:
    """Pick PNG when it fits ``cap``, otherwise JPEG over ``fallback``.

    When neither fits, the smaller of the two is kept (PNG on a tie) and a
    SizeCapUnmet warning is appended to ``warnings``.
    """
    lossless = encode_lossless(image, formats)
    if lossless.size <= cap:
        logger.debug("%s: lossless %d bytes within cap %d", name, lossless.size, cap)
        return Selection(lossless, LOSSLESS_ACCEPTED)

    lossy = encode_within_cap(flatten(image, fallback), cap, ladder, floor, formats)
    if lossy.met_cap:
        logger.debug("%s: lossless %d bytes over cap, lossy q=%s fits", name, lossless.size, lossy.quality)
        return Selection(lossy, LOSSY_ACCEPTED)

    kept = lossless if lossless.size <= lossy.size else lossy
    kept = EncodeResult(fmt=kept.fmt, data=kept.data, quality=kept.quality, met_cap=False)
    _record_unmet(name, cap, kept, warnings)
    return Selection(kept, BEST_EFFORT_KEPT)


def select_lossy(
    image: Image.Image,
    cap: int,
    fallback: Color,
    *,
    name: str = "asset",
    ladder: Iterable[int] = DEFAULT_QUALITY_LADDER,
    floor: int = DEFAULT_FLOOR_QUALITY,
    formats: Mapping[str, FormatCapability] = FORMATS,
    warnings: Optional[List[SizeCapUnmet]] = None,
) -> Selection:
    """Lossy-only path: flatten, then search the quality ladder."""
    lossy = encode_within_cap(flatten(image, fallback), cap, ladder, floor, formats)
    if lossy.met_cap:
        return Selection(lossy, LOSSY_ACCEPTED)
    _record_unmet(name, cap, lossy, warnings)
    return Selection(lossy, BEST_EFFORT_KEPT)


__all__ = [
    "BEST_EFFORT_KEPT",
    "LOSSLESS_ACCEPTED",
    "LOSSY_ACCEPTED",
    "Selection",
    "select_format",
    "select_lossy",
]
