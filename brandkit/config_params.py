"""Utilities for reading parameter defaults from the project config."""

import logging
import math
from typing import Any, Dict, Optional, Tuple

from brandkit.encoder import DEFAULT_FLOOR_QUALITY, DEFAULT_QUALITY_LADDER

logger = logging.getLogger(__name__)

KB = 1024

DEFAULT_CAPS_KB: Dict[str, float] = {
    "background": 300,
    "header": 10,
    "banner": 50,
    "square": 50,
}
DEFAULT_COLORS: Dict[str, str] = {
    "page": "#FFFFFF",
    "light": "#FFFFFF",
    "dark": "#111111",
}
DEFAULT_FIT_POLICY = "aspect"


def _coerce_float(value: Any, default: float) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    return out if math.isfinite(out) else default


def kb_to_bytes(kb: float) -> int:
    """Round up so any positive KB budget stays at least one byte."""
    return max(1, math.ceil(kb * KB))


def _section(config: Optional[Dict[str, Any]], key: str) -> Dict[str, Any]:
    if not isinstance(config, dict):
        return {}
    section = config.get(key)
    return section if isinstance(section, dict) else {}


def size_caps(config: Optional[Dict[str, Any]]) -> Dict[str, int]:
    """Byte caps per asset group from ``size_caps_kb`` (1 KB = 1024 bytes)."""
    section = _section(config, "size_caps_kb")
    caps: Dict[str, int] = {}
    for key, default in DEFAULT_CAPS_KB.items():
        kb = _coerce_float(section.get(key, default), default)
        if kb <= 0:
            logger.warning("Ignoring non-positive size cap %s=%s KB, using %s KB", key, kb, default)
            kb = default
        caps[key] = kb_to_bytes(kb)
    return caps


def palette_hex(config: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Raw hex strings for page/light/dark; validation happens in resolve_color."""
    section = _section(config, "colors")
    colors = dict(DEFAULT_COLORS)
    for key in DEFAULT_COLORS:
        value = section.get(key)
        if value is not None:
            colors[key] = str(value)
    return colors


def quality_ladder(config: Optional[Dict[str, Any]]) -> Tuple[int, ...]:
    ladder = _section(config, "encoding").get("quality_ladder")
    if not isinstance(ladder, list) or not ladder:
        return DEFAULT_QUALITY_LADDER
    levels = []
    for value in ladder:
        q = int(_coerce_float(value, -1))
        if 1 <= q <= 100:
            levels.append(q)
        else:
            logger.warning("Dropping quality level %r outside 1-100", value)
    return tuple(levels) or DEFAULT_QUALITY_LADDER


def floor_quality(config: Optional[Dict[str, Any]]) -> int:
    value = int(_coerce_float(_section(config, "encoding").get("floor_quality"), DEFAULT_FLOOR_QUALITY))
    return max(1, min(value, 100))


def fit_policy(config: Optional[Dict[str, Any]]) -> str:
    if not isinstance(config, dict):
        return DEFAULT_FIT_POLICY
    value = str(config.get("fit_policy") or DEFAULT_FIT_POLICY).strip().lower()
    if value not in ("aspect", "limiting"):
        logger.warning("Unknown fit_policy %r, using %r", value, DEFAULT_FIT_POLICY)
        return DEFAULT_FIT_POLICY
    return value


__all__ = [
    "DEFAULT_CAPS_KB",
    "DEFAULT_COLORS",
    "KB",
    "kb_to_bytes",
    "fit_policy",
    "floor_quality",
    "palette_hex",
    "quality_ladder",
    "size_caps",
]
