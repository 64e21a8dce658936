"""Hex color parsing for canvas and fallback fills."""
from __future__ import annotations

import re
from typing import NamedTuple

from brandkit.exceptions import InvalidColorFormat

_HEX_RE = re.compile(r"#?([0-9a-fA-F]{6})")


class Color(NamedTuple):
    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

    def rgba(self, alpha: int = 255) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, alpha)


def resolve_color(value: str) -> Color:
    """Parse ``#RRGGBB`` (the ``#`` is optional, any case) into a Color.

    Raises InvalidColorFormat for anything else; there is no fallback color.
    """
    if not isinstance(value, str):
        raise InvalidColorFormat(value)
    match = _HEX_RE.fullmatch(value.strip())
    if not match:
        raise InvalidColorFormat(value)
    digits = match.group(1)
    return Color(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


__all__ = ["Color", "resolve_color"]
