"""Error types raised (or recorded) while deriving brand assets.

Fatal conditions are exceptions deriving from ``BrandKitError``. A missed byte
cap is not fatal: ``SizeCapUnmet`` is a warning category whose instances are
appended to the caller's ``warnings`` list instead of being raised.
"""
from __future__ import annotations


class BrandKitError(Exception):
    """Base class for fatal pipeline errors."""


class InvalidColorFormat(BrandKitError, ValueError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid hex color {value!r}; expected '#RRGGBB' or 'RRGGBB'")


class SourceImageUnreadable(BrandKitError):
    def __init__(self, path: str, reason: object) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read source image {path}: {reason}")


class EncodeFailure(BrandKitError):
    def __init__(self, fmt: str, reason: object) -> None:
        self.fmt = fmt
        self.reason = reason
        super().__init__(f"{fmt} encoder produced no output: {reason}")


class SizeCapUnmet(UserWarning):
    """Best-effort artifact still exceeds its byte cap."""

    def __init__(self, asset: str, cap: int, actual: int, fmt: str) -> None:
        self.asset = asset
        self.cap = cap
        self.actual = actual
        self.fmt = fmt
        super().__init__(
            f"Size cap not met for {asset}: kept {fmt} at {actual} bytes (cap {cap} bytes)"
        )


__all__ = [
    "BrandKitError",
    "EncodeFailure",
    "InvalidColorFormat",
    "SizeCapUnmet",
    "SourceImageUnreadable",
]
