"""Geometric placement of a source raster onto fixed-size canvases.

Every helper returns a new RGBA canvas of exactly the requested size; the source
image is never modified.

Rounding rule (applied identically on both axes):
  scaled length = max(1, round(src_length * scale)), clamped to the target length
  offset        = (target_length - scaled_length) // 2
so any odd leftover pixel of padding ends up on the right/bottom edge.
The aspect-aware fit crops its overflow symmetrically in source coordinates
instead of padding.
"""
from __future__ import annotations

from typing import Optional, Tuple

from PIL import Image

from brandkit.colors import Color

Size = Tuple[int, int]
Box = Tuple[float, float, float, float]

FIT_POLICIES = ("aspect", "limiting")
RESAMPLE = Image.Resampling.LANCZOS


def _source_size(image: Image.Image) -> Size:
    w, h = image.size
    return max(1, w), max(1, h)


def _clamp(length: float, limit: int) -> int:
    return min(limit, max(1, int(round(length))))


def _canvas(size: Size, background: Optional[Color]) -> Image.Image:
    fill = background.rgba() if background is not None else (0, 0, 0, 0)
    return Image.new("RGBA", size, fill)


def _resize(image: Image.Image, size: Size, box: Optional[Box] = None) -> Image.Image:
    rgba = image.convert("RGBA")
    if rgba.size == size and box is None:
        return rgba
    # Premultiplied alpha keeps transparent edge pixels from bleeding dark fringes.
    return rgba.convert("RGBa").resize(size, RESAMPLE, box=box).convert("RGBA")


def _place(
    image: Image.Image,
    size: Size,
    content: Size,
    background: Optional[Color],
    box: Optional[Box] = None,
) -> Image.Image:
    canvas = _canvas(size, background)
    scaled = _resize(image, content, box)
    offset = ((size[0] - content[0]) // 2, (size[1] - content[1]) // 2)
    canvas.alpha_composite(scaled, dest=offset)
    return canvas


def content_size_for_scale(image: Image.Image, size: Size, scale: float) -> Size:
    sw, sh = _source_size(image)
    return _clamp(sw * scale, size[0]), _clamp(sh * scale, size[1])


def pad_to_fit(image: Image.Image, size: Size, background: Optional[Color] = None) -> Image.Image:
    """Scale by the limiting axis and center on a canvas (transparent if no background)."""
    sw, sh = _source_size(image)
    scale = min(size[0] / sw, size[1] / sh)
    return _place(image, size, content_size_for_scale(image, size, scale), background)


def fit_exact(
    image: Image.Image,
    size: Size,
    background: Optional[Color] = None,
    policy: str = "aspect",
) -> Image.Image:
    """Fit into ``size`` choosing the fit axis by ``policy``.

    ``limiting`` is identical to :func:`pad_to_fit`. ``aspect`` compares the
    source aspect ratio against the frame: sources wider than the frame are
    scaled to the target height, all others to the target width. Whatever
    overflows the frame on the other axis is cropped evenly from both sides,
    so the frame is always filled edge to edge.
    """
    if policy == "limiting":
        return pad_to_fit(image, size, background)
    if policy != "aspect":
        raise ValueError(f"Unknown fit policy {policy!r}; expected one of {FIT_POLICIES}")
    sw, sh = _source_size(image)
    tw, th = size
    if sw * th > tw * sh:
        scale = th / sh
    else:
        scale = tw / sw
    # Resample only the visible source window instead of the full overflowing scale.
    box_w = min(sw, tw / scale)
    box_h = min(sh, th / scale)
    left = (sw - box_w) / 2
    top = (sh - box_h) / 2
    return _place(image, size, size, background, box=(left, top, left + box_w, top + box_h))


def center_square_crop(image: Image.Image) -> Image.Image:
    """Largest centered square at native resolution (no scaling)."""
    w, h = image.size
    side = min(w, h)
    left = (w - side) // 2
    top = (h - side) // 2
    return image.crop((left, top, left + side, top + side))


def flatten(image: Image.Image, fill: Color) -> Image.Image:
    """Composite onto an opaque ``fill`` canvas and drop the alpha channel."""
    rgba = image.convert("RGBA")
    canvas = _canvas(rgba.size, fill)
    canvas.alpha_composite(rgba)
    return canvas.convert("RGB")


def is_opaque(image: Image.Image) -> bool:
    if "A" not in image.getbands():
        return True
    low, _ = image.getchannel("A").getextrema()
    return low == 255


__all__ = [
    "FIT_POLICIES",
    "center_square_crop",
    "content_size_for_scale",
    "fit_exact",
    "flatten",
    "is_opaque",
    "pad_to_fit",
]
