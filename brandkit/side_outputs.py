"""Color reference line and stylesheet snippet written next to the assets."""
from __future__ import annotations

import os
from typing import Iterable

from brandkit.atomic_write import write_text_atomic
from brandkit.pipeline import AssetResult, Palette

COLOR_REFERENCE_NAME = "brand_colors.txt"
STYLESHEET_NAME = "brand.css"


def color_reference_line(palette: Palette) -> str:
    return f"page={palette.page.hex} light={palette.light.hex} dark={palette.dark.hex}\n"


def stylesheet_snippet(palette: Palette, results: Iterable[AssetResult]) -> str:
    lines = [
        ":root {",
        f"  --brand-page-color: {palette.page.hex};",
        f"  --brand-light-color: {palette.light.hex};",
        f"  --brand-dark-color: {palette.dark.hex};",
    ]
    for item in results:
        var = item.spec.name.replace("_", "-")
        lines.append(f'  --brand-{var}: url("{item.filename}");')
    lines.append("}")
    lines.append("")
    return "\n".join(lines)


def write_color_reference(palette: Palette, output_dir: str) -> str:
    return write_text_atomic(os.path.join(output_dir, COLOR_REFERENCE_NAME), color_reference_line(palette))


def write_stylesheet(palette: Palette, results: Iterable[AssetResult], output_dir: str) -> str:
    return write_text_atomic(os.path.join(output_dir, STYLESHEET_NAME), stylesheet_snippet(palette, results))


__all__ = [
    "COLOR_REFERENCE_NAME",
    "STYLESHEET_NAME",
    "color_reference_line",
    "stylesheet_snippet",
    "write_color_reference",
    "write_stylesheet",
]
