"""Tabular summary of a derivation run."""
from __future__ import annotations

import os
from typing import Iterable

import pandas as pd

from brandkit.atomic_write import write_text_atomic
from brandkit.pipeline import AssetResult

MANIFEST_NAME = "assets_manifest.csv"
MANIFEST_COLUMNS = [
    "asset",
    "file",
    "format",
    "quality",
    "width",
    "height",
    "bytes",
    "cap_bytes",
    "met_cap",
    "state",
]


def results_frame(results: Iterable[AssetResult]) -> pd.DataFrame:
    rows = []
    for item in results:
        rows.append({
            "asset": item.spec.name,
            "file": os.path.basename(item.path) if item.path else item.filename,
            "format": item.result.fmt.key,
            "quality": item.result.quality,
            "width": item.spec.width,
            "height": item.spec.height,
            "bytes": item.result.size,
            "cap_bytes": item.spec.cap,
            "met_cap": item.met_cap,
            "state": item.state,
        })
    df = pd.DataFrame(rows, columns=MANIFEST_COLUMNS)
    df["quality"] = df["quality"].astype("Int64")
    return df


def write_manifest(results: Iterable[AssetResult], output_dir: str) -> str:
    df = results_frame(results)
    path = os.path.join(output_dir, MANIFEST_NAME)
    return write_text_atomic(path, df.to_csv(index=False))


__all__ = ["MANIFEST_COLUMNS", "MANIFEST_NAME", "results_frame", "write_manifest"]
