"""
Shared pytest fixtures and builders for the report tests.

Metric rows are built directly as DataFrames in the loader's output schema
(model, anno, metric, output, value).  File fixtures write small TSV files
into tmp_path in the layout the runner expects: one directory per model
holding metrics.tsv and curves.tsv.
"""

from __future__ import annotations

import gzip
from pathlib import Path

import pandas as pd
import pytest


METRICS_HEADER = ["anno", "metric", "output", "value"]
CURVES_HEADER = ["anno", "curve", "output", "x", "y", "thr"]


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

def make_metric_rows(
    model: str,
    values: list[float],
    metric: str = "AUC",
    anno: str = "global",
    outputs: list[str] | None = None,
) -> pd.DataFrame:
    """One row per value; outputs default to cell_1, cell_2, ..."""
    if outputs is None:
        outputs = [f"cell_{i}" for i in range(1, len(values) + 1)]
    return pd.DataFrame({
        "model": model,
        "anno": anno,
        "metric": metric,
        "output": outputs,
        "value": values,
    })


def concat_rows(*frames: pd.DataFrame) -> pd.DataFrame:
    return pd.concat(frames, ignore_index=True)


def make_curve_rows(
    model: str,
    output: str,
    points: list[tuple[float, float]],
    curve: str = "ROC",
    anno: str = "global",
) -> pd.DataFrame:
    return pd.DataFrame({
        "model": model,
        "anno": anno,
        "curve": curve,
        "output": output,
        "x": [p[0] for p in points],
        "y": [p[1] for p in points],
        "thr": [1.0 - i / max(1, len(points) - 1) for i in range(len(points))],
    })


# ---------------------------------------------------------------------------
# File writers
# ---------------------------------------------------------------------------

def write_tsv(path: Path, header: list[str], rows: list[list], compress: bool = False) -> Path:
    """Write a tab-separated table (optionally gzip-compressed)."""
    lines = ["\t".join(header)] + ["\t".join(str(v) for v in row) for row in rows]
    text = "\n".join(lines) + "\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    if compress:
        with gzip.open(path, "wt", encoding="utf-8") as fh:
            fh.write(text)
    else:
        path.write_text(text, encoding="utf-8")
    return path


def write_model_dir(
    root: Path,
    name: str,
    auc_values: list[float],
    compress: bool = False,
) -> Path:
    """
    Model directory with a metrics file (AUC and ACC at 'global' and
    'promoter') and a ROC curves file, one output per AUC value.
    """
    directory = root / name
    suffix = ".tsv.gz" if compress else ".tsv"

    metric_rows = []
    curve_rows = []
    for i, auc in enumerate(auc_values, start=1):
        output = f"cpg/cell_{i}"
        metric_rows.append(["global", "auc", output, auc])
        metric_rows.append(["global", "acc", output, round(auc - 0.1, 4)])
        metric_rows.append(["promoter", "auc", output, round(auc - 0.05, 4)])
        curve_rows.append(["global", "roc", output, 0.0, 0.0, 1.0])
        curve_rows.append(["global", "roc", output, 0.2, auc, 0.5])
        curve_rows.append(["global", "roc", output, 1.0, 1.0, 0.0])

    write_tsv(directory / f"metrics{suffix}", METRICS_HEADER, metric_rows, compress)
    write_tsv(directory / f"curves{suffix}", CURVES_HEADER, curve_rows, compress)
    return directory


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def two_model_rows():
    """Model A: AUC [0.8, 0.9] (mean 0.85); model B: AUC [0.95]."""
    return concat_rows(
        make_metric_rows("A", [0.8, 0.9]),
        make_metric_rows("B", [0.95]),
    )


@pytest.fixture
def model_dirs(tmp_path):
    """Two model directories: 'DNA model' (plain) and 'CpG model' (gzip)."""
    root = tmp_path / "eval"
    return {
        "DNA model": write_model_dir(root, "dna", [0.80, 0.84]),
        "CpG model": write_model_dir(root, "cpg", [0.90, 0.92], compress=True),
    }
