"""
Aggregation of loaded metrics and curves: rankings, summary tables and
averaged curves.

Rankings are plain ordered lists of names, computed from mean values and
sorted with a stable sort so tied means keep their first-seen order.  The
plotting layer consumes them as explicit sort keys.

Missing values (NaN) never take part in a mean.  A group whose values are
all missing is left out of a ranking and reported with EmptyGroupWarning.
"""

from __future__ import annotations

import warnings
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from .config import (
    ANCHOR_METRIC,
    CONFIDENCE_LEVEL,
    CURVE_GRID_SIZE,
    GLOBAL_ANNOTATION,
    METRIC_ORDER,
)
from .errors import EmptyGroupWarning

PIVOT_KEYS: tuple[str, ...] = ("model", "anno")

Names = Optional[Union[str, Iterable[str]]]


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def _as_list(names: Names, upper: bool = False) -> Optional[list[str]]:
    if names is None:
        return None
    if isinstance(names, str):
        names = [names]
    return [n.upper() for n in names] if upper else list(names)


def select_metrics(
    rows: pd.DataFrame,
    annotations: Names = None,
    metrics: Names = None,
) -> pd.DataFrame:
    """Subset metric rows by annotation and/or metric name (no aggregation)."""
    mask = pd.Series(True, index=rows.index)
    annos = _as_list(annotations)
    if annos is not None:
        mask &= rows["anno"].isin(annos)
    names = _as_list(metrics, upper=True)
    if names is not None:
        mask &= rows["metric"].isin(names)
    return rows[mask].copy()


def select_curves(
    rows: pd.DataFrame,
    annotations: Names = None,
    curves: Names = None,
) -> pd.DataFrame:
    """Subset curve rows by annotation and/or curve name (no aggregation)."""
    mask = pd.Series(True, index=rows.index)
    annos = _as_list(annotations)
    if annos is not None:
        mask &= rows["anno"].isin(annos)
    names = _as_list(curves, upper=True)
    if names is not None:
        mask &= rows["curve"].isin(names)
    return rows[mask].copy()


# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------

def _rank_by_mean(rows: pd.DataFrame, key: str) -> list[str]:
    """
    Order the distinct values of `key` by descending mean value.

    Groups are first put in order of first appearance, then sorted with a
    stable sort, so exact ties keep that order.
    """
    groups = rows[key].dropna().drop_duplicates().tolist()
    means = rows.dropna(subset=["value"]).groupby(key, sort=False)["value"].mean()

    empty = [g for g in groups if g not in means.index]
    if empty:
        warnings.warn(
            f"No values to rank for {key} {empty}; omitted from ranking.",
            EmptyGroupWarning,
            stacklevel=3,
        )

    means = means.reindex([g for g in groups if g in means.index])
    ranked = means.sort_values(ascending=False, kind="mergesort")
    return list(ranked.index)


def rank_models(
    rows: pd.DataFrame,
    anchor_annotation: str = GLOBAL_ANNOTATION,
    anchor_metric: str = ANCHOR_METRIC,
) -> list[str]:
    """
    Rank models by their mean anchor metric at the anchor annotation.

    Args:
        rows: Metric rows (model, anno, metric, output, value).
        anchor_annotation: Annotation to rank on, normally 'global'.
        anchor_metric: Metric to rank on, normally 'AUC'.

    Returns:
        Model names, best first.  Models without any anchor rows are left
        out (EmptyGroupWarning), never placed at an arbitrary position.
    """
    subset = select_metrics(rows, annotations=anchor_annotation, metrics=anchor_metric)

    anchored = set(subset["model"])
    unranked = [
        m for m in rows["model"].dropna().drop_duplicates() if m not in anchored
    ]
    if unranked:
        warnings.warn(
            f"Models {unranked} have no {anchor_metric.upper()} rows at "
            f"annotation '{anchor_annotation}'; omitted from ranking.",
            EmptyGroupWarning,
            stacklevel=2,
        )
    if subset.empty:
        return []
    return _rank_by_mean(subset, "model")


def rank_annotations(
    rows: pd.DataFrame,
    anchor_metric: str = ANCHOR_METRIC,
) -> list[str]:
    """Rank annotations by mean anchor metric pooled over models and outputs."""
    subset = select_metrics(rows, metrics=anchor_metric)
    if subset.empty:
        warnings.warn(
            f"No {anchor_metric.upper()} rows to rank annotations on.",
            EmptyGroupWarning,
            stacklevel=2,
        )
        return []
    return _rank_by_mean(subset, "anno")


# ---------------------------------------------------------------------------
# Summary tables
# ---------------------------------------------------------------------------

def _pivot_key_columns(group_keys: Union[str, Iterable[str]]) -> list[str]:
    keys = {group_keys} if isinstance(group_keys, str) else set(group_keys)
    unknown = keys - set(PIVOT_KEYS)
    if not keys or unknown:
        raise ValueError(
            f"group_keys must be a non-empty subset of {set(PIVOT_KEYS)}, "
            f"got {sorted(keys)}"
        )
    return [k for k in PIVOT_KEYS if k in keys]


def metric_columns(metrics: Iterable[str]) -> list[str]:
    """Canonical metrics first (METRIC_ORDER), then others as first seen."""
    present = list(dict.fromkeys(m for m in metrics if isinstance(m, str)))
    known = [m for m in METRIC_ORDER if m in present]
    return known + [m for m in present if m not in METRIC_ORDER]


def pivot_summary(
    rows: pd.DataFrame,
    group_keys: Union[str, Iterable[str]],
) -> pd.DataFrame:
    """
    Pivot metric rows into a wide table of mean values.

    One row per distinct combination of `group_keys` (a subset of
    {'model', 'anno'}), one column per distinct metric.  Each cell is the
    mean value over the remaining dimensions, typically the outputs.  A
    (group, metric) pair without rows stays NaN, never 0.

    Rows are sorted by AUC descending (stable, NaN last) when an AUC
    column exists, otherwise they keep their first-appearance order.

    Raises:
        ValueError: group_keys is empty or names an unknown column.
    """
    keys = _pivot_key_columns(group_keys)
    data = rows.dropna(subset=keys + ["metric"])
    columns = metric_columns(data["metric"])

    if data.empty:
        return pd.DataFrame(columns=keys + columns)

    means = (
        data.groupby(keys + ["metric"], sort=False)["value"]
        .mean()
        .unstack("metric")
    )

    order = data[keys].drop_duplicates()
    if len(keys) > 1:
        index = pd.MultiIndex.from_frame(order)
    else:
        index = pd.Index(order[keys[0]], name=keys[0])
    table = means.reindex(index=index, columns=columns)
    table.columns.name = None
    table = table.reset_index()

    if ANCHOR_METRIC in table.columns:
        table = table.sort_values(
            ANCHOR_METRIC, ascending=False, kind="mergesort", na_position="last"
        )
    return table.reset_index(drop=True)


def summarize_anchor_metric(
    rows: pd.DataFrame,
    model_order: Optional[list[str]] = None,
    anchor_annotation: str = GLOBAL_ANNOTATION,
    anchor_metric: str = ANCHOR_METRIC,
    confidence: float = CONFIDENCE_LEVEL,
) -> pd.DataFrame:
    """
    Per-model spread of the anchor metric across outputs.

    Reports n, mean, standard deviation and a Student-t confidence interval
    of the mean.  With fewer than two outputs the spread and interval are
    undefined (NaN).

    Args:
        rows: Metric rows.
        model_order: Row order; defaults to rank_models on the same anchors.
        anchor_annotation: Annotation to summarise, normally 'global'.
        anchor_metric: Metric to summarise, normally 'AUC'.
        confidence: Interval confidence level.

    Returns:
        DataFrame with model, n_outputs, mean, std, ci_lower, ci_upper.
    """
    subset = select_metrics(rows, annotations=anchor_annotation, metrics=anchor_metric)
    subset = subset.dropna(subset=["value"])
    if model_order is None:
        model_order = rank_models(rows, anchor_annotation, anchor_metric)

    records: list[dict] = []
    for model in model_order:
        values = subset.loc[subset["model"] == model, "value"].to_numpy(dtype=float)
        n = len(values)
        if n == 0:
            continue
        mean = float(values.mean())
        if n < 2:
            std = ci_lo = ci_hi = float("nan")
        else:
            std = float(values.std(ddof=1))
            sem = std / np.sqrt(n)
            if sem == 0:
                ci_lo, ci_hi = mean, mean
            else:
                ci_lo, ci_hi = stats.t.interval(confidence, n - 1, loc=mean, scale=sem)
        records.append({
            "model": model,
            "n_outputs": n,
            "mean": round(mean, 4),
            "std": round(std, 4),
            "ci_lower": round(float(ci_lo), 4),
            "ci_upper": round(float(ci_hi), 4),
        })

    return pd.DataFrame(
        records,
        columns=["model", "n_outputs", "mean", "std", "ci_lower", "ci_upper"],
    )


# ---------------------------------------------------------------------------
# Curves
# ---------------------------------------------------------------------------

def average_curves(
    curves: pd.DataFrame,
    grid_size: int = CURVE_GRID_SIZE,
) -> pd.DataFrame:
    """
    Average each model's curve over its outputs.

    Within every (model, anno, curve) group, each output's points are
    interpolated onto a shared evenly spaced x-grid spanning the group's
    observed x-range; y is then averaged across outputs at every grid point.
    Repeated x values within one output are collapsed to their mean y.
    Outside an output's own x-range its end values are carried flat.

    Returns:
        DataFrame with model, anno, curve, x, y, n_outputs.
    """
    columns = ["model", "anno", "curve", "x", "y", "n_outputs"]
    if curves.empty:
        return pd.DataFrame(columns=columns)

    frames: list[pd.DataFrame] = []
    for (model, anno, curve), group in curves.groupby(
        ["model", "anno", "curve"], sort=False
    ):
        lo, hi = float(group["x"].min()), float(group["x"].max())
        grid = np.linspace(lo, hi, grid_size) if hi > lo else np.array([lo])

        ys: list[np.ndarray] = []
        for _, points in group.groupby("output", sort=False):
            mean_y = points.groupby("x")["y"].mean()
            ys.append(np.interp(grid, mean_y.index.to_numpy(), mean_y.to_numpy()))

        frames.append(pd.DataFrame({
            "model": model,
            "anno": anno,
            "curve": curve,
            "x": grid,
            "y": np.mean(ys, axis=0),
            "n_outputs": len(ys),
        }))

    return pd.concat(frames, ignore_index=True)[columns]
