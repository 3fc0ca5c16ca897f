"""
Comparison charts: metric boxplots per model, per-annotation boxplots and
averaged performance curves.

Rankings computed in aggregate.py are passed in as explicit `order` /
`hue_order` lists so every chart shows models best first.  Each function
writes one PNG and returns its path, or returns None when there is nothing
to draw.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib
import pandas as pd

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import seaborn as sns  # noqa: E402

from .aggregate import average_curves, rank_annotations, select_curves, select_metrics  # noqa: E402
from .config import ANCHOR_METRIC, CURVE_AXES, GLOBAL_ANNOTATION  # noqa: E402

DPI = 150


def _save(fig, output_path: Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path, dpi=DPI)
    plt.close(fig)
    print(f"Saved plot: {output_path.name}")
    return output_path


def plot_metric_boxplots(
    metrics: pd.DataFrame,
    model_order: list[str],
    metrics_to_plot: list[str],
    output_path: Path,
    annotation: str = GLOBAL_ANNOTATION,
) -> Optional[Path]:
    """One boxplot panel per metric; boxes are models, points are outputs."""
    data = select_metrics(metrics, annotations=annotation, metrics=metrics_to_plot)
    data = data[data["model"].isin(model_order)]
    panels = [m for m in (m.upper() for m in metrics_to_plot) if m in set(data["metric"])]
    if not panels:
        print(f"NOTE: no metrics at annotation '{annotation}' — boxplots skipped.")
        return None

    ncols = min(3, len(panels))
    nrows = -(-len(panels) // ncols)
    fig, axes = plt.subplots(
        nrows, ncols, figsize=(4.5 * ncols, 3.8 * nrows), squeeze=False
    )
    for ax, metric in zip(axes.flat, panels):
        sns.boxplot(
            data=data[data["metric"] == metric],
            x="model", y="value", order=model_order, ax=ax,
        )
        ax.set_title(metric)
        ax.set_xlabel("")
        ax.set_ylabel("")
        ax.tick_params(axis="x", labelrotation=30)
    for ax in list(axes.flat)[len(panels):]:
        ax.set_visible(False)

    return _save(fig, output_path)


def plot_annotation_boxplots(
    metrics: pd.DataFrame,
    model_order: list[str],
    output_path: Path,
    metric: str = ANCHOR_METRIC,
) -> Optional[Path]:
    """
    Boxplots of one metric per annotation, one box per model.

    Annotations are ranked on this metric for this call, best first.
    """
    data = select_metrics(metrics, metrics=metric)
    data = data[data["model"].isin(model_order)]
    if data.empty:
        print(f"NOTE: no {metric.upper()} rows — annotation boxplot skipped.")
        return None

    anno_order = rank_annotations(data, anchor_metric=metric)
    fig, ax = plt.subplots(figsize=(max(6.0, 0.6 * len(anno_order) * len(model_order)), 4.5))
    sns.boxplot(
        data=data, x="anno", y="value", hue="model",
        order=anno_order, hue_order=model_order, ax=ax,
    )
    ax.set_xlabel("")
    ax.set_ylabel(metric.upper())
    ax.tick_params(axis="x", labelrotation=45)
    if ax.get_legend() is not None:
        sns.move_legend(ax, "best", title="")

    return _save(fig, output_path)


def plot_curves(
    curves: pd.DataFrame,
    model_order: list[str],
    curve: str,
    output_path: Path,
    annotation: str = GLOBAL_ANNOTATION,
) -> Optional[Path]:
    """Averaged curve per model at one annotation."""
    curve = curve.upper()
    data = select_curves(curves, annotations=annotation, curves=curve)
    averaged = average_curves(data)
    if averaged.empty:
        print(f"NOTE: no {curve} points at annotation '{annotation}' — plot skipped.")
        return None

    fig, ax = plt.subplots(figsize=(5.5, 5))
    palette = sns.color_palette(n_colors=max(1, len(model_order)))
    for color, model in zip(palette, model_order):
        line = averaged[averaged["model"] == model]
        if line.empty:
            continue
        ax.plot(line["x"], line["y"], label=model, color=color)

    xlabel, ylabel = CURVE_AXES.get(curve, ("x", "y"))
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.set_title(curve)
    if curve == "ROC":
        ax.plot([0, 1], [0, 1], linestyle="--", color="grey", linewidth=0.8)
    ax.legend(loc="best")

    return _save(fig, output_path)
