"""
Report runner: loads every model's metrics and curves, ranks models and
annotations, builds the summary tables and writes tables and charts to the
output directory.

Usage (from project root):
    python -m src.report.runner --model "DNA model=eval/dna" \\
        --model "CpG model=eval/cpg" --output-dir results/

    python -m src.report.runner --models-json models.json

Or programmatically:
    from src.report.config import ReportConfig
    from src.report.runner import run_report
    results = run_report(ReportConfig(model_dirs={"DNA": Path("eval/dna")}))
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from .aggregate import pivot_summary, rank_models, select_metrics, summarize_anchor_metric
from .config import (
    ANCHOR_METRIC,
    CURVE_ORDER,
    CURVES_PATTERN,
    GLOBAL_ANNOTATION,
    METRIC_ORDER,
    METRICS_PATTERN,
    RESULTS_DIR,
    ReportConfig,
)
from .errors import MalformedInputError
from .loader import load_model_curves, load_model_metrics


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def export_tables(tables: dict[str, pd.DataFrame], output_dir: Path) -> None:
    """Write each table to <output_dir>/<name>.csv, values rounded to 4 dp."""
    output_dir.mkdir(parents=True, exist_ok=True)
    for name, table in tables.items():
        table.round(4).to_csv(output_dir / f"{name}.csv", index=False)
    print(f"Tables exported to {output_dir}")


def _print_table(title: str, table: pd.DataFrame) -> None:
    print(f"\n{title}")
    if table.empty:
        print("  (empty)")
    else:
        print(table.round(4).to_string(index=False))


# ---------------------------------------------------------------------------
# Master runner
# ---------------------------------------------------------------------------

def run_report(config: ReportConfig) -> dict:
    """
    Execute the full comparison report.

    Any load failure aborts the whole run; nothing is aggregated from a
    partially loaded model set.

    Args:
        config: Model directories, file patterns, anchors and output options.

    Returns:
        Dict with keys: metrics, curves, model_order, summary_by_model,
        summary_by_model_anno, anchor_metric_ci, plots.
    """
    sep = "=" * 70
    print(f"\n{sep}")
    print("MODEL COMPARISON REPORT")
    print(f"  Models: {', '.join(config.model_dirs)}")
    print(f"{sep}\n")

    output_dir = config.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    # ── Load data ──
    metrics = load_model_metrics(config.model_dirs, config.metrics_pattern)
    if config.load_curves:
        curves = load_model_curves(config.model_dirs, config.curves_pattern)
    else:
        curves = pd.DataFrame(
            columns=["model", "anno", "curve", "output", "x", "y", "thr"]
        )

    # ── Rankings ──
    model_order = rank_models(metrics, config.anchor_annotation, config.anchor_metric)
    print(f"\nModel order ({config.anchor_metric} at '{config.anchor_annotation}'):")
    for rank, model in enumerate(model_order, start=1):
        print(f"  {rank}. {model}")

    # ── Summary tables ──
    anchored = select_metrics(metrics, annotations=config.anchor_annotation)
    summary_by_model = pivot_summary(anchored, {"model"})
    summary_by_model_anno = pivot_summary(metrics, {"model", "anno"})
    anchor_ci = summarize_anchor_metric(
        metrics, model_order, config.anchor_annotation, config.anchor_metric
    )

    _print_table(f"Mean metrics at '{config.anchor_annotation}'", summary_by_model)
    _print_table(f"{config.anchor_metric} by model", anchor_ci)

    order_df = pd.DataFrame({
        "rank": range(1, len(model_order) + 1),
        "model": model_order,
    })
    export_tables(
        {
            "model_order": order_df,
            "summary_by_model": summary_by_model,
            "summary_by_model_anno": summary_by_model_anno,
            "anchor_metric_ci": anchor_ci,
        },
        output_dir,
    )

    # ── Charts ──
    plots: dict[str, Optional[Path]] = {}
    if config.make_plots:
        from .plots import plot_annotation_boxplots, plot_curves, plot_metric_boxplots

        plots["metrics_boxplot"] = plot_metric_boxplots(
            metrics, model_order, config.metrics,
            output_dir / "metrics_boxplot.png",
            annotation=config.anchor_annotation,
        )
        plots["annotation_boxplot"] = plot_annotation_boxplots(
            metrics, model_order,
            output_dir / f"annotation_{config.anchor_metric.lower()}_boxplot.png",
            metric=config.anchor_metric,
        )
        for curve in config.curves:
            plots[f"curve_{curve.lower()}"] = plot_curves(
                curves, model_order, curve,
                output_dir / f"curve_{curve.lower()}.png",
                annotation=config.anchor_annotation,
            )

    print(f"\n{sep}")
    print(f"REPORT COMPLETE — results in {output_dir}")
    print(sep)

    return {
        "metrics": metrics,
        "curves": curves,
        "model_order": model_order,
        "summary_by_model": summary_by_model,
        "summary_by_model_anno": summary_by_model_anno,
        "anchor_metric_ci": anchor_ci,
        "plots": plots,
    }


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def _parse_model_arg(value: str) -> tuple[str, Path]:
    name, sep, directory = value.partition("=")
    if not sep or not name.strip() or not directory.strip():
        raise argparse.ArgumentTypeError(
            f"expected NAME=DIRECTORY, got '{value}'"
        )
    return name.strip(), Path(directory.strip())


def _load_models_json(path: Path) -> dict[str, Path]:
    """Read a {display name: directory} mapping; relative dirs resolve
    against the JSON file's own directory."""
    with path.open(encoding="utf-8") as fh:
        mapping = json.load(fh)
    if not isinstance(mapping, dict):
        raise ValueError(f"{path} must hold a JSON object of name -> directory")
    return {
        str(name): (path.parent / directory) for name, directory in mapping.items()
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare evaluation metrics and curves across models.",
    )
    parser.add_argument(
        "--model", dest="models", action="append", type=_parse_model_arg,
        default=[], metavar="NAME=DIR",
        help="Model display name and evaluation directory (repeatable).",
    )
    parser.add_argument(
        "--models-json", type=Path,
        help="JSON file mapping model display names to directories.",
    )
    parser.add_argument("--output-dir", type=Path, default=RESULTS_DIR)
    parser.add_argument("--metrics-pattern", default=METRICS_PATTERN)
    parser.add_argument("--curves-pattern", default=CURVES_PATTERN)
    parser.add_argument("--anchor-annotation", default=GLOBAL_ANNOTATION)
    parser.add_argument("--anchor-metric", default=ANCHOR_METRIC)
    parser.add_argument("--metrics", nargs="+", default=METRIC_ORDER)
    parser.add_argument("--curves", nargs="+", default=CURVE_ORDER)
    parser.add_argument(
        "--no-curves", action="store_true",
        help="Do not load curve files (no curve plots).",
    )
    parser.add_argument(
        "--no-plots", action="store_true", help="Write tables only.",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        model_dirs: dict[str, Path] = {}
        if args.models_json:
            model_dirs.update(_load_models_json(args.models_json))
        model_dirs.update(dict(args.models))
    except (OSError, ValueError) as exc:
        print(f"ERROR: cannot read model mapping: {exc}")
        return 1
    if not model_dirs:
        parser.error("no models given; use --model NAME=DIR or --models-json")

    config = ReportConfig(
        model_dirs=model_dirs,
        output_dir=args.output_dir,
        metrics_pattern=args.metrics_pattern,
        curves_pattern=args.curves_pattern,
        anchor_annotation=args.anchor_annotation,
        anchor_metric=args.anchor_metric,
        metrics=args.metrics,
        curves=args.curves,
        load_curves=not args.no_curves,
        make_plots=not args.no_plots,
    )

    try:
        run_report(config)
    except (OSError, MalformedInputError, ValueError) as exc:
        print(f"ERROR: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
