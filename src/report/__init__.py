"""
Model comparison report: per-model evaluation metrics and curves, ranked,
pivoted into summary tables and drawn as comparison charts.

Public API surface:

    Loading:
        load_metrics, load_curves, normalize_output, open_table,
        resolve_model_file, load_model_metrics, load_model_curves

    Aggregation:
        rank_models, rank_annotations, pivot_summary,
        select_metrics, select_curves,
        summarize_anchor_metric, average_curves

    Runner:
        ReportConfig, run_report
"""

from .aggregate import (
    average_curves,
    pivot_summary,
    rank_annotations,
    rank_models,
    select_curves,
    select_metrics,
    summarize_anchor_metric,
)
from .config import ReportConfig
from .errors import EmptyGroupWarning, MalformedInputError
from .loader import (
    load_curves,
    load_metrics,
    load_model_curves,
    load_model_metrics,
    normalize_output,
    open_table,
    resolve_model_file,
)
from .runner import run_report

__all__ = [
    # loading
    "load_metrics",
    "load_curves",
    "normalize_output",
    "open_table",
    "resolve_model_file",
    "load_model_metrics",
    "load_model_curves",
    # aggregation
    "rank_models",
    "rank_annotations",
    "pivot_summary",
    "select_metrics",
    "select_curves",
    "summarize_anchor_metric",
    "average_curves",
    # errors
    "MalformedInputError",
    "EmptyGroupWarning",
    # runner
    "ReportConfig",
    "run_report",
]
