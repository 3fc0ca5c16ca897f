"""
Report configuration: canonical metric and curve names, input file patterns,
output paths, and the explicit ReportConfig passed into the runner.

Module-level constants are defaults only.  Everything the runner needs at
call time travels in a ReportConfig instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[2]

RESULTS_DIR = PROJECT_ROOT / "results"

# ---------------------------------------------------------------------------
# Input files
# ---------------------------------------------------------------------------

# One match per model directory; plain or gzip-compressed.
METRICS_PATTERN: str = "metrics.tsv*"
CURVES_PATTERN: str = "curves.tsv*"

METRICS_COLUMNS: list[str] = ["anno", "metric", "output", "value"]
CURVES_COLUMNS: list[str] = ["anno", "curve", "output", "x", "y", "thr"]

# Prefix carried by output labels of CpG prediction targets
OUTPUT_PREFIX: str = "cpg/"

# Cells read as missing in numeric columns; label columns keep them verbatim
NA_TOKENS: list[str] = ["", "NA", "NaN", "nan", "N/A", "NULL", "null", "None"]

# ---------------------------------------------------------------------------
# Ranking anchors
# ---------------------------------------------------------------------------

GLOBAL_ANNOTATION: str = "global"
ANCHOR_METRIC: str = "AUC"

# Canonical column order for summary tables; unknown metrics follow.
METRIC_ORDER: list[str] = ["AUC", "ACC", "F1", "MCC", "TPR", "TNR"]

CURVE_ORDER: list[str] = ["ROC", "PR"]

# Axis labels for the averaged curve plots
CURVE_AXES: dict[str, tuple[str, str]] = {
    "ROC": ("False positive rate", "True positive rate"),
    "PR":  ("Recall", "Precision"),
}

CURVE_GRID_SIZE: int = 101

CONFIDENCE_LEVEL: float = 0.95


@dataclass
class ReportConfig:
    """Everything one report run needs, passed explicitly to run_report."""

    # Display name -> directory holding that model's evaluation files.
    # Insertion order is the baseline model order.
    model_dirs: dict[str, Path]
    output_dir: Path = RESULTS_DIR
    metrics_pattern: str = METRICS_PATTERN
    curves_pattern: str = CURVES_PATTERN
    anchor_annotation: str = GLOBAL_ANNOTATION
    anchor_metric: str = ANCHOR_METRIC
    metrics: list[str] = field(default_factory=lambda: list(METRIC_ORDER))
    curves: list[str] = field(default_factory=lambda: list(CURVE_ORDER))
    load_curves: bool = True
    make_plots: bool = True

    def __post_init__(self) -> None:
        self.model_dirs = {name: Path(d) for name, d in self.model_dirs.items()}
        self.output_dir = Path(self.output_dir)
        self.anchor_metric = self.anchor_metric.upper()
        self.metrics = [m.upper() for m in self.metrics]
        self.curves = [c.upper() for c in self.curves]
