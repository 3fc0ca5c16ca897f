"""
End-to-end tests for src/report/runner.py: run_report over model
directories written to tmp_path, table exports, and the CLI exit status.
"""

from __future__ import annotations

import json

import pandas as pd
import pytest

from src.report.config import ANCHOR_METRIC, GLOBAL_ANNOTATION, ReportConfig
from src.report.errors import MalformedInputError
from src.report.runner import build_parser, main, run_report

from .conftest import write_tsv


@pytest.fixture
def config(model_dirs, tmp_path):
    return ReportConfig(model_dirs=model_dirs, output_dir=tmp_path / "out")


class TestRunReport:

    def test_model_order(self, config):
        # CpG model: AUC mean 0.91; DNA model: 0.82
        results = run_report(config)
        assert results["model_order"] == ["CpG model", "DNA model"]

    def test_summary_tables(self, config):
        results = run_report(config)
        by_model = results["summary_by_model"]
        assert by_model["model"].tolist() == ["CpG model", "DNA model"]
        assert list(by_model.columns) == ["model", "AUC", "ACC"]
        assert by_model.iloc[0]["AUC"] == pytest.approx(0.91)

        by_anno = results["summary_by_model_anno"]
        assert set(by_anno["anno"]) == {"global", "promoter"}
        assert len(by_anno) == 4

    def test_exported_files(self, config):
        run_report(config)
        out = config.output_dir
        for name in ("model_order", "summary_by_model",
                     "summary_by_model_anno", "anchor_metric_ci"):
            assert (out / f"{name}.csv").exists()
        assert (out / "metrics_boxplot.png").exists()
        assert (out / "annotation_auc_boxplot.png").exists()
        assert (out / "curve_roc.png").exists()
        assert not (out / "curve_pr.png").exists()

        order = pd.read_csv(out / "model_order.csv")
        assert order["model"].tolist() == ["CpG model", "DNA model"]

    def test_tables_only(self, model_dirs, tmp_path):
        config = ReportConfig(
            model_dirs=model_dirs, output_dir=tmp_path / "out",
            make_plots=False, load_curves=False,
        )
        results = run_report(config)
        assert results["plots"] == {}
        assert results["curves"].empty
        assert not list(config.output_dir.glob("*.png"))

    def test_malformed_model_aborts(self, model_dirs, tmp_path):
        bad = tmp_path / "eval" / "bad"
        write_tsv(bad / "metrics.tsv", ["anno", "metric", "value"], [["global", "auc", 0.9]])
        config = ReportConfig(
            model_dirs={**model_dirs, "Bad": bad}, output_dir=tmp_path / "out",
        )
        with pytest.raises(MalformedInputError):
            run_report(config)
        assert not (tmp_path / "out" / "summary_by_model.csv").exists()


class TestReportConfig:

    def test_names_uppercased_and_paths_coerced(self, tmp_path):
        config = ReportConfig(
            model_dirs={"A": str(tmp_path)}, output_dir=str(tmp_path),
            anchor_metric="auc", metrics=["auc", "f1"], curves=["roc"],
        )
        assert config.anchor_metric == "AUC"
        assert config.metrics == ["AUC", "F1"]
        assert config.curves == ["ROC"]
        assert config.model_dirs["A"] == tmp_path


class TestCli:

    def test_success(self, model_dirs, tmp_path):
        args = [f"--model={name}={path}" for name, path in model_dirs.items()]
        code = main(args + ["--output-dir", str(tmp_path / "out"), "--no-plots"])
        assert code == 0
        assert (tmp_path / "out" / "summary_by_model.csv").exists()

    def test_models_json(self, model_dirs, tmp_path):
        mapping = tmp_path / "models.json"
        mapping.write_text(json.dumps({k: str(v) for k, v in model_dirs.items()}))
        code = main(["--models-json", str(mapping),
                     "--output-dir", str(tmp_path / "out"), "--no-plots"])
        assert code == 0

    def test_missing_directory_exits_nonzero(self, tmp_path, capsys):
        code = main(["--model", f"Ghost={tmp_path / 'missing'}",
                     "--output-dir", str(tmp_path / "out"), "--no-plots"])
        assert code == 1
        out = capsys.readouterr().out
        assert "ERROR" in out
        assert "Ghost" in out

    def test_anchor_defaults_follow_config(self):
        args = build_parser().parse_args([])
        assert args.anchor_annotation == GLOBAL_ANNOTATION
        assert args.anchor_metric == ANCHOR_METRIC

    def test_no_models_is_usage_error(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2

    def test_bad_model_argument(self):
        with pytest.raises(SystemExit):
            main(["--model", "no-equals-sign"])
