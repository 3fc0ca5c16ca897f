"""
Loading per-model metrics and curves tables.

Each model contributes one metrics file and one curves file, tab-separated
with a header row, optionally gzip-compressed.  Files are resolved from the
model's directory by glob pattern, opened one at a time, read completely and
closed before the next one is opened.

Rows are tagged with the model's display name supplied by the caller; the
model name is never read from the file itself.
"""

from __future__ import annotations

import gzip
import io
import re
import zlib
from pathlib import Path
from typing import IO, Union

import pandas as pd

from .config import (
    CURVES_COLUMNS,
    CURVES_PATTERN,
    METRICS_COLUMNS,
    METRICS_PATTERN,
    NA_TOKENS,
    OUTPUT_PREFIX,
)
from .errors import MalformedInputError

TableSource = Union[str, Path, IO[str]]

_GZIP_MAGIC = b"\x1f\x8b"
_PREFIX_RE = re.compile(rf"^(?:{re.escape(OUTPUT_PREFIX)})+")


# ---------------------------------------------------------------------------
# Output labels
# ---------------------------------------------------------------------------

def normalize_output(label: str) -> str:
    """Strip any leading 'cpg/' prefixes from an output label."""
    return _PREFIX_RE.sub("", str(label))


# ---------------------------------------------------------------------------
# File resolution
# ---------------------------------------------------------------------------

def resolve_model_file(directory: Path, pattern: str) -> Path:
    """
    Find the single file in a model directory matching a glob pattern.

    Args:
        directory: Model evaluation directory.
        pattern: Glob pattern, e.g. ``metrics.tsv*``.

    Returns:
        Path of the matching file.

    Raises:
        FileNotFoundError: Directory missing or no file matches.
        ValueError: More than one file matches (ambiguous which to use).
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Model directory not found: {directory}")

    candidates = sorted(p for p in directory.glob(pattern) if p.is_file())
    if not candidates:
        raise FileNotFoundError(
            f"No file matching '{pattern}' found in {directory}."
        )
    if len(candidates) > 1:
        raise ValueError(
            f"Multiple files matching '{pattern}' found in {directory}:\n"
            + "\n".join(str(p) for p in candidates)
        )
    return candidates[0]


def resolve_model_files(
    model_dirs: dict[str, Path],
    pattern: str,
) -> dict[str, Path]:
    """
    Resolve one file per model, keeping the mapping's model order.

    Resolution errors are re-raised with the model's display name.
    """
    files: dict[str, Path] = {}
    for model, directory in model_dirs.items():
        try:
            files[model] = resolve_model_file(directory, pattern)
        except FileNotFoundError as exc:
            raise FileNotFoundError(f"Model '{model}': {exc}") from exc
        except ValueError as exc:
            raise ValueError(f"Model '{model}': {exc}") from exc
    return files


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

def _is_gzip(path: Path) -> bool:
    with path.open("rb") as fh:
        return fh.read(2) == _GZIP_MAGIC


def open_table(path: Path) -> IO[str]:
    """Open a plain or gzip-compressed table as a UTF-8 text handle."""
    path = Path(path)
    if _is_gzip(path):
        return gzip.open(path, mode="rt", encoding="utf-8")
    return path.open(mode="r", encoding="utf-8")


def _source_name(source: TableSource) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    return str(getattr(source, "name", "<stream>"))


def _read_handle(source: IO, name: str, model: str) -> Union[io.StringIO, io.BytesIO]:
    """Drain an open text or binary handle into an in-memory buffer."""
    try:
        data = source.read()
    except UnicodeDecodeError as exc:
        raise MalformedInputError(
            f"{name} for model '{model}' is not UTF-8 text: {exc}"
        ) from exc
    except (OSError, ValueError, EOFError, zlib.error) as exc:
        # ValueError: read on a closed handle
        raise OSError(f"Cannot read {name} for model '{model}': {exc}") from exc
    if isinstance(data, bytes):
        return io.BytesIO(data)
    return io.StringIO(data)


def _read_tsv(
    source: TableSource,
    required: list[str],
    numeric: list[str],
    model: str,
) -> pd.DataFrame:
    """
    Read a whole tab-separated table as strings and check its header.

    Only the numeric columns parse NA tokens; label columns keep values such
    as 'NA' or 'None' verbatim.  I/O failures, including closed handles and
    truncated or corrupt gzip streams, surface as OSError naming the model
    and file.  A missing header or required column is a MalformedInputError.
    """
    name = _source_name(source)
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            compression = "gzip" if _is_gzip(path) else None
        except OSError as exc:
            raise OSError(f"Cannot read {name} for model '{model}': {exc}") from exc
        buffer = path
    else:
        buffer = _read_handle(source, name, model)
        compression = None
        if isinstance(buffer, io.BytesIO) and buffer.getvalue()[:2] == _GZIP_MAGIC:
            compression = "gzip"

    try:
        df = pd.read_csv(
            buffer,
            sep="\t",
            dtype=str,
            compression=compression,
            encoding="utf-8",
            keep_default_na=False,
            na_values={col: NA_TOKENS for col in numeric},
        )
    except UnicodeDecodeError as exc:
        raise MalformedInputError(
            f"{name} for model '{model}' is not UTF-8 text: {exc}"
        ) from exc
    except (OSError, EOFError, zlib.error) as exc:
        raise OSError(f"Cannot read {name} for model '{model}': {exc}") from exc
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise MalformedInputError(
            f"{name} for model '{model}' is not a valid table: {exc}"
        ) from exc

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise MalformedInputError(
            f"{name} for model '{model}' is missing required column(s) "
            f"{missing}; found {list(df.columns)}"
        )
    return df[required].copy()


def load_metrics(source: TableSource, model: str) -> pd.DataFrame:
    """
    Load one model's metrics table.

    Metric names are uppercased and output labels lose their 'cpg/' prefix.
    Rows whose value is missing (NA, empty) or not a number are dropped;
    the rest of the file still loads.

    Args:
        source: Path (plain or gzip) or open text handle.
        model: Display name attached to every row.

    Returns:
        DataFrame with columns model, anno, metric, output, value.

    Raises:
        MalformedInputError: A required column is missing.
        OSError: The file cannot be read.
    """
    df = _read_tsv(source, METRICS_COLUMNS, ["value"], model)

    df["metric"] = df["metric"].str.strip().str.upper()
    df["output"] = df["output"].map(normalize_output, na_action="ignore")
    df["value"] = pd.to_numeric(df["value"], errors="coerce")

    n_dropped = int(df["value"].isna().sum())
    if n_dropped:
        print(f"NOTE: {n_dropped} row(s) without a numeric value dropped "
              f"from {_source_name(source)} ({model})")
        df = df[df["value"].notna()].copy()

    df.insert(0, "model", model)
    return df.reset_index(drop=True)


def load_curves(source: TableSource, model: str) -> pd.DataFrame:
    """
    Load one model's curves table.

    Curve names are uppercased and output labels lose their 'cpg/' prefix.
    Points with a missing x or y are dropped; any non-numeric token in
    x, y or thr is a MalformedInputError.

    Returns:
        DataFrame with columns model, anno, curve, output, x, y, thr.
    """
    df = _read_tsv(source, CURVES_COLUMNS, ["x", "y", "thr"], model)

    df["curve"] = df["curve"].str.strip().str.upper()
    df["output"] = df["output"].map(normalize_output, na_action="ignore")
    for col in ("x", "y", "thr"):
        try:
            df[col] = pd.to_numeric(df[col], errors="raise")
        except (ValueError, TypeError) as exc:
            raise MalformedInputError(
                f"Non-numeric '{col}' in {_source_name(source)} "
                f"for model '{model}': {exc}"
            ) from exc

    df = df[df["x"].notna() & df["y"].notna()].copy()
    df.insert(0, "model", model)
    return df.reset_index(drop=True)


# ---------------------------------------------------------------------------
# All models
# ---------------------------------------------------------------------------

def _load_all(model_files: dict[str, Path], load_fn, columns: list[str]) -> pd.DataFrame:
    frames: list[pd.DataFrame] = []
    for model, path in model_files.items():
        df = load_fn(path, model)
        print(f"Loaded {len(df):,} rows for {model} from {Path(path).name}")
        frames.append(df)
    if not frames:
        return pd.DataFrame(columns=["model"] + columns)
    return pd.concat(frames, ignore_index=True)


def load_all_metrics(model_files: dict[str, Path]) -> pd.DataFrame:
    """Load and concatenate every model's metrics table, in mapping order."""
    return _load_all(model_files, load_metrics, METRICS_COLUMNS)


def load_all_curves(model_files: dict[str, Path]) -> pd.DataFrame:
    """Load and concatenate every model's curves table, in mapping order."""
    return _load_all(model_files, load_curves, CURVES_COLUMNS)


def load_model_metrics(
    model_dirs: dict[str, Path],
    pattern: str = METRICS_PATTERN,
) -> pd.DataFrame:
    """Resolve and load the metrics file of every model directory."""
    return load_all_metrics(resolve_model_files(model_dirs, pattern))


def load_model_curves(
    model_dirs: dict[str, Path],
    pattern: str = CURVES_PATTERN,
) -> pd.DataFrame:
    """Resolve and load the curves file of every model directory."""
    return load_all_curves(resolve_model_files(model_dirs, pattern))
