"""Reading the entity tables and writing report files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable

import pandas as pd

from .errors import ConfigError

logger = logging.getLogger(__name__)

READERS = {".csv": pd.read_csv, ".parquet": pd.read_parquet}
OUTPUT_FORMATS = ("csv", "parquet")


def load_dataframe(path: str) -> pd.DataFrame:
    """Load one table from a .csv or .parquet file."""
    path_obj = Path(path)
    if not path_obj.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    reader = READERS.get(path_obj.suffix.lower())
    if reader is None:
        raise ConfigError(f"Unsupported file type {path_obj.suffix!r} for {path}. Use .csv or .parquet")

    df = reader(path_obj)
    logger.info("Loaded %s: %s", path_obj.name, df.shape)
    return df


def write_outputs(
    outputs: Dict[str, pd.DataFrame],
    output_dir: str,
    formats: Iterable[str] = ("csv",),
) -> Dict[str, Dict[str, str]]:
    """
    Write each report to <output_dir>/<name>.<format>.

    All formats are checked before anything is written.

    Returns:
        Dict mapping report name to dict of {format: filepath}.
    """
    formats = [fmt.lower() for fmt in formats]
    unsupported = [fmt for fmt in formats if fmt not in OUTPUT_FORMATS]
    if unsupported:
        raise ConfigError(f"Unsupported output format(s): {unsupported}. Use one of {list(OUTPUT_FORMATS)}")

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    written: Dict[str, Dict[str, str]] = {}
    for name, df in outputs.items():
        paths = written.setdefault(name, {})
        for fmt in formats:
            target = output_path / f"{name}.{fmt}"
            if fmt == "parquet":
                try:
                    df.to_parquet(target, index=False)
                except ImportError as exc:  # pragma: no cover - optional dependency
                    raise ConfigError("Parquet output needs pyarrow: pip install influencer-roi[parquet]") from exc
            else:
                df.to_csv(target, index=False)
            paths[fmt] = str(target)
            logger.info("Wrote %s (%d rows) to %s", name, len(df), target)

    return written
