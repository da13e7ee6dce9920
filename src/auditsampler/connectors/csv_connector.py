"""
CSV Connector — load an audit population from a CSV export.

Ledger, receivables or journal exports rarely agree on column names, so the
value and identifier columns are detected from common aliases unless given.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

logger = logging.getLogger("auditsampler.connectors.csv")

# Common column name mappings
_COLUMN_ALIASES: dict[str, list[str]] = {
    "value": ["value", "amount", "balance", "book_value", "total", "net_amount", "debit", "credit"],
    "id": ["id", "item_id", "invoice", "invoice_number", "reference", "document", "entry_id", "txn_id"],
}


def _detect_column(columns: list[str], field: str) -> str | None:
    for alias in _COLUMN_ALIASES[field]:
        if alias in columns:
            return alias
    return None


def _read_frame(path: Path, encoding: str, delimiter: str) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    df = pd.read_csv(path, encoding=encoding, delimiter=delimiter)
    df.columns = df.columns.str.strip().str.lower()
    return df


def load_population(
    file_path: str | Path,
    value_column: str | None = None,
    id_column: str | None = None,
    *,
    encoding: str = "utf-8",
    delimiter: str = ",",
) -> list[dict[str, Any]]:
    """Read a CSV into population items.

    Each item is a dict with ``"id"`` and ``"value"`` plus every other column
    of the row. Rows whose value is not numeric are skipped. When no id column
    exists, the 1-based row number is used.

    Raises:
        FileNotFoundError: The file does not exist.
        ValueError: No value column could be found.
    """
    path = Path(file_path)
    df = _read_frame(path, encoding, delimiter)
    columns = list(df.columns)

    value_col = value_column.strip().lower() if value_column else _detect_column(columns, "value")
    if not value_col or value_col not in columns:
        raise ValueError(f"No value column found in {path.name} (columns: {', '.join(columns)})")
    id_col = id_column.strip().lower() if id_column else _detect_column(columns, "id")
    if id_col and id_col not in columns:
        raise ValueError(f"Id column '{id_col}' not found in {path.name}")

    values = pd.to_numeric(df[value_col], errors="coerce")
    population: list[dict[str, Any]] = []
    skipped = 0
    for row_number, (record, value) in enumerate(zip(df.to_dict(orient="records"), values), start=1):
        if pd.isna(value):
            skipped += 1
            continue
        item = {k: v for k, v in record.items() if k not in (value_col, id_col)}
        item["id"] = record[id_col] if id_col else row_number
        item["value"] = float(value)
        population.append(item)

    if skipped:
        logger.warning("Skipped %d rows with non-numeric '%s' in %s", skipped, value_col, path.name)
    logger.info("Loaded %d population items from %s", len(population), path.name)
    return population


def load_values(
    file_path: str | Path,
    value_column: str | None = None,
    *,
    encoding: str = "utf-8",
    delimiter: str = ",",
) -> list[float]:
    """Read only the numeric values of a CSV column (for Benford analysis)."""
    return [item["value"] for item in load_population(file_path, value_column, encoding=encoding, delimiter=delimiter)]
