"""
===========================================================
cases.py
Author: Veronica Scerra
Last Updated: 2026-10-16
===========================================================

Description:
   Load a (date, cases) table of daily reported case counts from a
   local CSV or URL and turn it into an ObservedSeries: rows with a
   missing count are dropped, dates are parsed day-first, and time
   is expressed in days since the epidemic start anchor.

Notes:
    - Dates are day/month/year (e.g. 25/05/2014).
    - The start anchor defaults to the first reported date.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd
import requests

from epiforecast.exceptions import ConfigurationError
from epiforecast.utils.data_utils import ObservedSeries

logger = logging.getLogger(__name__)


@dataclass
class CaseSeriesConfig:
    """
    Configuration for case-series loading
    """
    date_col: str = "Date"
    cases_col: str = "Cases"
    date_format: Optional[str] = "%d/%m/%Y"
    # epidemic start anchor; None -> first reported date
    start_date: Optional[str] = None
    name: str = ""
    # networking
    timeout_s: int = 30

# ---- Public API -----------------------------------------------------------

def load_case_series(
    source: str | Path,
    config: Optional[CaseSeriesConfig] = None,
) -> ObservedSeries:
    """
    Load daily case counts into an ObservedSeries.

    Parameters
    ----------
    source : str | Path
        File path or URL to a CSV with a date column and a case-count column.
    config : CaseSeriesConfig
        Column names, date format and start anchor.

    Returns
    -------
    ObservedSeries
        Days since the start anchor and the reported counts
        (first count forced to zero).
    """
    config = config or CaseSeriesConfig()
    df = _read_csv_robust(source, config)
    table = case_table(df, config)
    logger.info("Loaded %d reported days from %s", len(table), source)
    return ObservedSeries.from_dataframe(table, time_col="time", cases_col="cases",
                                         name=config.name or Path(str(source)).stem)


def case_table(df: pd.DataFrame, config: CaseSeriesConfig) -> pd.DataFrame:
    """
    Standardize a raw table to columns 'date', 'time', 'cases'.
    """
    date_col = _find_col(df.columns, config.date_col)
    cases_col = _find_col(df.columns, config.cases_col)

    sub = df[[date_col, cases_col]].rename(columns={date_col: "date", cases_col: "cases"})
    if config.date_format:
        sub["date"] = pd.to_datetime(sub["date"], format=config.date_format, errors="coerce")
    else:
        sub["date"] = pd.to_datetime(sub["date"], dayfirst=True, errors="coerce")
    sub["cases"] = pd.to_numeric(sub["cases"], errors="coerce")

    # missing counts are not zero counts
    sub = sub.dropna(subset=["date", "cases"]).sort_values("date").reset_index(drop=True)
    if sub.empty:
        raise ConfigurationError("no rows with both a date and a case count")
    if sub["date"].duplicated().any():
        raise ConfigurationError("duplicate dates in case table")

    anchor = pd.to_datetime(config.start_date, dayfirst=True) if config.start_date else sub["date"].iloc[0]
    sub["time"] = (sub["date"] - anchor).dt.days.astype(float)
    if (sub["time"] < 0).any():
        raise ConfigurationError(f"start anchor {anchor.date()} is after the first reported date")
    return sub[["date", "time", "cases"]]

# ---------- Robust CSV loader ----------------------------------------------

def _read_csv_robust(source: str | Path, cfg: CaseSeriesConfig) -> pd.DataFrame:
    """
    Read CSV from local path or URL.
    """
    src = str(source)

    p = Path(src)
    if p.exists():
        try:
            return _standardize_columns(pd.read_csv(p))
        except pd.errors.EmptyDataError as e:
            raise RuntimeError(f"File exists but is empty: {p}") from e

    if not src.startswith(("http://", "https://")):
        raise FileNotFoundError(src)

    try:
        resp = requests.get(src, headers={"User-Agent": "epiforecast"}, timeout=cfg.timeout_s)
    except requests.RequestException as e:
        raise RuntimeError(f"Failed to fetch URL: {src}\n{e}") from e

    if resp.status_code != 200:
        raise RuntimeError(f"HTTP {resp.status_code} fetching {src}")

    try:
        df = pd.read_csv(io.BytesIO(resp.content or b""))
    except pd.errors.EmptyDataError as e:
        raise RuntimeError("Response contained no CSV data.") from e
    return _standardize_columns(df)

# ---- Internal helpers -----------------------------------------------------

def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df.columns = pd.Index([str(c).strip() for c in df.columns])
    return df


def _find_col(columns, expected_name: str) -> str:
    """
    Tolerant column lookup (exact first, then case/space-insensitive).
    """
    names = [str(c) for c in columns]
    if expected_name in names:
        return expected_name
    exp = expected_name.strip().lower()
    for name in names:
        if name.strip().lower() == exp:
            return name
    raise KeyError(f"Expected column '{expected_name}' not found. Available: {names}")
