"""
===========================================================
data_utils.py
Author: Veronica Scerra
Last Updated: 2026-10-12
===========================================================
Observed case series container

Holds the daily case counts that the likelihood is evaluated
against, indexed by days since the epidemic start anchor.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from ..exceptions import ConfigurationError


@dataclass(frozen=True, eq=False)
class ObservedSeries:
    """
    Read-only series of reported case counts.

    Attributes:
    -----------
    times: np.ndarray
        Days since the epidemic start anchor (non-negative, strictly increasing)
    cases: np.ndarray
        New reported cases at each time point (non-negative integers).
        The first count is forced to zero (reporting-onset convention).
    name: str
        Label used in summaries and plots
    """

    times: np.ndarray
    cases: np.ndarray
    name: str = ""

    def __post_init__(self):
        times = np.array(self.times, dtype=float)
        raw_cases = np.array(self.cases, dtype=float)

        if times.ndim != 1 or raw_cases.ndim != 1:
            raise ConfigurationError("times and cases must be one-dimensional")
        if len(times) != len(raw_cases):
            raise ConfigurationError(f"times ({len(times)}) and cases ({len(raw_cases)}) differ in length")
        if len(times) == 0:
            raise ConfigurationError("observed series is empty")
        if not np.all(np.isfinite(times)) or np.any(times < 0):
            raise ConfigurationError("time offsets must be finite and non-negative")
        if np.any(np.diff(times) <= 0):
            raise ConfigurationError("time offsets must be strictly increasing")
        if not np.all(np.isfinite(raw_cases)) or np.any(raw_cases < 0):
            raise ConfigurationError("case counts must be finite and non-negative")
        if np.any(raw_cases != np.round(raw_cases)):
            raise ConfigurationError("case counts must be integers")

        cases = raw_cases.astype(np.int64)
        cases[0] = 0

        times.setflags(write=False)
        cases.setflags(write=False)
        object.__setattr__(self, "times", times)
        object.__setattr__(self, "cases", cases)

    def __len__(self) -> int:
        return len(self.times)

    @property
    def total_cases(self) -> int:
        return int(self.cases.sum())

    @property
    def last_time(self) -> float:
        return float(self.times[-1])

    @property
    def cumulative(self) -> np.ndarray:
        return np.cumsum(self.cases)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, time_col: str = "time", cases_col: str = "cases",
                       name: str = "") -> "ObservedSeries":
        """Build a series from a DataFrame, dropping rows with a missing count"""
        sub = df[[time_col, cases_col]].dropna(subset=[cases_col]).sort_values(time_col)
        return cls(times=sub[time_col].to_numpy(dtype=float),
                   cases=sub[cases_col].to_numpy(dtype=float),
                   name=name)

    @classmethod
    def daily(cls, cases: Sequence[int], name: str = "") -> "ObservedSeries":
        """Series observed on consecutive days 0, 1, 2, ..."""
        return cls(times=np.arange(len(cases), dtype=float), cases=np.asarray(cases), name=name)

    def to_dataframe(self) -> pd.DataFrame:
        """ Convert to pandas DataFrame for easy manipulation """
        return pd.DataFrame({
            "time": self.times,
            "cases": self.cases,
            "cumulative": self.cumulative,
        })
