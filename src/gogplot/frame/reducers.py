"""
Reducers for Table.group_aggregate(), pure pandas/numpy.

A reducer turns the values of one column within one partition into a single
scalar. Missing values are excluded before reducing, except by "count", which
counts rows regardless of missing values in any column.

Reducers that find no non-missing values raise EmptyGroupError; the grouping
code turns that into a missing result.

Available names: count, mean, median, sum, min, max, std, sem, cv,
n_distinct, first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

import numpy as np
import pandas as pd

from gogplot.errors import EmptyGroupError

# Coefficient of variation: treat |mean| below this as zero (result is missing).
CV_EPSILON = 1e-10


@dataclass(frozen=True)
class Reducer:
    """A named partition reducer.

    Attributes:
        name: Reducer name used in error messages.
        func: Callable taking the partition's values as a pandas Series.
        numeric_only: True if the input column must be numeric (or logical).
        needs_input: False only for reducers that ignore the values ("count").
    """
    name: str
    func: Callable[[pd.Series], Any]
    numeric_only: bool = True
    needs_input: bool = True

    def __call__(self, values: pd.Series) -> Any:
        return self.func(values)


def _present(values: pd.Series) -> pd.Series:
    """Drop missing values; raise EmptyGroupError if nothing is left."""
    v = values.dropna()
    if len(v) == 0:
        raise EmptyGroupError("partition has no non-missing values")
    return v


def _numeric(values: pd.Series) -> np.ndarray:
    return _present(values).astype(float).to_numpy()


def _count(values: pd.Series) -> int:
    return int(len(values))


def _mean(values: pd.Series) -> float:
    return float(np.mean(_numeric(values)))


def _median(values: pd.Series) -> float:
    return float(np.median(_numeric(values)))


def _sum(values: pd.Series) -> float:
    v = values.dropna()
    return float(np.sum(v.astype(float).to_numpy())) if len(v) else 0.0


def _min(values: pd.Series) -> float:
    return float(np.min(_numeric(values)))


def _max(values: pd.Series) -> float:
    return float(np.max(_numeric(values)))


def _std(values: pd.Series) -> float:
    # Sample std (ddof=1); a single value has no spread estimate
    v = _numeric(values)
    if len(v) < 2:
        raise EmptyGroupError("std needs at least two values")
    return float(np.std(v, ddof=1))


def _sem(values: pd.Series) -> float:
    v = _numeric(values)
    if len(v) < 2:
        raise EmptyGroupError("sem needs at least two values")
    return float(np.std(v, ddof=1) / np.sqrt(len(v)))


def _cv(values: pd.Series) -> float:
    v = _numeric(values)
    if len(v) < 2:
        raise EmptyGroupError("cv needs at least two values")
    mean_ = float(np.mean(v))
    if abs(mean_) < CV_EPSILON:
        raise EmptyGroupError("cv undefined for zero mean")
    return float(np.std(v, ddof=1) / mean_)


def _n_distinct(values: pd.Series) -> int:
    return int(values.dropna().nunique())


def _first(values: pd.Series) -> Any:
    if len(values) == 0:
        raise EmptyGroupError("partition is empty")
    return values.iloc[0]


REDUCERS: dict[str, Reducer] = {
    "count": Reducer("count", _count, numeric_only=False, needs_input=False),
    "mean": Reducer("mean", _mean),
    "median": Reducer("median", _median),
    "sum": Reducer("sum", _sum),
    "min": Reducer("min", _min),
    "max": Reducer("max", _max),
    "std": Reducer("std", _std),
    "sem": Reducer("sem", _sem),
    "cv": Reducer("cv", _cv),
    "n_distinct": Reducer("n_distinct", _n_distinct, numeric_only=False),
    "first": Reducer("first", _first, numeric_only=False),
}


def resolve_reducer(how: Union[str, Reducer, Callable[[pd.Series], Any]]) -> Reducer:
    """Return a Reducer for a reducer name, a Reducer, or a plain callable.

    Raises:
        ValueError: If how is an unknown reducer name.
    """
    if isinstance(how, Reducer):
        return how
    if isinstance(how, str):
        try:
            return REDUCERS[how]
        except KeyError:
            raise ValueError(f"Unknown reducer {how!r}; expected one of {sorted(REDUCERS)}") from None
    if callable(how):
        return Reducer(getattr(how, "__name__", "custom"), how, numeric_only=False)
    raise ValueError(f"Reducer must be a name, Reducer or callable, got {how!r}")
