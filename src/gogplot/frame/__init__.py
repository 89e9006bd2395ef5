"""Tidy tabular data: immutable Table and grouping reducers."""

from gogplot.frame.reducers import REDUCERS, Reducer
from gogplot.frame.table import Row, Table, ValueKind, is_missing

__all__ = [
    "REDUCERS",
    "Reducer",
    "Row",
    "Table",
    "ValueKind",
    "is_missing",
]
