"""Immutable column-typed table with tidy-data verbs.

This module provides the Table class: an ordered collection of rows sharing a
fixed schema (column name -> ValueKind), backed by a private pandas DataFrame.
Every verb (filter, mutate, group_aggregate, distinct_by, gather_longer,
spread_wider, recode, ...) returns a new Table; nothing is mutated in place.

Missing values are float('nan') in numeric columns and None everywhere else.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence, Union

import numpy as np
import pandas as pd

from gogplot.errors import DuplicateKeyError, EmptyGroupError, SchemaError, TypeMismatchError
from gogplot.frame.reducers import Reducer, resolve_reducer
from gogplot.utils.logging import get_logger

logger = get_logger(__name__)

_NUMERIC_KINDS = {"i", "u", "f"}  # int, unsigned, float (pandas dtype.kind)


class ValueKind(Enum):
    """Kind of values a column holds."""
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    LOGICAL = "logical"

    @property
    def is_discrete(self) -> bool:
        return self is not ValueKind.NUMERIC


class _Missing:
    """Hashable stand-in for a missing key value (NaN never equals itself)."""

    def __repr__(self) -> str:
        return "<missing>"


_MISSING_KEY = _Missing()


def is_missing(value: Any) -> bool:
    """Return True for None, NaN, pd.NA and pd.NaT."""
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    if isinstance(value, (float, np.floating)):
        return bool(np.isnan(value))
    return False


def _key_value(value: Any) -> Any:
    return _MISSING_KEY if is_missing(value) else value


def _kind_of_value(value: Any) -> Optional[ValueKind]:
    if is_missing(value):
        return None
    if isinstance(value, (bool, np.bool_)):
        return ValueKind.LOGICAL
    if isinstance(value, (int, float, np.number)):
        return ValueKind.NUMERIC
    return ValueKind.CATEGORICAL


def _infer_kind(values: Iterable[Any], what: str) -> Optional[ValueKind]:
    """Infer the single kind of the non-missing values, or None if all missing."""
    kinds = {k for k in (_kind_of_value(v) for v in values) if k is not None}
    if len(kinds) > 1:
        names = sorted(k.value for k in kinds)
        raise TypeMismatchError(f"{what} mixes value kinds {names}")
    return kinds.pop() if kinds else None


def _build_series(
    values: Sequence[Any],
    kind: Optional[ValueKind] = None,
    *,
    what: str = "column",
    default_kind: ValueKind = ValueKind.NUMERIC,
) -> tuple[pd.Series, ValueKind]:
    """Build a normalized Series from python values.

    Args:
        values: Column values; missing values may be None or NaN.
        kind: Required kind. If given, non-missing values must match it.
        what: Description used in error messages.
        default_kind: Kind used when kind is None and every value is missing.

    Returns:
        (series, kind) with numeric columns as int64/float64, logical columns as
        bool (or object when missing values are present) and categorical
        columns as object with None for missing.

    Raises:
        TypeMismatchError: If the values mix kinds or do not match kind.
    """
    values = list(values)
    inferred = _infer_kind(values, what)
    if kind is None:
        kind = inferred if inferred is not None else default_kind
    elif inferred is not None and inferred is not kind:
        raise TypeMismatchError(
            f"{what} is declared {kind.value} but received {inferred.value} values"
        )

    has_missing = any(is_missing(v) for v in values)
    if kind is ValueKind.NUMERIC:
        integral = all(
            isinstance(v, (int, np.integer)) and not isinstance(v, (bool, np.bool_))
            for v in values
        )
        if values and integral and not has_missing:
            return pd.Series(values, dtype="int64"), kind
        return pd.Series([np.nan if is_missing(v) else float(v) for v in values], dtype="float64"), kind
    if kind is ValueKind.LOGICAL and not has_missing:
        return pd.Series([bool(v) for v in values], dtype=bool), kind
    if kind is ValueKind.LOGICAL:
        return pd.Series([None if is_missing(v) else bool(v) for v in values], dtype=object), kind
    return pd.Series([None if is_missing(v) else v for v in values], dtype=object), kind


def _normalize_column(s: pd.Series, name: str) -> tuple[pd.Series, ValueKind]:
    """Normalize one incoming DataFrame column and determine its kind."""
    dtype_kind = getattr(s.dtype, "kind", None)
    if dtype_kind in _NUMERIC_KINDS:
        if isinstance(s.dtype, np.dtype):
            return s.reset_index(drop=True), ValueKind.NUMERIC
        # pandas extension dtypes (Int64, Float64): unmask
        if s.isna().any():
            return s.astype("float64").reset_index(drop=True), ValueKind.NUMERIC
        return s.astype(s.dtype.numpy_dtype).reset_index(drop=True), ValueKind.NUMERIC
    if dtype_kind == "b" and isinstance(s.dtype, np.dtype):
        return s.reset_index(drop=True), ValueKind.LOGICAL
    return _build_series(
        s.tolist(), what=f"column {name!r}", default_kind=ValueKind.CATEGORICAL
    )


def _as_column_list(columns: Union[str, Iterable[str], None]) -> list[str]:
    if columns is None:
        return []
    if isinstance(columns, str):
        return [columns]
    if isinstance(columns, (set, frozenset)):
        return sorted(str(c) for c in columns)
    return [str(c) for c in columns]


class Row(Mapping):
    """Read-only view of one table row.

    Indexing an undeclared column raises SchemaError (also through .get()),
    so predicates that reference a wrong column fail loudly.
    """

    __slots__ = ("_values",)

    def __init__(self, values: dict[str, Any]) -> None:
        self._values = values

    def __getitem__(self, key: str) -> Any:
        try:
            return self._values[key]
        except KeyError:
            raise SchemaError(
                f"Unknown column {key!r}; declared columns are {list(self._values)}"
            ) from None

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Row({self._values!r})"


class Table:
    """Immutable tabular value type with a fixed schema.

    Construct from a pandas DataFrame, a list of records, or a mapping of
    columns. The DataFrame is copied and normalized; callers never see the
    internal frame (to_pandas() returns a copy).

    Attributes:
        columns: Column names in declared order.
        schema: Mapping of column name to ValueKind.
    """

    __hash__ = None

    def __init__(self, data: Optional[pd.DataFrame] = None) -> None:
        if data is None:
            data = pd.DataFrame()
        if not isinstance(data, pd.DataFrame):
            raise TypeError(f"Table expects a pandas DataFrame, got {type(data).__name__}")
        data = data.copy()
        names = [str(c) for c in data.columns]
        if len(set(names)) != len(names):
            raise SchemaError(f"Duplicate column names in {names}")

        series: dict[str, pd.Series] = {}
        schema: dict[str, ValueKind] = {}
        for name, col in zip(names, (data.iloc[:, i] for i in range(data.shape[1]))):
            series[name], schema[name] = _normalize_column(col, name)
        self._df = pd.DataFrame(series, columns=names, index=pd.RangeIndex(len(data)))
        self._schema = schema

    @classmethod
    def _wrap(cls, df: pd.DataFrame, schema: dict[str, ValueKind]) -> "Table":
        """Build from an already-normalized frame and a trusted schema."""
        table = cls.__new__(cls)
        table._df = df.reset_index(drop=True)
        table._schema = dict(schema)
        return table

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        columns: Optional[Sequence[str]] = None,
    ) -> "Table":
        """Build a Table from row mappings that all share the same keys.

        Args:
            records: Row mappings.
            columns: Column order. Defaults to the first record's key order.
                Required to build an empty table with columns.

        Raises:
            SchemaError: If any record has a different set of keys.
            TypeMismatchError: If a column mixes value kinds.
        """
        records = list(records)
        if columns is None:
            columns = list(records[0].keys()) if records else []
        columns = [str(c) for c in columns]
        expected = set(columns)
        for i, rec in enumerate(records):
            if set(rec.keys()) != expected:
                raise SchemaError(
                    f"Record {i} has columns {sorted(rec.keys())}, expected {sorted(expected)}"
                )
        return cls.from_columns({c: [rec[c] for rec in records] for c in columns})

    @classmethod
    def from_columns(cls, columns: Mapping[str, Sequence[Any]]) -> "Table":
        """Build a Table from a mapping of column name to values."""
        lengths = {len(v) for v in columns.values()}
        if len(lengths) > 1:
            raise SchemaError(f"Columns have different lengths: {sorted(lengths)}")
        series: dict[str, pd.Series] = {}
        schema: dict[str, ValueKind] = {}
        for name, values in columns.items():
            name = str(name)
            series[name], schema[name] = _build_series(values, what=f"column {name!r}")
        n = lengths.pop() if lengths else 0
        return cls._wrap(pd.DataFrame(series, index=pd.RangeIndex(n)), schema)

    # -----------------------------
    # Accessors
    # -----------------------------
    @property
    def columns(self) -> list[str]:
        return list(self._schema)

    @property
    def schema(self) -> dict[str, ValueKind]:
        return dict(self._schema)

    def kind(self, column: str) -> ValueKind:
        self.require_columns([column])
        return self._schema[column]

    def require_columns(self, columns: Iterable[str], *, context: str = "") -> None:
        """Raise SchemaError naming every column that is not declared."""
        missing = [c for c in columns if c not in self._schema]
        if missing:
            where = f" ({context})" if context else ""
            raise SchemaError(
                f"Unknown column(s) {missing}{where}; declared columns are {self.columns}"
            )

    def column(self, column: str) -> pd.Series:
        """Return a copy of one column as a pandas Series."""
        self.require_columns([column])
        return self._df[column].copy()

    def unique(self, column: str) -> list[Any]:
        """Distinct values of a column in first-appearance order (one missing entry at most)."""
        return self.column(column).drop_duplicates().tolist()

    def rows(self) -> Iterator[Row]:
        names = self.columns
        for values in self._df.itertuples(index=False, name=None):
            yield Row(dict(zip(names, values)))

    def row(self, i: int) -> Row:
        return Row(dict(zip(self.columns, self._df.iloc[i].tolist())))

    def head(self, n: int = 5) -> "Table":
        return Table._wrap(self._df.head(n), self._schema)

    def to_pandas(self) -> pd.DataFrame:
        return self._df.copy()

    def to_records(self) -> list[dict[str, Any]]:
        return [dict(r) for r in self.rows()]

    def __len__(self) -> int:
        return len(self._df)

    def __iter__(self) -> Iterator[Row]:
        return self.rows()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        if list(self._schema.items()) != list(other._schema.items()) or len(self) != len(other):
            return False
        # int64 and float64 storage of a NUMERIC column compare by value
        for name, kind in self._schema.items():
            a, b = self._df[name], other._df[name]
            if kind is ValueKind.NUMERIC:
                if not np.array_equal(a.to_numpy(dtype=float), b.to_numpy(dtype=float), equal_nan=True):
                    return False
            elif not a.equals(b):
                return False
        return True

    def __repr__(self) -> str:
        cols = ", ".join(f"{c}:{k.value}" for c, k in self._schema.items())
        return f"Table({len(self)} rows; {cols})"

    # -----------------------------
    # Verbs
    # -----------------------------
    def filter(self, predicate: Callable[[Row], Any]) -> "Table":
        """Keep rows where predicate(row) is truthy; missing results count as False.

        Raises:
            SchemaError: If predicate indexes an undeclared column.
        """
        keep = []
        for row in self.rows():
            result = predicate(row)
            keep.append(False if is_missing(result) else bool(result))
        mask = np.asarray(keep, dtype=bool)
        return Table._wrap(self._df[mask], self._schema)

    def mutate(self, column: str, fn: Callable[[Row], Any]) -> "Table":
        """Add a column, or overwrite an existing one, with fn(row) for every row.

        Raises:
            SchemaError: If fn indexes an undeclared column.
            TypeMismatchError: If outputs mix kinds or conflict with the
                existing column's declared kind.
        """
        values = [fn(row) for row in self.rows()]
        existing = self._schema.get(column)
        series, kind = _build_series(values, existing, what=f"mutate({column!r})")
        df = self._df.copy()
        df[column] = series
        schema = dict(self._schema)
        schema[column] = kind
        return Table._wrap(df, schema)

    def select(self, columns: Union[str, Iterable[str]]) -> "Table":
        cols = _as_column_list(columns)
        self.require_columns(cols, context="select")
        return Table._wrap(self._df[cols], {c: self._schema[c] for c in cols})

    def arrange(
        self,
        columns: Union[str, Iterable[str]],
        descending: Union[bool, Sequence[bool]] = False,
    ) -> "Table":
        """Stable sort by columns; missing values sort last."""
        cols = _as_column_list(columns)
        self.require_columns(cols, context="arrange")
        if isinstance(descending, bool):
            ascending: Union[bool, list[bool]] = not descending
        else:
            ascending = [not d for d in descending]
        df = self._df.sort_values(by=cols, ascending=ascending, kind="stable", na_position="last")
        return Table._wrap(df, self._schema)

    def drop_missing(self, columns: Union[str, Iterable[str], None] = None) -> "Table":
        """Remove rows with a missing value in any of columns (default: all columns)."""
        cols = _as_column_list(columns) or self.columns
        self.require_columns(cols, context="drop_missing")
        return Table._wrap(self._df.dropna(subset=cols), self._schema)

    def group_aggregate(
        self,
        key_columns: Union[str, Iterable[str], None],
        reducers: Mapping[str, tuple[Optional[str], Union[str, Reducer, Callable]]],
    ) -> "Table":
        """Partition rows by key columns and reduce each partition to one row.

        Output groups are in first-appearance order of each key tuple. Missing
        key values form their own group. A reducer that finds no non-missing
        values yields a missing result.

        Args:
            key_columns: Grouping columns (may be empty for a whole-table summary).
            reducers: Output column -> (input column, reducer). The reducer is
                a name from gogplot.frame.reducers ("count", "mean", ...), a
                Reducer, or a callable over a pandas Series. The input column
                may be None for "count".

        Raises:
            SchemaError: Unknown key/input column or output name clash.
            TypeMismatchError: Numeric reducer over a non-numeric column.
        """
        keys = _as_column_list(key_columns)
        self.require_columns(keys, context="group_aggregate keys")
        clash = [out for out in reducers if out in keys]
        if clash:
            raise SchemaError(f"Reducer outputs {clash} clash with key columns")

        resolved: list[tuple[str, Optional[str], Reducer]] = []
        for out, (source, how) in reducers.items():
            reducer = resolve_reducer(how)
            if source is None:
                if reducer.needs_input:
                    raise SchemaError(f"Reducer {reducer.name!r} for {out!r} needs an input column")
            else:
                self.require_columns([source], context=f"reducer {out!r}")
                if reducer.numeric_only and self._schema[source] is ValueKind.CATEGORICAL:
                    raise TypeMismatchError(
                        f"Reducer {reducer.name!r} needs a numeric column; {source!r} is categorical"
                    )
            resolved.append((out, source, reducer))

        if keys:
            parts = [sub for _, sub in self._df.groupby(keys, sort=False, dropna=False)]
        else:
            parts = [self._df]

        out_columns: dict[str, list[Any]] = {k: [] for k in keys}
        for out, _, _ in resolved:
            out_columns[out] = []
        for sub in parts:
            for k in keys:
                out_columns[k].append(sub[k].iat[0])
            for out, source, reducer in resolved:
                values = sub[source] if source is not None else pd.Series(np.zeros(len(sub)))
                try:
                    out_columns[out].append(reducer(values))
                except EmptyGroupError:
                    logger.debug(f"group_aggregate: empty partition for {out!r}; emitting missing")
                    out_columns[out].append(None)

        series: dict[str, pd.Series] = {}
        schema: dict[str, ValueKind] = {}
        for k in keys:
            series[k], schema[k] = _build_series(out_columns[k], self._schema[k], what=f"key {k!r}")
        for out, _, _ in resolved:
            series[out], schema[out] = _build_series(out_columns[out], what=f"reducer {out!r}")
        return Table._wrap(pd.DataFrame(series, index=pd.RangeIndex(len(parts))), schema)

    def distinct_by(self, columns: Union[str, Iterable[str]], keep: str = "first") -> "Table":
        """Drop rows whose key tuple was already seen; keeps the full row.

        Args:
            columns: Key columns.
            keep: "first" keeps the earliest occurrence, "last" the latest.
                Kept rows stay in their original relative order.
        """
        if keep not in ("first", "last"):
            raise ValueError(f"keep must be 'first' or 'last', got {keep!r}")
        cols = _as_column_list(columns)
        self.require_columns(cols, context="distinct_by")
        return Table._wrap(self._df.drop_duplicates(subset=cols, keep=keep), self._schema)

    def gather_longer(
        self,
        id_columns: Union[str, Iterable[str]],
        value_columns: Union[str, Iterable[str]],
        key_name: str,
        value_name: str,
    ) -> "Table":
        """Wide-to-long reshape.

        For each input row and each value column (in the given order) emit one
        row with the id columns copied, key_name set to the source column name
        and value_name set to its value.

        Raises:
            SchemaError: Unknown columns, or key/value names clashing with ids.
            TypeMismatchError: Value columns of different kinds.
        """
        ids = _as_column_list(id_columns)
        values = _as_column_list(value_columns)
        if not values:
            raise ValueError("gather_longer needs at least one value column")
        self.require_columns(ids + values, context="gather_longer")
        if key_name == value_name or key_name in ids or value_name in ids:
            raise SchemaError(
                f"gather_longer names key={key_name!r}, value={value_name!r} must be distinct from ids {ids}"
            )
        kinds = {self._schema[c] for c in values}
        if len(kinds) > 1:
            raise TypeMismatchError(
                f"gather_longer value columns {values} have different kinds {sorted(k.value for k in kinds)}"
            )
        value_kind = kinds.pop()

        n, m = len(self._df), len(values)
        out = self._df[ids].iloc[np.repeat(np.arange(n), m)].reset_index(drop=True)
        out[key_name] = pd.Series(np.tile(np.array(values, dtype=object), n), dtype=object)
        stacked = self._df[values].to_numpy().ravel() if n else []
        out[value_name], _ = _build_series(list(stacked), value_kind, what=value_name)
        schema = {c: self._schema[c] for c in ids}
        schema[key_name] = ValueKind.CATEGORICAL
        schema[value_name] = value_kind
        return Table._wrap(out, schema)

    def spread_wider(
        self,
        key_column: str,
        value_column: str,
        id_columns: Union[str, Iterable[str], None] = None,
    ) -> "Table":
        """Long-to-wide reshape, the inverse of gather_longer().

        Args:
            key_column: Column whose values become new column names.
            value_column: Column whose values fill the new columns.
            id_columns: Columns identifying an output row. Defaults to all
                other columns.

        Raises:
            SchemaError: Unknown columns or new names clashing with ids.
            DuplicateKeyError: More than one value for an (id, key) cell.
        """
        self.require_columns([key_column, value_column], context="spread_wider")
        if id_columns is None:
            ids = [c for c in self.columns if c not in (key_column, value_column)]
        else:
            ids = _as_column_list(id_columns)
            self.require_columns(ids, context="spread_wider")

        cells: dict[tuple, dict[str, Any]] = {}
        first_row: dict[tuple, int] = {}
        new_columns: list[str] = []
        id_values = zip(*(self._df[c].tolist() for c in ids)) if ids else ((),) * len(self._df)
        for i, (ident, key, value) in enumerate(
            zip(id_values, self._df[key_column].tolist(), self._df[value_column].tolist())
        ):
            ident = tuple(_key_value(v) for v in ident)
            name = "NA" if is_missing(key) else str(key)
            if name not in new_columns:
                new_columns.append(name)
            row = cells.setdefault(ident, {})
            first_row.setdefault(ident, i)
            if name in row:
                raise DuplicateKeyError(
                    f"spread_wider: more than one {value_column!r} for key {name!r} and ids {ident}"
                )
            row[name] = value

        clash = [c for c in new_columns if c in ids]
        if clash:
            raise SchemaError(f"spread_wider: new columns {clash} clash with id columns")

        value_kind = self._schema[value_column]
        series: dict[str, pd.Series] = {}
        schema: dict[str, ValueKind] = {}
        order = list(cells)
        for c in ids:
            col = self._df[c]
            series[c], schema[c] = _build_series(
                [col.iat[first_row[ident]] for ident in order], self._schema[c], what=c
            )
        for name in new_columns:
            series[name], schema[name] = _build_series(
                [cells[ident].get(name) for ident in order], value_kind, what=name
            )
        return Table._wrap(pd.DataFrame(series, index=pd.RangeIndex(len(order))), schema)

    def recode(self, column: str, mapping: Mapping[Any, Any]) -> "Table":
        """Replace values found in mapping; other values pass through unchanged.

        Raises:
            SchemaError: Unknown column.
            TypeMismatchError: If the recoded column would mix value kinds.
        """
        self.require_columns([column], context="recode")
        lookup = {_key_value(k): v for k, v in mapping.items()}
        values = [lookup.get(_key_value(v), v) for v in self._df[column].tolist()]
        kind = _infer_kind(values, f"recode({column!r})") or self._schema[column]
        series, kind = _build_series(values, kind, what=f"recode({column!r})")
        df = self._df.copy()
        df[column] = series
        schema = dict(self._schema)
        schema[column] = kind
        return Table._wrap(df, schema)
