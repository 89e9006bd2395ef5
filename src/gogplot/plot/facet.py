"""Small-multiples faceting: FacetSpec, panel keys and panel layout."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Union

from gogplot.frame.table import Table, is_missing

FACET_SCALES = ("fixed", "free", "free_x", "free_y")


@dataclass(frozen=True)
class FacetSpec:
    """Partition variables plus wrap layout.

    Attributes:
        variables: Facet column names.
        ncol: Number of panel columns; None picks ceil(sqrt(n_panels)).
        scales: "fixed" shares position scales across panels; "free",
            "free_x" and "free_y" train them per panel.
    """
    variables: tuple[str, ...]
    ncol: Optional[int] = None
    scales: str = "fixed"

    def __post_init__(self) -> None:
        variables = (self.variables,) if isinstance(self.variables, str) else tuple(self.variables)
        if not variables:
            raise ValueError("facet needs at least one variable")
        object.__setattr__(self, "variables", tuple(str(v) for v in variables))
        if self.scales not in FACET_SCALES:
            raise ValueError(f"scales must be one of {FACET_SCALES}, got {self.scales!r}")
        if self.ncol is not None and int(self.ncol) < 1:
            raise ValueError(f"ncol must be >= 1, got {self.ncol!r}")

    @property
    def free_x(self) -> bool:
        return self.scales in ("free", "free_x")

    @property
    def free_y(self) -> bool:
        return self.scales in ("free", "free_y")


def facet_wrap(
    variables: Union[str, Sequence[str]],
    *,
    ncol: Optional[int] = None,
    scales: str = "fixed",
) -> FacetSpec:
    """Wrap panels for each combination of variables into ncol columns."""
    return FacetSpec(variables=variables, ncol=ncol, scales=scales)


@dataclass(frozen=True)
class PanelSlot:
    """Position of one panel in the wrapped grid."""
    index: int
    row: int
    col: int
    key: tuple
    label: str


def _sort_key(key: tuple) -> tuple:
    # missing values sort last within each variable
    return tuple((1, 0) if is_missing(v) else (0, v) for v in key)


def _format_value(value: Any) -> str:
    if is_missing(value):
        return "NA"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_key(key: tuple) -> str:
    return ", ".join(_format_value(v) for v in key)


def normalize_key(values: Iterable[Any]) -> tuple:
    """Key tuple with every missing value replaced by None (NaN never equals itself)."""
    return tuple(None if is_missing(v) else v for v in values)


def panel_keys(tables: Iterable[Table], facet: FacetSpec) -> list[tuple]:
    """Distinct facet value combinations across tables that carry the facet variables, sorted."""
    keys: set[tuple] = set()
    for table in tables:
        if not all(v in table.schema for v in facet.variables):
            continue
        cols = [table.column(v).tolist() for v in facet.variables]
        keys.update(normalize_key(k) for k in zip(*cols))
    return sorted(keys, key=_sort_key)


def layout_panels(keys: list[tuple], facet: Optional[FacetSpec]) -> list[PanelSlot]:
    """Assign each panel key a (row, col) slot, filling rows left to right."""
    if facet is None or not keys:
        return [PanelSlot(index=0, row=0, col=0, key=(), label="")]
    n = len(keys)
    ncol = facet.ncol if facet.ncol is not None else math.ceil(math.sqrt(n))
    ncol = min(ncol, n)
    return [
        PanelSlot(index=i, row=i // ncol, col=i % ncol, key=key, label=format_key(key))
        for i, key in enumerate(keys)
    ]


def grid_shape(slots: list[PanelSlot]) -> tuple[int, int]:
    """(nrow, ncol) needed to hold slots."""
    if not slots:
        return 1, 1
    return max(s.row for s in slots) + 1, max(s.col for s in slots) + 1
