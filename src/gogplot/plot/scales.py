"""Scales: mapping data domains to positions and visual values.

Position scales (x, y) turn data into panel coordinates and produce axis
breaks. Non-position scales (color, fill, shape, linetype, size, alpha) turn
data into visual values and produce legend entries. Default palettes come from
Plotly's built-in colors so the rendered Scene converts cleanly to Plotly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union

import numpy as np
import plotly.colors

from gogplot.errors import TypeMismatchError
from gogplot.frame.table import ValueKind, is_missing
from gogplot.plot.aes import Aesthetic
from gogplot.utils.logging import get_logger

logger = get_logger(__name__)

# Plotly marker symbols for the shape aesthetic
PLOTLY_SYMBOLS = [
    "circle", "square", "diamond", "triangle-up", "triangle-down",
    "triangle-left", "triangle-right", "pentagon", "hexagon", "hexagon2",
    "octagon", "star", "hexagram", "star-triangle-up", "star-triangle-down",
    "star-square", "star-diamond", "diamond-tall", "diamond-wide", "hourglass",
    "bowtie", "circle-cross", "circle-x", "square-cross", "square-x",
    "diamond-cross", "diamond-x", "cross", "x", "triangle-ne",
]

# Plotly dash styles for the linetype aesthetic
PLOTLY_DASHES = ["solid", "dash", "dot", "dashdot", "longdash", "longdashdot"]

DEFAULT_COLORSCALE = "Viridis"

DEFAULT_NA_VALUES: dict[Aesthetic, Any] = {
    Aesthetic.COLOR: "#7F7F7F",
    Aesthetic.FILL: "#7F7F7F",
    Aesthetic.SHAPE: "circle-open",
    Aesthetic.LINETYPE: "solid",
    Aesthetic.SIZE: 6.0,
    Aesthetic.ALPHA: 1.0,
}

DEFAULT_RANGES: dict[Aesthetic, tuple[float, float]] = {
    Aesthetic.SIZE: (3.0, 12.0),
    Aesthetic.ALPHA: (0.1, 1.0),
}

TRANSFORMS = ("identity", "log10", "sqrt")


# -----------------------------------------------------------------------------
# Scale settings (what the user asks for)
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Scale:
    """Base class for scale settings.

    Attributes:
        aesthetic: Role the scale applies to.
        name: Axis or legend title override.
    """
    aesthetic: Aesthetic
    name: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "aesthetic", Aesthetic.parse(self.aesthetic))

    @property
    def is_discrete(self) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class ContinuousPositionScale(Scale):
    """Numeric x/y axis.

    Attributes:
        limits: (low, high) in data units; rows outside are dropped.
        breaks: Explicit tick positions in data units.
        trans: "identity", "log10" or "sqrt"; applied before stats.
        expand: Fraction of the range added on each side.
    """
    limits: Optional[tuple[float, float]] = None
    breaks: Optional[tuple[float, ...]] = None
    trans: str = "identity"
    expand: float = 0.05

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.aesthetic.is_position:
            raise ValueError(f"Position scale given non-position aesthetic {self.aesthetic.value!r}")
        if self.trans not in TRANSFORMS:
            raise ValueError(f"trans must be one of {TRANSFORMS}, got {self.trans!r}")
        if self.breaks is not None:
            object.__setattr__(self, "breaks", tuple(float(b) for b in self.breaks))

    @property
    def is_discrete(self) -> bool:
        return False

    def transform(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        if self.trans == "log10":
            with np.errstate(divide="ignore", invalid="ignore"):
                return np.where(values > 0, np.log10(np.where(values > 0, values, 1.0)), np.nan)
        if self.trans == "sqrt":
            return np.where(values >= 0, np.sqrt(np.abs(values)), np.nan)
        return values

    def inverse(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        if self.trans == "log10":
            return np.power(10.0, values)
        if self.trans == "sqrt":
            return np.square(values)
        return values


@dataclass(frozen=True)
class DiscretePositionScale(Scale):
    """Categorical x/y axis; categories sit at positions 1..n.

    Attributes:
        limits: Category order (and the set of categories kept).
        labels: Category -> tick label override.
        expand: Units added on each side of the first/last category.
    """
    limits: Optional[tuple] = None
    labels: Mapping[Any, str] = field(default_factory=dict)
    expand: float = 0.6

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.aesthetic.is_position:
            raise ValueError(f"Position scale given non-position aesthetic {self.aesthetic.value!r}")
        if self.limits is not None:
            object.__setattr__(self, "limits", tuple(self.limits))
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    @property
    def is_discrete(self) -> bool:
        return True


@dataclass(frozen=True)
class DiscreteScale(Scale):
    """Category -> visual value (color, fill, shape, linetype, size, alpha).

    Attributes:
        values: Palette as a sequence (assigned in domain order) or an
            explicit category -> value mapping.
        limits: Category order for the legend and palette assignment.
        labels: Category -> legend label override.
        na_value: Visual value for missing or unlisted categories.
    """
    values: Optional[Union[Sequence[Any], Mapping[Any, Any]]] = None
    limits: Optional[tuple] = None
    labels: Mapping[Any, str] = field(default_factory=dict)
    na_value: Any = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.aesthetic.is_position or self.aesthetic is Aesthetic.LABEL:
            raise ValueError(f"DiscreteScale does not apply to {self.aesthetic.value!r}")
        if isinstance(self.values, Mapping):
            object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        elif self.values is not None:
            object.__setattr__(self, "values", tuple(self.values))
        if self.limits is not None:
            object.__setattr__(self, "limits", tuple(self.limits))
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    @property
    def is_discrete(self) -> bool:
        return True


@dataclass(frozen=True)
class ContinuousScale(Scale):
    """Number -> visual value (color/fill gradient, size or alpha range).

    Attributes:
        limits: (low, high) of the data domain; values outside get na_value.
        range: Output range for size/alpha.
        colorscale: Plotly colorscale name or color list for color/fill.
        na_value: Visual value for missing or out-of-limit values.
    """
    limits: Optional[tuple[float, float]] = None
    range: Optional[tuple[float, float]] = None
    colorscale: Union[str, Sequence[str]] = DEFAULT_COLORSCALE
    na_value: Any = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.aesthetic not in (Aesthetic.COLOR, Aesthetic.FILL, Aesthetic.SIZE, Aesthetic.ALPHA):
            raise TypeMismatchError(f"{self.aesthetic.value!r} has no continuous scale")
        if not isinstance(self.colorscale, str):
            object.__setattr__(self, "colorscale", tuple(self.colorscale))

    @property
    def is_discrete(self) -> bool:
        return False


# -----------------------------------------------------------------------------
# Constructors
# -----------------------------------------------------------------------------


def scale_x_continuous(name=None, *, limits=None, breaks=None, trans="identity") -> ContinuousPositionScale:
    return ContinuousPositionScale(Aesthetic.X, name=name, limits=limits, breaks=breaks, trans=trans)


def scale_y_continuous(name=None, *, limits=None, breaks=None, trans="identity") -> ContinuousPositionScale:
    return ContinuousPositionScale(Aesthetic.Y, name=name, limits=limits, breaks=breaks, trans=trans)


def scale_x_log10(name=None, *, limits=None, breaks=None) -> ContinuousPositionScale:
    return ContinuousPositionScale(Aesthetic.X, name=name, limits=limits, breaks=breaks, trans="log10")


def scale_y_log10(name=None, *, limits=None, breaks=None) -> ContinuousPositionScale:
    return ContinuousPositionScale(Aesthetic.Y, name=name, limits=limits, breaks=breaks, trans="log10")


def scale_x_discrete(name=None, *, limits=None, labels=None) -> DiscretePositionScale:
    return DiscretePositionScale(Aesthetic.X, name=name, limits=limits, labels=labels or {})


def scale_y_discrete(name=None, *, limits=None, labels=None) -> DiscretePositionScale:
    return DiscretePositionScale(Aesthetic.Y, name=name, limits=limits, labels=labels or {})


def scale_manual(aesthetic, values, *, name=None, limits=None, labels=None, na_value=None) -> DiscreteScale:
    """Explicit category -> value palette for any non-position aesthetic."""
    return DiscreteScale(Aesthetic.parse(aesthetic), name=name, values=values, limits=limits,
                         labels=labels or {}, na_value=na_value)


def scale_color_manual(values, **kwargs) -> DiscreteScale:
    return scale_manual(Aesthetic.COLOR, values, **kwargs)


def scale_fill_manual(values, **kwargs) -> DiscreteScale:
    return scale_manual(Aesthetic.FILL, values, **kwargs)


def scale_shape_manual(values, **kwargs) -> DiscreteScale:
    return scale_manual(Aesthetic.SHAPE, values, **kwargs)


def scale_linetype_manual(values, **kwargs) -> DiscreteScale:
    return scale_manual(Aesthetic.LINETYPE, values, **kwargs)


def scale_color_gradient(low="#132B43", high="#56B1F7", *, name=None, limits=None, na_value=None) -> ContinuousScale:
    return ContinuousScale(Aesthetic.COLOR, name=name, limits=limits, colorscale=(low, high), na_value=na_value)


def scale_fill_gradient(low="#132B43", high="#56B1F7", *, name=None, limits=None, na_value=None) -> ContinuousScale:
    return ContinuousScale(Aesthetic.FILL, name=name, limits=limits, colorscale=(low, high), na_value=na_value)


def scale_color_continuous(colorscale=DEFAULT_COLORSCALE, *, name=None, limits=None) -> ContinuousScale:
    return ContinuousScale(Aesthetic.COLOR, name=name, limits=limits, colorscale=colorscale)


def scale_size(range=DEFAULT_RANGES[Aesthetic.SIZE], *, name=None, limits=None) -> ContinuousScale:
    return ContinuousScale(Aesthetic.SIZE, name=name, limits=limits, range=tuple(range))


def scale_alpha(range=DEFAULT_RANGES[Aesthetic.ALPHA], *, name=None, limits=None) -> ContinuousScale:
    return ContinuousScale(Aesthetic.ALPHA, name=name, limits=limits, range=tuple(range))


def default_scale(role: Aesthetic, kind: ValueKind) -> Scale:
    """Scale used when the plot gives none for role."""
    if role.is_position:
        if kind.is_discrete:
            return DiscretePositionScale(role)
        return ContinuousPositionScale(role)
    if kind.is_discrete:
        return DiscreteScale(role)
    if role in (Aesthetic.SHAPE, Aesthetic.LINETYPE):
        raise TypeMismatchError(f"A continuous variable cannot be mapped to {role.value}")
    return ContinuousScale(role)


def check_scale_kind(scale: Scale, kind: ValueKind, column: str) -> None:
    """Raise TypeMismatchError if a continuous scale is given categorical data."""
    if not scale.is_discrete and kind is ValueKind.CATEGORICAL:
        raise TypeMismatchError(
            f"Continuous {scale.aesthetic.value} scale cannot map categorical column {column!r}"
        )


# -----------------------------------------------------------------------------
# Breaks and labels
# -----------------------------------------------------------------------------


def pretty_breaks(lo: float, hi: float, n: int = 5) -> list[float]:
    """Round-number tick positions covering [lo, hi], about n of them."""
    if not (math.isfinite(lo) and math.isfinite(hi)):
        return []
    if hi <= lo:
        return [lo]
    raw = (hi - lo) / n
    mag = 10.0 ** math.floor(math.log10(raw))
    step = mag
    for m in (1.0, 2.0, 2.5, 5.0, 10.0):
        step = m * mag
        if step >= raw:
            break
    start = math.ceil(lo / step - 1e-9) * step
    values = np.arange(start, hi + step * 1e-9, step)
    return [float(v) for v in np.round(values, 10)]


def format_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:g}"


def format_category(value: Any) -> str:
    return "NA" if is_missing(value) else str(value)


# -----------------------------------------------------------------------------
# Trained scales (the result of looking at data)
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class DiscreteMap:
    """A DiscreteScale or DiscretePositionScale trained on observed categories.

    Attributes:
        domain: Categories in legend/axis order.
        visuals: Category -> visual value (positions 1..n for position scales).
        na_value: Value for categories outside the domain.
        labels: Category -> display label.
    """
    domain: tuple
    visuals: Mapping[Any, Any]
    na_value: Any
    labels: Mapping[Any, str]

    def map_value(self, value: Any) -> Any:
        if is_missing(value):
            return self.visuals.get(None, self.na_value)
        return self.visuals.get(value, self.na_value)

    def map(self, values: Sequence[Any]) -> list[Any]:
        return [self.map_value(v) for v in values]


def _palette(role: Aesthetic, n: int) -> list[Any]:
    if role in (Aesthetic.COLOR, Aesthetic.FILL):
        colors = plotly.colors.qualitative.Plotly
        return [colors[i % len(colors)] for i in range(n)]
    if role is Aesthetic.SHAPE:
        return [PLOTLY_SYMBOLS[i % len(PLOTLY_SYMBOLS)] for i in range(n)]
    if role is Aesthetic.LINETYPE:
        return [PLOTLY_DASHES[i % len(PLOTLY_DASHES)] for i in range(n)]
    lo, hi = DEFAULT_RANGES[role]
    if n == 1:
        return [hi]
    return [float(v) for v in np.linspace(lo, hi, n)]


def _ordered_domain(observed: Sequence[Any], limits: Optional[tuple]) -> tuple:
    if limits is not None:
        return tuple(limits)
    present = []
    seen = set()
    has_missing = False
    for v in observed:
        if is_missing(v):
            has_missing = True
        elif v not in seen:
            seen.add(v)
            present.append(v)
    ordered = sorted(present, key=lambda v: (str(type(v)), v))
    return tuple(ordered) + ((None,) if has_missing else ())


def train_discrete(scale: Union[DiscreteScale, DiscretePositionScale], observed: Sequence[Any]) -> DiscreteMap:
    """Train a discrete scale on observed values.

    Domain order: scale limits if given, else sorted categories with missing
    last. Position scales map the domain to 1..n.
    """
    domain = _ordered_domain(observed, scale.limits)
    labels = {v: scale.labels.get(v, format_category(v)) for v in domain}
    if isinstance(scale, DiscretePositionScale):
        visuals = {v: float(i + 1) for i, v in enumerate(domain)}
        return DiscreteMap(domain, MappingProxyType(visuals), float("nan"), MappingProxyType(labels))

    role = scale.aesthetic
    na_value = scale.na_value if scale.na_value is not None else DEFAULT_NA_VALUES[role]
    if isinstance(scale.values, Mapping):
        visuals = {v: scale.values[v] for v in domain if v in scale.values}
        unmatched = [format_category(v) for v in domain if v not in scale.values]
        if unmatched:
            logger.warning(f"No {role.value} value for {unmatched}; using na_value {na_value!r}")
        if scale.limits is None:
            # A manual mapping orders the legend by its own key order
            domain = tuple(v for v in scale.values if v in set(domain)) + tuple(
                v for v in domain if v not in scale.values
            )
            labels = {v: scale.labels.get(v, format_category(v)) for v in domain}
    else:
        palette = list(scale.values) if scale.values is not None else _palette(role, len(domain))
        if not palette:
            raise ValueError(f"Empty palette for {role.value} scale")
        present = [v for v in domain if v is not None]
        visuals = {v: palette[i % len(palette)] for i, v in enumerate(present)}
    return DiscreteMap(domain, MappingProxyType(visuals), na_value, MappingProxyType(labels))


@dataclass(frozen=True)
class ContinuousMap:
    """A ContinuousScale trained on observed numbers."""
    scale: ContinuousScale
    domain: tuple[float, float]
    na_value: Any

    def _unit(self, values: np.ndarray) -> np.ndarray:
        lo, hi = self.domain
        if hi == lo:
            return np.where(np.isfinite(values), 0.5, np.nan)
        u = (values - lo) / (hi - lo)
        return np.where((u >= -1e-12) & (u <= 1 + 1e-12), np.clip(u, 0.0, 1.0), np.nan)

    def map(self, values: Sequence[Any]) -> list[Any]:
        arr = np.asarray([np.nan if is_missing(v) else float(v) for v in values], dtype=float)
        unit = self._unit(arr)
        role = self.scale.aesthetic
        out: list[Any] = [self.na_value] * len(unit)
        ok = np.isfinite(unit)
        if not ok.any():
            return out
        if role in (Aesthetic.COLOR, Aesthetic.FILL):
            colorscale = self.scale.colorscale
            if not isinstance(colorscale, str):
                colorscale = list(colorscale)
            colors = plotly.colors.sample_colorscale(colorscale, [float(u) for u in unit[ok]])
            for i, c in zip(np.flatnonzero(ok), colors):
                out[i] = c
            return out
        lo, hi = self.scale.range if self.scale.range is not None else DEFAULT_RANGES[role]
        for i in np.flatnonzero(ok):
            out[i] = float(lo + unit[i] * (hi - lo))
        return out

    def breaks(self, n: int = 5) -> list[float]:
        return pretty_breaks(self.domain[0], self.domain[1], n)


def train_continuous(scale: ContinuousScale, observed: Sequence[Any]) -> ContinuousMap:
    arr = np.asarray([np.nan if is_missing(v) else float(v) for v in observed], dtype=float)
    finite = arr[np.isfinite(arr)]
    if scale.limits is not None:
        domain = (float(scale.limits[0]), float(scale.limits[1]))
    elif finite.size:
        domain = (float(finite.min()), float(finite.max()))
    else:
        domain = (0.0, 1.0)
    na_value = scale.na_value if scale.na_value is not None else DEFAULT_NA_VALUES[scale.aesthetic]
    return ContinuousMap(scale, domain, na_value)


def expand_range(lo: float, hi: float, expand: float, discrete: bool) -> tuple[float, float]:
    """Axis range with padding: additive units for discrete, fraction for continuous."""
    if not (math.isfinite(lo) and math.isfinite(hi)):
        return (0.0, 1.0)
    if discrete:
        return (lo - expand, hi + expand)
    if hi == lo:
        pad = abs(lo) * 0.05 if lo != 0 else 0.5
        return (lo - pad, hi + pad)
    pad = (hi - lo) * expand
    return (lo - pad, hi + pad)
