"""Layer definitions: geometry, statistical transform and positional adjustment.

This module defines the Geom, Stat and Position enums, the immutable Layer
dataclass, and the geom_* constructors used to build layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from gogplot.errors import MissingAestheticError
from gogplot.plot.aes import Aesthetic, AestheticMapping, as_mapping

if TYPE_CHECKING:
    from gogplot.frame.table import Table


class Geom(Enum):
    """Enumeration of available geometries."""
    POINT = "point"
    LINE = "line"
    BAR = "bar"
    COL = "col"
    BOXPLOT = "boxplot"
    DENSITY = "density"
    SMOOTH = "smooth"
    TEXT = "text"


class Stat(Enum):
    """Enumeration of statistical transforms."""
    IDENTITY = "identity"
    COUNT = "count"
    BOXPLOT = "boxplot"
    DENSITY = "density"
    SMOOTH = "smooth"

    @property
    def computed_roles(self) -> frozenset:
        """Roles the stat produces itself, so the layer maps them without a column."""
        if self in (Stat.COUNT, Stat.DENSITY):
            return frozenset({Aesthetic.Y})
        return frozenset()


class Position(Enum):
    """Enumeration of positional adjustments."""
    IDENTITY = "identity"
    JITTER = "jitter"
    STACK = "stack"
    DODGE = "dodge"


# Aesthetics a geom needs after its stat has run (computed roles included)
REQUIRED_AESTHETICS: dict[Geom, frozenset] = {
    Geom.POINT: frozenset({Aesthetic.X, Aesthetic.Y}),
    Geom.LINE: frozenset({Aesthetic.X, Aesthetic.Y}),
    Geom.BAR: frozenset({Aesthetic.X, Aesthetic.Y}),
    Geom.COL: frozenset({Aesthetic.X, Aesthetic.Y}),
    Geom.BOXPLOT: frozenset({Aesthetic.X, Aesthetic.Y}),
    Geom.DENSITY: frozenset({Aesthetic.X, Aesthetic.Y}),
    Geom.SMOOTH: frozenset({Aesthetic.X, Aesthetic.Y}),
    Geom.TEXT: frozenset({Aesthetic.X, Aesthetic.Y, Aesthetic.LABEL}),
}

# Default stat per geom
DEFAULT_STAT: dict[Geom, Stat] = {
    Geom.POINT: Stat.IDENTITY,
    Geom.LINE: Stat.IDENTITY,
    Geom.BAR: Stat.COUNT,
    Geom.COL: Stat.IDENTITY,
    Geom.BOXPLOT: Stat.BOXPLOT,
    Geom.DENSITY: Stat.DENSITY,
    Geom.SMOOTH: Stat.SMOOTH,
    Geom.TEXT: Stat.IDENTITY,
}


@dataclass(frozen=True)
class Layer:
    """One geometric layer of a plot.

    Attributes:
        geom: Geometry drawn by the layer.
        mapping: Layer mapping; overrides/extends the plot-level mapping.
        stat: Statistical transform applied before drawing.
        position: Positional adjustment applied after the stat.
        data: Optional table replacing the plot table for this layer.
        params: Stat/geom/position parameters (e.g. span, bw, seed, width).
        show_legend: If False, the layer's mapped aesthetics add no legend.
    """
    geom: Geom
    mapping: AestheticMapping = field(default_factory=AestheticMapping)
    stat: Optional[Stat] = None
    position: Position = Position.IDENTITY
    data: Optional["Table"] = None
    params: Mapping[str, Any] = field(default_factory=dict)
    show_legend: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "geom", Geom(self.geom))
        object.__setattr__(self, "stat", Stat(self.stat) if self.stat is not None else DEFAULT_STAT[self.geom])
        object.__setattr__(self, "position", Position(self.position))
        object.__setattr__(self, "mapping", as_mapping(self.mapping))
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def effective_mapping(self, plot_mapping: AestheticMapping) -> AestheticMapping:
        return plot_mapping.merged(self.mapping)

    def maps(self, role: Aesthetic, plot_mapping: AestheticMapping) -> bool:
        """True if this layer binds role to a column or computes it in its stat."""
        return self.effective_mapping(plot_mapping).maps(role) or role in self.stat.computed_roles

    def check_required(self, plot_mapping: AestheticMapping, *, index: int = 0) -> None:
        """Raise MissingAestheticError if a required role is neither mapped nor set."""
        mapping = self.effective_mapping(plot_mapping)
        have = set(mapping.columns) | set(mapping.constants) | set(self.stat.computed_roles)
        missing = REQUIRED_AESTHETICS[self.geom] - have
        if missing:
            raise MissingAestheticError(
                f"Layer {index} (geom_{self.geom.value}) requires aesthetics "
                f"{sorted(a.value for a in missing)}"
            )

    def param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)

    def with_params(self, **params: Any) -> "Layer":
        merged = dict(self.params)
        merged.update(params)
        return replace(self, params=merged)


def _make_layer(
    geom: Geom,
    mapping: Union[AestheticMapping, Mapping[str, str], None],
    *,
    data: Optional["Table"],
    stat: Optional[Union[Stat, str]] = None,
    position: Union[Position, str] = Position.IDENTITY,
    show_legend: bool = True,
    kwargs: dict[str, Any],
) -> Layer:
    """Split keyword arguments into aesthetic constants and layer params."""
    constants: dict[Aesthetic, Any] = {}
    params: dict[str, Any] = {}
    for key, value in kwargs.items():
        try:
            constants[Aesthetic.parse(key)] = value
        except ValueError:
            params[key] = value
    layer_mapping = as_mapping(mapping).merged(AestheticMapping(constants=constants))
    return Layer(
        geom=geom,
        mapping=layer_mapping,
        stat=Stat(stat) if stat is not None else None,
        position=Position(position),
        data=data,
        params=params,
        show_legend=show_legend,
    )


def geom_point(mapping=None, *, data=None, position="identity", show_legend=True, **kwargs) -> Layer:
    """Scatter points. Keyword aesthetics (color="red", alpha=0.5) become constants."""
    return _make_layer(Geom.POINT, mapping, data=data, position=position,
                       show_legend=show_legend, kwargs=kwargs)


def geom_jitter(mapping=None, *, data=None, width=None, height=None, seed=None,
                show_legend=True, **kwargs) -> Layer:
    """Points with bounded random offsets; pass seed for reproducible offsets."""
    kwargs.update({"width": width, "height": height, "seed": seed})
    return _make_layer(Geom.POINT, mapping, data=data, position=Position.JITTER,
                       show_legend=show_legend, kwargs=kwargs)


def geom_line(mapping=None, *, data=None, show_legend=True, **kwargs) -> Layer:
    """Lines connecting observations in x order within each group."""
    return _make_layer(Geom.LINE, mapping, data=data, show_legend=show_legend, kwargs=kwargs)


def geom_bar(mapping=None, *, data=None, position="stack", show_legend=True, **kwargs) -> Layer:
    """Bars whose height is the number of rows at each x (count stat)."""
    return _make_layer(Geom.BAR, mapping, data=data, position=position,
                       show_legend=show_legend, kwargs=kwargs)


def geom_col(mapping=None, *, data=None, position="stack", show_legend=True, **kwargs) -> Layer:
    """Bars whose height is the y value (identity stat)."""
    return _make_layer(Geom.COL, mapping, data=data, position=position,
                       show_legend=show_legend, kwargs=kwargs)


def geom_boxplot(mapping=None, *, data=None, outliers=True, show_legend=True, **kwargs) -> Layer:
    """Box and whiskers per x category; outliers beyond 1.5 x IQR drawn unless outliers=False."""
    kwargs["outliers"] = outliers
    return _make_layer(Geom.BOXPLOT, mapping, data=data, position=Position.DODGE,
                       show_legend=show_legend, kwargs=kwargs)


def geom_density(mapping=None, *, data=None, bw="silverman", n=None, scale="group",
                 show_legend=True, **kwargs) -> Layer:
    """Kernel density curve of x per group.

    Args:
        bw: scipy gaussian_kde bandwidth ("silverman", "scott" or a number).
        n: Number of evaluation points (default from RenderOptions).
        scale: "group" normalizes each curve to area 1; "total" weights each
            curve by its group's share of rows.
    """
    if scale not in ("group", "total"):
        raise ValueError(f"scale must be 'group' or 'total', got {scale!r}")
    kwargs.update({"bw": bw, "n": n, "scale": scale})
    return _make_layer(Geom.DENSITY, mapping, data=data, show_legend=show_legend, kwargs=kwargs)


def geom_smooth(mapping=None, *, data=None, method="loess", span=None, se=True, level=None,
                show_legend=True, **kwargs) -> Layer:
    """Smoothed conditional mean with optional confidence band.

    Args:
        method: "loess" (local regression) or "lm" (straight line).
        span: Loess neighbourhood fraction (default from RenderOptions).
        se: Draw the confidence band.
        level: Confidence level (default from RenderOptions).
    """
    if method not in ("loess", "lm"):
        raise ValueError(f"method must be 'loess' or 'lm', got {method!r}")
    kwargs.update({"method": method, "span": span, "se": se, "level": level})
    return _make_layer(Geom.SMOOTH, mapping, data=data, show_legend=show_legend, kwargs=kwargs)


def geom_text(mapping=None, *, data=None, nudge_x=0.0, nudge_y=0.0, position="identity",
              show_legend=False, **kwargs) -> Layer:
    """Text labels at (x, y)."""
    kwargs.update({"nudge_x": nudge_x, "nudge_y": nudge_y})
    return _make_layer(Geom.TEXT, mapping, data=data, position=position,
                       show_legend=show_legend, kwargs=kwargs)
