"""Backend-neutral render output.

A Scene is a tree of frozen dataclasses: panels holding ordered draw
primitives, axes, legends and titles. Every coordinate is a finite float in
panel data space (discrete categories sit at 1..n), so two renders of the
same plot compare equal with ``==``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union

from gogplot.plot.theme import Theme


@dataclass(frozen=True)
class PointPrimitive:
    x: float
    y: float
    color: str = "black"
    shape: str = "circle"
    size: float = 6.0
    alpha: float = 1.0
    layer: int = 0

    def flipped(self) -> "PointPrimitive":
        return replace(self, x=self.y, y=self.x)


@dataclass(frozen=True)
class RectPrimitive:
    xmin: float
    xmax: float
    ymin: float
    ymax: float
    fill: str = "#595959"
    color: Optional[str] = None
    alpha: float = 1.0
    layer: int = 0

    def flipped(self) -> "RectPrimitive":
        return replace(self, xmin=self.ymin, xmax=self.ymax, ymin=self.xmin, ymax=self.xmax)


@dataclass(frozen=True)
class PathPrimitive:
    """Polyline, or a filled polygon when fill is set and closed is True."""
    xs: tuple[float, ...]
    ys: tuple[float, ...]
    color: Optional[str] = "black"
    linetype: str = "solid"
    width: float = 1.5
    alpha: float = 1.0
    fill: Optional[str] = None
    closed: bool = False
    layer: int = 0

    def flipped(self) -> "PathPrimitive":
        return replace(self, xs=self.ys, ys=self.xs)


@dataclass(frozen=True)
class TextPrimitive:
    x: float
    y: float
    text: str
    color: str = "black"
    size: float = 11.0
    alpha: float = 1.0
    layer: int = 0

    def flipped(self) -> "TextPrimitive":
        return replace(self, x=self.y, y=self.x)


Primitive = Union[PointPrimitive, RectPrimitive, PathPrimitive, TextPrimitive]


@dataclass(frozen=True)
class Axis:
    """One panel axis: title, visible range and tick marks."""
    title: str
    range: tuple[float, float]
    breaks: tuple[float, ...] = ()
    labels: tuple[str, ...] = ()
    discrete: bool = False


@dataclass(frozen=True)
class Panel:
    index: int
    row: int
    col: int
    label: str
    x_axis: Axis
    y_axis: Axis
    primitives: tuple[Primitive, ...] = ()

    def of_type(self, kind: type) -> list:
        return [p for p in self.primitives if isinstance(p, kind)]

    def for_layer(self, layer: int) -> list[Primitive]:
        return [p for p in self.primitives if p.layer == layer]


@dataclass(frozen=True)
class LegendEntry:
    """One legend key: display label plus the visual value per merged role."""
    label: str
    values: tuple[tuple[str, Any], ...]

    def value(self, role: str, default: Any = None) -> Any:
        for name, value in self.values:
            if name == role:
                return value
        return default


@dataclass(frozen=True)
class Legend:
    """Legend for one mapped column; roles sharing column and title merge here.

    Attributes:
        title: Legend title.
        roles: Aesthetic names the legend explains (e.g. ("color", "shape")).
        entries: Keys in scale domain order (or at breaks for continuous scales).
        continuous: True for a gradient/range legend.
        geoms: Geom names of the contributing layers, used to pick key glyphs.
    """
    title: str
    roles: tuple[str, ...]
    entries: tuple[LegendEntry, ...]
    continuous: bool = False
    geoms: tuple[str, ...] = ()


@dataclass(frozen=True)
class Scene:
    panels: tuple[Panel, ...]
    legends: tuple[Legend, ...] = ()
    title: Optional[str] = None
    subtitle: Optional[str] = None
    caption: Optional[str] = None
    theme: Theme = field(default_factory=Theme)
    nrow: int = 1
    ncol: int = 1
    flipped: bool = False

    @property
    def primitives(self) -> list[Primitive]:
        """All primitives across panels, in panel then draw order."""
        return [p for panel in self.panels for p in panel.primitives]

    def panel(self, label: str) -> Panel:
        for panel in self.panels:
            if panel.label == label:
                return panel
        raise KeyError(f"No panel labelled {label!r}; panels are {[p.label for p in self.panels]}")
