"""PlotSpec value type and its builder operations.

Every builder returns a new PlotSpec; the original is never modified. The
``+`` operator dispatches on the component type, so

    new_plot(table, aes(x="age", y="vtl")) + geom_point() + labs(title="VTL")

is the same as chaining add_layer and with_labels.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence, Union

import pandas as pd

from gogplot.errors import UnmappedAestheticError
from gogplot.frame.table import Table
from gogplot.plot.aes import Aesthetic, AestheticMapping, as_mapping
from gogplot.plot.facet import FacetSpec
from gogplot.plot.layers import Layer
from gogplot.plot.scales import Scale
from gogplot.plot.theme import Labels, Theme, ThemeUpdate
from gogplot.utils.logging import get_logger

if TYPE_CHECKING:
    from gogplot.plot.render import RenderOptions
    from gogplot.plot.scene import Scene

logger = get_logger(__name__)


class Coord(Enum):
    """Coordinate system."""
    CARTESIAN = "cartesian"
    FLIP = "flip"


def coord_flip() -> Coord:
    return Coord.FLIP


def coord_cartesian() -> Coord:
    return Coord.CARTESIAN


@dataclass(frozen=True)
class PlotSpec:
    """Complete, immutable description of one plot.

    Attributes:
        table: Source data for layers without their own data.
        mapping: Plot-level aesthetic mapping inherited by every layer.
        layers: Layers in draw order.
        scales: Explicit scale per role; roles absent here use defaults.
        facet: Small-multiples partition, if any.
        coord: Cartesian or flipped.
        labels: Titles and axis/legend title overrides.
        theme: Styling.
    """
    table: Table
    mapping: AestheticMapping = field(default_factory=AestheticMapping)
    layers: tuple[Layer, ...] = ()
    scales: Mapping[Aesthetic, Scale] = field(default_factory=dict)
    facet: Optional[FacetSpec] = None
    coord: Coord = Coord.CARTESIAN
    labels: Labels = field(default_factory=Labels)
    theme: Theme = field(default_factory=Theme)

    def __post_init__(self) -> None:
        object.__setattr__(self, "layers", tuple(self.layers))
        object.__setattr__(self, "scales", MappingProxyType(dict(self.scales)))

    @property
    def flipped(self) -> bool:
        return self.coord is Coord.FLIP

    def layer_table(self, layer: Layer) -> Table:
        return layer.data if layer.data is not None else self.table

    def __add__(self, component: Any) -> "PlotSpec":
        if isinstance(component, Layer):
            return add_layer(self, component)
        if isinstance(component, Scale):
            return with_scale(self, component.aesthetic, component)
        if isinstance(component, FacetSpec):
            return with_facet(self, component)
        if isinstance(component, Coord):
            return replace(self, coord=component)
        if isinstance(component, Labels):
            return with_labels(self, component)
        if isinstance(component, (Theme, ThemeUpdate)):
            return with_theme(self, component)
        if isinstance(component, (list, tuple)):
            spec = self
            for item in component:
                spec = spec + item
            return spec
        return NotImplemented

    def render(self, options: Optional["RenderOptions"] = None) -> "Scene":
        from gogplot.plot.render import render

        return render(self, options)


def new_plot(
    table: Union[Table, pd.DataFrame],
    mapping: Union[AestheticMapping, Mapping[str, str], None] = None,
    *,
    theme: Optional[Theme] = None,
) -> PlotSpec:
    """
    Start a plot from a table and a default mapping.

    Args:
        table: Source data (a DataFrame is wrapped in a Table).
        mapping: aes(...) or a plain {role: column} dict.
        theme: Starting theme; default Theme().

    Raises:
        SchemaError: A mapped column is not in the table.
        TypeMismatchError: shape/linetype mapped to a numeric column.
    """
    if isinstance(table, pd.DataFrame):
        table = Table(table)
    mapping = as_mapping(mapping)
    mapping.validate(table.schema, context="plot mapping")
    return PlotSpec(table=table, mapping=mapping, theme=theme if theme is not None else Theme())


def add_layer(spec: PlotSpec, layer: Layer) -> PlotSpec:
    """
    Append a layer after validating it against its data.

    Raises:
        SchemaError: The merged mapping names a column the layer's data lacks.
        MissingAestheticError: The geom's required roles are not all bound.
        TypeMismatchError: shape/linetype mapped to a numeric column.
    """
    index = len(spec.layers)
    data = spec.layer_table(layer)
    mapping = layer.effective_mapping(spec.mapping)
    computed = layer.stat.computed_roles
    to_check = AestheticMapping(
        columns={r: c for r, c in mapping.columns.items() if r not in computed},
    )
    to_check.validate(data.schema, context=f"layer {index} (geom_{layer.geom.value})")
    layer.check_required(spec.mapping, index=index)
    logger.debug(
        f"add_layer {index} geom={layer.geom.value} stat={layer.stat.value} position={layer.position.value}"
    )
    return replace(spec, layers=spec.layers + (layer,))


def with_scale(spec: PlotSpec, aesthetic: Union[Aesthetic, str], scale: Scale) -> PlotSpec:
    """
    Override the default scale for one role.

    Raises:
        UnmappedAestheticError: No layer binds the role to a column or computes it.
    """
    role = Aesthetic.parse(aesthetic)
    if scale.aesthetic is not role:
        scale = replace(scale, aesthetic=role)
    if not any(layer.maps(role, spec.mapping) for layer in spec.layers):
        raise UnmappedAestheticError(
            f"Cannot set a {role.value} scale: no layer maps {role.value!r} to a column"
        )
    scales = dict(spec.scales)
    scales[role] = scale
    return replace(spec, scales=scales)


def with_facet(
    spec: PlotSpec,
    variables: Union[FacetSpec, str, Sequence[str]],
    *,
    ncol: Optional[int] = None,
    scales: str = "fixed",
) -> PlotSpec:
    """
    Split the plot into panels, one per distinct combination of variables.

    Raises:
        SchemaError: A facet variable is not a column of the plot table.
    """
    facet = variables if isinstance(variables, FacetSpec) else FacetSpec(variables, ncol=ncol, scales=scales)
    spec.table.require_columns(facet.variables, context="facet")
    return replace(spec, facet=facet)


def with_coord_flip(spec: PlotSpec) -> PlotSpec:
    """Swap the rendered x and y axes; the mapping is unchanged."""
    return replace(spec, coord=Coord.FLIP)


def with_labels(spec: PlotSpec, labels: Labels) -> PlotSpec:
    return replace(spec, labels=spec.labels.merged(labels))


def with_theme(spec: PlotSpec, theme: Union[Theme, ThemeUpdate]) -> PlotSpec:
    """Replace the theme (Theme) or change some of its settings (ThemeUpdate)."""
    if isinstance(theme, ThemeUpdate):
        return replace(spec, theme=theme.apply(spec.theme))
    return replace(spec, theme=theme)
