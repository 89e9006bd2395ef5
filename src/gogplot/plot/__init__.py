"""Grammar-of-graphics plot builder, renderer and Plotly backend."""

from gogplot.plot.aes import Aesthetic, AestheticMapping, aes
from gogplot.plot.facet import FacetSpec, facet_wrap
from gogplot.plot.layers import (
    Geom,
    Layer,
    Position,
    Stat,
    geom_bar,
    geom_boxplot,
    geom_col,
    geom_density,
    geom_jitter,
    geom_line,
    geom_point,
    geom_smooth,
    geom_text,
)
from gogplot.plot.plotly_backend import scene_to_dict, scene_to_figure
from gogplot.plot.render import RenderOptions, render
from gogplot.plot.scales import (
    ContinuousPositionScale,
    ContinuousScale,
    DiscretePositionScale,
    DiscreteScale,
    Scale,
    scale_alpha,
    scale_color_continuous,
    scale_color_gradient,
    scale_color_manual,
    scale_fill_gradient,
    scale_fill_manual,
    scale_linetype_manual,
    scale_manual,
    scale_shape_manual,
    scale_size,
    scale_x_continuous,
    scale_x_discrete,
    scale_x_log10,
    scale_y_continuous,
    scale_y_discrete,
    scale_y_log10,
)
from gogplot.plot.scene import (
    Axis,
    Legend,
    LegendEntry,
    Panel,
    PathPrimitive,
    PointPrimitive,
    RectPrimitive,
    Scene,
    TextPrimitive,
)
from gogplot.plot.spec import (
    Coord,
    PlotSpec,
    add_layer,
    coord_cartesian,
    coord_flip,
    new_plot,
    with_coord_flip,
    with_facet,
    with_labels,
    with_scale,
    with_theme,
)
from gogplot.plot.theme import Labels, Theme, ThemeUpdate, labs, theme, theme_bw, theme_gray, theme_minimal

__all__ = [
    "Aesthetic",
    "AestheticMapping",
    "Axis",
    "ContinuousPositionScale",
    "ContinuousScale",
    "Coord",
    "DiscretePositionScale",
    "DiscreteScale",
    "FacetSpec",
    "Geom",
    "Labels",
    "Layer",
    "Legend",
    "LegendEntry",
    "Panel",
    "PathPrimitive",
    "PlotSpec",
    "PointPrimitive",
    "Position",
    "RectPrimitive",
    "RenderOptions",
    "Scale",
    "Scene",
    "Stat",
    "TextPrimitive",
    "Theme",
    "ThemeUpdate",
    "add_layer",
    "aes",
    "coord_cartesian",
    "coord_flip",
    "facet_wrap",
    "geom_bar",
    "geom_boxplot",
    "geom_col",
    "geom_density",
    "geom_jitter",
    "geom_line",
    "geom_point",
    "geom_smooth",
    "geom_text",
    "labs",
    "new_plot",
    "render",
    "scale_alpha",
    "scale_color_continuous",
    "scale_color_gradient",
    "scale_color_manual",
    "scale_fill_gradient",
    "scale_fill_manual",
    "scale_linetype_manual",
    "scale_manual",
    "scale_shape_manual",
    "scale_size",
    "scale_x_continuous",
    "scale_x_discrete",
    "scale_x_log10",
    "scale_y_continuous",
    "scale_y_discrete",
    "scale_y_log10",
    "scene_to_dict",
    "scene_to_figure",
    "theme",
    "theme_bw",
    "theme_gray",
    "theme_minimal",
    "with_coord_flip",
    "with_facet",
    "with_labels",
    "with_scale",
    "with_theme",
]
