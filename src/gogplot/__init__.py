"""
gogplot: a small grammar-of-graphics plotting engine with a tidy-table layer.

This package provides:
- Table: immutable tidy table with filter/mutate/group_aggregate/reshape verbs
- new_plot, geom_*, scale_*, facet_wrap, labs, theme: declarative plot building
- render: PlotSpec -> backend-neutral Scene; scene_to_figure: Scene -> Plotly
- Logging utilities for library and script use

For logging configuration in standalone scripts:
    ```python
    from gogplot.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```

When used as a library, logging is handled by the parent application's
configuration.
"""

import logging

from gogplot.utils.logging import configure_logging, get_logger

from gogplot.config import PlotConfig, PlotConfigData
from gogplot.errors import (
    DuplicateKeyError,
    EmptyGroupError,
    GogplotError,
    MissingAestheticError,
    SchemaError,
    TypeMismatchError,
    UnmappedAestheticError,
)
from gogplot.frame import REDUCERS, Reducer, Row, Table, ValueKind, is_missing
from gogplot.plot import (
    RenderOptions,
    Scene,
    aes,
    coord_flip,
    facet_wrap,
    geom_bar,
    geom_boxplot,
    geom_col,
    geom_density,
    geom_jitter,
    geom_line,
    geom_point,
    geom_smooth,
    geom_text,
    labs,
    new_plot,
    render,
    scale_color_manual,
    scale_fill_manual,
    scene_to_dict,
    scene_to_figure,
    theme,
)

# Ensure gogplot logger has NullHandler so logs don't propagate to root
# when no application has configured logging. Scripts call
# configure_logging() to replace this with a real handler.
_logger = logging.getLogger("gogplot")
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())

__all__ = [
    "DuplicateKeyError",
    "EmptyGroupError",
    "GogplotError",
    "MissingAestheticError",
    "PlotConfig",
    "PlotConfigData",
    "REDUCERS",
    "Reducer",
    "Row",
    "SchemaError",
    "Table",
    "TypeMismatchError",
    "UnmappedAestheticError",
    "ValueKind",
    "configure_logging",
    "get_logger",
    "aes",
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
    "is_missing",
    "labs",
    "new_plot",
    "render",
    "RenderOptions",
    "scale_color_manual",
    "scale_fill_manual",
    "Scene",
    "scene_to_dict",
    "scene_to_figure",
    "theme",
]

__version__ = "0.1.0"
