"""Plotly figure generation from a rendered Scene.

scene_to_figure() lays panels out with make_subplots, draws rectangles as
layout shapes and points/paths/text as Scatter traces, and turns Scene
legends into legend-only traces. scene_to_dict() returns the figure
dictionary, ready for JSON or a plotly.js front end.
"""

from __future__ import annotations

from typing import Any, Optional

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from gogplot.plot.scene import (
    Legend,
    Panel,
    PathPrimitive,
    PointPrimitive,
    RectPrimitive,
    Scene,
    TextPrimitive,
)
from gogplot.plot.theme import Theme
from gogplot.utils.logging import get_logger

logger = get_logger(__name__)

# Geoms whose legend key is drawn as a line rather than a marker
_LINE_KEY_GEOMS = {"line", "density", "smooth"}
# Geoms whose legend key is a filled square
_FILL_KEY_GEOMS = {"bar", "col", "boxplot"}


def _legend_layout(theme: Theme) -> dict[str, Any]:
    position = theme.legend_position
    font = dict(size=theme.resolved_legend_text_size)
    if position == "left":
        return dict(x=-0.15, xanchor="right", y=1, yanchor="top", font=font)
    if position == "top":
        return dict(orientation="h", x=0.5, xanchor="center", y=1.08, yanchor="bottom", font=font)
    if position == "bottom":
        return dict(orientation="h", x=0.5, xanchor="center", y=-0.15, yanchor="top", font=font)
    return dict(font=font)


def _points_trace(points: list[PointPrimitive]) -> go.Scatter:
    return go.Scatter(
        x=[p.x for p in points],
        y=[p.y for p in points],
        mode="markers",
        marker=dict(
            color=[p.color for p in points],
            symbol=[p.shape for p in points],
            size=[p.size for p in points],
            opacity=[p.alpha for p in points],
        ),
        showlegend=False,
        hoverinfo="x+y",
    )


def _path_trace(path: PathPrimitive) -> go.Scatter:
    xs, ys = list(path.xs), list(path.ys)
    if path.closed and xs:
        xs.append(xs[0])
        ys.append(ys[0])
    line = dict(color=path.color, dash=path.linetype, width=path.width) if path.color else dict(width=0)
    trace = go.Scatter(x=xs, y=ys, mode="lines", line=line, opacity=path.alpha, showlegend=False)
    if path.closed and path.fill is not None:
        trace.update(fill="toself", fillcolor=path.fill)
    return trace


def _texts_trace(texts: list[TextPrimitive]) -> go.Scatter:
    return go.Scatter(
        x=[t.x for t in texts],
        y=[t.y for t in texts],
        text=[t.text for t in texts],
        mode="text",
        textfont=dict(color=[t.color for t in texts], size=[t.size for t in texts]),
        showlegend=False,
        hoverinfo="text",
    )


def _add_panel(fig: go.Figure, panel: Panel) -> None:
    row, col = panel.row + 1, panel.col + 1
    by_layer: dict[int, list] = {}
    for prim in panel.primitives:
        by_layer.setdefault(prim.layer, []).append(prim)

    for layer in sorted(by_layer):
        prims = by_layer[layer]
        for rect in (p for p in prims if isinstance(p, RectPrimitive)):
            fig.add_shape(
                type="rect",
                x0=rect.xmin, x1=rect.xmax, y0=rect.ymin, y1=rect.ymax,
                fillcolor=rect.fill,
                opacity=rect.alpha,
                line=dict(color=rect.color, width=1) if rect.color else dict(width=0),
                layer="above",
                row=row, col=col,
            )
        for path in (p for p in prims if isinstance(p, PathPrimitive)):
            fig.add_trace(_path_trace(path), row=row, col=col)
        points = [p for p in prims if isinstance(p, PointPrimitive)]
        if points:
            fig.add_trace(_points_trace(points), row=row, col=col)
        texts = [p for p in prims if isinstance(p, TextPrimitive)]
        if texts:
            fig.add_trace(_texts_trace(texts), row=row, col=col)


def _style_axes(fig: go.Figure, scene: Scene, panel: Panel) -> None:
    theme = scene.theme
    row, col = panel.row + 1, panel.col + 1
    common = dict(
        showgrid=theme.show_grid,
        gridcolor=theme.grid_color,
        zeroline=False,
        tickfont=dict(size=theme.resolved_axis_text_size),
        title_font=dict(size=theme.resolved_axis_title_size),
        row=row,
        col=col,
    )
    fig.update_xaxes(
        range=list(panel.x_axis.range),
        tickvals=list(panel.x_axis.breaks),
        ticktext=list(panel.x_axis.labels),
        title_text=panel.x_axis.title if panel.row == scene.nrow - 1 or len(scene.panels) == 1 else None,
        **common,
    )
    fig.update_yaxes(
        range=list(panel.y_axis.range),
        tickvals=list(panel.y_axis.breaks),
        ticktext=list(panel.y_axis.labels),
        title_text=panel.y_axis.title if panel.col == 0 else None,
        **common,
    )


def _legend_traces(legend: Legend) -> list[go.Scatter]:
    geoms = set(legend.geoms)
    traces = []
    for i, entry in enumerate(legend.entries):
        color = entry.value("color") or entry.value("fill") or "black"
        if geoms and geoms <= _LINE_KEY_GEOMS:
            mode = "lines"
            marker = None
            line = dict(color=color, dash=entry.value("linetype", "solid"), width=2)
        else:
            mode = "markers"
            symbol = "square" if geoms and geoms <= _FILL_KEY_GEOMS else entry.value("shape", "circle")
            marker = dict(color=color, symbol=symbol, size=entry.value("size", 10),
                          opacity=entry.value("alpha", 1.0))
            line = None
        trace = go.Scatter(
            x=[None], y=[None], mode=mode, name=entry.label,
            legendgroup=legend.title, showlegend=True,
        )
        if marker is not None:
            trace.update(marker=marker)
        if line is not None:
            trace.update(line=line)
        if i == 0:
            trace.update(legendgrouptitle_text=legend.title)
        traces.append(trace)
    return traces


def _title_text(scene: Scene) -> Optional[str]:
    if scene.title is None and scene.subtitle is None:
        return None
    text = scene.title or ""
    if scene.subtitle:
        text += f"<br><sup>{scene.subtitle}</sup>"
    return text


def scene_to_figure(scene: Scene) -> go.Figure:
    """Build a Plotly Figure that draws scene."""
    theme = scene.theme
    titles = [""] * (scene.nrow * scene.ncol)
    for panel in scene.panels:
        titles[panel.row * scene.ncol + panel.col] = panel.label
    fig = make_subplots(
        rows=scene.nrow,
        cols=scene.ncol,
        subplot_titles=titles if any(titles) else None,
        horizontal_spacing=0.06,
        vertical_spacing=0.1,
    )
    if any(titles):
        fig.update_annotations(font_size=theme.resolved_strip_text_size, bgcolor=theme.strip_background)

    for panel in scene.panels:
        _add_panel(fig, panel)
        _style_axes(fig, scene, panel)

    for legend in scene.legends:
        for trace in _legend_traces(legend):
            fig.add_trace(trace, row=1, col=1)

    layout: dict[str, Any] = dict(
        width=theme.width,
        height=theme.height,
        font=dict(family=theme.font_family, size=theme.base_size),
        plot_bgcolor=theme.panel_background,
        paper_bgcolor=theme.plot_background,
        margin=dict(l=60, r=20, t=60 if scene.title or scene.subtitle else 30, b=60),
        showlegend=bool(scene.legends) and theme.legend_position != "none",
        legend=_legend_layout(theme),
    )
    title = _title_text(scene)
    if title is not None:
        layout["title"] = dict(text=title, font=dict(size=theme.resolved_title_size))
    fig.update_layout(**layout)
    if scene.caption:
        fig.add_annotation(
            text=scene.caption, xref="paper", yref="paper", x=1, y=-0.12,
            xanchor="right", yanchor="top", showarrow=False,
            font=dict(size=theme.resolved_axis_text_size),
        )
    logger.debug(f"scene_to_figure: {len(scene.panels)} panel(s), {len(fig.data)} trace(s)")
    return fig


def scene_to_dict(scene: Scene) -> dict:
    """Plotly figure dictionary for scene."""
    return scene_to_figure(scene).to_dict()
