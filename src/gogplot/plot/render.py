"""Render a PlotSpec into a Scene.

render() is a pure function of its inputs. For each layer it:

  1. Builds an aesthetic frame (one pandas column per mapped role plus the
     panel index), repeating layers whose data lacks the facet variables.
  2. Drops rows missing a required x/y value.
  3. Maps discrete x/y to 1..n and transforms continuous x/y (limits, trans).
  4. Splits rows into groups by the discrete non-position roles.
  5. Runs the layer's stat per panel and group.
  6. Applies the positional adjustment.

It then trains the shared scales, maps visual roles, builds primitives per
panel (optionally on a thread pool), and assembles axes and legends.
"""

from __future__ import annotations

import concurrent.futures
import math
from dataclasses import dataclass
from typing import Any, Optional, Union

import numpy as np
import pandas as pd

from gogplot.errors import SchemaError, TypeMismatchError
from gogplot.frame.table import ValueKind, is_missing
from gogplot.plot import positions, stats
from gogplot.plot.aes import GROUPING_ROLES, Aesthetic, AestheticMapping
from gogplot.plot.facet import PanelSlot, grid_shape, layout_panels, normalize_key, panel_keys
from gogplot.plot.layers import Geom, Layer, Position, Stat
from gogplot.plot.scales import (
    ContinuousMap,
    ContinuousPositionScale,
    DiscreteMap,
    DiscretePositionScale,
    Scale,
    check_scale_kind,
    default_scale,
    expand_range,
    format_category,
    format_number,
    pretty_breaks,
    train_continuous,
    train_discrete,
)
from gogplot.plot.scene import (
    Axis,
    Legend,
    LegendEntry,
    Panel,
    PathPrimitive,
    PointPrimitive,
    Primitive,
    RectPrimitive,
    Scene,
    TextPrimitive,
)
from gogplot.plot.spec import PlotSpec
from gogplot.utils.logging import get_logger

logger = get_logger(__name__)

X, Y = Aesthetic.X, Aesthetic.Y
COLOR, FILL, SHAPE = Aesthetic.COLOR, Aesthetic.FILL, Aesthetic.SHAPE
SIZE, ALPHA, LINETYPE, LABEL = Aesthetic.SIZE, Aesthetic.ALPHA, Aesthetic.LINETYPE, Aesthetic.LABEL

BAR_WIDTH = 0.9
BOX_WIDTH = 0.75

# Frame columns that hold positions on each axis after stats and adjustments
_AXIS_COLUMNS = {
    X: ("x", "xmin", "xmax"),
    Y: ("y", "ymin", "ymax", "lower", "q1", "median", "q3", "upper"),
}

# Visual values used when a role is neither mapped nor set
GEOM_DEFAULTS: dict[Geom, dict[Aesthetic, Any]] = {
    Geom.POINT: {COLOR: "black", SHAPE: "circle", SIZE: 6.0, ALPHA: 1.0},
    Geom.LINE: {COLOR: "black", LINETYPE: "solid", SIZE: 1.5, ALPHA: 1.0},
    Geom.BAR: {FILL: "#595959", COLOR: None, ALPHA: 1.0},
    Geom.COL: {FILL: "#595959", COLOR: None, ALPHA: 1.0},
    Geom.BOXPLOT: {FILL: "white", COLOR: "#333333", SHAPE: "circle", SIZE: 6.0, ALPHA: 1.0, LINETYPE: "solid"},
    Geom.DENSITY: {COLOR: "black", FILL: None, LINETYPE: "solid", SIZE: 1.5, ALPHA: 1.0},
    Geom.SMOOTH: {COLOR: "#3366FF", FILL: "#999999", LINETYPE: "solid", SIZE: 2.0, ALPHA: 0.4},
    Geom.TEXT: {COLOR: "black", SIZE: 11.0, ALPHA: 1.0},
}


@dataclass(frozen=True)
class RenderOptions:
    """Defaults for stat parameters a layer leaves unset, plus execution options.

    Attributes:
        jitter_seed: Seed for jitter layers without their own seed (None = random).
        density_bw: gaussian_kde bandwidth rule or factor.
        density_n: Density evaluation points per group.
        smooth_span: Loess neighbourhood fraction.
        smooth_level: Confidence level of smooth bands.
        smooth_n: Smooth evaluation points per group.
        parallel: Build panel primitives on a thread pool.
        max_workers: Thread pool size (None = executor default).
    """
    jitter_seed: Optional[int] = 0
    density_bw: Union[str, float] = "silverman"
    density_n: int = stats.DEFAULT_DENSITY_N
    smooth_span: float = stats.DEFAULT_SPAN
    smooth_level: float = stats.DEFAULT_LEVEL
    smooth_n: int = stats.DEFAULT_SMOOTH_N
    parallel: bool = False
    max_workers: Optional[int] = None

    def __post_init__(self) -> None:
        if int(self.density_n) < 2:
            raise ValueError(f"density_n must be >= 2, got {self.density_n!r}")
        if int(self.smooth_n) < 2:
            raise ValueError(f"smooth_n must be >= 2, got {self.smooth_n!r}")
        if not 0 < self.smooth_span:
            raise ValueError(f"smooth_span must be > 0, got {self.smooth_span!r}")
        if not 0 < self.smooth_level < 1:
            raise ValueError(f"smooth_level must be in (0, 1), got {self.smooth_level!r}")


@dataclass
class _LayerFrame:
    """Working state of one layer during a render."""
    index: int
    layer: Layer
    mapping: AestheticMapping
    kinds: dict[Aesthetic, ValueKind]
    df: pd.DataFrame

    @property
    def geom(self) -> Geom:
        return self.layer.geom

    def visual_roles(self) -> list[Aesthetic]:
        return [r for r in self.kinds if not r.is_position and r is not LABEL]

    def drop(self, mask: np.ndarray, reason: str) -> None:
        n = int(np.sum(mask))
        if n:
            logger.warning(f"Removed {n} row(s) {reason} (layer {self.index}, geom_{self.geom.value})")
            self.df = self.df[~mask].reset_index(drop=True)


# -----------------------------------------------------------------------------
# Step 1-3: aesthetic frames and position scales
# -----------------------------------------------------------------------------


def _build_frame(spec: PlotSpec, index: int, layer: Layer, slot_of: dict[tuple, int], n_panels: int) -> _LayerFrame:
    table = spec.layer_table(layer)
    mapping = layer.effective_mapping(spec.mapping)
    computed = layer.stat.computed_roles
    columns = {role: col for role, col in mapping.columns.items() if role not in computed}
    table.require_columns(columns.values(), context=f"layer {index}")
    src = table.to_pandas()
    df = pd.DataFrame({role.value: src[col] for role, col in columns.items()}, index=src.index)
    kinds = {role: table.kind(col) for role, col in columns.items()}
    for role in (X, Y):
        if role in mapping.constants and role not in columns and role not in computed:
            value = mapping.constant(role)
            df[role.value] = value
            kinds[role] = ValueKind.CATEGORICAL if isinstance(value, str) else ValueKind.NUMERIC

    facet = spec.facet
    if facet is None:
        df["PANEL"] = 0
    else:
        present = [v for v in facet.variables if v in table.schema]
        if not present:
            df = pd.concat([df.assign(PANEL=p) for p in range(n_panels)], ignore_index=True)
        elif len(present) < len(facet.variables):
            missing = [v for v in facet.variables if v not in table.schema]
            raise SchemaError(f"Layer {index} data has facet variables {present} but lacks {missing}")
        else:
            keys = zip(*(src[v].tolist() for v in facet.variables))
            df["PANEL"] = [slot_of[normalize_key(k)] for k in keys]
    return _LayerFrame(index, layer, mapping, kinds, df.reset_index(drop=True))


def _drop_missing_positions(frame: _LayerFrame) -> None:
    roles = [r.value for r in (X, Y) if r in frame.kinds]
    if roles:
        frame.drop(frame.df[roles].isna().any(axis=1).to_numpy(), f"with missing {'/'.join(roles)}")


def _position_scale(spec: PlotSpec, frames: list[_LayerFrame], role: Aesthetic) -> Scale:
    mapped = [(f.kinds[role], f.mapping.column(role)) for f in frames if role in f.kinds]
    scale = spec.scales.get(role)
    if scale is None:
        discrete = any(kind.is_discrete for kind, _ in mapped)
        scale = DiscretePositionScale(role) if discrete else ContinuousPositionScale(role)
    for kind, column in mapped:
        check_scale_kind(scale, kind, column)
    return scale


def _panel_groups(n_panels: int, free: bool) -> list[list[int]]:
    if free:
        return [[p] for p in range(n_panels)]
    return [list(range(n_panels))]


def _train_discrete_positions(
    frames: list[_LayerFrame],
    role: Aesthetic,
    scale: DiscretePositionScale,
    groups: list[list[int]],
) -> dict[int, DiscreteMap]:
    trained: dict[int, DiscreteMap] = {}
    for panels in groups:
        observed: list[Any] = []
        for f in frames:
            if role in f.kinds:
                observed.extend(f.df.loc[f.df["PANEL"].isin(panels), role.value].tolist())
        dmap = train_discrete(scale, observed)
        for p in panels:
            trained[p] = dmap
    return trained


def _map_discrete_position(frame: _LayerFrame, role: Aesthetic, trained: dict[int, DiscreteMap]) -> None:
    values = frame.df[role.value].tolist()
    panels = frame.df["PANEL"].tolist()
    mapped = np.array([trained[p].map_value(v) for v, p in zip(values, panels)], dtype=float)
    frame.df[role.value] = mapped
    frame.drop(~np.isfinite(mapped), f"outside the {role.value} scale limits")


def _transform_position(frame: _LayerFrame, role: Aesthetic, scale: ContinuousPositionScale) -> None:
    raw = frame.df[role.value].astype(float).to_numpy()
    keep = np.ones(raw.size, dtype=bool)
    if scale.limits is not None:
        lo, hi = scale.limits
        keep &= (raw >= lo) & (raw <= hi)
    values = scale.transform(raw)
    keep &= np.isfinite(values)
    frame.df[role.value] = values
    frame.drop(~keep, f"outside the {role.value} scale range")


# -----------------------------------------------------------------------------
# Step 4-6: groups, stats, positions
# -----------------------------------------------------------------------------


def _visual_scales(spec: PlotSpec, frames: list[_LayerFrame]) -> dict[Aesthetic, Scale]:
    scales: dict[Aesthetic, Scale] = {}
    for f in frames:
        for role in f.visual_roles():
            scale = scales.get(role) or spec.scales.get(role) or default_scale(role, f.kinds[role])
            check_scale_kind(scale, f.kinds[role], f.mapping.column(role))
            scales[role] = scale
    return scales


def _assign_groups(frame: _LayerFrame, scales: dict[Aesthetic, Scale]) -> None:
    roles = [r for r in GROUPING_ROLES if r in frame.kinds and scales[r].is_discrete]
    if roles:
        grouped = frame.df.groupby([r.value for r in roles], sort=False, dropna=False)
        frame.df["group"] = grouped.ngroup().to_numpy()
    else:
        frame.df["group"] = 0


def _require_numeric(frame: _LayerFrame, role: Aesthetic) -> None:
    if frame.kinds.get(role) is ValueKind.CATEGORICAL:
        raise TypeMismatchError(
            f"geom_{frame.geom.value} needs a numeric {role.value}; "
            f"column {frame.mapping.column(role)!r} is categorical"
        )


def _carried(sub: pd.DataFrame, columns: list[str]) -> dict[str, Any]:
    return {c: sub[c].iloc[0] for c in columns}


def _apply_stat(frame: _LayerFrame, options: RenderOptions) -> None:
    stat = frame.layer.stat
    if stat is Stat.IDENTITY:
        return
    layer = frame.layer
    df = frame.df
    carry = [r.value for r in frame.kinds if not r.is_position]
    rows: list[dict[str, Any]] = []

    if stat is Stat.COUNT:
        out_columns = ["x", "y"]
        for (panel, group), sub in df.groupby(["PANEL", "group"], sort=False):
            base = _carried(sub, carry)
            for x, n in zip(*stats.count_values(sub["x"])):
                rows.append({**base, "PANEL": panel, "group": group, "x": x, "y": n})

    elif stat is Stat.DENSITY:
        _require_numeric(frame, X)
        out_columns = ["x", "y"]
        bw = layer.param("bw") if layer.param("bw") is not None else options.density_bw
        n_points = layer.param("n") or options.density_n
        per_panel = df.groupby("PANEL").size()
        for (panel, group), sub in df.groupby(["PANEL", "group"], sort=False):
            curve = stats.density_curve(sub["x"], bw=bw, n=n_points)
            if curve is None:
                logger.warning(f"Skipped density group {group} in panel {panel}: fewer than 2 distinct x values "
                               f"(layer {frame.index})")
                continue
            xs, ys = curve
            if layer.param("scale") == "total":
                ys = ys * len(sub) / per_panel[panel]
            base = _carried(sub, carry)
            rows.extend({**base, "PANEL": panel, "group": group, "x": x, "y": y} for x, y in zip(xs, ys))

    elif stat is Stat.SMOOTH:
        _require_numeric(frame, X)
        _require_numeric(frame, Y)
        out_columns = ["x", "y", "ymin", "ymax"]
        span = layer.param("span") or options.smooth_span
        level = layer.param("level") or options.smooth_level
        for (panel, group), sub in df.groupby(["PANEL", "group"], sort=False):
            fit = stats.smooth_curve(
                sub["x"], sub["y"],
                method=layer.param("method", "loess"),
                span=span,
                level=level,
                se=layer.param("se", True),
                n=options.smooth_n,
            )
            if fit is None:
                logger.warning(f"Skipped smooth group {group} in panel {panel}: fewer than 2 distinct x values "
                               f"(layer {frame.index})")
                continue
            lower = fit.lower if fit.lower is not None else np.full(fit.xs.size, np.nan)
            upper = fit.upper if fit.upper is not None else np.full(fit.xs.size, np.nan)
            base = _carried(sub, carry)
            rows.extend(
                {**base, "PANEL": panel, "group": group, "x": x, "y": y, "ymin": lo, "ymax": hi}
                for x, y, lo, hi in zip(fit.xs, fit.ys, lower, upper)
            )

    elif stat is Stat.BOXPLOT:
        _require_numeric(frame, Y)
        out_columns = ["x", "y", "lower", "q1", "median", "q3", "upper", "outliers"]
        for (panel, group, x), sub in df.groupby(["PANEL", "group", "x"], sort=False):
            box = stats.box_summary(sub["y"])
            if box is None:
                continue
            rows.append({
                **_carried(sub, carry), "PANEL": panel, "group": group, "x": x, "y": box.median,
                "lower": box.lower, "q1": box.q1, "median": box.median, "q3": box.q3,
                "upper": box.upper, "outliers": box.outliers,
            })

    else:
        raise ValueError(f"Unsupported stat {stat!r}")

    frame.df = pd.DataFrame(rows, columns=carry + ["PANEL", "group"] + out_columns)


def _slots(df: pd.DataFrame) -> list[tuple]:
    return list(zip(df["PANEL"].tolist(), df["x"].tolist()))


def _apply_position(frame: _LayerFrame, options: RenderOptions) -> None:
    df = frame.df
    layer = frame.layer
    position = layer.position
    geom = frame.geom
    if df.empty:
        return
    x = df["x"].to_numpy(dtype=float)
    y = df["y"].to_numpy(dtype=float)

    if geom in (Geom.BAR, Geom.COL):
        width = layer.param("width") or BAR_WIDTH * positions.resolution(x)
        if position is Position.STACK:
            ymin, ymax = positions.stack(_slots(df), y, df["group"].to_numpy())
        else:
            ymin, ymax = np.minimum(0.0, y), np.maximum(0.0, y)
        if position is Position.DODGE:
            xmin, xmax = positions.dodge(x, _slots(df), df["group"].to_numpy(), width)
        else:
            xmin, xmax = x - width / 2, x + width / 2
        df["xmin"], df["xmax"], df["ymin"], df["ymax"] = xmin, xmax, ymin, ymax

    elif geom is Geom.BOXPLOT:
        width = layer.param("width") or BOX_WIDTH * positions.resolution(x)
        if position is Position.DODGE:
            xmin, xmax = positions.dodge(x, _slots(df), df["group"].to_numpy(), width)
        else:
            xmin, xmax = x - width / 2, x + width / 2
        df["xmin"], df["xmax"] = xmin, xmax
        df["x"] = (xmin + xmax) / 2

    elif position is Position.JITTER:
        seed = layer.param("seed")
        if seed is None:
            seed = options.jitter_seed
        df["x"], df["y"] = positions.jitter(
            x, y, width=layer.param("width"), height=layer.param("height"), seed=seed
        )

    elif position is Position.STACK:
        lo, hi = positions.stack(_slots(df), y, df["group"].to_numpy())
        df["y"] = np.where(y >= 0, hi, lo)

    elif position is Position.DODGE:
        width = layer.param("width") or BAR_WIDTH * positions.resolution(x)
        xmin, xmax = positions.dodge(x, _slots(df), df["group"].to_numpy(), width)
        df["x"] = (xmin + xmax) / 2

    if geom is Geom.TEXT:
        df["x"] = df["x"] + float(layer.param("nudge_x", 0.0) or 0.0)
        df["y"] = df["y"] + float(layer.param("nudge_y", 0.0) or 0.0)


# -----------------------------------------------------------------------------
# Step 7: axes
# -----------------------------------------------------------------------------


def _axis_values(frames: list[_LayerFrame], role: Aesthetic, panels: list[int]) -> np.ndarray:
    parts = []
    for f in frames:
        sub = f.df[f.df["PANEL"].isin(panels)]
        for c in _AXIS_COLUMNS[role]:
            if c in sub.columns:
                parts.append(sub[c].to_numpy(dtype=float))
        if role is Y and "outliers" in sub.columns:
            parts.append(np.array([v for out in sub["outliers"] for v in out], dtype=float))
    if not parts:
        return np.array([], dtype=float)
    values = np.concatenate(parts)
    return values[np.isfinite(values)]


def _continuous_breaks(scale: ContinuousPositionScale, lo: float, hi: float, rng: tuple[float, float]) -> list[float]:
    if scale.breaks is not None:
        candidates = scale.transform(np.asarray(scale.breaks, dtype=float))
        return [float(b) for b in candidates if np.isfinite(b) and rng[0] <= b <= rng[1]]
    if scale.trans == "identity":
        return pretty_breaks(lo, hi)
    if scale.trans == "log10":
        decades = list(range(math.ceil(lo), math.floor(hi) + 1))
        if len(decades) >= 2:
            return [float(k) for k in decades]
    data_lo, data_hi = scale.inverse(np.array([lo, hi]))
    candidates = scale.transform(np.asarray(pretty_breaks(float(data_lo), float(data_hi)), dtype=float))
    return [float(b) for b in candidates if np.isfinite(b)]


def _axis_title(spec: PlotSpec, frames: list[_LayerFrame], role: Aesthetic) -> str:
    explicit = spec.labels.axis_title(role)
    if explicit is not None:
        return explicit
    scale = spec.scales.get(role)
    if scale is not None and scale.name is not None:
        return scale.name
    for f in frames:
        if role in f.layer.stat.computed_roles:
            return f.layer.stat.value
        column = f.mapping.column(role)
        if column is not None:
            return column
    return ""


def _build_axes(
    frames: list[_LayerFrame],
    role: Aesthetic,
    scale: Scale,
    discrete: dict[int, DiscreteMap],
    groups: list[list[int]],
    title: str,
) -> dict[int, Axis]:
    axes: dict[int, Axis] = {}
    for panels in groups:
        values = _axis_values(frames, role, panels)
        if scale.is_discrete:
            dmap = discrete[panels[0]]
            n = len(dmap.domain)
            lo = min([1.0 - scale.expand] + ([float(values.min())] if values.size else []))
            hi = max([n + scale.expand] + ([float(values.max())] if values.size else []))
            axis = Axis(
                title=title,
                range=(lo, hi),
                breaks=tuple(float(i + 1) for i in range(n)),
                labels=tuple(dmap.labels[v] for v in dmap.domain),
                discrete=True,
            )
        else:
            if scale.limits is not None:
                lo, hi = (float(v) for v in scale.transform(np.asarray(scale.limits, dtype=float)))
            elif values.size:
                lo, hi = float(values.min()), float(values.max())
            else:
                lo, hi = 0.0, 1.0
            rng = expand_range(lo, hi, scale.expand, discrete=False)
            breaks = _continuous_breaks(scale, lo, hi, rng)
            axis = Axis(
                title=title,
                range=rng,
                breaks=tuple(breaks),
                labels=tuple(format_number(v) for v in scale.inverse(np.asarray(breaks, dtype=float))),
            )
        for p in panels:
            axes[p] = axis
    return axes


# -----------------------------------------------------------------------------
# Step 8: visual roles
# -----------------------------------------------------------------------------


def _format_label(value: Any) -> str:
    if isinstance(value, (float, np.floating)) and not is_missing(value):
        return format_number(value)
    return format_category(value)


def _resolve_visuals(frame: _LayerFrame, trained: dict[Aesthetic, Union[DiscreteMap, ContinuousMap]]) -> None:
    df = frame.df
    defaults = GEOM_DEFAULTS[frame.geom]
    for role in GROUPING_ROLES:
        name = "v_" + role.value
        if role in frame.kinds:
            df[name] = trained[role].map(df[role.value].tolist())
        else:
            df[name] = [frame.mapping.constant(role, defaults.get(role))] * len(df)
    if LABEL in frame.kinds:
        df["v_label"] = [_format_label(v) for v in df[LABEL.value].tolist()]
    else:
        df["v_label"] = [str(frame.mapping.constant(LABEL, ""))] * len(df)


# -----------------------------------------------------------------------------
# Step 9: primitives
# -----------------------------------------------------------------------------


def _records(sub: pd.DataFrame) -> list[dict[str, Any]]:
    return sub.to_dict("records")


def _by_group(sub: pd.DataFrame):
    for _, g in sub.groupby("group", sort=False):
        yield g.sort_values("x", kind="mergesort")


def _points(frame: _LayerFrame, sub: pd.DataFrame) -> list[Primitive]:
    return [
        PointPrimitive(
            x=float(r["x"]), y=float(r["y"]), color=r["v_color"], shape=r["v_shape"],
            size=float(r["v_size"]), alpha=float(r["v_alpha"]), layer=frame.index,
        )
        for r in _records(sub)
    ]


def _lines(frame: _LayerFrame, sub: pd.DataFrame) -> list[Primitive]:
    out: list[Primitive] = []
    for g in _by_group(sub):
        r = g.iloc[0]
        out.append(PathPrimitive(
            xs=tuple(float(v) for v in g["x"]), ys=tuple(float(v) for v in g["y"]),
            color=r["v_color"], linetype=r["v_linetype"], width=float(r["v_size"]),
            alpha=float(r["v_alpha"]), layer=frame.index,
        ))
    return out


def _rects(frame: _LayerFrame, sub: pd.DataFrame) -> list[Primitive]:
    return [
        RectPrimitive(
            xmin=float(r["xmin"]), xmax=float(r["xmax"]), ymin=float(r["ymin"]), ymax=float(r["ymax"]),
            fill=r["v_fill"], color=r["v_color"], alpha=float(r["v_alpha"]), layer=frame.index,
        )
        for r in _records(sub)
    ]


def _boxes(frame: _LayerFrame, sub: pd.DataFrame) -> list[Primitive]:
    show_outliers = frame.layer.param("outliers", True)
    out: list[Primitive] = []
    for r in _records(sub):
        color, layer = r["v_color"], frame.index
        xmin, xmax, x = float(r["xmin"]), float(r["xmax"]), float(r["x"])
        out.append(RectPrimitive(xmin=xmin, xmax=xmax, ymin=float(r["q1"]), ymax=float(r["q3"]),
                                 fill=r["v_fill"], color=color, alpha=float(r["v_alpha"]), layer=layer))
        out.append(PathPrimitive(xs=(xmin, xmax), ys=(float(r["median"]),) * 2,
                                 color=color, width=2.0, layer=layer))
        out.append(PathPrimitive(xs=(x, x), ys=(float(r["q3"]), float(r["upper"])),
                                 color=color, linetype=r["v_linetype"], layer=layer))
        out.append(PathPrimitive(xs=(x, x), ys=(float(r["q1"]), float(r["lower"])),
                                 color=color, linetype=r["v_linetype"], layer=layer))
        if show_outliers:
            out.extend(
                PointPrimitive(x=x, y=float(v), color=color, shape=r["v_shape"],
                               size=float(r["v_size"]), layer=layer)
                for v in r["outliers"]
            )
    return out


def _densities(frame: _LayerFrame, sub: pd.DataFrame) -> list[Primitive]:
    out: list[Primitive] = []
    for g in _by_group(sub):
        r = g.iloc[0]
        xs = tuple(float(v) for v in g["x"])
        ys = tuple(float(v) for v in g["y"])
        if r["v_fill"] is not None:
            out.append(PathPrimitive(
                xs=xs + (xs[-1], xs[0]), ys=ys + (0.0, 0.0), color=r["v_color"],
                linetype=r["v_linetype"], width=float(r["v_size"]), alpha=float(r["v_alpha"]),
                fill=r["v_fill"], closed=True, layer=frame.index,
            ))
        else:
            out.append(PathPrimitive(
                xs=xs, ys=ys, color=r["v_color"], linetype=r["v_linetype"],
                width=float(r["v_size"]), alpha=float(r["v_alpha"]), layer=frame.index,
            ))
    return out


def _smooths(frame: _LayerFrame, sub: pd.DataFrame) -> list[Primitive]:
    out: list[Primitive] = []
    for g in _by_group(sub):
        r = g.iloc[0]
        xs = tuple(float(v) for v in g["x"])
        lower = g["ymin"].to_numpy(dtype=float)
        upper = g["ymax"].to_numpy(dtype=float)
        if frame.layer.param("se", True) and np.isfinite(lower).all() and np.isfinite(upper).all():
            out.append(PathPrimitive(
                xs=xs + xs[::-1], ys=tuple(float(v) for v in upper) + tuple(float(v) for v in lower[::-1]),
                color=None, fill=r["v_fill"], alpha=float(r["v_alpha"]), closed=True, layer=frame.index,
            ))
        out.append(PathPrimitive(
            xs=xs, ys=tuple(float(v) for v in g["y"]), color=r["v_color"],
            linetype=r["v_linetype"], width=float(r["v_size"]), layer=frame.index,
        ))
    return out


def _texts(frame: _LayerFrame, sub: pd.DataFrame) -> list[Primitive]:
    return [
        TextPrimitive(
            x=float(r["x"]), y=float(r["y"]), text=r["v_label"], color=r["v_color"],
            size=float(r["v_size"]), alpha=float(r["v_alpha"]), layer=frame.index,
        )
        for r in _records(sub)
    ]


_BUILDERS = {
    Geom.POINT: _points,
    Geom.LINE: _lines,
    Geom.BAR: _rects,
    Geom.COL: _rects,
    Geom.BOXPLOT: _boxes,
    Geom.DENSITY: _densities,
    Geom.SMOOTH: _smooths,
    Geom.TEXT: _texts,
}


def _panel_primitives(frames: list[_LayerFrame], panel: int, flip: bool) -> tuple[Primitive, ...]:
    prims: list[Primitive] = []
    for f in frames:
        sub = f.df[f.df["PANEL"] == panel]
        if not sub.empty:
            prims.extend(_BUILDERS[f.geom](f, sub))
    if flip:
        prims = [p.flipped() for p in prims]
    return tuple(prims)


# -----------------------------------------------------------------------------
# Step 10: legends
# -----------------------------------------------------------------------------


def _legends(
    spec: PlotSpec,
    frames: list[_LayerFrame],
    scales: dict[Aesthetic, Scale],
    trained: dict[Aesthetic, Union[DiscreteMap, ContinuousMap]],
) -> tuple[Legend, ...]:
    if spec.theme.legend_position == "none":
        return ()
    merged: dict[tuple, dict[str, list]] = {}
    for role in GROUPING_ROLES:
        if role not in trained:
            continue
        contributing = [f for f in frames if role in f.kinds and f.layer.show_legend]
        if not contributing:
            continue
        column = contributing[0].mapping.column(role)
        title = spec.labels.legend.get(role) or scales[role].name or column
        info = merged.setdefault((column, title, scales[role].is_discrete), {"roles": [], "geoms": []})
        info["roles"].append(role)
        for f in contributing:
            if f.geom.value not in info["geoms"]:
                info["geoms"].append(f.geom.value)

    legends = []
    for (_, title, is_discrete), info in merged.items():
        roles = info["roles"]
        maps = [trained[r] for r in roles]
        if is_discrete:
            first = maps[0]
            entries = tuple(
                LegendEntry(first.labels[v], tuple((r.value, m.map_value(v)) for r, m in zip(roles, maps)))
                for v in first.domain
            )
        else:
            entries = tuple(
                LegendEntry(format_number(b), tuple((r.value, m.map([b])[0]) for r, m in zip(roles, maps)))
                for b in maps[0].breaks()
            )
        if entries:
            legends.append(Legend(title=title, roles=tuple(r.value for r in roles), entries=entries,
                                  continuous=not is_discrete, geoms=tuple(info["geoms"])))
    return tuple(legends)


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------


def render(spec: PlotSpec, options: Optional[RenderOptions] = None) -> Scene:
    """
    Render a plot to a backend-neutral Scene.

    Args:
        spec: The plot to draw.
        options: Stat defaults, jitter seed and threading; default RenderOptions().

    Returns:
        Scene with one Panel per facet combination (a single panel without facets).

    Raises:
        SchemaError: A layer's data has only some of the facet variables.
        TypeMismatchError: A continuous scale meets categorical data, or a stat
            that needs numbers meets a categorical column.
    """
    options = options if options is not None else RenderOptions()
    facet = spec.facet

    tables = [spec.table] + [layer.data for layer in spec.layers if layer.data is not None]
    keys = panel_keys(tables, facet) if facet is not None else []
    slots: list[PanelSlot] = layout_panels(keys, facet)
    slot_of = {slot.key: slot.index for slot in slots}
    n_panels = len(slots)
    logger.info(f"render: {len(spec.layers)} layer(s), {n_panels} panel(s)")

    frames = [_build_frame(spec, i, layer, slot_of, n_panels) for i, layer in enumerate(spec.layers)]
    for frame in frames:
        _drop_missing_positions(frame)

    position_scales: dict[Aesthetic, Scale] = {}
    discrete_positions: dict[Aesthetic, dict[int, DiscreteMap]] = {}
    groups = {
        X: _panel_groups(n_panels, facet is not None and facet.free_x),
        Y: _panel_groups(n_panels, facet is not None and facet.free_y),
    }
    for role in (X, Y):
        scale = _position_scale(spec, frames, role)
        position_scales[role] = scale
        if scale.is_discrete:
            discrete_positions[role] = _train_discrete_positions(frames, role, scale, groups[role])
        for frame in frames:
            if role not in frame.kinds:
                continue
            if scale.is_discrete:
                _map_discrete_position(frame, role, discrete_positions[role])
            else:
                _transform_position(frame, role, scale)

    scales = _visual_scales(spec, frames)
    for frame in frames:
        _assign_groups(frame, scales)
        _apply_stat(frame, options)
        _apply_position(frame, options)

    trained: dict[Aesthetic, Union[DiscreteMap, ContinuousMap]] = {}
    for role, scale in scales.items():
        observed = [v for f in frames if role in f.kinds for v in f.df[role.value].tolist()]
        trained[role] = train_discrete(scale, observed) if scale.is_discrete else train_continuous(scale, observed)
    for frame in frames:
        _resolve_visuals(frame, trained)

    axes = {
        role: _build_axes(frames, role, position_scales[role], discrete_positions.get(role, {}),
                          groups[role], _axis_title(spec, frames, role))
        for role in (X, Y)
    }

    flip = spec.flipped

    def build(slot: PanelSlot) -> Panel:
        x_axis, y_axis = axes[X][slot.index], axes[Y][slot.index]
        if flip:
            x_axis, y_axis = y_axis, x_axis
        return Panel(
            index=slot.index, row=slot.row, col=slot.col, label=slot.label,
            x_axis=x_axis, y_axis=y_axis, primitives=_panel_primitives(frames, slot.index, flip),
        )

    if options.parallel and n_panels > 1:
        with concurrent.futures.ThreadPoolExecutor(max_workers=options.max_workers) as pool:
            panels = list(pool.map(build, slots))
    else:
        panels = [build(slot) for slot in slots]

    nrow, ncol = grid_shape(slots)
    return Scene(
        panels=tuple(panels),
        legends=_legends(spec, frames, scales, trained),
        title=spec.labels.title,
        subtitle=spec.labels.subtitle,
        caption=spec.labels.caption,
        theme=spec.theme,
        nrow=nrow,
        ncol=ncol,
        flipped=flip,
    )
