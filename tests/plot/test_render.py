"""Tests for render(): PlotSpec -> Scene."""

import logging
import math

import plotly.colors
import pytest
from scipy import integrate

from gogplot.errors import SchemaError, TypeMismatchError
from gogplot.frame.table import Table
from gogplot.plot.aes import aes
from gogplot.plot.facet import facet_wrap
from gogplot.plot.layers import (
    geom_bar,
    geom_boxplot,
    geom_density,
    geom_jitter,
    geom_line,
    geom_point,
    geom_smooth,
    geom_text,
)
from gogplot.plot.render import RenderOptions, render
from gogplot.plot.scales import (
    scale_color_manual,
    scale_x_continuous,
    scale_x_discrete,
    scale_x_log10,
    scale_y_continuous,
)
from gogplot.plot.scene import PathPrimitive, PointPrimitive, RectPrimitive, TextPrimitive
from gogplot.plot.spec import coord_flip, new_plot
from gogplot.plot.theme import labs, theme

PALETTE = plotly.colors.qualitative.Plotly


@pytest.fixture
def kids():
    """Age 4: three boys and two girls; age 6: one girl."""
    rows = [{"age": 4, "gender": "M"}] * 3 + [{"age": 4, "gender": "F"}] * 2 + [{"age": 6, "gender": "F"}]
    return Table.from_records(rows)


# -----------------------------------------------------------------------------
# Points, missing values, scales
# -----------------------------------------------------------------------------


def test_one_point_per_complete_row(speakers, caplog):
    spec = new_plot(speakers, aes(x="age", y="vtl")) + geom_point()
    with caplog.at_level(logging.WARNING, logger="gogplot"):
        scene = render(spec)
    points = scene.panels[0].of_type(PointPrimitive)
    assert [(p.x, p.y) for p in points] == [(4, 10.1), (4, 9.8), (6, 11.0), (6, 10.6), (8, 12.2)]
    assert all(p.color == "black" for p in points)
    assert "Removed 2 row(s)" in caplog.text


def test_continuous_axes(speakers):
    scene = render(new_plot(speakers, aes(x="age", y="vtl")) + geom_point())
    x_axis = scene.panels[0].x_axis
    assert x_axis.title == "age"
    assert x_axis.range == pytest.approx((3.8, 8.2))
    assert x_axis.breaks == (4, 5, 6, 7, 8)
    assert x_axis.labels == ("4", "5", "6", "7", "8")
    assert scene.panels[0].y_axis.title == "vtl"


def test_spec_render_method_matches_function(speakers):
    spec = new_plot(speakers, aes(x="age", y="vtl")) + geom_point()
    assert spec.render() == render(spec)


def test_scale_limits_drop_rows(speakers):
    spec = new_plot(speakers, aes(x="age", y="vtl")) + geom_point() + scale_y_continuous(limits=(10, 11))
    points = render(spec).panels[0].of_type(PointPrimitive)
    assert sorted(p.y for p in points) == [10.1, 10.6, 11.0]


def test_log10_scale_transforms_before_drawing(speakers):
    spec = new_plot(speakers, aes(x="F1", y="F2")) + geom_point() + scale_x_log10()
    points = render(spec).panels[0].of_type(PointPrimitive)
    assert points[0].x == pytest.approx(math.log10(1100.0))


def test_discrete_x_positions_and_limits(speakers):
    spec = new_plot(speakers, aes(x="gender", y="vtl")) + geom_point()
    panel = render(spec).panels[0]
    assert panel.x_axis.labels == ("F", "M")
    assert panel.x_axis.breaks == (1.0, 2.0)
    assert panel.x_axis.discrete
    assert panel.of_type(PointPrimitive)[0].x == 2.0

    only_boys = render(spec + scale_x_discrete(limits=["M"])).panels[0]
    assert [p.x for p in only_boys.of_type(PointPrimitive)] == [1.0, 1.0, 1.0]


def test_continuous_scale_on_categorical_column_raises(speakers):
    spec = new_plot(speakers, aes(x="gender", y="vtl")) + geom_point() + scale_x_continuous()
    with pytest.raises(TypeMismatchError):
        render(spec)


def test_manual_colors(speakers):
    spec = (
        new_plot(speakers, aes(x="F1", y="F2", color="gender"))
        + geom_point()
        + scale_color_manual({"M": "blue", "F": "red"})
    )
    points = render(spec).panels[0].of_type(PointPrimitive)
    assert [p.color for p in points[:2]] == ["blue", "red"]


def test_render_options_validation():
    with pytest.raises(ValueError):
        RenderOptions(smooth_level=1.5)
    with pytest.raises(ValueError):
        RenderOptions(density_n=1)


# -----------------------------------------------------------------------------
# Bars: count stat, stacking, dodging
# -----------------------------------------------------------------------------


def test_stacked_bar_counts(kids):
    scene = render(new_plot(kids, aes(x="age", fill="gender")) + geom_bar())
    panel = scene.panels[0]
    rects = panel.of_type(RectPrimitive)
    assert len(rects) == 3
    boys, girls4, girls6 = rects
    assert (boys.ymin, boys.ymax) == (0.0, 3.0)
    assert (girls4.ymin, girls4.ymax) == (3.0, 5.0)
    assert (girls6.ymin, girls6.ymax) == (0.0, 1.0)
    assert boys.fill == PALETTE[1]
    assert girls4.fill == PALETTE[0]
    assert (boys.xmin, boys.xmax) == pytest.approx((3.1, 4.9))
    assert panel.y_axis.title == "count"


def test_stack_total_is_group_count(kids):
    rects = render(new_plot(kids, aes(x="age", fill="gender")) + geom_bar()).panels[0].of_type(RectPrimitive)
    assert max(r.ymax for r in rects if r.xmin < 5) == 5.0


def test_dodged_bars(kids):
    rects = render(new_plot(kids, aes(x="age", fill="gender")) + geom_bar(position="dodge")).panels[0].of_type(
        RectPrimitive
    )
    boys, girls4, girls6 = rects
    assert (boys.xmin, boys.xmax) == pytest.approx((3.1, 4.0))
    assert (girls4.xmin, girls4.xmax) == pytest.approx((4.0, 4.9))
    assert (girls6.xmin, girls6.xmax) == pytest.approx((5.1, 6.9))
    assert all(r.ymin == 0.0 for r in rects)
    assert [r.ymax for r in rects] == [3.0, 2.0, 1.0]


# -----------------------------------------------------------------------------
# Jitter
# -----------------------------------------------------------------------------


def test_jitter_is_reproducible_with_seed(speakers):
    base = new_plot(speakers, aes(x="gender", y="vtl"))
    first = render(base + geom_jitter(seed=3))
    assert render(base + geom_jitter(seed=3)) == first
    assert render(base + geom_jitter(seed=4)) != first
    for p in first.panels[0].of_type(PointPrimitive):
        assert abs(p.x - round(p.x)) <= 0.4


def test_jitter_seed_from_options(speakers):
    spec = new_plot(speakers, aes(x="gender", y="vtl")) + geom_jitter()
    assert render(spec, RenderOptions(jitter_seed=9)) == render(spec, RenderOptions(jitter_seed=9))


# -----------------------------------------------------------------------------
# Stats: density, boxplot, smooth
# -----------------------------------------------------------------------------


def test_density_curve_has_unit_area(speakers):
    scene = render(new_plot(speakers, aes(x="vtl")) + geom_density())
    (path,) = scene.panels[0].of_type(PathPrimitive)
    assert len(path.xs) == 512
    assert not path.closed
    assert integrate.trapezoid(path.ys, path.xs) == pytest.approx(1.0)
    assert scene.panels[0].y_axis.title == "density"


def test_filled_density_per_group(speakers):
    scene = render(new_plot(speakers, aes(x="vtl", fill="gender")) + geom_density(), RenderOptions(density_n=64))
    paths = scene.panels[0].of_type(PathPrimitive)
    assert len(paths) == 2
    for path in paths:
        assert path.closed
        assert len(path.xs) == 66
        assert integrate.trapezoid(path.ys[:64], path.xs[:64]) == pytest.approx(1.0)


def test_density_total_scale_weights_groups(speakers):
    spec = new_plot(speakers, aes(x="vtl", color="gender")) + geom_density(scale="total")
    paths = render(spec).panels[0].of_type(PathPrimitive)
    areas = [integrate.trapezoid(p.ys, p.xs) for p in paths]
    assert areas == pytest.approx([0.5, 0.5])


def test_density_of_categorical_x_raises(speakers):
    with pytest.raises(TypeMismatchError):
        render(new_plot(speakers, aes(x="gender")) + geom_density())


def test_boxplot_primitives(speakers):
    panel = render(new_plot(speakers, aes(x="gender", y="vtl")) + geom_boxplot()).panels[0]
    rects = panel.of_type(RectPrimitive)
    assert len(rects) == 2
    assert len(panel.of_type(PathPrimitive)) == 6
    girls = min(rects, key=lambda r: r.xmin)
    assert (girls.xmin, girls.xmax) == pytest.approx((0.625, 1.375))
    assert (girls.ymin, girls.ymax) == pytest.approx((10.2, 11.05))
    assert girls.fill == "white"
    whiskers = [p for p in panel.of_type(PathPrimitive) if p.xs == (1.0, 1.0)]
    assert sorted(max(w.ys) for w in whiskers) == pytest.approx([10.2, 11.5])


def test_boxplot_outliers_can_be_hidden():
    table = Table.from_columns({"g": ["a"] * 10, "v": [1, 2, 3, 4, 5, 6, 7, 8, 9, 100]})
    shown = render(new_plot(table, aes(x="g", y="v")) + geom_boxplot()).panels[0]
    assert [p.y for p in shown.of_type(PointPrimitive)] == [100.0]
    assert shown.y_axis.range[1] > 100
    hidden = render(new_plot(table, aes(x="g", y="v")) + geom_boxplot(outliers=False)).panels[0]
    assert hidden.of_type(PointPrimitive) == []


def test_smooth_band_then_line(speakers):
    panel = render(new_plot(speakers, aes(x="F1", y="F2")) + geom_smooth(method="lm")).panels[0]
    band, line = panel.of_type(PathPrimitive)
    assert band.closed and band.fill == "#999999" and band.color is None
    assert len(band.xs) == 160
    assert len(line.xs) == 80
    assert line.color == "#3366FF"
    assert line.xs[0] == 900.0 and line.xs[-1] == 1150.0


def test_smooth_without_band(speakers):
    panel = render(new_plot(speakers, aes(x="F1", y="F2")) + geom_smooth(se=False)).panels[0]
    assert len(panel.of_type(PathPrimitive)) == 1


# -----------------------------------------------------------------------------
# Lines and text
# -----------------------------------------------------------------------------


def test_lines_sorted_by_x_per_group(speakers):
    panel = render(new_plot(speakers, aes(x="F1", y="F2", color="gender")) + geom_line()).panels[0]
    paths = panel.of_type(PathPrimitive)
    assert len(paths) == 2
    girls = next(p for p in paths if p.color == PALETTE[0])
    assert girls.xs == (950.0, 980.0, 1050.0, 1150.0)


def test_missing_color_value_forms_one_line_group():
    t = Table.from_columns({"x": [1.0, 1.0, 2.0, 2.0], "y": [1.0, 2.0, 3.0, 4.0], "g": [None, "a", None, "a"]})
    paths = render(new_plot(t, aes(x="x", y="y", color="g")) + geom_line()).panels[0].of_type(PathPrimitive)
    assert [p.color for p in paths] == ["#7F7F7F", PALETTE[0]]
    assert [p.ys for p in paths] == [(1.0, 3.0), (2.0, 4.0)]


def test_text_labels_with_nudge(speakers):
    spec = new_plot(speakers, aes(x="age", y="vtl", label="speaker")) + geom_text(nudge_y=0.5)
    texts = render(spec).panels[0].of_type(TextPrimitive)
    assert texts[0].text == "s1"
    assert texts[0].y == pytest.approx(10.6)


def test_text_annotation_at_constant_position(speakers):
    spec = new_plot(speakers, aes(x="age", y="vtl")) + geom_point() + geom_text(x=5.0, y=11.0, label="note")
    panel = render(spec).panels[0]
    texts = panel.of_type(TextPrimitive)
    assert len(texts) == len(speakers)
    assert {(t.x, t.y, t.text) for t in texts} == {(5.0, 11.0, "note")}
    assert len(panel.of_type(PointPrimitive)) == 5


def test_constant_x_with_mapped_y(speakers):
    panel = render(new_plot(speakers, aes(y="vtl")) + geom_point(x=1.0)).panels[0]
    points = panel.of_type(PointPrimitive)
    assert len(points) == 6
    assert {p.x for p in points} == {1.0}
    assert panel.x_axis.range[0] < 1.0 < panel.x_axis.range[1]


# -----------------------------------------------------------------------------
# Facets
# -----------------------------------------------------------------------------


def test_facet_panels_and_shared_axes(speakers):
    scene = render(new_plot(speakers, aes(x="F1", y="F2")) + geom_point() + facet_wrap("gender"))
    assert [p.label for p in scene.panels] == ["F", "M"]
    assert (scene.nrow, scene.ncol) == (1, 2)
    assert len(scene.panel("F").of_type(PointPrimitive)) == 4
    assert len(scene.panel("M").of_type(PointPrimitive)) == 3
    assert scene.panels[0].x_axis == scene.panels[1].x_axis


def test_free_facet_scales(speakers):
    scene = render(new_plot(speakers, aes(x="F1", y="F2")) + geom_point() + facet_wrap("gender", scales="free"))
    assert scene.panels[0].x_axis != scene.panels[1].x_axis
    assert scene.panels[0].y_axis != scene.panels[1].y_axis


def test_layer_without_facet_variable_repeats_in_every_panel(speakers):
    marker = Table.from_records([{"F1": 1000.0, "F2": 2000.0}])
    spec = (
        new_plot(speakers, aes(x="F1", y="F2"))
        + geom_point()
        + geom_point(data=marker, color="red")
        + facet_wrap("gender")
    )
    scene = render(spec)
    for panel in scene.panels:
        assert [(p.x, p.y) for p in panel.for_layer(1)] == [(1000.0, 2000.0)]


def test_layer_with_some_facet_variables_raises(speakers):
    partial = Table.from_records([{"gender": "F", "F1": 1000.0, "F2": 2000.0}])
    spec = (
        new_plot(speakers, aes(x="F1", y="F2"))
        + geom_point(data=partial)
        + facet_wrap(["gender", "age"])
    )
    with pytest.raises(SchemaError):
        render(spec)


def test_parallel_render_matches_serial(speakers):
    spec = new_plot(speakers, aes(x="F1", y="F2", color="gender")) + geom_point() + facet_wrap("age")
    assert render(spec, RenderOptions(parallel=True, max_workers=2)) == render(spec)


# -----------------------------------------------------------------------------
# Coord flip, labels, legends
# -----------------------------------------------------------------------------


def test_coord_flip_swaps_positions_and_axes(speakers):
    scene = render(new_plot(speakers, aes(x="age", y="vtl")) + geom_point() + coord_flip())
    panel = scene.panels[0]
    assert scene.flipped
    assert (panel.of_type(PointPrimitive)[0].x, panel.of_type(PointPrimitive)[0].y) == (10.1, 4.0)
    assert (panel.x_axis.title, panel.y_axis.title) == ("vtl", "age")


def test_coord_flip_bars_run_horizontally(kids):
    rects = render(new_plot(kids, aes(x="age", fill="gender")) + geom_bar() + coord_flip()).panels[0].of_type(
        RectPrimitive
    )
    assert (rects[0].xmin, rects[0].xmax) == (0.0, 3.0)


def test_titles_and_axis_labels(speakers):
    spec = (
        new_plot(speakers, aes(x="age", y="vtl"))
        + geom_point()
        + labs(title="Vocal tract", subtitle="by age", caption="toy data", x="Age (years)")
        + scale_y_continuous("VTL (cm)")
    )
    scene = render(spec)
    assert (scene.title, scene.subtitle, scene.caption) == ("Vocal tract", "by age", "toy data")
    assert scene.panels[0].x_axis.title == "Age (years)"
    assert scene.panels[0].y_axis.title == "VTL (cm)"


def test_legend_merges_roles_on_same_column(speakers):
    spec = new_plot(speakers, aes(x="F1", y="F2", color="gender", shape="gender")) + geom_point()
    (legend,) = render(spec).legends
    assert legend.title == "gender"
    assert set(legend.roles) == {"color", "shape"}
    assert [e.label for e in legend.entries] == ["F", "M"]
    assert legend.entries[1].value("shape") == "square"
    assert legend.geoms == ("point",)


def test_legend_titles_split_merged_legend(speakers):
    spec = (
        new_plot(speakers, aes(x="F1", y="F2", color="gender", shape="gender"))
        + geom_point()
        + labs(color="Sex")
    )
    assert sorted(lg.title for lg in render(spec).legends) == ["Sex", "gender"]


def test_continuous_color_legend(speakers):
    spec = new_plot(speakers, aes(x="F1", y="F2", color="vtl")) + geom_point()
    (legend,) = render(spec).legends
    assert legend.continuous
    assert [e.label for e in legend.entries] == ["10", "10.5", "11", "11.5", "12"]


def test_no_legend_for_constants_or_when_hidden(speakers):
    base = new_plot(speakers, aes(x="F1", y="F2"))
    assert render(base + geom_point(color="red")).legends == ()
    colored = new_plot(speakers, aes(x="F1", y="F2", color="gender"))
    assert render(colored + geom_point() + theme(legend_position="none")).legends == ()
    assert render(colored + geom_point(show_legend=False)).legends == ()
