"""Unit tests for aesthetic mappings and layer construction."""

import pytest

from gogplot.errors import MissingAestheticError, SchemaError, TypeMismatchError
from gogplot.plot.aes import Aesthetic, AestheticMapping, aes, as_mapping
from gogplot.plot.layers import (
    Geom,
    Position,
    Stat,
    geom_bar,
    geom_boxplot,
    geom_density,
    geom_jitter,
    geom_point,
    geom_smooth,
    geom_text,
)


def test_aesthetic_parse_accepts_colour():
    assert Aesthetic.parse("colour") is Aesthetic.COLOR
    assert Aesthetic.parse("Fill") is Aesthetic.FILL
    with pytest.raises(ValueError):
        Aesthetic.parse("glow")


def test_aes_unknown_role_fails_at_build_time():
    with pytest.raises(ValueError):
        aes(x="age", hue="gender")


def test_mapping_validate_against_schema(speakers):
    aes(x="age", y="vtl", color="gender").validate(speakers.schema)
    with pytest.raises(SchemaError):
        aes(x="age", y="height").validate(speakers.schema)
    with pytest.raises(TypeMismatchError):
        aes(x="age", shape="vtl").validate(speakers.schema)


def test_merged_constant_removes_inherited_column():
    base = aes(x="age", y="vtl", color="gender")
    layer = AestheticMapping(constants={"color": "red"})
    merged = base.merged(layer)
    assert merged.column(Aesthetic.COLOR) is None
    assert merged.constant(Aesthetic.COLOR) == "red"
    assert merged.column(Aesthetic.X) == "age"


def test_merged_column_overrides_constant():
    base = AestheticMapping(constants={"fill": "grey"})
    merged = base.merged(aes(fill="gender"))
    assert merged.column(Aesthetic.FILL) == "gender"
    assert Aesthetic.FILL not in merged.constants


def test_mapping_rejects_role_in_both():
    with pytest.raises(ValueError):
        AestheticMapping(columns={"color": "gender"}, constants={"color": "red"})


def test_as_mapping_accepts_dict():
    assert as_mapping({"x": "age", "y": "vtl"}) == aes(x="age", y="vtl")
    assert as_mapping(None) == AestheticMapping()


def test_geom_defaults():
    assert geom_point().stat is Stat.IDENTITY
    assert geom_bar().stat is Stat.COUNT
    assert geom_bar().position is Position.STACK
    assert geom_boxplot().position is Position.DODGE
    assert geom_density().stat is Stat.DENSITY
    assert geom_smooth().params["method"] == "loess"


def test_keyword_aesthetics_become_constants():
    layer = geom_point(color="red", alpha=0.5, size=3)
    assert layer.mapping.constants[Aesthetic.COLOR] == "red"
    assert layer.mapping.constants[Aesthetic.ALPHA] == 0.5
    assert not layer.mapping.columns


def test_geom_jitter_is_point_with_jitter():
    layer = geom_jitter(width=0.2, seed=7)
    assert layer.geom is Geom.POINT
    assert layer.position is Position.JITTER
    assert layer.param("seed") == 7
    assert layer.param("width") == 0.2


def test_stat_computed_y_counts_as_mapped():
    layer = geom_density(aes(x="vtl"))
    assert layer.maps(Aesthetic.Y, AestheticMapping())
    layer.check_required(AestheticMapping())


def test_check_required_reports_missing_roles():
    with pytest.raises(MissingAestheticError):
        geom_point(aes(x="age")).check_required(AestheticMapping())
    with pytest.raises(MissingAestheticError):
        geom_text(aes(x="age", y="vtl")).check_required(AestheticMapping())
    geom_text(aes(x="age", y="vtl"), label="hi").check_required(AestheticMapping())


def test_invalid_layer_params_raise():
    with pytest.raises(ValueError):
        geom_smooth(method="spline")
    with pytest.raises(ValueError):
        geom_density(scale="area")
    with pytest.raises(ValueError):
        geom_point(position="wiggle")
