"""Unit tests for Table construction, accessors and tidy verbs."""

import math

import pandas as pd
import pytest

from gogplot.errors import DuplicateKeyError, SchemaError, TypeMismatchError
from gogplot.frame.table import Table, ValueKind, is_missing


# -----------------------------------------------------------------------------
# Construction and accessors
# -----------------------------------------------------------------------------


def test_from_records_ragged_rows_raise():
    """Every record must carry exactly the declared columns."""
    with pytest.raises(SchemaError):
        Table.from_records([{"a": 1, "b": 2}, {"a": 3}])


def test_from_records_mixed_kinds_raise():
    with pytest.raises(TypeMismatchError):
        Table.from_records([{"a": 1}, {"a": "one"}])


def test_schema_kinds(speakers):
    assert speakers.kind("age") is ValueKind.NUMERIC
    assert speakers.kind("gender") is ValueKind.CATEGORICAL
    flags = Table.from_columns({"flag": [True, False, None]})
    assert flags.kind("flag") is ValueKind.LOGICAL


def test_dataframe_input_is_copied():
    df = pd.DataFrame({"x": [1.0, 2.0], "g": ["a", "b"]})
    t = Table(df)
    df.loc[0, "x"] = 99.0
    assert t.column("x").tolist() == [1.0, 2.0]
    out = t.to_pandas()
    out.loc[0, "x"] = 42.0
    assert t.column("x").tolist() == [1.0, 2.0]


def test_duplicate_dataframe_columns_raise():
    df = pd.DataFrame([[1, 2]], columns=["a", "a"])
    with pytest.raises(SchemaError):
        Table(df)


def test_row_access_and_unknown_column(speakers):
    row = speakers.row(0)
    assert row["speaker"] == "s1"
    assert "vtl" in row
    with pytest.raises(SchemaError):
        row["height"]


def test_missing_values_are_nan_or_none():
    t = Table.from_records([{"x": 1.0, "g": "a"}, {"x": None, "g": None}])
    row = t.row(1)
    assert math.isnan(row["x"])
    assert row["g"] is None
    assert is_missing(row["x"]) and is_missing(row["g"])


def test_unknown_column_accessor_raises(speakers):
    with pytest.raises(SchemaError):
        speakers.column("height")


def test_equality_treats_missing_as_equal(speakers):
    again = Table(speakers.to_pandas())
    assert again == speakers
    assert speakers.head(2) != speakers


# -----------------------------------------------------------------------------
# filter / mutate / select / arrange / drop_missing
# -----------------------------------------------------------------------------


def test_filter_keeps_order_and_schema(speakers):
    t = speakers.filter(lambda r: r["gender"] == "F")
    assert [r["speaker"] for r in t] == ["s2", "s4", "s6", "s7"]
    assert t.schema == speakers.schema


def test_filter_missing_result_counts_as_false(speakers):
    t = speakers.filter(lambda r: None if r["speaker"] == "s1" else True)
    assert len(t) == len(speakers) - 1
    assert "s1" not in t.column("speaker").tolist()


def test_filter_unknown_column_raises(speakers):
    with pytest.raises(SchemaError):
        speakers.filter(lambda r: r["height"] > 3)


def test_filter_is_idempotent(speakers):
    def older(r):
        return r["age"] > 4

    once = speakers.filter(older)
    assert once.filter(older) == once
    assert once.column("speaker").tolist() == ["s3", "s4", "s5", "s6"]


def test_mutate_adds_column(speakers):
    t = speakers.mutate("ratio", lambda r: r["F2"] / r["F1"])
    assert t.columns[-1] == "ratio"
    assert t.kind("ratio") is ValueKind.NUMERIC
    assert t.row(0)["ratio"] == pytest.approx(2900.0 / 1100.0)
    assert "ratio" not in speakers.columns


def test_mutate_overwrites_existing_column(speakers):
    t = speakers.mutate("age", lambda r: r["age"] * 12)
    assert t.row(0)["age"] == 48
    assert is_missing(t.row(6)["age"])
    assert t.columns == speakers.columns


def test_mutate_kind_conflict_raises(speakers):
    with pytest.raises(TypeMismatchError):
        speakers.mutate("age", lambda r: "old")


def test_mutate_mixed_outputs_raise(speakers):
    with pytest.raises(TypeMismatchError):
        speakers.mutate("code", lambda r: 1 if r["gender"] == "M" else "f")


def test_select_and_arrange(speakers):
    t = speakers.select(["speaker", "vtl"]).arrange("vtl", descending=True)
    assert t.columns == ["speaker", "vtl"]
    assert t.column("speaker").tolist() == ["s5", "s7", "s3", "s4", "s1", "s2", "s6"]


def test_arrange_is_stable(speakers):
    t = speakers.arrange("gender")
    assert t.column("speaker").tolist() == ["s2", "s4", "s6", "s7", "s1", "s3", "s5"]


def test_drop_missing(speakers):
    assert len(speakers.drop_missing()) == 5
    assert len(speakers.drop_missing("vtl")) == 6


# -----------------------------------------------------------------------------
# group_aggregate
# -----------------------------------------------------------------------------


def test_group_aggregate_count_per_age_and_gender():
    t = Table.from_records([
        {"age": 4, "gender": "M"},
        {"age": 4, "gender": "F"},
        {"age": 5, "gender": "F"},
    ])
    out = t.group_aggregate(["age", "gender"], {"n": (None, "count")})
    assert out.to_records() == [
        {"age": 4, "gender": "M", "n": 1},
        {"age": 4, "gender": "F", "n": 1},
        {"age": 5, "gender": "F", "n": 1},
    ]


def test_group_aggregate_mean_excludes_missing(speakers):
    out = speakers.group_aggregate("gender", {"mean_vtl": ("vtl", "mean"), "n": ("vtl", "count")})
    assert out.column("gender").tolist() == ["M", "F"]
    assert out.column("mean_vtl").tolist() == pytest.approx([11.1, (9.8 + 10.6 + 11.5) / 3])
    assert out.column("n").tolist() == [3, 4]


def test_group_aggregate_counts_sum_to_rows(speakers):
    out = speakers.group_aggregate(["age"], {"n": (None, "count")})
    assert sum(out.column("n").tolist()) == len(speakers)


def test_group_aggregate_missing_key_is_own_group(speakers):
    out = speakers.group_aggregate("age", {"n": (None, "count")})
    ages = out.column("age").tolist()
    assert ages[:3] == [4.0, 6.0, 8.0]
    assert math.isnan(ages[3])
    assert out.column("n").tolist() == [2, 2, 2, 1]


def test_group_aggregate_empty_partition_yields_missing():
    t = Table.from_columns({"g": ["a", "b"], "v": [1.0, None]})
    out = t.group_aggregate("g", {"m": ("v", "mean")})
    assert out.row(0)["m"] == 1.0
    assert is_missing(out.row(1)["m"])


def test_group_aggregate_callable_reducer(speakers):
    out = speakers.group_aggregate("gender", {"spread": ("F1", lambda s: s.max() - s.min())})
    assert out.column("spread").tolist() == pytest.approx([200.0, 200.0])


def test_group_aggregate_missing_key_keeps_first_appearance_order():
    t = Table.from_columns({"g": [None, "b", None, "a"], "v": [1.0, 2.0, 3.0, 4.0]})
    out = t.group_aggregate("g", {"total": ("v", "sum")})
    assert out.column("g").tolist() == [None, "b", "a"]
    assert out.column("total").tolist() == [4.0, 2.0, 4.0]


def test_group_aggregate_set_keys_are_sorted(speakers):
    out = speakers.group_aggregate({"gender", "age"}, {"n": (None, "count")})
    assert out.columns == ["age", "gender", "n"]


def test_group_aggregate_errors(speakers):
    with pytest.raises(SchemaError):
        speakers.group_aggregate("height", {"n": (None, "count")})
    with pytest.raises(SchemaError):
        speakers.group_aggregate("gender", {"m": ("height", "mean")})
    with pytest.raises(TypeMismatchError):
        speakers.group_aggregate("age", {"m": ("gender", "mean")})
    with pytest.raises(ValueError):
        speakers.group_aggregate("age", {"m": ("vtl", "geometric_mean")})
    with pytest.raises(SchemaError):
        speakers.group_aggregate("age", {"age": ("vtl", "mean")})


# -----------------------------------------------------------------------------
# distinct_by
# -----------------------------------------------------------------------------


def test_distinct_by_keeps_first_full_row(speakers):
    t = speakers.distinct_by("gender")
    assert t.column("speaker").tolist() == ["s1", "s2"]
    assert t.columns == speakers.columns


def test_distinct_by_keep_last(speakers):
    t = speakers.distinct_by("gender", keep="last")
    assert t.column("speaker").tolist() == ["s5", "s7"]


def test_distinct_by_twice_is_noop(speakers):
    once = speakers.distinct_by(["age"])
    assert once.distinct_by(["age"]) == once
    assert len(once) == 4


def test_distinct_by_bad_keep_raises(speakers):
    with pytest.raises(ValueError):
        speakers.distinct_by("gender", keep="middle")


def test_distinct_by_missing_keys_are_one_key():
    t = Table.from_columns({"g": ["a", None, "a", None], "v": [1.0, 2.0, 3.0, 4.0]})
    assert t.distinct_by("g").column("v").tolist() == [1.0, 2.0]
    assert t.distinct_by("g", keep="last").column("v").tolist() == [3.0, 4.0]


# -----------------------------------------------------------------------------
# gather_longer / spread_wider
# -----------------------------------------------------------------------------


def test_gather_longer_is_row_major(speakers):
    long = speakers.select(["speaker", "F1", "F2"]).gather_longer("speaker", ["F1", "F2"], "formant", "hz")
    assert len(long) == 2 * len(speakers)
    assert long.columns == ["speaker", "formant", "hz"]
    assert long.to_records()[:3] == [
        {"speaker": "s1", "formant": "F1", "hz": 1100.0},
        {"speaker": "s1", "formant": "F2", "hz": 2900.0},
        {"speaker": "s2", "formant": "F1", "hz": 1150.0},
    ]
    assert long.kind("formant") is ValueKind.CATEGORICAL


def test_gather_longer_errors(speakers):
    with pytest.raises(SchemaError):
        speakers.gather_longer("speaker", ["F1", "F9"], "formant", "hz")
    with pytest.raises(SchemaError):
        speakers.gather_longer("speaker", ["F1", "F2"], "speaker", "hz")
    with pytest.raises(TypeMismatchError):
        speakers.gather_longer("speaker", ["F1", "gender"], "key", "value")


def test_gather_then_spread_round_trips(speakers):
    wide = speakers.select(["speaker", "F1", "F2"])
    long = wide.gather_longer("speaker", ["F1", "F2"], "formant", "hz")
    back = long.spread_wider("formant", "hz")
    assert back == wide


def test_gather_then_spread_round_trips_mixed_int_and_float():
    wide = Table.from_columns({"id": ["a", "b"], "n": [1, 2], "v": [0.5, 1.5]})
    back = wide.gather_longer("id", ["n", "v"], "k", "val").spread_wider("k", "val")
    assert back == wide


def test_equality_still_checks_numeric_values():
    a = Table.from_columns({"n": [1, 2]})
    assert a != Table.from_columns({"n": [1.0, 2.5]})
    assert a == Table.from_columns({"n": [1.0, 2.0]})


def test_spread_wider_absent_cells_are_missing():
    long = Table.from_records([
        {"id": "a", "k": "x", "v": 1.0},
        {"id": "a", "k": "y", "v": 2.0},
        {"id": "b", "k": "x", "v": 3.0},
    ])
    wide = long.spread_wider("k", "v")
    assert wide.columns == ["id", "x", "y"]
    assert wide.row(0)["y"] == 2.0
    assert is_missing(wide.row(1)["y"])


def test_spread_wider_duplicate_cell_raises():
    long = Table.from_records([
        {"id": "a", "k": "x", "v": 1.0},
        {"id": "a", "k": "x", "v": 2.0},
    ])
    with pytest.raises(DuplicateKeyError):
        long.spread_wider("k", "v")


# -----------------------------------------------------------------------------
# recode
# -----------------------------------------------------------------------------


def test_recode_replaces_and_passes_through(speakers):
    t = speakers.recode("gender", {"M": "male"})
    assert t.column("gender").tolist()[:2] == ["male", "F"]


def test_recode_mixed_result_raises(speakers):
    with pytest.raises(TypeMismatchError):
        speakers.recode("gender", {"M": 1})


def test_recode_unknown_column_raises(speakers):
    with pytest.raises(SchemaError):
        speakers.recode("sex", {"M": "male"})
