"""Unit tests for the statistical transforms."""

import math

import numpy as np
import pytest
from scipy import integrate

from gogplot.plot.stats import box_summary, count_values, density_curve, smooth_curve


def test_box_summary_type7_quartiles_and_outlier():
    s = box_summary([1, 2, 3, 4, 5, 6, 7, 8, 9, 100])
    assert s.q1 == pytest.approx(3.25)
    assert s.median == pytest.approx(5.5)
    assert s.q3 == pytest.approx(7.75)
    assert (s.lower, s.upper) == (1.0, 9.0)
    assert s.outliers == (100.0,)
    assert s.n == 10


def test_box_summary_ignores_missing():
    s = box_summary([2.0, math.nan, 4.0])
    assert s.n == 2
    assert s.median == pytest.approx(3.0)
    assert box_summary([math.nan]) is None


def test_density_integrates_to_one():
    values = np.random.default_rng(3).normal(10, 2, 200)
    xs, ys = density_curve(values, n=256)
    assert len(xs) == 256
    assert xs[0] == pytest.approx(values.min())
    assert xs[-1] == pytest.approx(values.max())
    assert integrate.trapezoid(ys, xs) == pytest.approx(1.0)
    assert (ys >= 0).all()


def test_density_needs_two_distinct_values():
    assert density_curve([1.0, 1.0, 1.0]) is None
    assert density_curve([2.0, math.nan]) is None


def test_density_bandwidth_factor():
    values = [1.0, 2.0, 2.5, 4.0, 7.0]
    _, narrow = density_curve(values, bw=0.1)
    _, wide = density_curve(values, bw=1.0)
    assert narrow.max() > wide.max()


def test_lm_smooth_recovers_line():
    x = np.arange(10.0)
    res = smooth_curve(x, 2 * x + 1, method="lm", n=5)
    assert res.xs.tolist() == pytest.approx([0.0, 2.25, 4.5, 6.75, 9.0])
    assert res.ys == pytest.approx(2 * res.xs + 1)
    assert res.lower == pytest.approx(res.ys)


def test_loess_reproduces_quadratic():
    x = np.arange(12.0)
    res = smooth_curve(x, x ** 2, method="loess", se=False, n=7)
    assert res.ys == pytest.approx(res.xs ** 2, abs=1e-6)
    assert res.lower is None and res.upper is None


def test_smooth_band_contains_fit():
    rng = np.random.default_rng(11)
    x = np.linspace(0, 10, 40)
    y = np.sin(x) + rng.normal(0, 0.2, x.size)
    res = smooth_curve(x, y)
    assert len(res.xs) == 80
    assert (res.lower <= res.ys).all()
    assert (res.ys <= res.upper).all()


def test_wider_level_gives_wider_band():
    rng = np.random.default_rng(5)
    x = np.linspace(0, 5, 30)
    y = x + rng.normal(0, 0.5, x.size)
    narrow = smooth_curve(x, y, method="lm", level=0.8)
    wide = smooth_curve(x, y, method="lm", level=0.99)
    assert (wide.upper - wide.lower > narrow.upper - narrow.lower).all()


def test_smooth_degenerate_and_invalid():
    assert smooth_curve([1.0, 1.0], [2.0, 3.0]) is None
    with pytest.raises(ValueError):
        smooth_curve([1.0, 2.0], [1.0, 2.0], method="gam")


def test_count_values():
    values, counts = count_values([3.0, 1.0, 3.0, math.nan])
    assert values.tolist() == [1.0, 3.0]
    assert counts.tolist() == [1.0, 2.0]
