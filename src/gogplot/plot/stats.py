"""
Statistical transforms on plain numpy arrays (numpy/scipy only).

Each function takes the values of one group and returns the summary that the
matching geom draws. Grouping, panel assignment and aesthetic carry-over live
in gogplot.plot.render; nothing here knows about layers or scales.

  - box_summary: five-number summary with 1.5 x IQR whiskers (type-7 quantiles)
  - density_curve: Gaussian KDE renormalised to unit area over the data range
  - smooth_curve: loess (tricube, degree 2) or least-squares line with a
    t-based confidence band
  - count_values: rows per distinct value
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from scipy import integrate
from scipy import stats as sps

from gogplot.utils.logging import get_logger

logger = get_logger(__name__)

# Whisker reach in units of the interquartile range.
BOX_COEF = 1.5

DEFAULT_DENSITY_N = 512
DEFAULT_SPAN = 0.75
DEFAULT_LEVEL = 0.95
DEFAULT_SMOOTH_N = 80


def _finite(values) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    return arr[np.isfinite(arr)]


# -----------------------------------------------------------------------------
# Box plot
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class BoxSummary:
    """Hinges, median, whisker ends and outliers of one group."""
    lower: float
    q1: float
    median: float
    q3: float
    upper: float
    outliers: tuple[float, ...]
    n: int


def box_summary(values, coef: float = BOX_COEF) -> Optional[BoxSummary]:
    """
    Five-number summary for one group.

    Quartiles use numpy's default linear interpolation (R type 7). Whiskers
    extend to the most extreme observations within coef x IQR of the hinges;
    anything beyond is an outlier.

    Returns:
        BoxSummary, or None when the group has no finite values.
    """
    arr = _finite(values)
    if arr.size == 0:
        return None
    q1, median, q3 = np.percentile(arr, [25, 50, 75])
    iqr = q3 - q1
    lo_fence = q1 - coef * iqr
    hi_fence = q3 + coef * iqr
    inside = arr[(arr >= lo_fence) & (arr <= hi_fence)]
    outliers = arr[(arr < lo_fence) | (arr > hi_fence)]
    return BoxSummary(
        lower=float(inside.min()),
        q1=float(q1),
        median=float(median),
        q3=float(q3),
        upper=float(inside.max()),
        outliers=tuple(float(v) for v in outliers),
        n=int(arr.size),
    )


# -----------------------------------------------------------------------------
# Density
# -----------------------------------------------------------------------------


def density_curve(
    values,
    *,
    bw: Union[str, float] = "silverman",
    n: int = DEFAULT_DENSITY_N,
) -> Optional[tuple[np.ndarray, np.ndarray]]:
    """
    Kernel density estimate of one group over its own range.

    The KDE is evaluated at n evenly spaced points from min to max and
    rescaled so the trapezoidal integral over those points is exactly 1.

    Args:
        values: Sample; non-finite entries are ignored.
        bw: Bandwidth rule or factor passed to scipy's gaussian_kde.
        n: Number of evaluation points.

    Returns:
        (xs, ys), or None when fewer than 2 distinct values remain.
    """
    arr = _finite(values)
    if np.unique(arr).size < 2:
        return None
    kde = sps.gaussian_kde(arr, bw_method=bw)
    xs = np.linspace(arr.min(), arr.max(), int(n))
    ys = kde(xs)
    area = integrate.trapezoid(ys, xs)
    if area > 0:
        ys = ys / area
    return xs, ys


# -----------------------------------------------------------------------------
# Smooth
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SmoothResult:
    """Fitted curve on a grid; lower/upper are None when no band is available."""
    xs: np.ndarray
    ys: np.ndarray
    lower: Optional[np.ndarray] = None
    upper: Optional[np.ndarray] = None


def _tricube(u: np.ndarray) -> np.ndarray:
    u = np.clip(np.abs(u), 0.0, 1.0)
    return (1 - u ** 3) ** 3


def _loess_row(x: np.ndarray, x0: float, q: int, degree: int) -> np.ndarray:
    """Weights l such that the local fit at x0 equals l @ y."""
    d = np.abs(x - x0)
    h = np.partition(d, q - 1)[q - 1]
    if h <= 0:
        w = (d == 0).astype(float)
    else:
        w = _tricube(d / h)
    sw = np.sqrt(w)
    design = np.vander(x - x0, degree + 1, increasing=True)
    pinv = np.linalg.pinv(design * sw[:, None])
    return pinv[0] * sw


def loess_fit(
    x,
    y,
    grid,
    *,
    span: float = DEFAULT_SPAN,
    degree: int = 2,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, float]:
    """
    Local weighted polynomial regression.

    Each grid point uses the ceil(span * n) nearest observations with tricube
    weights. The residual scale comes from the fit at the observations:
    sigma^2 = RSS / (n - trace(L)).

    Returns:
        (fit, operator_norm, residual_sigma, residual_df); the standard error
        at grid point i is sigma * operator_norm[i].
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    grid = np.asarray(grid, dtype=float)
    n = x.size
    degree = max(0, min(degree, np.unique(x).size - 1))
    q = int(min(n, max(degree + 1, np.ceil(span * n))))

    rows = np.array([_loess_row(x, g, q, degree) for g in grid])
    fit = rows @ y
    norm = np.sqrt(np.sum(rows ** 2, axis=1))

    hat = np.array([_loess_row(x, xi, q, degree) for xi in x])
    residuals = y - hat @ y
    df_resid = float(n - np.trace(hat))
    if df_resid > 0:
        sigma = float(np.sqrt(np.sum(residuals ** 2) / df_resid))
    else:
        sigma = float("nan")
    return fit, norm, sigma, df_resid


def lm_fit(x, y, grid) -> tuple[np.ndarray, np.ndarray, float, float]:
    """Least-squares line; same return shape as loess_fit."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    grid = np.asarray(grid, dtype=float)
    n = x.size
    xbar = x.mean()
    sxx = float(np.sum((x - xbar) ** 2))
    slope = float(np.sum((x - xbar) * (y - y.mean())) / sxx) if sxx > 0 else 0.0
    intercept = float(y.mean() - slope * xbar)
    fit = intercept + slope * grid
    df_resid = float(n - 2)
    if df_resid > 0 and sxx > 0:
        residuals = y - (intercept + slope * x)
        sigma = float(np.sqrt(np.sum(residuals ** 2) / df_resid))
        norm = np.sqrt(1.0 / n + (grid - xbar) ** 2 / sxx)
    else:
        sigma = float("nan")
        norm = np.full(grid.shape, np.nan)
    return fit, norm, sigma, df_resid


def smooth_curve(
    x,
    y,
    *,
    method: str = "loess",
    span: float = DEFAULT_SPAN,
    level: float = DEFAULT_LEVEL,
    se: bool = True,
    n: int = DEFAULT_SMOOTH_N,
) -> Optional[SmoothResult]:
    """
    Smoothed conditional mean of y given x on n points over x's range.

    Pairs with a non-finite coordinate are ignored. The band is
    fit +/- t_{(1+level)/2, df} * se.

    Returns:
        SmoothResult, or None when fewer than 2 distinct x values remain.
    """
    if method not in ("loess", "lm"):
        raise ValueError(f"method must be 'loess' or 'lm', got {method!r}")
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    ok = np.isfinite(x) & np.isfinite(y)
    x, y = x[ok], y[ok]
    if np.unique(x).size < 2:
        return None
    grid = np.linspace(x.min(), x.max(), int(n))
    if method == "lm":
        fit, norm, sigma, df_resid = lm_fit(x, y, grid)
    else:
        fit, norm, sigma, df_resid = loess_fit(x, y, grid, span=span)
    if not se or not np.isfinite(sigma) or df_resid <= 0:
        return SmoothResult(grid, fit)
    tcrit = float(sps.t.ppf((1 + level) / 2, df_resid))
    half = tcrit * sigma * norm
    return SmoothResult(grid, fit, fit - half, fit + half)


# -----------------------------------------------------------------------------
# Count
# -----------------------------------------------------------------------------


def count_values(values) -> tuple[np.ndarray, np.ndarray]:
    """Distinct finite values (ascending) and how many rows hold each."""
    arr = _finite(values)
    uniq, counts = np.unique(arr, return_counts=True)
    return uniq, counts.astype(float)
