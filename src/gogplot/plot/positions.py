"""Positional adjustments applied after a layer's stat.

All functions work on plain numpy arrays in row order and return new arrays;
the input values are never modified.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

# Fraction of the data resolution used by jitter when no width/height is given
JITTER_FRACTION = 0.4


def resolution(values) -> float:
    """Smallest gap between distinct finite values; 1.0 with fewer than two."""
    arr = np.asarray(values, dtype=float)
    uniq = np.unique(arr[np.isfinite(arr)])
    if uniq.size < 2:
        return 1.0
    return float(np.min(np.diff(uniq)))


def jitter(
    xs,
    ys,
    *,
    width: Optional[float] = None,
    height: Optional[float] = None,
    seed: Optional[int] = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Add bounded uniform noise to x and y.

    Offsets are drawn from numpy's default_rng(seed), x offsets first, so the
    same seed and input length always give identical positions.

    Args:
        xs, ys: Positions.
        width: Maximum |x offset|; default 40% of the x resolution.
        height: Maximum |y offset|; default 40% of the y resolution.
        seed: Generator seed; None draws fresh entropy.
    """
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    if width is None:
        width = JITTER_FRACTION * resolution(xs)
    if height is None:
        height = JITTER_FRACTION * resolution(ys)
    rng = np.random.default_rng(seed)
    dx = rng.uniform(-width, width, xs.size)
    dy = rng.uniform(-height, height, ys.size)
    return xs + dx, ys + dy


def stack(slots, heights, order) -> tuple[np.ndarray, np.ndarray]:
    """
    Stack heights cumulatively within each slot.

    Rows in a slot are stacked in ascending ``order`` (ties keep row order),
    the first nearest zero. Negative heights stack downward separately.

    Args:
        slots: Slot key per row (e.g. panel and x position combined).
        heights: Segment heights.
        order: Stacking rank per row (group first-appearance index).

    Returns:
        (ymin, ymax) per row.
    """
    heights = np.asarray(heights, dtype=float)
    order = np.asarray(order)
    ymin = np.zeros(heights.size)
    ymax = np.zeros(heights.size)
    pos_top: dict = {}
    neg_top: dict = {}
    for i in np.lexsort((np.arange(heights.size), order)):
        slot = slots[i]
        h = heights[i]
        tops = pos_top if h >= 0 else neg_top
        base = tops.get(slot, 0.0)
        ymin[i], ymax[i] = base, base + h
        tops[slot] = base + h
    # A negative segment's ymin is its lower end
    lo = np.minimum(ymin, ymax)
    hi = np.maximum(ymin, ymax)
    return lo, hi


def dodge(centers, slots, order, width: float) -> tuple[np.ndarray, np.ndarray]:
    """
    Place the members of each slot side by side within ``width``.

    Members are ordered by ascending ``order``; each gets width / n_members.

    Returns:
        (xmin, xmax) per row.
    """
    centers = np.asarray(centers, dtype=float)
    order = np.asarray(order)
    members: dict = {}
    for i in range(centers.size):
        members.setdefault(slots[i], set()).add(order[i])
    xmin = np.empty(centers.size)
    xmax = np.empty(centers.size)
    for i in range(centers.size):
        ranks = sorted(members[slots[i]])
        k = len(ranks)
        j = ranks.index(order[i])
        step = width / k
        left = centers[i] - width / 2 + j * step
        xmin[i], xmax[i] = left, left + step
    return xmin, xmax
