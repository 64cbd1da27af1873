"""
Binning of numeric values into labelled categories.

Used to turn counts and ages into covariate levels, e.g. number of tests
into "00-03", "04-09", "10-14", "15+".
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from pycounting.core.exceptions import ValidationError
from pycounting.core.validation import check_strictly_increasing, check_times


def _fmt(x: float) -> str:
    if np.isposinf(x):
        return "Inf"
    if np.isneginf(x):
        return "-Inf"
    return f"{x:g}"


def default_labels(breaks: NDArray, right: bool, include_lowest: bool) -> list[str]:
    """Interval notation labels: "(a,b]" for right-closed bins, "[a,b)" otherwise."""
    labels = []
    n_bins = len(breaks) - 1
    for k in range(n_bins):
        a, b = _fmt(breaks[k]), _fmt(breaks[k + 1])
        if right:
            open_ = "[" if include_lowest and k == 0 else "("
            labels.append(f"{open_}{a},{b}]")
        else:
            close = "]" if include_lowest and k == n_bins - 1 else ")"
            labels.append(f"[{a},{b}{close}")
    return labels


def cut(
    values,
    breaks,
    labels: Sequence[Any] | None = None,
    *,
    right: bool = True,
    include_lowest: bool = False,
) -> NDArray:
    """Assign each value to the bin it falls in.

    Parameters
    ----------
    values : array-like
        Numeric values; NaN is allowed and maps to None.
    breaks : array-like
        Strictly increasing bin edges (may include +/-inf).
    labels : sequence or None
        One label per bin. Defaults to interval notation.
    right : bool
        Bins are closed on the right, ``(a, b]`` (default), or on the
        left, ``[a, b)``.
    include_lowest : bool
        Close the outermost open edge: the lowest edge for right-closed
        bins, the highest edge for left-closed bins.

    Returns
    -------
    NDArray
        Object array of labels; values outside every bin map to None.
    """
    x = check_times(values, "values")
    edges = check_times(breaks, "breaks")
    if len(edges) < 2:
        raise ValidationError(f"breaks: need at least 2 edges, got {len(edges)}")
    if np.any(np.isnan(edges)):
        raise ValidationError("breaks: must not contain NaN")
    check_strictly_increasing(edges, "breaks")

    n_bins = len(edges) - 1
    if labels is None:
        labels = default_labels(edges, right, include_lowest)
    else:
        labels = list(labels)
        if len(labels) != n_bins:
            raise ValidationError(
                f"labels must have {n_bins} elements to match breaks, got {len(labels)}"
            )

    if right:
        idx = np.searchsorted(edges, x, side="left") - 1
        if include_lowest:
            idx[x == edges[0]] = 0
    else:
        idx = np.searchsorted(edges, x, side="right") - 1
        if include_lowest:
            idx[x == edges[-1]] = n_bins - 1

    valid = (idx >= 0) & (idx < n_bins) & ~np.isnan(x)
    out = np.empty(len(x), dtype=object)
    out[:] = None
    for i in np.flatnonzero(valid).tolist():
        out[i] = labels[idx[i]]
    return out
