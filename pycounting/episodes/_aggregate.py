"""
Person-time aggregation.

Groups intervals by one or more columns and reports, per group, distinct
subjects, person-time, events, the incidence rate with exact Poisson
confidence limits, and the rate ratio against a reference group.

The reduction is a single group-then-sum (np.bincount over dense group
codes), so per-group person-time and events add up exactly to the
table totals whatever the row order.

References:
    Garwood, F. (1936). Fiducial limits for the Poisson distribution.
        Biometrika, 28(3/4), 437-442.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from pycounting.core.exceptions import ValidationError
from pycounting.episodes._common import (
    AggregateParams,
    IntervalTable,
    canonical,
    sorted_unique,
)


def factorize(
    values: NDArray,
    name: str,
    levels: Sequence[Any] | None = None,
) -> tuple[list[Any], NDArray]:
    """Dense integer codes for ``values``.

    Categories are ``levels`` in the given order, or the sorted distinct
    values. Missing values (None or NaN) share one category, None, placed
    last unless ``levels`` says otherwise.
    """
    if levels is None:
        categories = sorted_unique(values)
    else:
        categories = [canonical(v) for v in levels]
    lookup = {v: k for k, v in enumerate(categories)}
    codes = np.empty(len(values), dtype=np.intp)
    for i, v in enumerate(values.tolist()):
        k = lookup.get(canonical(v))
        if k is None:
            raise ValidationError(
                f"{name}: value {v!r} is not among the given levels "
                f"{categories!r}"
            )
        codes[i] = k
    return categories, codes


def poisson_limits(
    events: NDArray,
    person_time: NDArray,
    conf_level: float,
) -> tuple[NDArray, NDArray]:
    """Exact (Garwood) confidence limits for events / person_time."""
    alpha = 1.0 - conf_level
    lower_count = np.where(
        events > 0,
        stats.chi2.ppf(alpha / 2, 2 * np.maximum(events, 1)) / 2,
        0.0,
    )
    upper_count = stats.chi2.ppf(1 - alpha / 2, 2 * (events + 1)) / 2
    return lower_count / person_time, upper_count / person_time


def aggregate_table(
    table: IntervalTable,
    by: Sequence[str],
    *,
    within: Sequence[str] = (),
    levels: dict[str, Sequence[Any]] | None = None,
    event: str = "event",
    scale: float = 1000.0,
    conf_level: float = 0.95,
) -> AggregateParams:
    """Compute the grouped rate table.

    Parameters
    ----------
    table : IntervalTable
    by : sequence of str
        Grouping columns, outermost first. Groups are ordered by these
        columns' categories.
    within : sequence of str
        Subset of ``by``. The reference group for rate ratios is the first
        group among those sharing the same ``within`` values; with no
        ``within`` columns it is the first group overall.
    levels : dict or None
        Explicit category order per grouping column.
    event : str
        Column counted as events.
    scale : float
        Rates are per ``scale`` units of person-time.
    conf_level : float
        Confidence level of the rate limits.

    Returns
    -------
    AggregateParams
    """
    levels = levels or {}
    by = tuple(by)
    within = tuple(within)

    categories = []
    codes = []
    for name in by:
        cats, code = factorize(table.column(name), name, levels.get(name))
        categories.append(cats)
        codes.append(code)

    dims = tuple(max(len(c), 1) for c in categories)
    combined = np.ravel_multi_index(codes, dims)
    present, group = np.unique(combined, return_inverse=True)
    group = group.ravel()
    n_groups = len(present)
    key_codes = np.unravel_index(present, dims)

    keys = []
    for cats, kc in zip(categories, key_codes):
        col = np.empty(n_groups, dtype=object)
        col[:] = [cats[k] for k in kc.tolist()]
        keys.append(col)

    person_time = np.bincount(group, weights=table.duration, minlength=n_groups)
    flags = table.column(event).astype(np.float64)
    events = np.rint(
        np.bincount(group, weights=flags, minlength=n_groups)
    ).astype(np.int64)

    _, subject = factorize(table.id, "id")
    pairs = np.unique(group.astype(np.int64) * (int(subject.max()) + 1) + subject)
    n_subjects = np.bincount(pairs // (int(subject.max()) + 1), minlength=n_groups)

    rate = events / person_time * scale
    lower, upper = poisson_limits(events, person_time, conf_level)

    # Reference: first group (in key order) of each ``within`` stratum.
    if within:
        positions = [by.index(name) for name in within]
        stratum = np.ravel_multi_index(
            [key_codes[p] for p in positions], [dims[p] for p in positions]
        )
        _, first_of_stratum, stratum_code = np.unique(
            stratum, return_index=True, return_inverse=True
        )
        reference = first_of_stratum[stratum_code.ravel()]
    else:
        reference = np.zeros(n_groups, dtype=np.intp)

    ref_rate = rate[reference]
    rate_ratio = np.full(n_groups, np.nan)
    np.divide(rate, ref_rate, out=rate_ratio, where=ref_rate > 0)

    return AggregateParams(
        by=by,
        keys=tuple(keys),
        n_subjects=n_subjects.astype(np.int64),
        person_time=person_time,
        events=events,
        rate=rate,
        rate_lower=lower * scale,
        rate_upper=upper * scale,
        rate_ratio=rate_ratio,
        reference=reference.astype(np.intp),
        within=within,
        event_column=event,
        scale=float(scale),
        conf_level=float(conf_level),
    )
