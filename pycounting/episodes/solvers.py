"""
Public API for counting-process data construction.

    merge(subjects, events, tdcs) → EpisodeSolution
    split(intervals, cuts) → EpisodeSolution
    inject(intervals, tdc) → EpisodeSolution
    aggregate(intervals, by) → AggregateSolution

Each function validates inputs, dispatches to the algorithm module,
checks the invariants of any interval table it produces and wraps the
Result in a Solution. Per-record problems (records that reference
unknown subjects) are collected per call, attached to the result and
issued once as a RuntimeWarning.
"""

from __future__ import annotations

import warnings
from typing import Any, Sequence

import numpy as np

from pycounting.core.exceptions import ValidationError
from pycounting.core.result import Result
from pycounting.core.compute.timing import Timer
from pycounting.core.validation import (
    check_finite,
    check_strictly_increasing,
    check_times,
)
from pycounting.episodes._common import IntervalTable
from pycounting.episodes._partition import check_episodes
from pycounting.episodes._merge import merge_episodes
from pycounting.episodes._split import split_episodes
from pycounting.episodes._inject import inject_covariate
from pycounting.episodes._aggregate import aggregate_table
from pycounting.episodes.design import EventStream, SubjectDesign, TdcStream
from pycounting.episodes.solution import AggregateSolution, EpisodeSolution


def _as_table(intervals) -> IntervalTable:
    if isinstance(intervals, EpisodeSolution):
        return intervals.intervals
    if isinstance(intervals, IntervalTable):
        return intervals
    raise TypeError(
        f"intervals must be an IntervalTable or EpisodeSolution, "
        f"got {type(intervals).__name__}"
    )


def _report(problems: list[str]) -> tuple[str, ...]:
    """Issue collected per-record problems as one warning."""
    if problems:
        warnings.warn(
            "Discarded records during interval construction:\n  "
            + "\n  ".join(problems),
            RuntimeWarning,
            stacklevel=3,
        )
    return tuple(problems)


def merge(
    subjects: SubjectDesign,
    events: Sequence[EventStream] = (),
    tdcs: Sequence[TdcStream] = (),
) -> EpisodeSolution:
    """Build time-varying counting-process data.

    Parameters
    ----------
    subjects : SubjectDesign
        One baseline span ``[t_start, t_stop)`` per subject, plus
        time-invariant attributes copied onto every interval.
    events : sequence of EventStream
        Terminal events. The earliest event in ``(t_start, t_stop]``
        ends the subject's timeline; each stream also gets its own 0/1
        column. Out-of-window events are ignored.
    tdcs : sequence of TdcStream
        Time-dependent covariates. Changes before ``t_start`` take effect
        at ``t_start``; changes at or after the end of the timeline are
        ignored.

    Returns
    -------
    EpisodeSolution

    Raises
    ------
    ValidationError
        If stream names clash with each other or with attributes.
    InvariantError
        If the produced table violates an interval invariant.
    """
    if not isinstance(subjects, SubjectDesign):
        raise TypeError(
            f"subjects must be a SubjectDesign, got {type(subjects).__name__}"
        )
    events = tuple(events)
    tdcs = tuple(tdcs)

    names = list(subjects.attributes) + [s.name for s in events] + [s.name for s in tdcs]
    seen = set()
    for name in names:
        if name in seen:
            raise ValidationError(f"Column name {name!r} is used more than once")
        seen.add(name)

    with Timer() as timer:
        with timer.section('merge'):
            table, info, problems = merge_episodes(subjects, events, tdcs)
        with timer.section('check'):
            check_episodes(table)

    info["n_missing_event_times"] = sum(s.n_missing for s in events)
    info["n_missing_covariate_times"] = sum(s.n_missing for s in tdcs)

    result = Result(
        params=table,
        info={"method": "merge", **info},
        timing=timer.result(),
        backend_name="cpu_merge",
        warnings=_report(problems),
    )

    return EpisodeSolution(_result=result)


def split(
    intervals,
    cuts,
    *,
    segment: str = "segment",
    labels: Sequence[Any] | None = None,
) -> EpisodeSolution:
    """Split intervals at global cut points.

    Parameters
    ----------
    intervals : IntervalTable or EpisodeSolution
        Table to split.
    cuts : array-like
        Strictly increasing cut points, e.g. from calendar_cuts().
    segment : str
        Name of the segment column: the number of cut points at or
        before each interval's start, or its label. Only a segment
        column from an earlier split() may be replaced.
    labels : sequence or None
        Optional segment labels (``len(cuts) + 1``, or ``len(cuts)`` with
        segment 0 unlabelled).

    Returns
    -------
    EpisodeSolution
    """
    table = _as_table(intervals)
    cuts = check_times(cuts, "cuts")
    check_finite(cuts, "cuts")
    check_strictly_increasing(cuts, "cuts")

    if segment in table.event_columns:
        raise ValidationError(f"segment column {segment!r} is an event column")
    if segment in table.columns and segment not in table.segment_columns:
        raise ValidationError(
            f"Column {segment!r} already exists and is not a segment column; "
            f"choose another segment name"
        )

    with Timer() as timer:
        with timer.section('split'):
            refined, info = split_episodes(table, cuts, segment, labels)
        with timer.section('check'):
            check_episodes(refined)

    result = Result(
        params=refined,
        info={"method": "split", "segment": segment, **info},
        timing=timer.result(),
        backend_name="cpu_split",
        warnings=(),
    )

    return EpisodeSolution(_result=result)


def inject(intervals, tdc: TdcStream) -> EpisodeSolution:
    """Add one more time-dependent covariate to an interval table.

    The existing partition is refined at the covariate's change times
    within each subject's established span, and the covariate becomes a
    new column. Repeated records of the current value are collapsed, so a
    covariate that never changes leaves the partition as it was.

    Parameters
    ----------
    intervals : IntervalTable or EpisodeSolution
    tdc : TdcStream

    Returns
    -------
    EpisodeSolution
    """
    table = _as_table(intervals)
    if not isinstance(tdc, TdcStream):
        raise TypeError(f"tdc must be a TdcStream, got {type(tdc).__name__}")
    if tdc.name in table.columns:
        raise ValidationError(
            f"Column {tdc.name!r} already exists in the interval table"
        )

    with Timer() as timer:
        with timer.section('inject'):
            refined, info, problems = inject_covariate(table, tdc)
        with timer.section('check'):
            check_episodes(refined)

    info["n_missing_covariate_times"] = tdc.n_missing

    result = Result(
        params=refined,
        info={"method": "inject", "covariate": tdc.name, **info},
        timing=timer.result(),
        backend_name="cpu_inject",
        warnings=_report(problems),
    )

    return EpisodeSolution(_result=result)


def aggregate(
    intervals,
    by: str | Sequence[str],
    *,
    within: str | Sequence[str] | None = None,
    levels: dict[str, Sequence[Any]] | None = None,
    event: str = "event",
    scale: float = 1000.0,
    conf_level: float = 0.95,
) -> AggregateSolution:
    """Descriptive person-time table.

    Parameters
    ----------
    intervals : IntervalTable or EpisodeSolution
    by : str or sequence of str
        Grouping columns, outermost first.
    within : str, sequence of str or None
        Columns (a subset of ``by``) within which the reference group for
        rate ratios is chosen. None compares every group to the first.
    levels : dict or None
        Category order per grouping column; the first level of the
        non-``within`` columns becomes the reference.
    event : str
        Event column to count (default: the combined terminal flag).
    scale : float
        Rates are per ``scale`` units of person-time (default 1000, i.e.
        per 1000 person-years on the decimal-year axis).
    conf_level : float
        Confidence level of the exact Poisson rate limits.

    Returns
    -------
    AggregateSolution
    """
    table = _as_table(intervals)

    by = (by,) if isinstance(by, str) else tuple(by)
    if within is None:
        within = ()
    elif isinstance(within, str):
        within = (within,)
    else:
        within = tuple(within)

    if len(by) == 0:
        raise ValidationError("by must name at least one column")
    if len(set(by)) != len(by):
        raise ValidationError(f"by contains duplicate columns: {list(by)}")
    for name in by:
        table.column(name)
    missing = [name for name in within if name not in by]
    if missing:
        raise ValidationError(
            f"within columns {missing} must also appear in by {list(by)}"
        )
    if event != "event" and event not in table.event_columns:
        raise ValidationError(
            f"event must be 'event' or one of {list(table.event_columns)}, "
            f"got {event!r}"
        )
    if table.n == 0:
        raise ValidationError("cannot aggregate an empty interval table")
    if scale <= 0:
        raise ValidationError(f"scale must be positive, got {scale}")
    if conf_level <= 0 or conf_level >= 1:
        raise ValidationError(
            f"conf_level must be in (0, 1), got {conf_level}"
        )

    with Timer() as timer:
        with timer.section('aggregate'):
            params = aggregate_table(
                table, by,
                within=within,
                levels=levels,
                event=event,
                scale=scale,
                conf_level=conf_level,
            )

    result = Result(
        params=params,
        info={
            "method": "aggregate",
            "n_groups": len(params.rate),
            "total_person_time": float(np.sum(table.duration)),
            "total_events": int(np.sum(table.column(event) != 0)),
        },
        timing=timer.result(),
        backend_name="cpu_aggregate",
        warnings=(),
    )

    return AggregateSolution(_result=result)
