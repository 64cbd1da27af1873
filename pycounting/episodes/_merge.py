"""
Interval merge engine.

Builds the counting-process table from baseline spans, terminal event
streams and time-dependent covariate streams.

Algorithm (per subject, independently):
    1. Terminal events: the earliest event in ``(t_start, t_stop]`` across
       all event streams ends the subject's timeline at that instant.
    2. Covariates: every stream is reduced to a step function on the
       (possibly shortened) span. Change times are the breakpoints.
    3. The span is cut at the union of all breakpoints with refine(); each
       piece takes the value in force at its ``tstart``.

An event coinciding with a covariate change wins: the change falls on
the stop of the span and is never emitted.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from pycounting.episodes._common import IntervalTable, column_from_values
from pycounting.episodes._partition import (
    group_records,
    refine,
    step_function,
    unknown_message,
    values_at,
)
from pycounting.episodes.design import EventStream, SubjectDesign, TdcStream


def _first_events(
    design: SubjectDesign,
    events: Sequence[EventStream],
    index: dict[Any, int],
    problems: list[str],
) -> tuple[NDArray, dict[str, NDArray], int]:
    """Earliest in-window event time per subject and the kinds that fire then."""
    first = np.full(design.n, np.inf)
    per_kind = {}
    n_dropped = 0

    for stream in events:
        arenas, unknown = group_records(stream.id, index)
        if unknown:
            problems.append(unknown_message(stream.name, unknown))
        kind_time = np.full(design.n, np.inf)
        for pos, rows in arenas.items():
            times = stream.time[rows]
            window = (times > design.t_start[pos]) & (times <= design.t_stop[pos])
            n_dropped += int(np.sum(~window))
            if np.any(window):
                kind_time[pos] = times[window].min()
        per_kind[stream.name] = kind_time
        first = np.minimum(first, kind_time)

    flags = {
        name: ((kind_time == first) & np.isfinite(first)).astype(np.int64)
        for name, kind_time in per_kind.items()
    }
    return first, flags, n_dropped


def merge_episodes(
    design: SubjectDesign,
    events: Sequence[EventStream],
    tdcs: Sequence[TdcStream],
) -> tuple[IntervalTable, dict[str, Any], list[str]]:
    """Build the interval table.

    Returns
    -------
    table : IntervalTable
    info : dict
        Record counts (dropped out-of-window events and covariate records).
    problems : list of str
        Per-record problems (unknown ids), one message per stream.
    """
    index = design.index()
    problems: list[str] = []

    first, flags, n_dropped_events = _first_events(design, events, index, problems)
    has_event = np.isfinite(first)
    stop = np.where(has_event, first, design.t_stop)

    # One row per subject: the baseline, already capped by its terminal event.
    columns = dict(design.attributes)
    for name, flag in flags.items():
        columns[name] = flag
    base = IntervalTable(
        id=design.id,
        tstart=design.t_start,
        tstop=stop,
        event=has_event.astype(np.int64),
        columns=columns,
        event_columns=tuple(flags),
    )

    steps = []
    n_dropped_tdc = 0
    for stream in tdcs:
        arenas, unknown = group_records(stream.id, index)
        if unknown:
            problems.append(unknown_message(stream.name, unknown))
        per_subject = {}
        for pos, rows in arenas.items():
            times, values, dropped = step_function(
                stream.time[rows], stream.value[rows], stream.default,
                design.t_start[pos], stop[pos],
            )
            n_dropped_tdc += dropped
            per_subject[pos] = (times, values)
        steps.append(per_subject)

    # Breakpoints strictly inside each span; change times equal to the
    # span start only set the initial value.
    row_cuts = []
    for pos in range(design.n):
        points = [s[pos][0] for s in steps if pos in s]
        if points:
            merged = np.unique(np.concatenate(points))
            row_cuts.append(merged[merged > design.t_start[pos]])
        else:
            row_cuts.append(np.empty(0))

    table = refine(base, row_cuts)

    offsets = np.concatenate(([0], np.cumsum([len(c) + 1 for c in row_cuts])))
    for stream, per_subject in zip(tdcs, steps):
        out: list[Any] = [stream.default] * table.n
        for pos, (times, values) in per_subject.items():
            lo, hi = offsets[pos], offsets[pos + 1]
            out[lo:hi] = values_at(times, values, stream.default, table.tstart[lo:hi])
        table = table.with_column(stream.name, column_from_values(out))

    info = {
        "n_subjects": design.n,
        "n_intervals": table.n,
        "n_events": table.n_events,
        "n_dropped_events": n_dropped_events,
        "n_dropped_covariate_records": n_dropped_tdc,
    }
    return table, info, problems
