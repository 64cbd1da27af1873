"""
Partition primitives shared by merge, split and inject.

Algorithm:
    1. Group dependent records by subject (one arena per subject), so every
       subject's breakpoints are processed independently.
    2. Reduce a subject's covariate records to a step function on the
       subject's span: clip early records to the span start, drop records
       at or after the span stop, keep the last record per instant and
       collapse runs of identical values.
    3. refine(): cut each row of a table at a sorted set of interior points.
       Pieces inherit every column of their parent; only the last piece
       keeps the parent's event flags.
    4. check_episodes(): verify the table invariants before a result leaves
       the package.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pycounting.core.exceptions import InvariantError
from pycounting.episodes._common import IntervalTable, as_column


def group_records(
    ids: NDArray,
    index: dict[Any, int],
) -> tuple[dict[int, NDArray], list[Any]]:
    """Bucket record positions by subject.

    Returns
    -------
    arenas : dict
        Subject position -> indices of that subject's records.
    unknown : list
        Ids that match no subject (one entry per discarded record).
    """
    buckets: dict[int, list[int]] = {}
    unknown = []
    for k, key in enumerate(ids.tolist()):
        pos = index.get(key)
        if pos is None:
            unknown.append(key)
            continue
        buckets.setdefault(pos, []).append(k)
    arenas = {pos: np.asarray(rows, dtype=np.intp) for pos, rows in buckets.items()}
    return arenas, unknown


def unknown_message(name: str, unknown: list[Any]) -> str:
    """One-line report of records discarded for referencing unknown ids."""
    distinct = list(dict.fromkeys(unknown))
    shown = ", ".join(repr(v) for v in distinct[:5])
    return (
        f"{name}: discarded {len(unknown)} record(s) referencing "
        f"{len(distinct)} unknown subject id(s), e.g. {shown}"
    )


def same_state(a: Any, b: Any) -> bool:
    """Equality for covariate values, treating None and NaN as states."""
    if a is None or b is None:
        return a is b
    try:
        if a == b:
            return True
    except (TypeError, ValueError):
        return False
    return (
        isinstance(a, (float, np.floating))
        and isinstance(b, (float, np.floating))
        and np.isnan(a) and np.isnan(b)
    )


def step_function(
    times: NDArray,
    values: NDArray,
    default: Any,
    lo: float,
    hi: float,
) -> tuple[NDArray, list[Any], int]:
    """Reduce one subject's change records to a minimal step function.

    Parameters
    ----------
    times, values : NDArray
        The subject's change records, in input order.
    default : Any
        Value in force before the first change.
    lo, hi : float
        The subject's span ``[lo, hi)``.

    Returns
    -------
    change_times : NDArray
        Strictly increasing times in ``[lo, hi)`` at which the value changes.
    change_values : list
        New value at each change time.
    n_dropped : int
        Records discarded because they fall at or after ``hi``.
    """
    order = np.argsort(times, kind="stable")
    t = np.maximum(times[order], lo)
    v = values[order].tolist()

    inside = t < hi
    n_dropped = int(np.sum(~inside))

    change_times = []
    change_values = []
    current = default
    n = len(t)
    for k in range(n):
        if not inside[k]:
            continue
        # Several records at one instant: the last one holds from then on.
        if k + 1 < n and inside[k + 1] and t[k + 1] == t[k]:
            continue
        if same_state(v[k], current):
            continue
        change_times.append(t[k])
        change_values.append(v[k])
        current = v[k]

    return np.asarray(change_times, dtype=np.float64), change_values, n_dropped


def values_at(
    change_times: NDArray,
    change_values: list[Any],
    default: Any,
    times: NDArray,
) -> list[Any]:
    """Evaluate a step function (right-continuous in time) at ``times``."""
    idx = np.searchsorted(change_times, times, side="right") - 1
    return [default if i < 0 else change_values[i] for i in idx.tolist()]


def interior(points: NDArray, tstart: float, tstop: float) -> NDArray:
    """Points of a sorted array lying strictly inside ``(tstart, tstop)``."""
    lo = np.searchsorted(points, tstart, side="right")
    hi = np.searchsorted(points, tstop, side="left")
    return points[lo:hi]


def refine(table: IntervalTable, row_cuts: list[NDArray]) -> IntervalTable:
    """Cut every row of ``table`` at its interior points.

    Parameters
    ----------
    table : IntervalTable
        Table to refine.
    row_cuts : list of NDArray
        Per row, strictly increasing points strictly inside
        ``(tstart, tstop)`` of that row.

    Returns
    -------
    IntervalTable
        Pieces in row order. Every piece copies its parent's columns;
        event flags stay on the last piece of each parent only.
    """
    counts = np.fromiter((len(c) for c in row_cuts), dtype=np.intp, count=table.n) + 1
    total = int(counts.sum())
    if total == table.n:
        return table

    parent = np.repeat(np.arange(table.n), counts)
    first = np.zeros(total, dtype=bool)
    first[np.concatenate(([0], np.cumsum(counts)[:-1]))] = True
    last = np.zeros(total, dtype=bool)
    last[np.cumsum(counts) - 1] = True

    inner = np.concatenate([np.asarray(c, dtype=np.float64) for c in row_cuts])

    tstart = np.empty(total, dtype=np.float64)
    tstart[first] = table.tstart
    tstart[~first] = inner
    tstop = np.empty(total, dtype=np.float64)
    tstop[last] = table.tstop
    tstop[~last] = inner

    event = np.where(last, table.event[parent], 0).astype(table.event.dtype)
    columns = {}
    for name, values in table.columns.items():
        if name in table.event_columns:
            columns[name] = np.where(last, values[parent], 0).astype(values.dtype)
        else:
            columns[name] = values[parent]

    return IntervalTable(
        id=table.id[parent],
        tstart=tstart,
        tstop=tstop,
        event=event,
        columns=columns,
        event_columns=table.event_columns,
        segment_columns=table.segment_columns,
    )


def subject_spans(table: IntervalTable) -> tuple[NDArray, NDArray, NDArray]:
    """Per-row block number and per-block span of a valid table."""
    starts = table.block_starts()
    change = np.zeros(table.n, dtype=bool)
    change[starts] = True
    block = np.cumsum(change) - 1
    ends = np.append(starts[1:], table.n) - 1
    return block, table.tstart[starts], table.tstop[ends]


def check_episodes(table: IntervalTable) -> None:
    """Verify the structural invariants of an interval table.

    Raises
    ------
    InvariantError
        If any interval is empty, a subject's rows are split across the
        table, consecutive rows of a subject leave a gap or overlap, or an
        event flag sits on a row other than the subject's last.
    """
    if table.n == 0:
        return

    empty = ~(table.tstop > table.tstart)
    if np.any(empty):
        raise InvariantError(
            f"{int(empty.sum())} interval(s) with tstop <= tstart",
            invariant="positive_length",
            ids=tuple(np.unique(as_column(table.id[empty])).tolist()),
        )

    block_ids = table.id[table.block_starts()]
    if len(set(block_ids.tolist())) != len(block_ids):
        raise InvariantError(
            "Rows of a subject are not adjacent",
            invariant="grouping",
        )

    same = table.id[1:] == table.id[:-1]
    gap = same & (table.tstart[1:] != table.tstop[:-1])
    if np.any(gap):
        rows = np.flatnonzero(gap) + 1
        raise InvariantError(
            f"{len(rows)} interval(s) do not start where the previous one stops",
            invariant="contiguity",
            ids=tuple(np.unique(table.id[rows]).tolist()),
        )

    last = table.last_rows()
    for name in ("event", *table.event_columns):
        flags = table.column(name)
        misplaced = (flags != 0) & ~last
        if np.any(misplaced):
            raise InvariantError(
                f"Event flag {name!r} set on an interval that is not the "
                f"subject's last",
                invariant="terminal_event",
                ids=tuple(np.unique(table.id[misplaced]).tolist()),
            )
