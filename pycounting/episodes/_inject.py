"""
Covariate injection.

Adds one more time-dependent covariate to an existing interval table.
Each subject's span is the one already established by the table; the
covariate's change times refine the existing partition and every piece
records the value in force at its start.

Runs of identical values are collapsed before refinement, so records
that restate the current value (e.g. several tests falling in the same
count band) never produce a split.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from pycounting.episodes._common import IntervalTable, column_from_values
from pycounting.episodes._partition import (
    group_records,
    interior,
    refine,
    step_function,
    subject_spans,
    unknown_message,
    values_at,
)
from pycounting.episodes.design import TdcStream


def inject_covariate(
    table: IntervalTable,
    tdc: TdcStream,
) -> tuple[IntervalTable, dict[str, Any], list[str]]:
    """Refine ``table`` by ``tdc`` and add it as a column.

    Returns
    -------
    table : IntervalTable
    info : dict
    problems : list of str
        Per-record problems (unknown ids).
    """
    block, span_start, span_stop = subject_spans(table)
    block_ids = table.id[table.block_starts()]
    index = {key: b for b, key in enumerate(block_ids.tolist())}

    arenas, unknown = group_records(tdc.id, index)
    problems = []
    if unknown:
        problems.append(unknown_message(tdc.name, unknown))

    steps = {}
    n_dropped = 0
    for b, rows in arenas.items():
        times, values, dropped = step_function(
            tdc.time[rows], tdc.value[rows], tdc.default,
            span_start[b], span_stop[b],
        )
        n_dropped += dropped
        steps[b] = (times, values)

    empty = np.empty(0)
    row_cuts = []
    for r, b in enumerate(block.tolist()):
        if b in steps:
            row_cuts.append(interior(steps[b][0], table.tstart[r], table.tstop[r]))
        else:
            row_cuts.append(empty)
    refined = refine(table, row_cuts)

    # Row blocks survive refinement: pieces stay inside their parent's block.
    counts = np.array([len(c) + 1 for c in row_cuts], dtype=np.intp)
    refined_block = np.repeat(block, counts)
    out: list[Any] = [tdc.default] * refined.n
    for b, (times, values) in steps.items():
        lo = np.searchsorted(refined_block, b, side="left")
        hi = np.searchsorted(refined_block, b, side="right")
        out[lo:hi] = values_at(times, values, tdc.default, refined.tstart[lo:hi])
    refined = refined.with_column(tdc.name, column_from_values(out))

    info = {
        "n_subjects": len(block_ids),
        "n_intervals_in": table.n,
        "n_intervals": refined.n,
        "n_dropped_covariate_records": n_dropped,
    }
    return refined, info, problems
