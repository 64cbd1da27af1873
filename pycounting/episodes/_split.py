"""
Interval splitter.

Re-partitions an interval table at global cut points (calendar period
boundaries, follow-up bands) and labels every piece with the segment it
falls in: segment k holds times in ``[cuts[k-1], cuts[k])``, segment 0
everything before the first cut.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from pycounting.core.exceptions import ValidationError
from pycounting.episodes._common import IntervalTable, column_from_values
from pycounting.episodes._partition import interior, refine


def segment_index(cuts: NDArray, tstart: NDArray) -> NDArray:
    """Number of cut points at or before each start time."""
    return np.searchsorted(cuts, tstart, side="right")


def split_episodes(
    table: IntervalTable,
    cuts: NDArray,
    segment: str,
    labels: Sequence[Any] | None = None,
) -> tuple[IntervalTable, dict[str, Any]]:
    """Cut every interval at the cut points strictly inside it.

    Parameters
    ----------
    table : IntervalTable
    cuts : NDArray
        Finite, strictly increasing cut points.
    segment : str
        Name of the segment column (an earlier segment column of the same
        name is replaced).
    labels : sequence or None
        Segment labels, ``len(cuts) + 1`` of them, or ``len(cuts)`` in
        which case segment 0 is labelled None.

    Returns
    -------
    table : IntervalTable
    info : dict
    """
    if labels is not None:
        labels = list(labels)
        if len(labels) == len(cuts):
            labels = [None] + labels
        elif len(labels) != len(cuts) + 1:
            raise ValidationError(
                f"labels must have {len(cuts)} or {len(cuts) + 1} elements "
                f"to match cuts, got {len(labels)}"
            )

    row_cuts = [
        interior(cuts, lo, hi)
        for lo, hi in zip(table.tstart.tolist(), table.tstop.tolist())
    ]
    refined = refine(table, row_cuts)

    index = segment_index(cuts, refined.tstart)
    if labels is None:
        refined = refined.with_column(segment, index, segment=True)
    else:
        refined = refined.with_column(
            segment,
            column_from_values([labels[k] for k in index.tolist()]),
            segment=True,
        )

    info = {
        "n_cuts": len(cuts),
        "n_intervals_in": table.n,
        "n_intervals": refined.n,
        "n_segments_used": len(np.unique(index)),
    }
    return refined, info
