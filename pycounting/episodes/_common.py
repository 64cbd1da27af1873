"""
Payloads for episode results.

IntervalTable is the counting-process table handed to model fitting;
AggregateParams is the descriptive rate table. Both are frozen payloads
carried inside a Result[P] envelope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pycounting.core.exceptions import DimensionError, ValidationError


RESERVED_COLUMNS = ("id", "tstart", "tstop", "event")


def as_column(values) -> NDArray:
    """Build a 1D column array, keeping None-bearing data as object dtype."""
    arr = np.asarray(values)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    return arr


def column_from_values(values: list[Any]) -> NDArray:
    """Column from resolved covariate values; data with None stays object dtype."""
    if any(v is None for v in values):
        arr = np.empty(len(values), dtype=object)
        arr[:] = values
        return arr
    return as_column(values)


@dataclass(frozen=True)
class IntervalTable:
    """Counting-process (start-stop) table, one row per subject-interval.

    Rows of a subject are adjacent and ordered by ``tstart``; subjects
    appear in the order of the baseline they were built from.
    """

    id: NDArray                  # (n,) subject id per row
    tstart: NDArray              # (n,) interval start (inclusive)
    tstop: NDArray               # (n,) interval stop (exclusive)
    event: NDArray               # (n,) 1 if a terminal event ends this row
    columns: dict[str, NDArray] = field(default_factory=dict)
    event_columns: tuple[str, ...] = ()   # per-kind 0/1 event flags
    segment_columns: tuple[str, ...] = ()  # columns written by split()

    def __post_init__(self) -> None:
        n = len(self.id)
        for name, arr in (("tstart", self.tstart), ("tstop", self.tstop),
                          ("event", self.event), *self.columns.items()):
            if len(arr) != n:
                raise DimensionError(
                    f"Column {name!r} has {len(arr)} rows, expected {n}"
                )
        for name in self.event_columns:
            if name not in self.columns:
                raise ValidationError(f"Unknown event column {name!r}")
        for name in self.segment_columns:
            if name not in self.columns:
                raise ValidationError(f"Unknown segment column {name!r}")

    @property
    def n(self) -> int:
        """Number of intervals."""
        return len(self.id)

    @property
    def duration(self) -> NDArray:
        """Length of every interval (tstop - tstart)."""
        return self.tstop - self.tstart

    @property
    def person_time(self) -> float:
        return float(np.sum(self.duration))

    @property
    def n_events(self) -> int:
        return int(np.count_nonzero(self.event))

    @property
    def n_subjects(self) -> int:
        return len(self.block_starts())

    @property
    def names(self) -> tuple[str, ...]:
        """All column names, fixed columns first."""
        return RESERVED_COLUMNS + tuple(self.columns)

    def block_starts(self) -> NDArray:
        """Row index where each subject's block begins."""
        if self.n == 0:
            return np.array([], dtype=np.intp)
        change = np.ones(self.n, dtype=bool)
        change[1:] = self.id[1:] != self.id[:-1]
        return np.flatnonzero(change)

    def last_rows(self) -> NDArray:
        """Boolean mask marking the final row of each subject."""
        last = np.ones(self.n, dtype=bool)
        if self.n > 1:
            last[:-1] = self.id[1:] != self.id[:-1]
        return last

    def column(self, name: str) -> NDArray:
        if name == "id":
            return self.id
        if name == "tstart":
            return self.tstart
        if name == "tstop":
            return self.tstop
        if name == "event":
            return self.event
        try:
            return self.columns[name]
        except KeyError:
            raise ValidationError(
                f"Unknown column {name!r}; available: {', '.join(self.names)}"
            ) from None

    def with_column(
        self, name: str, values, *, segment: bool = False,
    ) -> IntervalTable:
        """Return a copy with ``name`` added (or replaced).

        ``segment=True`` marks the column as a segment column, which a
        later split() may replace.
        """
        if name in RESERVED_COLUMNS:
            raise ValidationError(f"Cannot replace fixed column {name!r}")
        arr = as_column(values)
        if len(arr) != self.n:
            raise DimensionError(
                f"Column {name!r} has {len(arr)} rows, expected {self.n}"
            )
        columns = dict(self.columns)
        columns[name] = arr
        segments = tuple(s for s in self.segment_columns if s != name)
        if segment:
            segments += (name,)
        return IntervalTable(
            id=self.id, tstart=self.tstart, tstop=self.tstop,
            event=self.event, columns=columns,
            event_columns=self.event_columns,
            segment_columns=segments,
        )

    def select(self, mask) -> IntervalTable:
        """Return the rows where ``mask`` is true.

        Selection drops rows without re-partitioning, so the result may
        cover only part of a subject's span.
        """
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != (self.n,):
            raise DimensionError(
                f"mask must have shape ({self.n},), got {mask.shape}"
            )
        return IntervalTable(
            id=self.id[mask], tstart=self.tstart[mask],
            tstop=self.tstop[mask], event=self.event[mask],
            columns={k: v[mask] for k, v in self.columns.items()},
            event_columns=self.event_columns,
            segment_columns=self.segment_columns,
        )

    def to_dict(self) -> dict[str, NDArray]:
        """Columns as a name -> array mapping (e.g. for a DataFrame)."""
        out = {name: self.column(name) for name in RESERVED_COLUMNS}
        out.update(self.columns)
        return out

    def to_arrays(
        self,
        covariates: list[str] | tuple[str, ...],
        *,
        levels: dict[str, list[Any]] | None = None,
    ) -> tuple[NDArray, NDArray, NDArray, NDArray, list[str]]:
        """Counting-process arrays for a start-stop hazard model fitter.

        Numeric covariates enter as-is. Categorical covariates are
        treatment-coded against their first level (sorted order unless
        given in ``levels``).

        Returns
        -------
        tstart, tstop, event : NDArray
        X : NDArray
            (n, p) design matrix without intercept.
        names : list of str
            Column names of X.
        """
        levels = levels or {}
        blocks = []
        names = []
        for name in covariates:
            values = self.column(name)
            if name not in levels and np.issubdtype(values.dtype, np.number):
                blocks.append(values.astype(np.float64).reshape(-1, 1))
                names.append(name)
                continue
            categories = list(levels[name]) if name in levels else sorted_unique(values)
            if any(canonical(v) is None for v in values.tolist()):
                raise ValidationError(
                    f"Covariate {name!r} has missing values; cannot encode"
                )
            for category in categories[1:]:
                blocks.append((values == category).astype(np.float64).reshape(-1, 1))
                names.append(f"{name}[{category}]")
        X = np.hstack(blocks) if blocks else np.empty((self.n, 0))
        return self.tstart, self.tstop, self.event.astype(np.float64), X, names


def canonical(value: Any) -> Any:
    """Map NaN to None so all missing values form a single level."""
    if isinstance(value, (float, np.floating)) and np.isnan(value):
        return None
    return value


def sorted_unique(values: NDArray) -> list[Any]:
    """Distinct values in sorted order, missing (None or NaN) last as None.

    Values that cannot be ordered against each other (e.g. ints mixed with
    strings in an object column) keep their first-seen order.
    """
    distinct = list(dict.fromkeys(canonical(v) for v in values.tolist()))
    present = [v for v in distinct if v is not None]
    missing = [None] * (len(distinct) - len(present))
    try:
        return sorted(present) + missing
    except TypeError:
        # Unorderable mix of types
        return present + missing


@dataclass(frozen=True)
class AggregateParams:
    """Descriptive person-time table.

    One entry per group; arrays are aligned on the group axis.
    """

    by: tuple[str, ...]              # grouping columns, outermost first
    keys: tuple[NDArray, ...]        # per grouping column: (g,) group values
    n_subjects: NDArray              # (g,) distinct subjects per group
    person_time: NDArray             # (g,) summed interval durations
    events: NDArray                  # (g,) terminal events
    rate: NDArray                    # (g,) events / person_time * scale
    rate_lower: NDArray              # (g,) exact Poisson lower limit
    rate_upper: NDArray              # (g,) exact Poisson upper limit
    rate_ratio: NDArray              # (g,) rate / reference rate
    reference: NDArray               # (g,) index of each group's reference
    within: tuple[str, ...]          # columns the reference is chosen within
    event_column: str
    scale: float                     # rate unit, e.g. 1000 person-years
    conf_level: float
