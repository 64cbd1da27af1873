"""
Immutable containers for the inputs of interval construction.

SubjectDesign holds one baseline observation span per subject plus
time-invariant attributes. EventStream and TdcStream hold dated records
that refer to subjects by id. Validates inputs at construction time, so
the merge engine only has to deal with per-record problems such as
unknown ids.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pycounting.core.exceptions import ValidationError
from pycounting.core.validation import (
    check_1d,
    check_consistent_length,
    check_finite,
    check_times,
    check_unique,
)
from pycounting.episodes._common import RESERVED_COLUMNS, as_column


def _check_name(name: str, what: str) -> None:
    if not isinstance(name, str) or not name:
        raise ValidationError(f"{what} name must be a non-empty string, got {name!r}")
    if name in RESERVED_COLUMNS:
        raise ValidationError(
            f"{what} name {name!r} clashes with a fixed column "
            f"({', '.join(RESERVED_COLUMNS)})"
        )


@dataclass(frozen=True)
class SubjectDesign:
    """Baseline observation spans.

    Parameters
    ----------
    id : NDArray
        Subject identifiers, unique.
    t_start, t_stop : NDArray
        Span ``[t_start, t_stop)`` per subject on the numeric timeline.
    attributes : dict
        Time-invariant columns passed through to every interval.
    """

    id: NDArray
    t_start: NDArray
    t_stop: NDArray
    attributes: dict[str, NDArray] = field(default_factory=dict)

    @classmethod
    def for_subjects(
        cls,
        id,
        t_start,
        t_stop,
        attributes: dict[str, Any] | None = None,
    ) -> SubjectDesign:
        """Create and validate the baseline.

        Raises
        ------
        ValidationError
            On duplicate ids, missing or infinite times, or any span with
            ``t_stop <= t_start``. The error lists every offending id.
        """
        ids = as_column(id)
        check_1d(ids, "id")
        t_start = check_times(t_start, "t_start")
        t_stop = check_times(t_stop, "t_stop")
        check_consistent_length(ids, t_start, t_stop, names=("id", "t_start", "t_stop"))

        if len(ids) == 0:
            raise ValidationError("subjects must contain at least one subject")

        check_unique(ids, "id")
        check_finite(t_start, "t_start")
        check_finite(t_stop, "t_stop")

        bad = t_stop <= t_start
        if np.any(bad):
            offending = ids[bad]
            shown = ", ".join(repr(v) for v in offending[:5].tolist())
            raise ValidationError(
                f"{int(bad.sum())} subject(s) have an empty or inverted span "
                f"(t_stop <= t_start), e.g. {shown}",
                ids=tuple(offending.tolist()),
            )

        attrs = {}
        for name, values in (attributes or {}).items():
            _check_name(name, "Attribute")
            arr = as_column(values)
            check_consistent_length(ids, arr, names=("id", name))
            attrs[name] = arr

        return cls(id=ids, t_start=t_start, t_stop=t_stop, attributes=attrs)

    @property
    def n(self) -> int:
        """Number of subjects."""
        return len(self.id)

    def index(self) -> dict[Any, int]:
        """Map subject id to its row position."""
        return {key: i for i, key in enumerate(self.id.tolist())}


@dataclass(frozen=True)
class EventStream:
    """Terminal event records of one kind.

    ``time`` is NaN-free: missing times ("no event") are dropped at
    construction and counted in ``n_missing``.
    """

    name: str
    id: NDArray
    time: NDArray
    n_missing: int = 0

    @classmethod
    def from_records(cls, name: str, id, time) -> EventStream:
        _check_name(name, "Event")
        ids = as_column(id)
        time = check_times(time, f"{name}.time")
        check_consistent_length(ids, time, names=(f"{name}.id", f"{name}.time"))
        present = ~np.isnan(time)
        if np.any(np.isinf(time)):
            raise ValidationError(f"{name}.time: contains infinite values")
        return cls(
            name=name,
            id=ids[present],
            time=time[present],
            n_missing=int(np.sum(~present)),
        )

    def __len__(self) -> int:
        return len(self.id)


@dataclass(frozen=True)
class TdcStream:
    """Time-dependent covariate change records.

    Each record means "from ``time`` on, the covariate holds ``value``".
    Before a subject's first record the covariate holds ``default``.

    An indicator stream (no values) switches from 0 to 1 at the
    recorded time.
    """

    name: str
    id: NDArray
    time: NDArray
    value: NDArray
    default: Any = None
    n_missing: int = 0

    @classmethod
    def from_records(
        cls,
        name: str,
        id,
        time,
        value=None,
        *,
        default: Any = ...,
    ) -> TdcStream:
        """Create and validate a covariate stream.

        Parameters
        ----------
        name : str
            Column name of the covariate in the interval table.
        id, time : array-like
            Subject id and change time per record. NaN times are dropped.
        value : array-like or None
            New value per record. None makes an indicator stream.
        default : Any
            Value before the first record. Defaults to 0 for indicator
            streams and None otherwise.
        """
        _check_name(name, "Covariate")
        ids = as_column(id)
        time = check_times(time, f"{name}.time")
        check_consistent_length(ids, time, names=(f"{name}.id", f"{name}.time"))
        if np.any(np.isinf(time)):
            raise ValidationError(f"{name}.time: contains infinite values")

        if value is None:
            values = np.ones(len(time), dtype=np.int64)
            if default is ...:
                default = 0
        else:
            values = as_column(value)
            check_consistent_length(ids, values, names=(f"{name}.id", f"{name}.value"))
            if default is ...:
                default = None

        present = ~np.isnan(time)
        return cls(
            name=name,
            id=ids[present],
            time=time[present],
            value=values[present],
            default=default,
            n_missing=int(np.sum(~present)),
        )

    def __len__(self) -> int:
        return len(self.id)
