"""
Solution wrappers for episode results.

Each Solution wraps a Result[Params] and exposes user-friendly properties
with R-style summary() methods.
"""

from __future__ import annotations

import numpy as np

from pycounting.core.result import Result
from pycounting.episodes._common import AggregateParams, IntervalTable


class EpisodeSolution:
    """Interval table produced by merge(), split() or inject().

    The table itself is available as ``intervals``; the other properties
    are shortcuts and run diagnostics.
    """

    __slots__ = ('_result',)

    def __init__(self, _result: Result[IntervalTable]) -> None:
        self._result = _result

    @property
    def intervals(self) -> IntervalTable:
        return self._result.params

    @property
    def n_intervals(self) -> int:
        return self._result.params.n

    @property
    def n_subjects(self) -> int:
        return self._result.params.n_subjects

    @property
    def n_events(self) -> int:
        return self._result.params.n_events

    @property
    def person_time(self) -> float:
        """Summed interval durations."""
        return self._result.params.person_time

    @property
    def columns(self) -> tuple[str, ...]:
        return self._result.params.names

    @property
    def info(self) -> dict:
        return self._result.info

    @property
    def warnings(self) -> tuple[str, ...]:
        """Per-record problems that were reported and skipped."""
        return self._result.warnings

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def timing(self):
        return self._result.timing

    def summary(self) -> str:
        """R-style summary of the interval table."""
        table = self.intervals
        lines = []
        lines.append(f"Call: {self._result.info.get('method', 'episodes')}()")
        lines.append("")
        lines.append(
            f"  subjects={self.n_subjects}, intervals={self.n_intervals}, "
            f"events={self.n_events}, person-time={self.person_time:.4f}"
        )
        lines.append("")

        header = f"  {'id':>10s}  {'tstart':>10s}  {'tstop':>10s}  {'event':>5s}"
        names = list(table.columns)
        for name in names:
            header += f"  {name:>12s}"
        lines.append(header)

        show = min(table.n, 20)
        for i in range(show):
            row = (
                f"  {str(table.id[i]):>10s}  {table.tstart[i]:10.4f}  "
                f"{table.tstop[i]:10.4f}  {int(table.event[i]):5d}"
            )
            for name in names:
                row += f"  {str(table.columns[name][i]):>12s}"
            lines.append(row)
        if table.n > 20:
            lines.append(f"  ... ({table.n - 20} more rows)")

        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            for w in self.warnings:
                lines.append(f"  {w}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"EpisodeSolution(subjects={self.n_subjects}, "
            f"intervals={self.n_intervals}, events={self.n_events})"
        )


class AggregateSolution:
    """Grouped person-time, event and rate table."""

    __slots__ = ('_result',)

    def __init__(self, _result: Result[AggregateParams]) -> None:
        self._result = _result

    @property
    def by(self) -> tuple[str, ...]:
        return self._result.params.by

    @property
    def keys(self):
        """Per grouping column, the group values (aligned with the other arrays)."""
        return self._result.params.keys

    @property
    def n_groups(self) -> int:
        return len(self._result.params.rate)

    @property
    def n_subjects(self):
        return self._result.params.n_subjects

    @property
    def person_time(self):
        return self._result.params.person_time

    @property
    def events(self):
        return self._result.params.events

    @property
    def rate(self):
        """Events per ``scale`` units of person-time."""
        return self._result.params.rate

    @property
    def rate_lower(self):
        return self._result.params.rate_lower

    @property
    def rate_upper(self):
        return self._result.params.rate_upper

    @property
    def rate_ratio(self):
        """Rate over the reference group's rate (NaN if that rate is zero)."""
        return self._result.params.rate_ratio

    @property
    def reference(self):
        return self._result.params.reference

    @property
    def scale(self) -> float:
        return self._result.params.scale

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def info(self) -> dict:
        return self._result.info

    @property
    def timing(self):
        return self._result.timing

    def group(self, *key) -> int:
        """Position of the group with the given key values."""
        for g in range(self.n_groups):
            if all(k[g] == v for k, v in zip(self.keys, key)):
                return g
        raise KeyError(key)

    def to_dict(self) -> dict[str, np.ndarray]:
        """Columns of the table as a name -> array mapping."""
        out = {name: key for name, key in zip(self.by, self.keys)}
        out.update({
            "individuals": self.n_subjects,
            "observation_time": self.person_time,
            "events": self.events,
            "rate": self.rate,
            "rate_lower": self.rate_lower,
            "rate_upper": self.rate_upper,
            "rate_ratio": self.rate_ratio,
        })
        return out

    def summary(self) -> str:
        """R-style descriptive table."""
        lines = []
        lines.append("Call: aggregate()")
        lines.append("")
        unit = f"{self.scale:g}"
        ci_pct = int(round(self.conf_level * 100))
        lines.append(
            f"  rate per {unit} units of person-time, "
            f"{ci_pct}% exact Poisson limits"
        )
        lines.append("")

        header = "  " + "  ".join(f"{name:>14s}" for name in self.by)
        header += (
            f"  {'n':>8s}  {'person-time':>12s}  {'events':>8s}  "
            f"{'rate':>10s}  {'lower':>10s}  {'upper':>10s}  {'ratio':>8s}"
        )
        lines.append(header)
        for g in range(self.n_groups):
            row = "  " + "  ".join(f"{str(k[g]):>14s}" for k in self.keys)
            row += (
                f"  {self.n_subjects[g]:8d}  {self.person_time[g]:12.4f}  "
                f"{self.events[g]:8d}  {self.rate[g]:10.4f}  "
                f"{self.rate_lower[g]:10.4f}  {self.rate_upper[g]:10.4f}  "
                f"{self.rate_ratio[g]:8.4f}"
            )
            lines.append(row)

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"AggregateSolution(by={list(self.by)}, groups={self.n_groups}, "
            f"events={int(np.sum(self.events))})"
        )
