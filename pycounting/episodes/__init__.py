"""
Time-varying counting-process data.

Public API:
    decimal_year(dates) -> float or NDArray
    calendar_cuts(start, stop, months) -> (dates, times)
    cut(values, breaks, labels) -> NDArray
    merge(subjects, events, tdcs) -> EpisodeSolution
    split(intervals, cuts) -> EpisodeSolution
    inject(intervals, tdc) -> EpisodeSolution
    aggregate(intervals, by) -> AggregateSolution
"""

from pycounting.episodes._common import AggregateParams, IntervalTable
from pycounting.episodes._cut import cut
from pycounting.episodes._partition import check_episodes
from pycounting.episodes._timeaxis import calendar_cuts, decimal_year
from pycounting.episodes.design import EventStream, SubjectDesign, TdcStream
from pycounting.episodes.solution import AggregateSolution, EpisodeSolution
from pycounting.episodes.solvers import aggregate, inject, merge, split

__all__ = [
    "decimal_year",
    "calendar_cuts",
    "cut",
    "merge",
    "split",
    "inject",
    "aggregate",
    "check_episodes",
    "SubjectDesign",
    "EventStream",
    "TdcStream",
    "IntervalTable",
    "AggregateParams",
    "EpisodeSolution",
    "AggregateSolution",
]
