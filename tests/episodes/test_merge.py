"""
Tests for merge(): the interval merge engine.

Covers the worked examples (covariate change, terminal event), clipping of
out-of-window records, the event-wins tie break, multiple event kinds,
per-record problem reporting and whole-subject validation failures.
"""

import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from pycounting.core.exceptions import ValidationError
from pycounting.episodes import (
    EpisodeSolution,
    EventStream,
    SubjectDesign,
    TdcStream,
    merge,
)


# ── Fixtures ─────────────────────────────────────────────────────────

def one_subject(key="A", start=2020.0, stop=2021.0, **attributes):
    return SubjectDesign.for_subjects([key], [start], [stop], attributes or None)


def tested(key="A", time=2020.5):
    return TdcStream.from_records(
        "test", [key], [time], ["tested"], default="none",
    )


class TestWorkedExamples:
    """The two reference examples."""

    def test_covariate_change_splits_span(self):
        result = merge(one_subject(), tdcs=[tested()])
        table = result.intervals

        assert isinstance(result, EpisodeSolution)
        assert table.n == 2
        assert_allclose(table.tstart, [2020.0, 2020.5])
        assert_allclose(table.tstop, [2020.5, 2021.0])
        assert list(table.column("test")) == ["none", "tested"]
        assert_array_equal(table.event, [0, 0])

    def test_event_truncates_span(self):
        outcome = EventStream.from_records("outcome", ["B"], [2020.75])
        result = merge(one_subject("B"), events=[outcome])
        table = result.intervals

        assert table.n == 1
        assert table.tstart[0] == 2020.0
        assert table.tstop[0] == 2020.75
        assert table.event[0] == 1
        assert table.column("outcome")[0] == 1


class TestCovariates:
    """Step-function semantics of time-dependent covariates."""

    def test_indicator_stream_defaults_to_zero(self):
        first = TdcStream.from_records("first_test", ["A"], [2020.25])
        table = merge(one_subject(), tdcs=[first]).intervals
        assert_array_equal(table.column("first_test"), [0, 1])
        assert_allclose(table.tstop, [2020.25, 2021.0])

    def test_missing_time_means_never(self):
        first = TdcStream.from_records("first_test", ["A"], [np.nan])
        result = merge(one_subject(), tdcs=[first])
        assert result.n_intervals == 1
        assert result.intervals.column("first_test")[0] == 0
        assert result.info["n_missing_covariate_times"] == 1

    def test_change_before_start_is_clipped(self):
        result = merge(one_subject(), tdcs=[tested(time=2019.5)])
        table = result.intervals
        assert table.n == 1
        assert table.column("test")[0] == "tested"

    def test_change_at_start_sets_initial_value(self):
        table = merge(one_subject(), tdcs=[tested(time=2020.0)]).intervals
        assert table.n == 1
        assert table.column("test")[0] == "tested"

    def test_change_at_or_after_stop_is_dropped(self):
        stream = TdcStream.from_records(
            "test", ["A", "A"], [2021.0, 2022.0], ["x", "y"], default="none",
        )
        result = merge(one_subject(), tdcs=[stream])
        assert result.n_intervals == 1
        assert result.intervals.column("test")[0] == "none"
        assert result.info["n_dropped_covariate_records"] == 2

    def test_value_at_change_time_is_new_value(self):
        stream = TdcStream.from_records(
            "band", ["A", "A"], [2020.2, 2020.6], ["low", "high"],
        )
        table = merge(one_subject(), tdcs=[stream]).intervals
        assert list(table.column("band")) == [None, "low", "high"]
        assert_allclose(table.tstart, [2020.0, 2020.2, 2020.6])

    def test_repeated_value_does_not_split(self):
        stream = TdcStream.from_records(
            "band", ["A", "A", "A"], [2020.2, 2020.4, 2020.6],
            ["low", "low", "high"],
        )
        table = merge(one_subject(), tdcs=[stream]).intervals
        assert list(table.column("band")) == [None, "low", "high"]
        assert_allclose(table.tstop, [2020.2, 2020.6, 2021.0])

    def test_same_instant_last_record_wins(self):
        stream = TdcStream.from_records(
            "band", ["A", "A"], [2020.3, 2020.3], ["low", "high"],
        )
        table = merge(one_subject(), tdcs=[stream]).intervals
        assert list(table.column("band")) == [None, "high"]

    def test_union_of_breakpoints(self):
        first = TdcStream.from_records("first_test", ["A"], [2020.25])
        positive = TdcStream.from_records("positive_test", ["A"], [2020.5])
        table = merge(one_subject(), tdcs=[first, positive]).intervals
        assert_allclose(table.tstart, [2020.0, 2020.25, 2020.5])
        assert_array_equal(table.column("first_test"), [0, 1, 1])
        assert_array_equal(table.column("positive_test"), [0, 0, 1])

    def test_shared_breakpoint_not_duplicated(self):
        first = TdcStream.from_records("first_test", ["A"], [2020.5])
        positive = TdcStream.from_records("positive_test", ["A"], [2020.5])
        table = merge(one_subject(), tdcs=[first, positive]).intervals
        assert table.n == 2

    def test_record_order_irrelevant(self):
        times = [2020.7, 2020.1, 2020.4]
        values = ["c", "a", "b"]
        s1 = TdcStream.from_records("v", ["A"] * 3, times, values)
        s2 = TdcStream.from_records("v", ["A"] * 3, times[::-1], values[::-1])
        t1 = merge(one_subject(), tdcs=[s1]).intervals
        t2 = merge(one_subject(), tdcs=[s2]).intervals
        assert_array_equal(t1.tstart, t2.tstart)
        assert list(t1.column("v")) == list(t2.column("v")) == [None, "a", "b", "c"]


class TestEvents:
    """Terminal events and window clipping."""

    def test_event_at_stop_flags_last_interval(self):
        outcome = EventStream.from_records("outcome", ["A"], [2021.0])
        table = merge(one_subject(), events=[outcome], tdcs=[tested()]).intervals
        assert table.n == 2
        assert table.tstop[-1] == 2021.0
        assert_array_equal(table.event, [0, 1])

    def test_event_after_stop_ignored(self):
        outcome = EventStream.from_records("outcome", ["A"], [2021.5])
        result = merge(one_subject(), events=[outcome])
        assert result.n_events == 0
        assert result.intervals.tstop[0] == 2021.0
        assert result.info["n_dropped_events"] == 1

    def test_event_at_start_ignored(self):
        outcome = EventStream.from_records("outcome", ["A"], [2020.0])
        result = merge(one_subject(), events=[outcome])
        assert result.n_events == 0
        assert result.info["n_dropped_events"] == 1

    def test_event_drops_later_changes(self):
        outcome = EventStream.from_records("outcome", ["A"], [2020.3])
        result = merge(one_subject(), events=[outcome], tdcs=[tested()])
        table = result.intervals
        assert table.n == 1
        assert table.tstop[0] == 2020.3
        assert table.column("test")[0] == "none"
        assert result.info["n_dropped_covariate_records"] == 1

    def test_event_wins_tie_with_change(self):
        outcome = EventStream.from_records("outcome", ["A"], [2020.5])
        table = merge(one_subject(), events=[outcome], tdcs=[tested()]).intervals
        assert table.n == 1
        assert table.tstop[0] == 2020.5
        assert table.event[0] == 1
        assert table.column("test")[0] == "none"

    def test_earliest_event_terminates(self):
        outcome = EventStream.from_records("outcome", ["A", "A"], [2020.8, 2020.6])
        table = merge(one_subject(), events=[outcome]).intervals
        assert table.tstop[0] == 2020.6

    def test_event_kinds(self):
        death = EventStream.from_records("death", ["A"], [2020.9])
        outcome = EventStream.from_records("outcome", ["A"], [2020.6])
        table = merge(one_subject(), events=[death, outcome]).intervals
        assert table.tstop[0] == 2020.6
        assert table.column("outcome")[0] == 1
        assert table.column("death")[0] == 0
        assert table.event_columns == ("death", "outcome")

    def test_simultaneous_kinds_both_flagged(self):
        death = EventStream.from_records("death", ["A"], [2020.6])
        outcome = EventStream.from_records("outcome", ["A"], [2020.6])
        table = merge(one_subject(), events=[death, outcome]).intervals
        assert table.column("outcome")[0] == 1
        assert table.column("death")[0] == 1
        assert table.event[0] == 1


class TestSubjects:
    """Baseline handling across several subjects."""

    def test_subject_order_preserved(self):
        subjects = SubjectDesign.for_subjects(
            ["b", "a", "c"], [2020.0] * 3, [2021.0] * 3,
        )
        stream = TdcStream.from_records("first_test", ["c", "a"], [2020.5, 2020.5])
        table = merge(subjects, tdcs=[stream]).intervals
        assert list(table.id) == ["b", "a", "a", "c", "c"]

    def test_attributes_pass_through(self):
        subjects = SubjectDesign.for_subjects(
            [1, 2], [2020.0, 2020.0], [2021.0, 2021.0],
            {"sex": ["F", "M"], "age": [34, 71]},
        )
        stream = TdcStream.from_records("first_test", [2], [2020.5])
        table = merge(subjects, tdcs=[stream]).intervals
        assert list(table.column("sex")) == ["F", "M", "M"]
        assert_array_equal(table.column("age"), [34, 71, 71])

    def test_unknown_id_reported_and_discarded(self):
        stream = TdcStream.from_records(
            "first_test", ["A", "Z", "Z"], [2020.5, 2020.2, 2020.3],
        )
        with pytest.warns(RuntimeWarning, match="unknown subject"):
            result = merge(one_subject(), tdcs=[stream])
        assert result.n_intervals == 2
        assert len(result.warnings) == 1
        assert "discarded 2 record(s)" in result.warnings[0]
        assert "'Z'" in result.warnings[0]

    def test_unknown_id_in_event_stream(self):
        outcome = EventStream.from_records(
            "outcome", ["A", "Z"], [2020.6, 2020.3],
        )
        with pytest.warns(RuntimeWarning, match="unknown subject"):
            result = merge(one_subject(), events=[outcome], tdcs=[tested()])
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("outcome:")
        assert "'Z'" in result.warnings[0]

        clean = EventStream.from_records("outcome", ["A"], [2020.6])
        expected = merge(one_subject(), events=[clean], tdcs=[tested()]).intervals
        table = result.intervals
        assert_allclose(table.tstart, expected.tstart)
        assert_allclose(table.tstop, expected.tstop)
        assert_array_equal(table.event, [0, 1])
        assert_array_equal(table.column("outcome"), expected.column("outcome"))
        assert result.info["n_dropped_events"] == 0

    def test_no_warning_for_clean_input(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = merge(one_subject(), tdcs=[tested()])
        assert result.warnings == ()

    def test_inverted_span_fatal(self):
        with pytest.raises(ValidationError) as exc_info:
            SubjectDesign.for_subjects(
                [1, 2, 3], [2020.0, 2020.0, 2020.0], [2021.0, 2020.0, 2019.0],
            )
        assert exc_info.value.ids == (2, 3)

    def test_duplicate_subject_fatal(self):
        with pytest.raises(ValidationError, match="duplicated"):
            SubjectDesign.for_subjects([1, 1], [2020.0, 2020.0], [2021.0, 2021.0])

    def test_missing_span_time_fatal(self):
        with pytest.raises(ValidationError, match="NaN"):
            SubjectDesign.for_subjects([1], [np.nan], [2021.0])

    def test_name_clash_rejected(self):
        first = TdcStream.from_records("x", ["A"], [2020.5])
        outcome = EventStream.from_records("x", ["A"], [2020.7])
        with pytest.raises(ValidationError, match="more than once"):
            merge(one_subject(), events=[outcome], tdcs=[first])

    def test_reserved_name_rejected(self):
        with pytest.raises(ValidationError, match="fixed column"):
            TdcStream.from_records("event", ["A"], [2020.5])

    def test_summary_and_repr(self):
        result = merge(one_subject(), tdcs=[tested()])
        text = result.summary()
        assert "Call: merge()" in text
        assert "intervals=2" in text
        assert "EpisodeSolution(subjects=1, intervals=2, events=0)" == repr(result)
        assert result.timing["total_seconds"] >= 0
