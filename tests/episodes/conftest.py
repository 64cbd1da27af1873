"""
Shared fixtures for episode tests.

``cohort`` is a small random cohort with terminal events (some outside the
observation window), an indicator covariate and a categorical covariate
with repeated records.
"""

import warnings

import numpy as np
import pytest

from pycounting.episodes import EventStream, SubjectDesign, TdcStream, merge


def make_cohort(rng, n=60):
    ids = np.arange(1, n + 1)
    t_start = 2020.0 + rng.uniform(0.0, 0.5, n)
    t_stop = t_start + rng.uniform(0.2, 2.0, n)
    sex = rng.choice(["F", "M"], n)

    has_event = rng.uniform(size=n) < 0.4
    event_time = np.where(
        has_event,
        rng.uniform(t_start - 0.2, t_stop + 0.2),
        np.nan,
    )

    tested = rng.uniform(size=n) < 0.7
    first_test = np.where(tested, rng.uniform(t_start - 0.3, t_stop), np.nan)

    k = 3 * n
    band_id = rng.choice(ids, k)
    band_time = rng.uniform(2019.8, 2022.5, k)
    band_value = rng.choice(["low", "mid", "high"], k)

    subjects = SubjectDesign.for_subjects(ids, t_start, t_stop, {"sex": sex})
    outcome = EventStream.from_records("outcome", ids, event_time)
    first = TdcStream.from_records("first_test", ids, first_test)
    band = TdcStream.from_records(
        "band", band_id, band_time, band_value, default="none",
    )
    return subjects, outcome, first, band


@pytest.fixture
def cohort(rng):
    return make_cohort(rng)


@pytest.fixture
def merged(cohort):
    subjects, outcome, first, band = cohort
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        return merge(subjects, events=[outcome], tdcs=[first, band])
