"""
Wall-clock timing of solver runs.

A Timer is entered once around a whole solver call; named sections
inside it record where the time went. The result is the ``timing`` dict
stored on every Result.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Overall timer with named, accumulating sections.

    Usage:
        with Timer() as timer:
            with timer.section('merge'):
                table = merge_episodes(...)
            with timer.section('check'):
                check_episodes(table)

        timer.result()
        # {'total_seconds': 0.012, 'merge': 0.011, 'check': 0.001}
    """

    def __init__(self):
        self._sections: dict[str, float] = {}
        self._started: float | None = None
        self._elapsed: float | None = None

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        self._elapsed = None
        return self

    def __exit__(self, *exc) -> None:
        self._elapsed = time.perf_counter() - self._started

    @property
    def sections(self) -> tuple[str, ...]:
        """Section names in the order they were first entered."""
        return tuple(self._sections)

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Time a named section; re-entering a name adds to its total."""
        if self._started is None:
            raise RuntimeError(f"Timer.section({name!r}) used outside the timer")
        begin = time.perf_counter()
        try:
            yield
        finally:
            self._sections[name] = (
                self._sections.get(name, 0.0) + time.perf_counter() - begin
            )

    def result(self) -> dict[str, float]:
        """
        Timing dict for a Result.

        Raises:
            RuntimeError: If the timer has not been exited yet
        """
        if self._elapsed is None:
            raise RuntimeError("Timer.result() called before the timer finished")
        return {'total_seconds': self._elapsed, **self._sections}
