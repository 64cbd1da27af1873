"""
Calendar dates on a continuous numeric timeline.

A date maps to ``year + elapsed / length``, where ``elapsed`` is the number
of days since January 1 of that year and ``length`` is 365 or 366. All
timestamps handled by the episodes subpackage live on this axis, so a
year of follow-up is worth 1.0 regardless of leap days.
"""

from __future__ import annotations

import datetime

import numpy as np
from numpy.typing import NDArray

from pycounting.core.exceptions import TimeConversionError, ValidationError


_EPOCH_YEAR = 1970


def _parse_one(value) -> np.datetime64 | None:
    """Convert a single date-like value to datetime64[D].

    Missing values give NaT; values that are not dates give None.
    """
    if value is None:
        return np.datetime64('NaT', 'D')
    if isinstance(value, (float, np.floating)) and np.isnan(value):
        return np.datetime64('NaT', 'D')
    if isinstance(value, datetime.datetime):
        return np.datetime64(value.date(), 'D')
    if isinstance(value, datetime.date):
        return np.datetime64(value, 'D')
    if isinstance(value, np.datetime64):
        return value.astype('datetime64[D]')
    if isinstance(value, str):
        text = value.strip()
        if text == "" or text.upper() in ("NA", "NAT"):
            return np.datetime64('NaT', 'D')
        try:
            return np.datetime64(text).astype('datetime64[D]')
        except ValueError:
            return None
    return None


def as_days(dates) -> NDArray:
    """Convert date-like input to a 1D datetime64[D] array.

    Missing values (None, NaT, NaN, empty strings) become NaT.

    Raises
    ------
    TimeConversionError
        Listing every value that cannot be parsed as a date, with its
        position.
    """
    arr = np.asarray(dates)
    if np.issubdtype(arr.dtype, np.datetime64):
        return arr.astype('datetime64[D]').ravel()
    flat = arr.ravel()
    out = np.empty(flat.shape[0], dtype='datetime64[D]')
    bad = []
    for i, value in enumerate(flat.tolist()):
        day = _parse_one(value)
        if day is None:
            bad.append((i, value))
            continue
        out[i] = day
    if bad:
        shown = ", ".join(f"{v!r} at position {i}" for i, v in bad[:10])
        more = f" and {len(bad) - 10} more" if len(bad) > 10 else ""
        raise TimeConversionError(
            f"Failed to convert {len(bad)} value(s) to a date: {shown}{more}",
            positions=tuple(i for i, _ in bad),
            values=tuple(v for _, v in bad),
        )
    return out


def decimal_year(dates):
    """Convert calendar dates to decimal years.

    Parameters
    ----------
    dates : date-like or array-like of date-like
        ``datetime.date``, ``datetime.datetime``, ``numpy.datetime64`` or
        ISO-8601 strings. Missing values are allowed.

    Returns
    -------
    float or NDArray
        A float for scalar input, otherwise a float64 array of the same
        length. Missing dates become NaN.

    Examples
    --------
    >>> decimal_year("2021-07-02") == 2021 + 182 / 365
    True
    """
    scalar = np.ndim(dates) == 0
    days = as_days(dates)

    missing = np.isnat(days)
    safe = np.where(missing, np.datetime64('1970-01-01', 'D'), days)

    year = safe.astype('datetime64[Y]')
    first = year.astype('datetime64[D]')
    following = (year + 1).astype('datetime64[D]')

    elapsed = (safe - first).astype(np.float64)
    length = (following - first).astype(np.float64)

    out = year.astype(np.int64).astype(np.float64) + _EPOCH_YEAR + elapsed / length
    out[missing] = np.nan

    if scalar:
        return float(out[0])
    return out


def calendar_cuts(start, stop, months: int = 2) -> tuple[NDArray, NDArray]:
    """Regular calendar cut points.

    Steps from ``start`` to ``stop`` (inclusive) by ``months`` whole
    months, keeping the day of month of ``start``. A day that does not
    exist in a target month rolls over into the next month.

    Parameters
    ----------
    start, stop : date-like
        First date of the sequence and last admissible date.
    months : int
        Step in calendar months (default 2).

    Returns
    -------
    dates : NDArray
        datetime64[D] cut dates.
    times : NDArray
        The same cut points on the decimal-year axis.
    """
    if months < 1:
        raise ValidationError(f"months must be >= 1, got {months}")

    start_day = as_days(start)
    stop_day = as_days(stop)
    if len(start_day) != 1 or len(stop_day) != 1:
        raise ValidationError("start and stop must be single dates")
    start_day, stop_day = start_day[0], stop_day[0]
    if np.isnat(start_day) or np.isnat(stop_day):
        raise ValidationError("start and stop must not be missing")
    if stop_day < start_day:
        raise ValidationError(
            f"stop ({stop_day}) must not precede start ({start_day})"
        )

    first_month = start_day.astype('datetime64[M]')
    offset = start_day - first_month.astype('datetime64[D]')
    last_month = stop_day.astype('datetime64[M]')

    month_seq = np.arange(first_month, last_month + 1, months)
    dates = month_seq.astype('datetime64[D]') + offset
    dates = dates[dates <= stop_day]

    return dates, decimal_year(dates)
