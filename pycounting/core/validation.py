"""
Array validators for pycounting inputs.

Every validator checks one property, names the offending parameter and
reports the values that failed. Nothing is silently repaired: apart from
np.asarray on array-likes, inputs are either accepted as given or
rejected with a ValidationError.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from pycounting.core.exceptions import ValidationError, DimensionError


def check_times(
    array: ArrayLike,
    name: str,
) -> NDArray[np.float64]:
    """
    Coerce a time column to a 1D float64 array.

    NaN (and None in object input) is kept: a missing time means the
    event or change never happened. Spans and cut points additionally
    go through check_finite().

    Args:
        array: Numeric times, typically decimal years
        name: Parameter name for error messages

    Returns:
        1D float64 array

    Raises:
        ValidationError: If the values are not numeric (e.g. raw dates)
        DimensionError: If the input has more than one dimension
    """
    try:
        times = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if times.ndim == 0:
        times = times.reshape(1)

    if times.dtype == object:
        try:
            times = times.astype(np.float64)
        except (ValueError, TypeError) as e:
            raise ValidationError(
                f"{name}: non-numeric values in object array "
                f"(use decimal_year() to convert dates)"
            ) from e

    if not (np.issubdtype(times.dtype, np.number) or times.dtype == bool):
        raise ValidationError(
            f"{name}: non-numeric dtype {times.dtype}, expected numeric times "
            f"(use decimal_year() to convert dates)"
        )

    check_1d(times, name)
    return times.astype(np.float64)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Reject NaN and Inf, reporting how many of each were found.

    Raises:
        ValidationError: If any value is not finite
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_1d(array: NDArray, name: str) -> None:
    """Columns are one-dimensional."""
    if array.ndim != 1:
        raise DimensionError(
            f"{name}: expected 1D array, got {array.ndim}D with shape {array.shape}"
        )


def check_consistent_length(
    *arrays: NDArray,
    names: tuple[str, ...]
) -> None:
    """
    Verify that parallel record columns (id, time, value) line up.

    Args:
        *arrays: Columns to compare
        names: One parameter name per column

    Raises:
        ValueError: If names and arrays differ in number (caller bug)
        DimensionError: If the columns differ in length
    """
    if len(arrays) != len(names):
        raise ValueError(
            f"got {len(arrays)} arrays but {len(names)} names"
        )

    lengths = [arr.shape[0] for arr in arrays]
    if len(set(lengths)) > 1:
        details = ", ".join(f"{n}={k}" for n, k in zip(names, lengths))
        raise DimensionError(f"Inconsistent lengths: {details}")


def check_strictly_increasing(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify that cut points ascend with no ties.

    Raises:
        ValidationError: At the first element not above its predecessor
    """
    if array.shape[0] < 2:
        return
    bad = np.flatnonzero(np.diff(array) <= 0)
    if len(bad) > 0:
        i = int(bad[0])
        raise ValidationError(
            f"{name}: must be strictly increasing, got {array[i]!r} "
            f"followed by {array[i + 1]!r} at position {i + 1}"
        )


def check_unique(array: NDArray, name: str) -> None:
    """
    Verify that no value (e.g. subject id) occurs twice.

    Raises:
        ValidationError: Listing the repeated values in ``ids``
    """
    values, counts = np.unique(array, return_counts=True)
    dup = values[counts > 1]
    if len(dup) > 0:
        shown = ", ".join(repr(v) for v in dup[:5].tolist())
        raise ValidationError(
            f"{name}: {len(dup)} duplicated value(s), e.g. {shown}",
            ids=tuple(dup.tolist()),
        )
