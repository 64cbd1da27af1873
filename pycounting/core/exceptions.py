"""
Exception hierarchy for pycounting.

All exceptions inherit from PyCountingError to allow catching any
library-specific error.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages name the offending subjects or values
    - Whole-subject and structural problems raise; discardable
      per-record problems are reported as warnings instead
"""


class PyCountingError(Exception):
    """Base exception for all pycounting errors."""
    pass


class ValidationError(PyCountingError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks, e.g. a
    subject whose observation span is empty or inverted.

    Attributes:
        ids: Offending subject ids, if the error concerns subjects
    """

    def __init__(self, message: str, ids: tuple = ()):
        super().__init__(message)
        self.ids = tuple(ids)


class DimensionError(ValidationError):
    """
    Array lengths are inconsistent.

    Raised when columns that describe the same records have different
    lengths.
    """
    pass


class TimeConversionError(ValidationError):
    """
    A calendar date could not be converted to the numeric timeline.

    Attributes:
        value: The (first) value that failed to parse
        position: Index of that value in the input, if known
        values: Every value that failed, in input order
        positions: Index of each failed value
    """

    def __init__(
        self,
        message: str,
        value=None,
        position: int | None = None,
        values: tuple = (),
        positions: tuple = (),
    ):
        super().__init__(message)
        if not values and value is not None:
            values = (value,)
        if not positions and position is not None:
            positions = (position,)
        self.values = tuple(values)
        self.positions = tuple(positions)
        self.value = self.values[0] if self.values else None
        self.position = self.positions[0] if self.positions else None


class InvariantError(PyCountingError):
    """
    An interval table violates a structural invariant.

    Indicates an internal logic fault (overlapping, non-contiguous,
    zero-length or misplaced-event intervals). Never coerced.

    Attributes:
        invariant: Short name of the violated property
        ids: Subjects on which the violation was detected
    """

    def __init__(self, message: str, invariant: str, ids: tuple = ()):
        super().__init__(message)
        self.invariant = invariant
        self.ids = tuple(ids)
