"""
Core infrastructure for pycounting.

Shared abstractions used by the episodes subpackage.

Key components:
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing utilities
"""

from pycounting.core.result import Result
from pycounting.core.exceptions import (
    PyCountingError,
    ValidationError,
    DimensionError,
    TimeConversionError,
    InvariantError,
)

__all__ = [
    # Result
    "Result",
    # Exceptions
    "PyCountingError",
    "ValidationError",
    "DimensionError",
    "TimeConversionError",
    "InvariantError",
]
