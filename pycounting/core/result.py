"""
Generic result container for all pycounting computations.

Every public operation returns a Solution that wraps a Result. The
envelope carries the domain payload together with run diagnostics, so
counts of discarded records, warnings and timings travel with the data
instead of going to a log.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (record counts, options used)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) so derived tables never alias their inputs
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope.

    Type Parameters:
        P: The domain-specific payload type

    Attributes:
        params: Domain payload (an IntervalTable, aggregate table, ...)
        info: Structured metadata (counts, options)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the routine that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=table,
        ...     info={'method': 'merge', 'n_subjects': 2},
        ...     timing={'total_seconds': 0.01},
        ...     backend_name='cpu_merge'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
