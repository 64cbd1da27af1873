"""
Shared compute infrastructure for pycounting.

Submodules:
    timing: Wall-clock timing of solver runs
"""

from pycounting.core.compute.timing import Timer

__all__ = [
    "Timer",
]
