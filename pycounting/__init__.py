"""
pycounting: counting-process (start-stop) data construction for Python.

Turns per-subject dated facts into time-varying interval tables that a
proportional-hazards fitting routine can consume directly.

Submodules:
    core: Exceptions, Result envelope, validators, timing
    episodes: Interval merge, split, covariate injection and aggregation
"""

__version__ = "0.1.0"

from pycounting import core
from pycounting import episodes

__all__ = [
    "__version__",
    "core",
    "episodes",
]
