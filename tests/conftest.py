"""
Fixtures shared by every test package.
"""

import numpy as np
import pytest


SEED = 20200301


@pytest.fixture
def rng():
    """Fresh generator per test so random cohorts are reproducible."""
    return np.random.default_rng(SEED)
