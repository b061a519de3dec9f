"""
conftest.py
~~~~~~~~~~~

Shared fixtures for the mini_cnn test suite.
"""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest


@pytest.fixture(autouse=True)
def seeded_random():
    """Make random kernel/weight initialization reproducible per test."""
    np.random.seed(1234)
    yield


@pytest.fixture
def close_figures():
    """Close matplotlib figures created by a test."""
    import matplotlib.pyplot as plt
    yield
    plt.close('all')
