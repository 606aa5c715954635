"""
Pytest configuration file for the memoized sequence tests.

This file ensures that the parent directory is in the Python path
so that test files can import memoseq, recurrences, models and utils.
"""

import sys
from pathlib import Path

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import pytest

from utils import clear_performance_metrics


@pytest.fixture(autouse=True)
def reset_performance_metrics():
    """Start every test with an empty performance registry"""
    clear_performance_metrics()
    yield
    clear_performance_metrics()
