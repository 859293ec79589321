"""
Global pytest fixtures for ortpin tests.

This module provides:
- Fault handling for native crashes
- The in-process FakeApi backend (``fake_api``)
- Bound tensor helpers
- A ``native`` marker for tests that load the real onnxruntime library

Tests marked ``native`` are skipped when the library cannot be found
(set ORTPIN_ORT_LIBRARY or install the onnxruntime wheel).
"""

import faulthandler

import numpy as np
import pytest

from tests.fixtures import FakeApi, FakeModel

# Enable faulthandler to trace native crashes (segfaults)
faulthandler.enable()


# =============================================================================
# Backend Fixtures
# =============================================================================


@pytest.fixture
def fake_api():
    """A fresh FakeApi with one input ``x`` and one output ``y``."""
    return FakeApi()


@pytest.fixture
def two_output_api():
    """FakeApi whose model declares outputs ``y`` and ``z``."""
    return FakeApi(FakeModel(input_names=["x"], output_names=["y", "z"]))


@pytest.fixture
def session(fake_api):
    """An open Session on the fake backend."""
    from ortpin import Session

    s = Session(b"fake-model", api=fake_api)
    yield s
    s.close()


# =============================================================================
# Test Data Fixtures
# =============================================================================


@pytest.fixture
def float_data():
    """Six float32 values, 1..6."""
    return np.array([1, 2, 3, 4, 5, 6], dtype=np.float32)


# =============================================================================
# Markers
# =============================================================================


def _native_library_available() -> bool:
    from ortpin._bindings import _find_library

    return _find_library() is not None


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "native: requires the onnxruntime shared library")


def pytest_collection_modifyitems(config, items):
    """Skip native tests when the library is not installed."""
    if _native_library_available():
        return
    skip = pytest.mark.skip(reason="onnxruntime shared library not found")
    for item in items:
        if item.get_closest_marker("native") is not None:
            item.add_marker(skip)
