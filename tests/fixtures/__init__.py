"""
Shared test fixtures for ortpin.

Maps to: N/A (shared test fixtures)
"""

from .native import FakeApi, FakeModel, FakeTensor, RunCall

__all__ = ["FakeApi", "FakeModel", "FakeTensor", "RunCall"]
