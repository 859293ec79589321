"""
Python 3.10 import compatibility tests.

These tests verify that all ortpin modules import on Python 3.10+ without
the native library present. This catches accidental use of 3.11+ features.
"""

import sys


class TestOrtpinImports:
    """Test that all ortpin modules import successfully."""

    def test_import_ortpin(self):
        """Import main ortpin package."""
        import ortpin

        assert ortpin.__version__

    def test_import_public_api(self):
        """Import the public classes from the package root."""
        from ortpin import HandleBatch, NameTable, OwnedTensor, RunOptions, Session, invoke

        assert all(
            obj is not None
            for obj in (HandleBatch, NameTable, OwnedTensor, RunOptions, Session, invoke)
        )

    def test_import_subpackages(self):
        """Import each subpackage."""
        from ortpin import exceptions, run, session, tensor

        assert exceptions.OrtPinError is not None
        assert run.invoke is not None
        assert session.Session is not None
        assert tensor.ElementType is not None

    def test_all_exports_resolve(self):
        """Every name in __all__ exists."""
        import ortpin

        for name in ortpin.__all__:
            assert hasattr(ortpin, name), name


class TestPythonVersion:
    """Interpreter requirements."""

    def test_python_version(self):
        """ortpin requires Python 3.10+."""
        assert sys.version_info >= (3, 10)
