"""Restore the ortpin logger after each logging test."""

import pytest


@pytest.fixture(autouse=True)
def restore_logger(monkeypatch):
    """Snapshot handlers and level, and restore them afterwards."""
    from ortpin._logging import logger

    handlers = logger.handlers[:]
    level = logger.level
    # setup_logging(format=...) writes ORTPIN_LOG_FORMAT; undo it with the test
    monkeypatch.setenv("ORTPIN_LOG_FORMAT", "json")
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
