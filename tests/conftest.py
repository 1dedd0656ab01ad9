"""Shared fixtures."""

from __future__ import annotations

from typing import Iterator

import pytest

from samples import build_executable, build_shared_object
from shared.logger import ScopeLogger


@pytest.fixture
def executable() -> bytes:
    return build_executable()[1]


@pytest.fixture
def shared_object() -> bytes:
    return build_shared_object()[1]


@pytest.fixture
def debug_logger() -> Iterator[ScopeLogger]:
    """A console-less logger at DEBUG whose records reach pytest's caplog."""
    log = ScopeLogger("test", log_level="DEBUG", console_output=False)
    log.underlying.propagate = True
    yield log
    log.underlying.propagate = False
    log.underlying.handlers.clear()
