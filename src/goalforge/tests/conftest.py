"""
Pytest configuration and fixtures for GoalForge tests.
"""

import asyncio
import sys
from pathlib import Path
from typing import Callable

import pytest

# Add src directory to path for imports
src_dir = Path(__file__).resolve().parents[2]
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))


@pytest.fixture
def wait_until():
    """Yield to the event loop until *predicate* holds."""

    async def _wait(predicate: Callable[[], bool], ticks: int = 2000) -> None:
        for _ in range(ticks):
            if predicate():
                return
            await asyncio.sleep(0)
        raise AssertionError("condition not reached")

    return _wait
