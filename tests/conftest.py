"""Shared test fixtures."""

from datetime import date

import pytest

from tradejournal.clock import Clock


@pytest.fixture
def clock() -> Clock:
    """Pinned local time: Friday 2024-03-15, 18:00."""
    return Clock(today=date(2024, 3, 15), hour=18)
