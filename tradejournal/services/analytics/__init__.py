"""Statistics engine for journal entries.

Pure functions over in-memory records. No storage, no caches, no clock reads.
"""

from tradejournal.services.analytics.metrics import compute_statistics
from tradejournal.services.analytics.result import DerivedStatistics

__all__ = ["DerivedStatistics", "compute_statistics"]
