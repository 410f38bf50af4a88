"""Trading journal analytics engine.

Turns raw journal rows into statistics, risk scores, monthly insights and
behavioural notifications. Callers own storage and time; see `analyze()`.
"""

from tradejournal.clock import Clock
from tradejournal.main import JournalReport, analyze, configure_logging
from tradejournal.services.monthly_insights import available_months, generate_monthly_insights
from tradejournal.services.normalizer import NormalizationReport, normalize_entries

__version__ = "0.1.0"

__all__ = [
    "Clock",
    "JournalReport",
    "NormalizationReport",
    "analyze",
    "available_months",
    "configure_logging",
    "generate_monthly_insights",
    "normalize_entries",
]
