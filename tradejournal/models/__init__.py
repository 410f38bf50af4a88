"""Pydantic models for the trading journal engine."""

from tradejournal.models.insight import NOT_ENOUGH_DATA, InsightData, MonthlyInsights
from tradejournal.models.journal import Direction, JournalEntry, Outcome, SessionType, Trade
from tradejournal.models.notification import Notification, Severity

__all__ = [
    "NOT_ENOUGH_DATA",
    "Direction",
    "InsightData",
    "JournalEntry",
    "MonthlyInsights",
    "Notification",
    "Outcome",
    "SessionType",
    "Severity",
    "Trade",
]
