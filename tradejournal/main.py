"""Trading journal analytics — pipeline entry point.

normalize -> statistics -> risk -> notifications, one pass over the caller's
data. Nothing is kept between calls.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from tradejournal.clock import Clock
from tradejournal.config import settings
from tradejournal.models.journal import JournalEntry
from tradejournal.models.notification import Notification
from tradejournal.services.analytics import DerivedStatistics, compute_statistics
from tradejournal.services.analytics.metrics import Interval, trades_of
from tradejournal.services.normalizer import NormalizationReport, normalize_entries
from tradejournal.services.notifications import (
    JOURNAL_RULES,
    NotificationRule,
    NotificationSnapshot,
    evaluate_notifications,
)
from tradejournal.services.risk_analysis import RiskAnalysisResult, analyze_risk

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for applications embedding the library."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@dataclass(frozen=True)
class JournalReport:
    """Everything derived from one batch of journal rows."""

    statistics: DerivedStatistics
    risk: RiskAnalysisResult
    notifications: list[Notification] = field(default_factory=list)
    normalization: NormalizationReport = field(default_factory=NormalizationReport)

    @property
    def entries(self) -> list[JournalEntry]:
        return self.normalization.entries

    def to_dict(self) -> dict:
        return {
            "statistics": self.statistics.to_dict(),
            "risk": self.risk.to_dict(),
            "notifications": [n.model_dump(mode="json") for n in self.notifications],
            "normalization": {
                "entries": len(self.normalization.entries),
                "dropped_entries": self.normalization.dropped_entries,
                "dropped_trades": self.normalization.dropped_trades,
                "invalid_pnl_trades": self.normalization.invalid_pnl_trades,
            },
        }


def analyze(
    raw_entries: Iterable[Mapping[str, Any] | JournalEntry],
    clock: Clock,
    existing_notifications: Iterable[Notification | Mapping] = (),
    interval: Interval | None = None,
    account_balance: float | None = None,
    rules: tuple[NotificationRule, ...] = JOURNAL_RULES,
    strict: bool = False,
) -> JournalReport:
    """Run the whole analytics pipeline over raw journal rows.

    Args:
        raw_entries: Rows as fetched from storage, or typed entries.
        clock: Caller's local date and hour.
        existing_notifications: The persisted notification log.
        interval: Optional [start, end) restriction for statistics and risk.
        account_balance: Balance for trades that don't carry one.
        rules: Notification rules to evaluate.
        strict: Drop trades with an unparsable pnl instead of flagging them.

    Returns:
        JournalReport. Append `report.notifications` to the log to persist them.
    """
    normalization = normalize_entries(raw_entries, strict=strict)
    entries = normalization.entries

    statistics = compute_statistics(entries, interval=interval, today=clock.today)
    risk = analyze_risk(trades_of(entries, interval), account_balance=account_balance)

    # Rules look at the whole journal, not the statistics window
    snapshot = NotificationSnapshot.build(
        entries,
        clock,
        statistics=statistics if interval is None else None,
    )
    notifications = evaluate_notifications(snapshot, existing_notifications, clock, rules=rules)

    logger.info(
        "Analyzed %d entries: win rate %.1f%%, risk score %d, %d new notifications",
        len(entries),
        statistics.win_rate,
        risk.risk_tolerance_score,
        len(notifications),
    )
    return JournalReport(
        statistics=statistics,
        risk=risk,
        notifications=notifications,
        normalization=normalization,
    )
