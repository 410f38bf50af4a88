"""Monthly "wrapped" insights — narrative cards summarizing one calendar month.

Every card is computed independently and degrades to NOT_ENOUGH_DATA when its
sample is too small; one empty card never blanks the rest.
"""

import calendar
import logging
from collections import Counter
from collections.abc import Iterable

import numpy as np
import pandas as pd

from tradejournal.config import settings
from tradejournal.models.insight import NOT_ENOUGH_DATA, InsightData, MonthlyInsights
from tradejournal.models.journal import JournalEntry, Trade
from tradejournal.services.analytics.metrics import (
    streaks,
    trade_durations,
    trade_win_rate,
    trades_of,
)

logger = logging.getLogger(__name__)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def _format_hour(hour: int) -> str:
    """13 -> '1 PM'."""
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12} {suffix}"


def _format_duration(minutes: float) -> str:
    if minutes < 60:
        return f"{round(minutes)} minutes"
    if minutes < 1440:
        return f"{minutes / 60:.1f} hours"
    return f"{minutes / 1440:.1f} days"


def _not_enough(description: str) -> InsightData:
    return InsightData(value=NOT_ENOUGH_DATA, description=description)


def month_entries(entries: Iterable[JournalEntry], month: int, year: int) -> list[JournalEntry]:
    """Entries created within the local calendar month, oldest first."""
    scoped = [e for e in entries if e.created_at.year == year and e.created_at.month == month]
    return sorted(scoped, key=lambda e: e.created_at)


def available_months(entries: Iterable[JournalEntry]) -> list[tuple[int, int]]:
    """Distinct (year, month) pairs with at least one entry, newest first."""
    return sorted({(e.created_at.year, e.created_at.month) for e in entries}, reverse=True)


def win_rate_insight(trades: list[Trade]) -> InsightData:
    valid = [t for t in trades if t.has_valid_pnl]
    if not valid:
        return _not_enough("Log trades with a P&L to see your monthly win rate.")
    rate = trade_win_rate(valid)
    description = (
        "You won more trades than you lost this month."
        if rate > 50
        else f"You won {rate:.0f}% of your trades. There's room for improvement!"
    )
    return InsightData(
        value=f"{rate:.0f}%",
        description=description,
        additional_info=f"Based on {_plural(len(valid), 'trade')} during this month.",
    )


def streak_insights(trades: list[Trade]) -> tuple[InsightData, InsightData]:
    if not any(t.has_valid_pnl for t in trades):
        return (
            _not_enough("Your longest winning streak will show up here."),
            _not_enough("Your longest losing streak will show up here."),
        )
    run = streaks(trades)
    return (
        InsightData(
            value=_plural(run.longest_winning, "trade"),
            description="Your longest winning streak shows your strategy's potential.",
        ),
        InsightData(
            value=_plural(run.longest_losing, "trade"),
            description="Your longest losing streak. Even in challenging times, you kept going.",
        ),
    )


def most_active_hour(trades: Iterable[Trade]) -> tuple[int, int] | None:
    """(hour, trade count) of the busiest entry hour. Ties go to the earliest hour."""
    counts = Counter(t.entry_date.hour for t in trades if t.entry_date is not None)
    if not counts:
        return None
    hour = min(counts, key=lambda h: (-counts[h], h))
    return hour, counts[hour]


def active_time_insight(trades: list[Trade]) -> InsightData:
    busiest = most_active_hour(trades)
    if busiest is None:
        return _not_enough("Add entry times to your trades to find your most active hour.")
    hour, count = busiest
    return InsightData(
        value=_format_hour(hour),
        description="This is when you placed most of your trades. Are you a morning person or a night owl?",
        additional_info=f"{_plural(count, 'trade')} entered in the {_format_hour(hour)} hour.",
    )


def favorite_setup(trades: Iterable[Trade]) -> tuple[str, int] | None:
    """Most frequent non-empty setup tag. Ties go to the first one seen."""
    counts: dict[str, int] = {}
    for t in trades:
        if t.setup:
            counts[t.setup] = counts.get(t.setup, 0) + 1
    best = None
    for setup, count in counts.items():
        if best is None or count > best[1]:
            best = (setup, count)
    return best


def most_profitable_setup(trades: Iterable[Trade]) -> tuple[str, float] | None:
    totals: dict[str, float] = {}
    for t in trades:
        if t.setup and t.has_valid_pnl:
            totals[t.setup] = totals.get(t.setup, 0.0) + t.pnl
    best = None
    for setup, total in totals.items():
        if total > 0 and (best is None or total > best[1]):
            best = (setup, total)
    return best


def setup_insight(trades: list[Trade]) -> InsightData:
    favorite = favorite_setup(trades)
    if favorite is None:
        return _not_enough("Tag your trades with a setup to find your go-to strategy.")
    setup, count = favorite
    profitable = most_profitable_setup(trades)
    info = f"Used in {_plural(count, 'trade')}."
    if profitable is not None:
        info += f" Most profitable: {profitable[0]} (+{profitable[1]:,.2f})."
    return InsightData(
        value=setup,
        description="This pattern appeared most frequently in your trading.",
        additional_info=info,
    )


def holding_time_insight(trades: list[Trade]) -> InsightData:
    durations = trade_durations(trades)
    if not durations:
        return _not_enough("Add exit times to your trades to see how long you hold them.")
    avg_minutes = float(np.mean([d.hours for d in durations])) * 60
    return InsightData(
        value=_format_duration(avg_minutes),
        description="Your average trade duration reveals your trading temperament.",
        additional_info=f"Across {_plural(len(durations), 'closed trade')}.",
    )


def mood_performance(
    entries: Iterable[JournalEntry], min_entries: int | None = None
) -> dict[str, float]:
    """Mean valid pnl per emotion label, for emotions seen on enough entries.

    Only entries contributing at least one valid trade count toward the floor.
    Keys keep first-seen order.
    """
    floor = settings.mood_min_entries if min_entries is None else min_entries
    pnls: dict[str, list[float]] = {}
    entry_counts: dict[str, int] = {}
    for entry in entries:
        valid = [t.pnl for t in entry.trades if t.has_valid_pnl]
        if not entry.emotion or not valid:
            continue
        pnls.setdefault(entry.emotion, []).extend(valid)
        entry_counts[entry.emotion] = entry_counts.get(entry.emotion, 0) + 1
    return {
        emotion: float(np.mean(values))
        for emotion, values in pnls.items()
        if entry_counts[emotion] >= floor
    }


def mood_insight(entries: list[JournalEntry], min_entries: int | None = None) -> InsightData:
    means = mood_performance(entries, min_entries)
    if not means:
        return _not_enough("Journal your emotions on more trading days to compare moods.")
    # max()/min() keep the first of equal values
    best = max(means, key=lambda e: means[e])
    worst = min(means, key=lambda e: means[e])
    return InsightData(
        value=best.capitalize(),
        description=f"You averaged {means[best]:+,.2f} per trade when feeling {best}.",
        additional_info=f"Lowest: {worst} ({means[worst]:+,.2f} per trade).",
    )


def trades_per_day(trades: Iterable[Trade]) -> dict:
    counts: dict = {}
    for t in trades:
        if t.entry_date is None:
            continue
        day = t.entry_date.date()
        counts[day] = counts.get(day, 0) + 1
    return counts


def overtrading_insight(
    trades: list[Trade], threshold: int | None = None
) -> tuple[InsightData, bool]:
    limit = settings.overtrading_threshold if threshold is None else threshold
    per_day = trades_per_day(trades)
    if not per_day:
        return _not_enough("No trades logged this month."), False

    busiest_day = min(per_day, key=lambda d: (-per_day[d], d))
    heavy_days = sum(1 for count in per_day.values() if count > limit)
    flagged = heavy_days > 0
    if flagged:
        insight = InsightData(
            value="Overtrading",
            description=f"You took more than {limit} trades on {_plural(heavy_days, 'day')} this month.",
            additional_info=f"Busiest day: {busiest_day.isoformat()} with {per_day[busiest_day]} trades.",
        )
    else:
        insight = InsightData(
            value="Disciplined",
            description=f"You never took more than {limit} trades in a single day.",
            additional_info=f"Busiest day: {busiest_day.isoformat()} with {per_day[busiest_day]} trades.",
        )
    return insight, flagged


def emotional_heatmap(entries: Iterable[JournalEntry]) -> dict[int, dict[str, int]]:
    """Day of month x emotion -> number of entries."""
    rows = [(e.created_at.day, e.emotion) for e in entries if e.emotion]
    if not rows:
        return {}
    frame = pd.DataFrame(rows, columns=["day", "emotion"])
    grid = pd.crosstab(frame["day"], frame["emotion"])
    return {
        int(day): {str(emotion): int(count) for emotion, count in row.items()}
        for day, row in grid.iterrows()
    }


def heatmap_insight(heatmap: dict[int, dict[str, int]], month: int) -> InsightData:
    if not heatmap:
        return _not_enough("Log your emotions to build your monthly heatmap.")
    day = max(heatmap, key=lambda d: (sum(heatmap[d].values()), -d))
    dominant = max(heatmap[day], key=lambda e: heatmap[day][e])
    return InsightData(
        value=f"{calendar.month_name[month]} {day}",
        description=f"Your most emotionally eventful day, dominated by {dominant} sessions.",
        additional_info=f"{_plural(len(heatmap), 'day')} with journaled emotions.",
    )


def generate_monthly_insights(
    entries: Iterable[JournalEntry],
    month: int,
    year: int,
    overtrading_threshold: int | None = None,
    mood_min_entries: int | None = None,
) -> MonthlyInsights:
    """Build the fixed, ordered set of monthly cards.

    Raises:
        ValueError: If month is outside 1-12.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be within 1-12, got {month}")

    scoped = month_entries(entries, month, year)
    trades = trades_of(scoped)
    winning, losing = streak_insights(trades)
    overtrading, flagged = overtrading_insight(trades, overtrading_threshold)
    heatmap = emotional_heatmap(scoped)

    logger.debug("Monthly insights %04d-%02d: %d entries, %d trades", year, month, len(scoped), len(trades))

    return MonthlyInsights(
        month=month,
        year=year,
        win_rate=win_rate_insight(trades),
        winning_streak=winning,
        losing_streak=losing,
        most_active_time=active_time_insight(trades),
        favorite_setup=setup_insight(trades),
        avg_holding_time=holding_time_insight(trades),
        mood_performance=mood_insight(scoped, mood_min_entries),
        overtrading=overtrading,
        emotional_heatmap=heatmap_insight(heatmap, month),
        heatmap=heatmap,
        is_overtrading=flagged,
    )
