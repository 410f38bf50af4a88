"""Compute performance and behaviour statistics from normalized journal entries."""

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta

from tradejournal.config import settings
from tradejournal.models.journal import JournalEntry, Trade
from tradejournal.services.analytics.emotion import (
    emotion_performance_correlation,
    emotion_recovery,
    emotion_trend,
)
from tradejournal.services.analytics.result import (
    AssetPairStats,
    DerivedStatistics,
    FocusArea,
    MistakeStats,
    Streaks,
    TradeDuration,
)

logger = logging.getLogger(__name__)

# Half-open [start, end) on the parent entry's creation time
Interval = tuple[datetime, datetime]

STRUGGLE_MIN_MISTAKES = 2
STRUGGLE_MAX_PAIR_WIN_RATE = 40.0
RECENT_TRADES_WINDOW = 5
RECENT_LOSSES_THRESHOLD = 3


def in_interval(moment: datetime, interval: Interval | None) -> bool:
    if interval is None:
        return True
    start, end = interval
    return start <= moment < end


def entries_in_interval(
    entries: Iterable[JournalEntry], interval: Interval | None = None
) -> list[JournalEntry]:
    return [e for e in entries if in_interval(e.created_at, interval)]


def trades_of(entries: Iterable[JournalEntry], interval: Interval | None = None) -> list[Trade]:
    """All trades whose parent entry falls in `interval`."""
    return [t for e in entries if in_interval(e.created_at, interval) for t in e.trades]


def _chronological(trades: Iterable[Trade]) -> list[Trade]:
    return sorted(trades, key=lambda t: t.entry_date or datetime.min)


def trade_win_rate(trades: Iterable[Trade]) -> float:
    """Percentage of winners among trades with a valid pnl. 0 when there are none."""
    valid = [t for t in trades if t.has_valid_pnl]
    if not valid:
        return 0.0
    return 100 * sum(1 for t in valid if t.pnl > 0) / len(valid)


def win_rate(entries: Iterable[JournalEntry], interval: Interval | None = None) -> float:
    return trade_win_rate(trades_of(entries, interval))


def streaks(trades: Iterable[Trade]) -> Streaks:
    """Longest consecutive winning and losing runs in entry-date order.

    A trade with an invalid or zero pnl is neither a win nor a loss and resets
    both running counters.
    """
    max_wins = 0
    max_losses = 0
    current_wins = 0
    current_losses = 0

    for t in _chronological(trades):
        if t.is_win:
            current_wins += 1
            current_losses = 0
            max_wins = max(max_wins, current_wins)
        elif t.is_loss:
            current_losses += 1
            current_wins = 0
            max_losses = max(max_losses, current_losses)
        else:
            current_wins = 0
            current_losses = 0

    return Streaks(longest_winning=max_wins, longest_losing=max_losses)


def current_winning_streak(trades: Iterable[Trade]) -> int:
    """Wins in a row counting back from the most recent trade."""
    count = 0
    for t in reversed(_chronological(trades)):
        if not t.is_win:
            break
        count += 1
    return count


def mistake_stats(entries: Iterable[JournalEntry]) -> dict[str, MistakeStats]:
    """Mistake occurrences over post-session losses, most frequent first.

    Ties keep first-seen order. Each entry's realized loss is split evenly
    across its mistakes.
    """
    stats: dict[str, MistakeStats] = {}
    for entry in sorted(entries, key=lambda e: e.created_at):
        if not entry.is_post_loss or not entry.mistakes:
            continue
        total_loss = sum(abs(t.pnl) for t in entry.trades if t.is_loss)
        share = total_loss / len(entry.mistakes)
        for tag in entry.mistakes:
            s = stats.setdefault(tag, MistakeStats(tag=tag))
            s.count += 1
            s.loss += share

    # sorted() is stable, so equal counts stay in first-seen order
    ranked = sorted(stats.values(), key=lambda s: -s.count)
    return {s.tag: s for s in ranked}


def mistake_frequency(entries: Iterable[JournalEntry]) -> dict[str, int]:
    return {tag: s.count for tag, s in mistake_stats(entries).items()}


def top_mistake(frequency: dict[str, int]) -> str | None:
    return next(iter(frequency), None)


def asset_pair_stats(
    trades: Iterable[Trade], min_trades: int | None = None
) -> dict[str, AssetPairStats]:
    """Per-symbol stats over valid trades, in first-seen order.

    Win rate stays None until a pair has at least `min_trades` trades.
    """
    floor = settings.asset_pair_min_trades if min_trades is None else min_trades
    pairs: dict[str, AssetPairStats] = {}

    for t in trades:
        if not t.has_valid_pnl:
            continue
        symbol = t.symbol or "UNKNOWN"
        s = pairs.setdefault(symbol, AssetPairStats(symbol=symbol))
        s.trades += 1
        if t.pnl > 0:
            s.wins += 1
            s.profit += t.pnl
        elif t.pnl < 0:
            s.loss += abs(t.pnl)

    for s in pairs.values():
        if s.trades >= floor:
            s.win_rate = 100 * s.wins / s.trades

    return pairs


def worst_asset_pair(pairs: dict[str, AssetPairStats]) -> AssetPairStats | None:
    """Lowest win rate among pairs past the significance floor."""
    eligible = [s for s in pairs.values() if s.win_rate is not None]
    if not eligible:
        return None
    return min(eligible, key=lambda s: s.win_rate)


def journal_streak(entries: Iterable[JournalEntry], today: date) -> int:
    """Consecutive calendar days with at least one entry.

    Counts back from today, or from yesterday when nothing is logged yet today.
    """
    days = {e.created_at.date() for e in entries}
    day = today if today in days else today - timedelta(days=1)
    count = 0
    while day in days:
        count += 1
        day -= timedelta(days=1)
    return count


def trade_durations(trades: Iterable[Trade]) -> list[TradeDuration]:
    durations = []
    for t in trades:
        if t.entry_date is None or t.exit_date is None or t.exit_date <= t.entry_date:
            continue
        hours = (t.exit_date - t.entry_date).total_seconds() / 3600
        durations.append(TradeDuration(hours=hours, pnl=t.pnl, instrument=t.symbol or "UNKNOWN"))
    return durations


def focus_area(
    frequency: dict[str, int],
    pairs: dict[str, AssetPairStats],
    trades: Sequence[Trade],
) -> FocusArea:
    """Pick what to surface as the current struggle, in priority order."""
    top = top_mistake(frequency)
    if top is not None and frequency[top] >= STRUGGLE_MIN_MISTAKES:
        return FocusArea(title="Common Mistake", detail=top)

    worst = worst_asset_pair(pairs)
    if worst is not None and worst.win_rate < STRUGGLE_MAX_PAIR_WIN_RATE:
        return FocusArea(title="Challenging Asset", detail=worst.symbol)

    recent = [t for t in reversed(_chronological(trades)) if t.has_valid_pnl][:RECENT_TRADES_WINDOW]
    if sum(1 for t in recent if t.is_loss) >= RECENT_LOSSES_THRESHOLD:
        return FocusArea(title="Recent Setback", detail="Multiple losses in recent trades")

    return FocusArea(title="Areas to Improve", detail="Keep tracking trades to reveal patterns")


def compute_statistics(
    entries: Sequence[JournalEntry],
    interval: Interval | None = None,
    today: date | None = None,
) -> DerivedStatistics:
    """Compute every derived statistic from normalized entries.

    Args:
        entries: Normalized journal entries (any order).
        interval: Optional [start, end) restriction on entry creation time.
        today: Local date for the journaling streak. Streak is 0 when omitted.
    """
    scoped = entries_in_interval(entries, interval)
    trades = trades_of(scoped)
    valid_count = sum(1 for t in trades if t.has_valid_pnl)

    run = streaks(trades)
    mistakes = mistake_stats(scoped)
    frequency = {tag: s.count for tag, s in mistakes.items()}
    pairs = asset_pair_stats(trades)
    trend = emotion_trend(scoped)

    stats = DerivedStatistics(
        win_rate=trade_win_rate(trades),
        longest_winning_streak=run.longest_winning,
        longest_losing_streak=run.longest_losing,
        total_trades=len(trades),
        valid_trades=valid_count,
        mistake_frequency=frequency,
        mistake_stats=mistakes,
        asset_pairs=pairs,
        emotion_trend=trend,
        emotion_recovery=emotion_recovery(scoped),
        emotion_correlation=emotion_performance_correlation(trend),
        trade_durations=trade_durations(trades),
        journal_streak=journal_streak(entries, today) if today is not None else 0,
        focus_area=focus_area(frequency, pairs, trades),
    )
    logger.debug(
        "Statistics over %d entries / %d trades: win rate %.1f%%, streaks %d/%d",
        len(scoped),
        len(trades),
        stats.win_rate,
        stats.longest_winning_streak,
        stats.longest_losing_streak,
    )
    return stats
