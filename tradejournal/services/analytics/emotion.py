"""Emotion-derived series: trend vs. P&L, recovery after losses, correlation."""

from collections.abc import Iterable
from datetime import date

import numpy as np

from tradejournal.models.journal import JournalEntry, Outcome
from tradejournal.services.analytics.result import EmotionTrendPoint

# Emotional score on a 0-100 scale
EMOTION_SCORES: dict[str, int] = {
    "positive": 100,
    "neutral": 50,
    "negative": 0,
}

RECOVERY_BUCKETS: tuple[str, ...] = ("< 1 day", "1-2 days", "2-3 days", "> 3 days")


def emotion_score(emotion: str) -> int | None:
    return EMOTION_SCORES.get(emotion.lower()) if emotion else None


def emotion_trend(entries: Iterable[JournalEntry]) -> list[EmotionTrendPoint]:
    """One point per date for entries with a scored emotion and at least one trade.

    Same-date entries aggregate last-write-wins for the score and by sum for the
    result (valid pnl only).
    """
    scores: dict[date, float] = {}
    results: dict[date, float] = {}

    for entry in sorted(entries, key=lambda e: e.created_at):
        score = emotion_score(entry.emotion)
        if score is None or not entry.trades:
            continue
        day = entry.created_at.date()
        scores[day] = score
        results[day] = results.get(day, 0.0) + sum(
            t.pnl for t in entry.trades if t.has_valid_pnl
        )

    return [
        EmotionTrendPoint(date=day, emotional_score=scores[day], trading_result=results[day])
        for day in sorted(scores)
    ]


def emotion_recovery(entries: Iterable[JournalEntry]) -> dict[str, int]:
    """Days from each loss entry until the next positive emotion or win, bucketed.

    Losses that never recover are not counted.
    """
    ordered = sorted(entries, key=lambda e: e.created_at)
    buckets = dict.fromkeys(RECOVERY_BUCKETS, 0)

    for i, entry in enumerate(ordered):
        if entry.outcome != Outcome.LOSS:
            continue
        for later in ordered[i + 1:]:
            if later.emotion == "positive" or later.outcome == Outcome.WIN:
                days = (later.created_at - entry.created_at).total_seconds() / 86400
                if days < 1:
                    buckets["< 1 day"] += 1
                elif days <= 2:
                    buckets["1-2 days"] += 1
                elif days <= 3:
                    buckets["2-3 days"] += 1
                else:
                    buckets["> 3 days"] += 1
                break

    return buckets


def emotion_performance_correlation(trend: list[EmotionTrendPoint]) -> float | None:
    """Pearson correlation between emotional score and daily result.

    None when fewer than two points or either series is constant.
    """
    if len(trend) < 2:
        return None
    scores = np.array([p.emotional_score for p in trend], dtype=float)
    results = np.array([p.trading_result for p in trend], dtype=float)
    if scores.std() == 0 or results.std() == 0:
        return None
    return float(np.corrcoef(scores, results)[0, 1])
