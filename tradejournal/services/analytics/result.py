"""Derived statistics data structures. Recomputed on demand, never persisted."""

from dataclasses import dataclass, field
from datetime import date
from typing import NamedTuple


class Streaks(NamedTuple):
    longest_winning: int
    longest_losing: int


@dataclass
class MistakeStats:
    """Occurrences of one mistake tag and the realized loss attributed to it."""

    tag: str
    count: int = 0
    loss: float = 0.0


@dataclass
class AssetPairStats:
    """Per-instrument performance over trades with a valid pnl."""

    symbol: str
    trades: int = 0
    wins: int = 0
    profit: float = 0.0
    loss: float = 0.0  # absolute value
    win_rate: float | None = None  # None below the significance floor

    @property
    def net(self) -> float:
        return self.profit - self.loss


@dataclass
class EmotionTrendPoint:
    date: date
    emotional_score: float
    trading_result: float


@dataclass
class TradeDuration:
    hours: float
    pnl: float | None
    instrument: str


@dataclass
class FocusArea:
    """The single most relevant area to improve right now."""

    title: str
    detail: str


@dataclass
class DerivedStatistics:
    """Snapshot of everything the statistics engine derives from the journal."""

    win_rate: float
    longest_winning_streak: int
    longest_losing_streak: int
    total_trades: int
    valid_trades: int
    mistake_frequency: dict[str, int] = field(default_factory=dict)
    mistake_stats: dict[str, MistakeStats] = field(default_factory=dict)
    asset_pairs: dict[str, AssetPairStats] = field(default_factory=dict)
    emotion_trend: list[EmotionTrendPoint] = field(default_factory=list)
    emotion_recovery: dict[str, int] = field(default_factory=dict)
    emotion_correlation: float | None = None
    trade_durations: list[TradeDuration] = field(default_factory=list)
    journal_streak: int = 0
    focus_area: FocusArea | None = None

    @property
    def top_mistake(self) -> str | None:
        return next(iter(self.mistake_frequency), None)

    def to_dict(self) -> dict:
        """Serialize to a JSON-safe dict for the presentation layer."""
        return {
            "win_rate": round(self.win_rate, 2),
            "longest_winning_streak": self.longest_winning_streak,
            "longest_losing_streak": self.longest_losing_streak,
            "total_trades": self.total_trades,
            "valid_trades": self.valid_trades,
            "mistake_frequency": dict(self.mistake_frequency),
            "mistake_loss": {tag: round(s.loss, 2) for tag, s in self.mistake_stats.items()},
            "asset_pairs": {
                symbol: {
                    "trades": s.trades,
                    "win_rate": round(s.win_rate, 2) if s.win_rate is not None else None,
                    "profit": round(s.profit, 2),
                    "loss": round(s.loss, 2),
                    "net": round(s.net, 2),
                }
                for symbol, s in self.asset_pairs.items()
            },
            "emotion_trend": [
                {
                    "date": p.date.isoformat(),
                    "emotional_score": p.emotional_score,
                    "trading_result": round(p.trading_result, 2),
                }
                for p in self.emotion_trend
            ],
            "emotion_recovery": dict(self.emotion_recovery),
            "emotion_correlation": (
                round(self.emotion_correlation, 3) if self.emotion_correlation is not None else None
            ),
            "journal_streak": self.journal_streak,
            "focus_area": (
                {"title": self.focus_area.title, "detail": self.focus_area.detail}
                if self.focus_area
                else None
            ),
        }
