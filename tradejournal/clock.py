"""Caller-supplied clock. The engine never reads wall-clock time itself."""

from dataclasses import dataclass
from datetime import date, datetime, time

from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class Clock:
    """Local date and hour at the moment of evaluation."""

    today: date
    hour: int

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour must be within 0-23, got {self.hour}")

    @property
    def now(self) -> datetime:
        """Naive local timestamp used to stamp new notifications."""
        return datetime.combine(self.today, time(self.hour))

    @classmethod
    def at(cls, moment: datetime) -> "Clock":
        return cls(today=moment.date(), hour=moment.hour)

    @classmethod
    def now_in(cls, tz_name: str = "") -> "Clock":
        """Build a clock from the current time. Only for callers at the fetch boundary."""
        tz = ZoneInfo(tz_name) if tz_name else None
        return cls.at(datetime.now(tz))
