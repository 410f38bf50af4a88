"""Notification rules — decide which behavioural nudges to surface right now.

Evaluation is a pure function of (snapshot, existing notification log, clock).
Each rule fires at most once per cooldown window; the rule's title is the
dedup key against the log. The log is never modified, only appended to by the
caller with the returned notifications.
"""

import logging
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from pydantic import ValidationError

from tradejournal.clock import Clock
from tradejournal.config import settings
from tradejournal.models.journal import JournalEntry, SessionType, Trade
from tradejournal.models.notification import Notification, Severity
from tradejournal.services.analytics.metrics import (
    compute_statistics,
    current_winning_streak,
    streaks,
    trades_of,
)
from tradejournal.services.analytics.result import DerivedStatistics

logger = logging.getLogger(__name__)

RECENT_POST_SESSIONS = 5
MOMENTUM_MIN_ENTRIES = 3
MILESTONE_STREAK_DAYS = 10
WEEK_STREAK_DAYS = 7
DAILY_REMINDER_HOUR = 17
POST_SESSION_REMINDER_HOURS = range(19, 24)

LOOKBACK_DAYS = 30


def _local(moment: datetime) -> datetime:
    """Naive local time, converting aware timestamps from the log."""
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def has_sent_today(existing: Iterable[Notification], title: str, today: date) -> bool:
    return any(n.title == title and _local(n.created_at).date() == today for n in existing)


def has_sent_within_days(
    existing: Iterable[Notification], title: str, days: int, now: datetime
) -> bool:
    cutoff = now - timedelta(days=days)
    return any(n.title == title and _local(n.created_at) >= cutoff for n in existing)


@dataclass(frozen=True)
class Cooldown:
    """Either once per calendar day, or once per rolling window of N days."""

    days: int
    calendar_day: bool = False

    @classmethod
    def daily(cls) -> "Cooldown":
        return cls(days=1, calendar_day=True)

    @classmethod
    def every(cls, days: int) -> "Cooldown":
        return cls(days=days)

    def blocks(self, existing: Sequence[Notification], title: str, clock: Clock) -> bool:
        if self.calendar_day:
            return has_sent_today(existing, title, clock.today)
        return has_sent_within_days(existing, title, self.days, clock.now)


@dataclass(frozen=True)
class NotificationSnapshot:
    """What the rules read: the normalized entries and their statistics."""

    entries: tuple[JournalEntry, ...]
    statistics: DerivedStatistics

    @classmethod
    def build(
        cls,
        entries: Iterable[JournalEntry],
        clock: Clock,
        statistics: DerivedStatistics | None = None,
    ) -> "NotificationSnapshot":
        ordered = tuple(sorted(entries, key=lambda e: e.created_at))
        if statistics is None:
            statistics = compute_statistics(ordered, today=clock.today)
        return cls(entries=ordered, statistics=statistics)

    def entries_on(self, day: date) -> list[JournalEntry]:
        return [e for e in self.entries if e.created_at.date() == day]

    def recent_post_sessions(self, count: int = RECENT_POST_SESSIONS) -> list[JournalEntry]:
        posts = [e for e in self.entries if e.session_type == SessionType.POST]
        return posts[::-1][:count]

    def entries_since(self, cutoff: date) -> list[JournalEntry]:
        return [e for e in self.entries if e.created_at.date() >= cutoff]


Condition = Callable[[NotificationSnapshot, Clock], bool]
Render = Callable[[NotificationSnapshot, Clock], str]


@dataclass(frozen=True)
class NotificationRule:
    """A trigger, a title used as the dedup key, a cooldown and a message."""

    title: str | Render
    cooldown: Cooldown
    condition: Condition
    message: str | Render
    severity: Severity = Severity.INFO

    def render_title(self, snapshot: NotificationSnapshot, clock: Clock) -> str:
        return self.title(snapshot, clock) if callable(self.title) else self.title

    def render_message(self, snapshot: NotificationSnapshot, clock: Clock) -> str:
        return self.message(snapshot, clock) if callable(self.message) else self.message


# ---------- journaling habit rules ----------


def _has_momentum(snapshot: NotificationSnapshot, clock: Clock) -> bool:
    well_executed = [
        e
        for e in snapshot.recent_post_sessions()
        if len(e.followed_rules) > settings.rule_adherence_min_rules
    ]
    return len(well_executed) >= MOMENTUM_MIN_ENTRIES


def _no_entry_this_evening(snapshot: NotificationSnapshot, clock: Clock) -> bool:
    return clock.hour >= DAILY_REMINDER_HOUR and not snapshot.entries_on(clock.today)


def _post_session_missing(snapshot: NotificationSnapshot, clock: Clock) -> bool:
    today = snapshot.entries_on(clock.today)
    has_pre = any(e.session_type == SessionType.PRE for e in today)
    has_post = any(e.session_type == SessionType.POST for e in today)
    return has_pre and not has_post and clock.hour in POST_SESSION_REMINDER_HOURS


JOURNAL_RULES: tuple[NotificationRule, ...] = (
    NotificationRule(
        title="Momentum is on your side!",
        cooldown=Cooldown.every(5),
        condition=_has_momentum,
        message="Trust your system! You've been consistently following your trading rules.",
        severity=Severity.SUCCESS,
    ),
    NotificationRule(
        title="You've reached a new milestone! 🎉",
        cooldown=Cooldown.every(10),
        condition=lambda s, c: s.statistics.journal_streak >= MILESTONE_STREAK_DAYS,
        message=lambda s, c: (
            f"You've maintained a {s.statistics.journal_streak}-day journaling streak! "
            "Your consistency is impressive."
        ),
        severity=Severity.SUCCESS,
    ),
    NotificationRule(
        title="Don't forget to journal today!",
        cooldown=Cooldown.daily(),
        condition=_no_entry_this_evening,
        message="Small habits lead to big wins. Don't forget to log your trade insights today! ✅",
        severity=Severity.INFO,
    ),
    NotificationRule(
        title="Complete your trading day with a post-session",
        cooldown=Cooldown.daily(),
        condition=_post_session_missing,
        message=(
            "You logged your pre-session today, don't forget to complete your "
            "post-session analysis before the day ends! 📝"
        ),
        severity=Severity.WARNING,
    ),
    NotificationRule(
        title="7-day streak in journaling! 📖",
        cooldown=Cooldown.every(7),
        condition=lambda s, c: s.statistics.journal_streak == WEEK_STREAK_DAYS,
        message="Your future self will thank you for this data. Keep it up!",
        severity=Severity.SUCCESS,
    ),
)


# ---------- trading performance rules ----------


def _recent_trades(snapshot: NotificationSnapshot, clock: Clock) -> list[Trade]:
    """Trades of the last 30 days, once there is enough history to judge."""
    if len(snapshot.entries) < 5:
        return []
    recent = snapshot.entries_since(clock.today - timedelta(days=LOOKBACK_DAYS))
    if len(recent) < 3:
        return []
    trades = trades_of(recent)
    return trades if len(trades) >= 5 else []


def _on_winning_streak(snapshot: NotificationSnapshot, clock: Clock) -> bool:
    return current_winning_streak(_recent_trades(snapshot, clock)) >= 3


def _on_record_streak(snapshot: NotificationSnapshot, clock: Clock) -> bool:
    trades = _recent_trades(snapshot, clock)
    current = current_winning_streak(trades)
    return current >= 5 and current == streaks(trades).longest_winning


PERFORMANCE_RULES: tuple[NotificationRule, ...] = (
    NotificationRule(
        title=lambda s, c: f"{current_winning_streak(_recent_trades(s, c))} trade winning streak!",
        cooldown=Cooldown.daily(),
        condition=_on_winning_streak,
        message=lambda s, c: (
            f"You're on a roll with {current_winning_streak(_recent_trades(s, c))} profitable "
            "trades in a row. Keep following your trading plan!"
        ),
        severity=Severity.SUCCESS,
    ),
    NotificationRule(
        title=lambda s, c: (
            f"New record: {current_winning_streak(_recent_trades(s, c))} trade winning streak!"
        ),
        cooldown=Cooldown.every(30),
        condition=_on_record_streak,
        message=(
            "Congratulations on your longest winning streak so far! "
            "This is a great time to review what you're doing right."
        ),
        severity=Severity.SUCCESS,
    ),
)


# ---------- emotional pattern rules ----------


def _emotion_share(snapshot: NotificationSnapshot, clock: Clock, emotion: str) -> float | None:
    """Share of the last 30 days' entries carrying `emotion`. None under a week of data."""
    recent = snapshot.entries_since(clock.today - timedelta(days=LOOKBACK_DAYS))
    if len(recent) < 7:
        return None
    return sum(1 for e in recent if e.emotion == emotion) / len(recent)


def _dominant_emotion_rule(
    emotion: str, threshold: float, advice: str, severity: Severity
) -> NotificationRule:
    def condition(snapshot: NotificationSnapshot, clock: Clock) -> bool:
        share = _emotion_share(snapshot, clock, emotion)
        return share is not None and share >= threshold

    def message(snapshot: NotificationSnapshot, clock: Clock) -> str:
        share = _emotion_share(snapshot, clock, emotion) or 0.0
        return f"{round(share * 100)}% of your recent entries have {emotion} emotions. {advice}"

    return NotificationRule(
        title=f"{emotion} emotions dominating your journal",
        cooldown=Cooldown.every(7),
        condition=condition,
        message=message,
        severity=severity,
    )


def _emotionally_aware(snapshot: NotificationSnapshot, clock: Clock) -> bool:
    recent = snapshot.entries_since(clock.today - timedelta(days=LOOKBACK_DAYS))
    seen = {e.emotion for e in recent}
    return len(recent) >= 15 and {"positive", "neutral", "negative"} <= seen


EMOTION_RULES: tuple[NotificationRule, ...] = (
    _dominant_emotion_rule(
        "positive", 0.7, "Great job maintaining a positive mindset!", Severity.INFO
    ),
    _dominant_emotion_rule(
        "neutral",
        0.7,
        "Your emotional balance is impressive, but remember to acknowledge both "
        "positive and negative feelings.",
        Severity.INFO,
    ),
    _dominant_emotion_rule(
        "negative",
        0.5,
        "Consider strategies to improve your mindset, as negative emotions may "
        "impact your trading.",
        Severity.WARNING,
    ),
    NotificationRule(
        title="Emotional awareness milestone",
        cooldown=Cooldown.every(30),
        condition=_emotionally_aware,
        message=(
            "You've logged all three emotional states in your recent entries, showing "
            "strong emotional awareness. This helps you understand how different "
            "emotions affect your trading."
        ),
        severity=Severity.SUCCESS,
    ),
)

ALL_RULES: tuple[NotificationRule, ...] = JOURNAL_RULES + PERFORMANCE_RULES + EMOTION_RULES


def _load_log(existing: Iterable[Notification | Mapping]) -> list[Notification]:
    """Typed copy of the persisted log. Unreadable rows are skipped, not fatal."""
    log = []
    skipped = 0
    for item in existing:
        if isinstance(item, Notification):
            log.append(item)
            continue
        try:
            log.append(Notification.model_validate(item))
        except ValidationError as e:
            skipped += 1
            logger.debug("Skipping unreadable notification log row: %s", e)
    if skipped:
        logger.warning("Ignored %d unreadable notification log rows", skipped)
    return log


def evaluate_notifications(
    snapshot: NotificationSnapshot,
    existing: Iterable[Notification | Mapping],
    clock: Clock,
    rules: Sequence[NotificationRule] = JOURNAL_RULES,
    id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> list[Notification]:
    """Return the notifications to append to the log, in rule order.

    Args:
        snapshot: Entries and statistics to evaluate.
        existing: The persisted notification log (read only).
        clock: Caller's local date and hour.
        rules: Rules to evaluate, in order.
        id_factory: Identifier source for new notifications.
    """
    log = _load_log(existing)
    emitted: list[Notification] = []

    for rule in rules:
        if not rule.condition(snapshot, clock):
            continue
        title = rule.render_title(snapshot, clock)
        if rule.cooldown.blocks(log, title, clock):
            logger.debug("Skipping '%s': still in cooldown", title)
            continue

        notification = Notification(
            id=id_factory(),
            title=title,
            message=rule.render_message(snapshot, clock),
            severity=rule.severity,
            read=False,
            created_at=clock.now,
        )
        emitted.append(notification)
        log.append(notification)
        logger.info("Notification [%s]: %s", rule.severity.value, title)

    return emitted
