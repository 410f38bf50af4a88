"""Tests for the notification rule engine."""

from datetime import date, datetime, time, timedelta

from tradejournal.clock import Clock
from tradejournal.models.journal import JournalEntry, Outcome, SessionType, Trade
from tradejournal.models.notification import Notification, Severity
from tradejournal.services.notifications import (
    EMOTION_RULES,
    JOURNAL_RULES,
    PERFORMANCE_RULES,
    Cooldown,
    NotificationRule,
    NotificationSnapshot,
    evaluate_notifications,
    has_sent_today,
    has_sent_within_days,
)

DAILY_REMINDER = "Don't forget to journal today!"
POST_SESSION_REMINDER = "Complete your trading day with a post-session"
MOMENTUM = "Momentum is on your side!"
WEEK_STREAK = "7-day streak in journaling! 📖"
MILESTONE = "You've reached a new milestone! 🎉"


def make_entry(created_at: datetime, **kwargs) -> JournalEntry:
    defaults = {
        "id": f"e-{created_at.isoformat()}",
        "created_at": created_at,
        "session_type": SessionType.POST,
        "emotion": "neutral",
    }
    defaults.update(kwargs)
    return JournalEntry(**defaults)


def make_notification(title: str, created_at: datetime) -> Notification:
    return Notification(id="n-1", title=title, message="...", created_at=created_at)


def daily_entries(last: date, days: int, **kwargs) -> list[JournalEntry]:
    """One entry per day for `days` consecutive days ending on `last`."""
    return [
        make_entry(datetime.combine(last - timedelta(days=i), time(9)), **kwargs)
        for i in range(days)
    ]


def evaluate(entries, clock, existing=(), rules=JOURNAL_RULES):
    snapshot = NotificationSnapshot.build(entries, clock)
    return evaluate_notifications(snapshot, existing, clock, rules=rules)


def titles(notifications) -> list[str]:
    return [n.title for n in notifications]


class TestDailyReminder:
    def test_fires_in_the_evening_without_entries(self, clock):
        (notification,) = evaluate([], clock)

        assert notification.title == DAILY_REMINDER
        assert notification.severity == Severity.INFO
        assert notification.read is False
        assert notification.created_at == datetime(2024, 3, 15, 18, 0)
        assert notification.id

    def test_no_duplicate_on_the_same_day(self, clock):
        existing = [make_notification(DAILY_REMINDER, datetime(2024, 3, 15, 17, 5))]
        assert evaluate([], clock, existing) == []

    def test_fires_again_the_next_day(self, clock):
        existing = [make_notification(DAILY_REMINDER, datetime(2024, 3, 14, 22, 0))]
        assert titles(evaluate([], clock, existing)) == [DAILY_REMINDER]

    def test_silent_before_five_pm(self):
        assert evaluate([], Clock(today=date(2024, 3, 15), hour=16)) == []

    def test_silent_when_journaled_today(self, clock):
        entries = [make_entry(datetime(2024, 3, 15, 8, 0))]
        assert DAILY_REMINDER not in titles(evaluate(entries, clock))

    def test_existing_log_as_mappings(self, clock):
        existing = [
            {
                "id": "n-1",
                "title": DAILY_REMINDER,
                "message": "...",
                "severity": "info",
                "created_at": "2024-03-15T17:05:00",
            }
        ]
        assert evaluate([], clock, existing) == []

    def test_existing_log_with_web_client_keys(self, clock):
        existing = [
            {
                "id": "n-1",
                "title": DAILY_REMINDER,
                "message": "...",
                "type": "info",
                "read": False,
                "createdAt": "2024-03-15T17:30:00",
            }
        ]
        assert evaluate([], clock, existing) == []

    def test_unreadable_log_rows_skipped(self, clock):
        existing = [{"title": DAILY_REMINDER}, "garbage", None]
        assert titles(evaluate([], clock, existing)) == [DAILY_REMINDER]


class TestPostSessionReminder:
    def test_fires_after_seven_pm_with_pre_session_only(self):
        clock = Clock(today=date(2024, 3, 15), hour=20)
        entries = [make_entry(datetime(2024, 3, 15, 8, 0), session_type=SessionType.PRE)]
        notifications = evaluate(entries, clock)

        assert titles(notifications) == [POST_SESSION_REMINDER]
        assert notifications[0].severity == Severity.WARNING

    def test_silent_before_seven_pm(self, clock):
        entries = [make_entry(datetime(2024, 3, 15, 8, 0), session_type=SessionType.PRE)]
        assert evaluate(entries, clock) == []

    def test_silent_once_post_session_logged(self):
        clock = Clock(today=date(2024, 3, 15), hour=21)
        entries = [
            make_entry(datetime(2024, 3, 15, 8, 0), session_type=SessionType.PRE),
            make_entry(datetime(2024, 3, 15, 17, 0), session_type=SessionType.POST),
        ]
        assert POST_SESSION_REMINDER not in titles(evaluate(entries, clock))


class TestMomentum:
    def momentum_entries(self) -> list[JournalEntry]:
        disciplined = ("plan", "size", "stop")
        return [
            make_entry(datetime(2024, 3, d, 16, 0), followed_rules=disciplined if d % 2 else ())
            for d in range(1, 6)
        ]

    def test_fires_with_three_disciplined_sessions(self, clock):
        notifications = evaluate(self.momentum_entries(), clock)
        assert titles(notifications) == [MOMENTUM, DAILY_REMINDER]
        assert notifications[0].severity == Severity.SUCCESS

    def test_needs_more_than_two_rules(self, clock):
        entries = [
            make_entry(datetime(2024, 3, d, 16, 0), followed_rules=("plan", "size")) for d in range(1, 6)
        ]
        assert MOMENTUM not in titles(evaluate(entries, clock))

    def test_only_recent_five_post_sessions_count(self, clock):
        entries = self.momentum_entries()
        entries += [make_entry(datetime(2024, 3, d, 16, 0)) for d in range(6, 9)]
        assert MOMENTUM not in titles(evaluate(entries, clock))

    def test_five_day_cooldown(self, clock):
        recent = [make_notification(MOMENTUM, clock.now - timedelta(days=4))]
        stale = [make_notification(MOMENTUM, clock.now - timedelta(days=6))]

        assert MOMENTUM not in titles(evaluate(self.momentum_entries(), clock, recent))
        assert MOMENTUM in titles(evaluate(self.momentum_entries(), clock, stale))


class TestJournalStreakRules:
    def test_seven_day_streak(self, clock):
        entries = daily_entries(clock.today, 7)
        assert titles(evaluate(entries, clock)) == [WEEK_STREAK]

    def test_seven_day_streak_only_exactly_seven(self, clock):
        entries = daily_entries(clock.today, 8)
        assert titles(evaluate(entries, clock)) == []

    def test_milestone_at_ten_days(self, clock):
        entries = daily_entries(clock.today, 12)
        (notification,) = evaluate(entries, clock)

        assert notification.title == MILESTONE
        assert "12-day" in notification.message

    def test_streak_counts_from_yesterday(self, clock):
        # nothing logged yet today: reminder plus the streak ending yesterday
        entries = daily_entries(clock.today - timedelta(days=1), 7)
        assert titles(evaluate(entries, clock)) == [DAILY_REMINDER, WEEK_STREAK]


class TestPerformanceRules:
    def test_winning_streak_and_record(self, clock):
        entries = [
            make_entry(
                created_at,
                outcome=Outcome.WIN,
                trades=(Trade(symbol="EUR/USD", pnl=50, entry_date=created_at),),
            )
            for created_at in (datetime(2024, 3, d, 10, 0) for d in range(8, 14))
        ]
        notifications = evaluate(entries, clock, rules=PERFORMANCE_RULES)

        assert titles(notifications) == [
            "6 trade winning streak!",
            "New record: 6 trade winning streak!",
        ]

    def test_not_enough_history(self, clock):
        entries = [
            make_entry(
                datetime(2024, 3, 14, 10, 0),
                outcome=Outcome.WIN,
                trades=tuple(Trade(pnl=10, entry_date=datetime(2024, 3, 14, 10, i)) for i in range(5)),
            )
        ]
        assert evaluate(entries, clock, rules=PERFORMANCE_RULES) == []


class TestEmotionRules:
    def test_dominant_positive(self, clock):
        entries = daily_entries(clock.today, 10, emotion="positive")
        (notification,) = evaluate(entries, clock, rules=EMOTION_RULES)

        assert notification.title == "positive emotions dominating your journal"
        assert notification.message.startswith("100%")

    def test_dominant_negative_is_a_warning(self, clock):
        entries = daily_entries(clock.today, 4, emotion="negative")
        entries += daily_entries(clock.today - timedelta(days=4), 4, emotion="neutral")
        (notification,) = evaluate(entries, clock, rules=EMOTION_RULES)

        assert notification.title == "negative emotions dominating your journal"
        assert notification.severity == Severity.WARNING

    def test_needs_a_week_of_entries(self, clock):
        entries = daily_entries(clock.today, 6, emotion="positive")
        assert evaluate(entries, clock, rules=EMOTION_RULES) == []

    def test_awareness_milestone(self, clock):
        emotions = ["positive", "neutral", "negative"] * 5
        entries = [
            make_entry(datetime(2024, 3, 15, 9, 0) - timedelta(days=i), emotion=emotion)
            for i, emotion in enumerate(emotions)
        ]
        assert titles(evaluate(entries, clock, rules=EMOTION_RULES)) == ["Emotional awareness milestone"]


class TestEngine:
    def test_dedup_within_a_single_call(self, clock):
        rule = NotificationRule(
            title="Twice",
            cooldown=Cooldown.every(3),
            condition=lambda s, c: True,
            message="hello",
        )
        assert titles(evaluate([], clock, rules=(rule, rule))) == ["Twice"]

    def test_rule_order_preserved(self, clock):
        rules = tuple(
            NotificationRule(title=t, cooldown=Cooldown.daily(), condition=lambda s, c: True, message=t)
            for t in ("b", "a", "c")
        )
        assert titles(evaluate([], clock, rules=rules)) == ["b", "a", "c"]

    def test_existing_log_untouched(self, clock):
        existing = [make_notification("Something else", clock.now - timedelta(days=1))]
        before = list(existing)
        evaluate([], clock, existing)
        assert existing == before

    def test_injected_ids(self, clock):
        snapshot = NotificationSnapshot.build([], clock)
        (notification,) = evaluate_notifications(snapshot, [], clock, id_factory=lambda: "fixed")
        assert notification.id == "fixed"

    def test_deterministic_apart_from_ids(self, clock):
        entries = daily_entries(clock.today - timedelta(days=1), 7)
        first = evaluate(entries, clock)
        second = evaluate(entries, clock)
        assert [n.model_dump(exclude={"id"}) for n in first] == [
            n.model_dump(exclude={"id"}) for n in second
        ]


class TestCooldownHelpers:
    def test_has_sent_today(self):
        log = [make_notification("x", datetime(2024, 3, 15, 0, 5))]
        assert has_sent_today(log, "x", date(2024, 3, 15)) is True
        assert has_sent_today(log, "x", date(2024, 3, 16)) is False
        assert has_sent_today(log, "y", date(2024, 3, 15)) is False

    def test_has_sent_within_days(self):
        now = datetime(2024, 3, 15, 18, 0)
        log = [make_notification("x", datetime(2024, 3, 10, 19, 0))]
        assert has_sent_within_days(log, "x", 5, now) is True
        assert has_sent_within_days(log, "x", 4, now) is False


class TestNotificationModel:
    def test_type_and_created_at_aliases(self):
        notification = Notification.model_validate(
            {
                "id": "n-1",
                "title": "Heads up",
                "message": "...",
                "type": "warning",
                "createdAt": "2024-03-15T17:30:00",
            }
        )
        assert notification.severity == Severity.WARNING
        assert notification.created_at == datetime(2024, 3, 15, 17, 30)

    def test_dumps_with_field_names(self, clock):
        (notification,) = evaluate([], clock)
        data = notification.model_dump(mode="json")
        assert data["severity"] == "info"
        assert "created_at" in data
