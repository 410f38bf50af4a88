"""Property-based tests for the statistics and risk engines."""

from datetime import datetime, timedelta

from hypothesis import given
from hypothesis import strategies as st

from tradejournal.models.journal import JournalEntry, Outcome, SessionType, Trade
from tradejournal.services.analytics.metrics import (
    asset_pair_stats,
    mistake_frequency,
    streaks,
    top_mistake,
    trade_win_rate,
)
from tradejournal.services.risk_analysis import risk_tolerance_score

START = datetime(2024, 1, 1, 9, 0)

pnl_values = st.one_of(
    st.none(),
    st.floats(min_value=-10_000, max_value=10_000, allow_nan=False, allow_infinity=False),
)
mistake_tags = st.lists(st.sampled_from(["fomo", "late entry", "revenge", "oversized"]), unique=True, min_size=1)


def make_trades(pnls: list, offset: int = 0, symbol: str = "EUR/USD") -> list[Trade]:
    return [
        Trade(symbol=symbol, pnl=pnl, entry_date=START + timedelta(hours=offset + i))
        for i, pnl in enumerate(pnls)
    ]


def make_loss_entries(tag_lists: list[tuple[str, ...]]) -> list[JournalEntry]:
    return [
        JournalEntry(
            id=f"e{i}",
            created_at=START + timedelta(days=i),
            session_type=SessionType.POST,
            outcome=Outcome.LOSS,
            mistakes=tuple(tags),
        )
        for i, tags in enumerate(tag_lists)
    ]


class TestWinRateProperties:
    @given(st.lists(pnl_values))
    def test_bounded(self, pnls):
        rate = trade_win_rate(make_trades(pnls))
        assert 0 <= rate <= 100

    @given(st.lists(st.none()))
    def test_zero_without_valid_pnl(self, pnls):
        assert trade_win_rate(make_trades(pnls)) == 0


class TestStreakProperties:
    @given(st.lists(pnl_values))
    def test_streaks_never_exceed_valid_trades(self, pnls):
        trades = make_trades(pnls)
        run = streaks(trades)
        valid = sum(1 for t in trades if t.has_valid_pnl)
        assert run.longest_winning + run.longest_losing <= valid

    @given(st.lists(pnl_values), st.lists(pnl_values))
    def test_invalid_trade_splits_history(self, before, after):
        trades = make_trades(before) + make_trades([None], offset=len(before))
        trades += make_trades(after, offset=len(before) + 1)

        whole = streaks(trades)
        left = streaks(make_trades(before))
        right = streaks(make_trades(after))

        assert whole.longest_winning == max(left.longest_winning, right.longest_winning)
        assert whole.longest_losing == max(left.longest_losing, right.longest_losing)


class TestMistakeProperties:
    @given(st.lists(mistake_tags))
    def test_ranking_is_stable(self, tag_lists):
        entries = make_loss_entries(tag_lists)
        assert list(mistake_frequency(entries)) == list(mistake_frequency(entries))

    @given(st.lists(mistake_tags, min_size=1))
    def test_top_mistake_not_demoted(self, tag_lists):
        top = top_mistake(mistake_frequency(make_loss_entries(tag_lists)))
        extended = make_loss_entries(tag_lists + [(top,)])
        assert top_mistake(mistake_frequency(extended)) == top


class TestAssetPairProperties:
    @given(st.lists(st.floats(min_value=0.01, max_value=1000), max_size=2))
    def test_win_rate_absent_below_three_trades(self, pnls):
        pairs = asset_pair_stats(make_trades(pnls))
        assert all(s.win_rate is None for s in pairs.values())


class TestRiskProperties:
    @given(
        st.lists(
            st.tuples(
                st.floats(min_value=0.01, max_value=100),  # lots
                st.floats(min_value=0.0001, max_value=0.05),  # stop distance in price
                st.floats(min_value=100, max_value=1_000_000),  # balance
            ),
            max_size=20,
        )
    )
    def test_score_bounded(self, positions):
        trades = [
            Trade(
                symbol="EUR/USD",
                entry_price=1.5,
                stop_loss=1.5 - distance,
                quantity=lots,
                account_balance=balance,
            )
            for lots, distance, balance in positions
        ]
        score = risk_tolerance_score(trades)
        assert 0 <= score <= 100
        if not trades:
            assert score == 50
