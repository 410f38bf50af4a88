"""Risk analysis — per-trade position risk and an aggregate risk-tolerance score.

Trades missing a stop-loss, quantity or entry price fail closed: they get no
risk result and are left out of the aggregate, never counted as zero risk.
Missing account balance or instrument fall back to configured defaults, and
the fallback is flagged on the per-trade result.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np

from tradejournal.config import settings
from tradejournal.models.journal import Trade

logger = logging.getLogger(__name__)

# Value of one pip per standard lot, in account currency
PIP_VALUES: dict[str, float] = {
    "EUR/USD": 10.0,
    "GBP/USD": 10.0,
    "USD/JPY": 9.34,
    "USD/CHF": 10.0,
    "USD/CAD": 10.0,
    "AUD/USD": 10.0,
    "NZD/USD": 10.0,
}
DEFAULT_PIP_VALUE = 10.0

# Aggregate score adjustments
CONSERVATIVE_ADJUSTMENT = -10  # avg risk <= 1%
MODERATE_ADJUSTMENT = 10  # 1% < avg risk <= 2%
AGGRESSIVE_ADJUSTMENT = 20  # avg risk > 2%
INCONSISTENT_SIZING_ADJUSTMENT = 15


@dataclass
class PositionRisk:
    """Risk of a single position."""

    risk_amount: float
    actual_risk_pct: float
    is_within_risk_limit: bool
    recommended_lot_size: float
    trade_id: str | None = None
    used_default_balance: bool = False
    used_default_instrument: bool = False
    used_default_pip_value: bool = False


@dataclass
class RiskAnalysisResult:
    """Per-trade results plus the aggregate risk-tolerance score (0-100)."""

    risk_tolerance_score: int
    positions: list[PositionRisk] = field(default_factory=list)
    skipped_trades: int = 0
    average_risk_pct: float | None = None
    risk_variance: float | None = None

    def to_dict(self) -> dict:
        return {
            "risk_tolerance_score": self.risk_tolerance_score,
            "average_risk_pct": (
                round(self.average_risk_pct, 2) if self.average_risk_pct is not None else None
            ),
            "risk_variance": round(self.risk_variance, 4) if self.risk_variance is not None else None,
            "skipped_trades": self.skipped_trades,
            "positions": [
                {
                    "trade_id": p.trade_id,
                    "risk_amount": round(p.risk_amount, 2),
                    "actual_risk_pct": p.actual_risk_pct,
                    "is_within_risk_limit": p.is_within_risk_limit,
                    "recommended_lot_size": p.recommended_lot_size,
                    "used_default_balance": p.used_default_balance,
                    "used_default_instrument": p.used_default_instrument,
                }
                for p in self.positions
            ],
        }


def _pip_key(instrument: str) -> str:
    key = instrument.strip().upper()
    if len(key) == 6 and key.isalpha():  # EURUSD -> EUR/USD
        key = f"{key[:3]}/{key[3:]}"
    return key


def pip_value(instrument: str) -> float:
    if not instrument:
        return DEFAULT_PIP_VALUE
    return PIP_VALUES.get(_pip_key(instrument), DEFAULT_PIP_VALUE)


def calculate_position_risk(
    lot_size: float,
    stop_loss_distance: float,
    account_balance: float,
    instrument: str,
) -> PositionRisk:
    """Risk of a position given its stop distance in pips.

    Args:
        lot_size: Position size in lots.
        stop_loss_distance: Distance to the stop in pips.
        account_balance: Account balance in account currency.
        instrument: Symbol used to look up the pip value.

    Raises:
        ValueError: On a non-positive balance or stop distance.
    """
    if account_balance <= 0:
        raise ValueError(f"account balance must be positive, got {account_balance}")
    if stop_loss_distance <= 0:
        raise ValueError(f"stop-loss distance must be positive, got {stop_loss_distance}")

    limit_pct = settings.max_risk_per_trade_pct
    value = pip_value(instrument)

    risk_amount = lot_size * stop_loss_distance * value
    # The limit is checked against the reported (rounded) percentage
    risk_pct = round(risk_amount / account_balance * 100, 2)
    target_risk_amount = account_balance * limit_pct / 100

    return PositionRisk(
        risk_amount=risk_amount,
        actual_risk_pct=risk_pct,
        is_within_risk_limit=risk_pct <= limit_pct,
        recommended_lot_size=round(target_risk_amount / (stop_loss_distance * value), 2),
        used_default_pip_value=not instrument or _pip_key(instrument) not in PIP_VALUES,
    )


def trade_position_risk(
    trade: Trade,
    account_balance: float | None = None,
    instrument: str | None = None,
) -> PositionRisk | None:
    """Risk of a journaled trade, or None when it cannot be computed.

    Balance resolves trade -> argument -> settings default; the instrument
    resolves trade symbol -> argument -> settings default.
    """
    if not trade.stop_loss or not trade.quantity or not trade.entry_price:
        return None

    # Fractional pips: one decimal place
    stop_distance = round(abs(trade.entry_price - trade.stop_loss) * settings.pip_multiplier, 1)
    if stop_distance <= 0:
        return None

    balance = next((b for b in (trade.account_balance, account_balance) if b and b > 0), None)
    used_default_balance = balance is None
    if used_default_balance:
        balance = settings.default_account_balance

    symbol = trade.symbol or instrument
    used_default_instrument = not symbol
    if used_default_instrument:
        symbol = settings.default_instrument

    risk = calculate_position_risk(trade.quantity, stop_distance, balance, symbol)
    risk.trade_id = trade.id
    risk.used_default_balance = used_default_balance
    risk.used_default_instrument = used_default_instrument
    if used_default_balance or used_default_instrument:
        logger.debug(
            "Trade %s risk used defaults (balance=%s, instrument=%s)",
            trade.id,
            used_default_balance,
            used_default_instrument,
        )
    return risk


def _score(risk_pcts: list[float]) -> tuple[int, float | None, float | None]:
    score = settings.risk_base_score
    if not risk_pcts:
        return score, None, None

    average = float(np.mean(risk_pcts))
    variance = float(np.var(risk_pcts))

    if average <= 1:
        score += CONSERVATIVE_ADJUSTMENT
    elif average <= 2:
        score += MODERATE_ADJUSTMENT
    else:
        score += AGGRESSIVE_ADJUSTMENT

    # Inconsistent sizing signals a higher effective risk tolerance
    if variance > settings.risk_variance_threshold:
        score += INCONSISTENT_SIZING_ADJUSTMENT

    return min(100, max(0, score)), average, variance


def analyze_risk(
    trades: Iterable[Trade],
    account_balance: float | None = None,
    instrument: str | None = None,
) -> RiskAnalysisResult:
    """Per-trade risk for every computable trade plus the aggregate score."""
    positions: list[PositionRisk] = []
    skipped = 0
    for trade in trades:
        risk = trade_position_risk(trade, account_balance, instrument)
        if risk is None:
            skipped += 1
            continue
        positions.append(risk)

    score, average, variance = _score([p.actual_risk_pct for p in positions])
    if skipped:
        logger.debug("Risk analysis skipped %d trades without stop-loss/quantity/entry", skipped)

    return RiskAnalysisResult(
        risk_tolerance_score=score,
        positions=positions,
        skipped_trades=skipped,
        average_risk_pct=average,
        risk_variance=variance,
    )


def risk_tolerance_score(
    trades: Iterable[Trade],
    account_balance: float | None = None,
) -> int:
    """Aggregate score in [0, 100]. Base score when no trade is computable."""
    return analyze_risk(trades, account_balance).risk_tolerance_score


def risk_reward_points(trades: Iterable[Trade]) -> list[dict]:
    """Price risk vs. reward for trades carrying both a stop and a target."""
    points = []
    for t in trades:
        if not t.entry_price or not t.stop_loss or not t.take_profit:
            continue
        risk = abs(t.entry_price - t.stop_loss)
        reward = abs(t.take_profit - t.entry_price)
        if risk > 0 and reward > 0:
            points.append({"risk": risk, "reward": reward, "size": t.quantity or 1})
    return points
