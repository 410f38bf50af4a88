"""Journal entry and trade records, as consumed by the analytics engine."""

import math
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class SessionType(str, Enum):
    PRE = "pre"
    POST = "post"


class Outcome(str, Enum):
    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class Direction(str, Enum):
    BUY = "buy"
    SELL = "sell"


class Trade(BaseModel):
    """One executed position. Numeric fields are None when absent or unparsable."""

    id: str | None = None
    symbol: str = ""
    direction: Direction | None = None
    entry_price: float | None = None
    exit_price: float | None = None
    entry_date: datetime | None = None
    exit_date: datetime | None = None
    quantity: float | None = None  # lot size
    stop_loss: float | None = None
    take_profit: float | None = None
    pnl: float | None = None
    setup: str = ""
    screenshots: tuple[str, ...] = ()
    account_balance: float | None = None

    model_config = {"frozen": True, "allow_inf_nan": False}

    @property
    def has_valid_pnl(self) -> bool:
        return self.pnl is not None and math.isfinite(self.pnl)

    @property
    def is_win(self) -> bool:
        return self.has_valid_pnl and self.pnl > 0

    @property
    def is_loss(self) -> bool:
        return self.has_valid_pnl and self.pnl < 0


class JournalEntry(BaseModel):
    """One pre- or post-trading journaling session with its embedded trades."""

    id: str
    created_at: datetime
    session_type: SessionType
    emotion: str = ""
    emotion_detail: str = ""
    notes: str = ""
    outcome: Outcome | None = None
    followed_rules: tuple[str, ...] = ()
    mistakes: tuple[str, ...] = ()
    pre_trading_activities: tuple[str, ...] = ()
    trades: tuple[Trade, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_session_fields(self) -> "JournalEntry":
        if self.mistakes and not (
            self.session_type == SessionType.POST and self.outcome == Outcome.LOSS
        ):
            raise ValueError("mistakes are only recorded on post-session losses")
        if self.pre_trading_activities and self.session_type != SessionType.PRE:
            raise ValueError("pre-trading activities are only recorded on pre-sessions")
        return self

    @property
    def is_post_loss(self) -> bool:
        return self.session_type == SessionType.POST and self.outcome == Outcome.LOSS
