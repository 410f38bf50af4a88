"""Record normalizer — turns raw journal rows into typed, analysis-ready models.

This is the single place where numeric and date coercion happens. An unparsable
number resolves to the INVALID marker and is stored as None on the model, never
as 0, so downstream ratios can exclude it. Malformed records are dropped and
counted; nothing in here raises to the caller.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any

import pandas as pd
from pydantic import ValidationError
from zoneinfo import ZoneInfo

from tradejournal.config import settings
from tradejournal.models.journal import (
    Direction,
    JournalEntry,
    Outcome,
    SessionType,
    Trade,
)

logger = logging.getLogger(__name__)


class _Invalid:
    """Marker for a value that was present but could not be coerced."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INVALID"

    def __bool__(self) -> bool:
        return False


INVALID = _Invalid()

# Raw field name variants, first match wins
ENTRY_FIELDS: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "created_at": ("created_at", "createdAt", "date"),
    "session_type": ("session_type", "sessionType"),
    "emotion": ("emotion",),
    "emotion_detail": ("emotion_detail", "emotionDetail"),
    "notes": ("notes",),
    "outcome": ("outcome",),
    "followed_rules": ("followed_rules", "followedRules"),
    "mistakes": ("mistakes",),
    "pre_trading_activities": ("pre_trading_activities", "preTradingActivities"),
    "trades": ("trades",),
}

TRADE_FIELDS: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "symbol": ("instrument", "symbol", "pair"),
    "direction": ("direction", "side", "type"),
    "entry_price": ("entryPrice", "entry_price"),
    "exit_price": ("exitPrice", "exit_price"),
    "entry_date": ("entryDate", "entry_date"),
    "exit_date": ("exitDate", "exit_date"),
    "quantity": ("quantity", "lotSize", "lot_size"),
    "stop_loss": ("stopLoss", "stop_loss"),
    "take_profit": ("takeProfit", "take_profit"),
    "pnl": ("pnl", "profit_loss", "profitLoss"),
    "setup": ("setup",),
    "screenshots": ("screenshots",),
    "account_balance": ("accountBalance", "account_balance"),
}

_DIRECTION_ALIASES = {"long": Direction.BUY, "short": Direction.SELL}


@dataclass
class NormalizationReport:
    """Normalized entries plus counts of what was dropped or flagged."""

    entries: list[JournalEntry] = field(default_factory=list)
    dropped_entries: int = 0
    dropped_trades: int = 0
    invalid_pnl_trades: int = 0

    @property
    def trades(self) -> list[Trade]:
        return [t for entry in self.entries for t in entry.trades]


def coerce_number(value: Any) -> float | None | _Invalid:
    """None when absent, INVALID when unparsable or non-finite, float otherwise."""
    if value is None:
        return None
    if isinstance(value, bool):
        return INVALID
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return INVALID
    if not math.isfinite(number):
        return INVALID
    return number


def coerce_timestamp(value: Any, tz: tzinfo | None = None) -> datetime | None | _Invalid:
    """Parse a timestamp into a naive local datetime.

    Timezone-aware values are converted to `tz` (system local when None).
    Numbers are treated as epoch milliseconds.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool) or not pd.api.types.is_scalar(value):
        return INVALID
    try:
        if isinstance(value, (int, float)):
            ts = pd.to_datetime(value, unit="ms", utc=True, errors="coerce")
        else:
            ts = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return INVALID
    if not isinstance(ts, pd.Timestamp) or pd.isna(ts):
        return INVALID
    moment = ts.to_pydatetime()
    if moment.tzinfo is not None:
        moment = moment.astimezone(tz).replace(tzinfo=None)
    return moment


def resolve_timezone(tz: tzinfo | str | None = None) -> tzinfo | None:
    if isinstance(tz, tzinfo):
        return tz
    name = tz or settings.timezone
    return ZoneInfo(name) if name else None


def _pick(raw: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _tags(value: Any) -> tuple[str, ...]:
    """De-duplicated non-empty tags in first-seen order."""
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    seen: dict[str, None] = {}
    for tag in value:
        tag = _text(tag)
        if tag:
            seen.setdefault(tag, None)
    return tuple(seen)


def _enum(enum_cls, value: Any, aliases: Mapping[str, Any] | None = None):
    if isinstance(value, enum_cls):
        return value
    text = _text(value).lower()
    if not text:
        return None
    if aliases and text in aliases:
        return aliases[text]
    try:
        return enum_cls(text)
    except ValueError:
        return None


def normalize_trade(
    raw: Mapping[str, Any] | Trade,
    default_date: datetime | None = None,
    tz: tzinfo | None = None,
) -> Trade | _Invalid:
    """Coerce one raw trade. Returns INVALID when the trade has to be dropped.

    A trade with an unparsable pnl is kept with pnl=None; one whose entry price
    or quantity is present but unparsable is dropped.
    """
    if isinstance(raw, Trade):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        logger.debug("Dropping non-mapping trade record: %r", raw)
        return INVALID

    values = {name: _pick(raw, aliases) for name, aliases in TRADE_FIELDS.items()}

    numbers = {}
    for name in ("entry_price", "exit_price", "quantity", "stop_loss", "take_profit", "pnl", "account_balance"):
        numbers[name] = coerce_number(values[name])

    for name in ("entry_price", "quantity"):
        if numbers[name] is INVALID:
            logger.debug("Dropping trade %s: unparsable %s %r", values["id"], name, values[name])
            return INVALID

    entry_date = coerce_timestamp(values["entry_date"], tz)
    exit_date = coerce_timestamp(values["exit_date"], tz)

    try:
        return Trade(
            id=_text(values["id"]) or None,
            symbol=_text(values["symbol"]).upper(),
            direction=_enum(Direction, values["direction"], _DIRECTION_ALIASES),
            entry_date=entry_date or default_date,
            exit_date=exit_date or None,
            setup=_text(values["setup"]),
            screenshots=_tags(values["screenshots"]),
            **{name: (value if value is not INVALID else None) for name, value in numbers.items()},
        )
    except ValidationError as e:
        logger.debug("Dropping trade %s: %s", values["id"], e)
        return INVALID


def normalize_entry(
    raw: Mapping[str, Any] | JournalEntry,
    index: int = 0,
    tz: tzinfo | None = None,
    strict: bool = False,
    report: NormalizationReport | None = None,
) -> JournalEntry | _Invalid:
    """Coerce one raw journal entry and its embedded trades."""
    report = report if report is not None else NormalizationReport()
    if isinstance(raw, JournalEntry):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        logger.debug("Dropping non-mapping entry record at %d", index)
        return INVALID

    values = {name: _pick(raw, aliases) for name, aliases in ENTRY_FIELDS.items()}
    entry_id = _text(values["id"]) or f"entry-{index}"

    created_at = coerce_timestamp(values["created_at"], tz)
    session_type = _enum(SessionType, values["session_type"])
    if not created_at or session_type is None:
        logger.debug(
            "Dropping entry %s: created_at=%r session_type=%r",
            entry_id,
            values["created_at"],
            values["session_type"],
        )
        return INVALID

    outcome = _enum(Outcome, values["outcome"])
    if session_type == SessionType.PRE:
        outcome = None

    trades: list[Trade] = []
    for raw_trade in values["trades"] or ():
        trade = normalize_trade(raw_trade, default_date=created_at, tz=tz)
        if trade is INVALID:
            report.dropped_trades += 1
            continue
        if not trade.has_valid_pnl:
            if strict:
                logger.debug("Dropping trade %s of entry %s: invalid pnl", trade.id, entry_id)
                report.dropped_trades += 1
                continue
            report.invalid_pnl_trades += 1
        trades.append(trade)

    is_post_loss = session_type == SessionType.POST and outcome == Outcome.LOSS
    fields = {
        "emotion": _text(values["emotion"]).lower(),
        "emotion_detail": _text(values["emotion_detail"]),
        "notes": _text(values["notes"]),
        "followed_rules": _tags(values["followed_rules"]),
        "mistakes": _tags(values["mistakes"]) if is_post_loss else (),
        "pre_trading_activities": (
            _tags(values["pre_trading_activities"]) if session_type == SessionType.PRE else ()
        ),
    }
    if not trades and outcome is None and not any(fields.values()):
        logger.debug("Dropping entry %s: no trades and no journaling data", entry_id)
        return INVALID

    try:
        return JournalEntry(
            id=entry_id,
            created_at=created_at,
            session_type=session_type,
            outcome=outcome,
            trades=tuple(trades),
            **fields,
        )
    except ValidationError as e:
        logger.debug("Dropping entry %s: %s", entry_id, e)
        return INVALID


def normalize_entries(
    raw_entries: Iterable[Mapping[str, Any] | JournalEntry],
    tz: tzinfo | str | None = None,
    strict: bool = False,
) -> NormalizationReport:
    """Normalize a batch of raw entries, sorted by creation time ascending.

    Args:
        raw_entries: Rows as fetched from storage (any key style) or typed entries.
        tz: Local timezone for converting aware timestamps. Defaults to settings.
        strict: Drop trades with an unparsable pnl instead of flagging them.
    """
    local_tz = resolve_timezone(tz)
    report = NormalizationReport()
    for index, raw in enumerate(raw_entries or ()):
        entry = normalize_entry(raw, index=index, tz=local_tz, strict=strict, report=report)
        if entry is INVALID:
            report.dropped_entries += 1
            continue
        report.entries.append(entry)

    report.entries.sort(key=lambda e: e.created_at)

    if report.dropped_entries or report.dropped_trades:
        logger.info(
            "Normalized %d entries (dropped %d entries, %d trades, %d trades with invalid pnl)",
            len(report.entries),
            report.dropped_entries,
            report.dropped_trades,
            report.invalid_pnl_trades,
        )
    return report
