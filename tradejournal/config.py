"""Library configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Defaults for the analytics engine. Every value can be overridden per call."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "JOURNAL_",
        "extra": "ignore",
    }

    # App
    log_level: str = Field(default="INFO")
    timezone: str = Field(default="")  # IANA name, empty = system local

    # Risk (money in account currency, percentages as floats)
    default_account_balance: float = Field(default=10000.0)
    default_instrument: str = Field(default="EUR/USD")
    max_risk_per_trade_pct: float = Field(default=1.0)
    pip_multiplier: float = Field(default=10000.0)  # price distance -> pips
    risk_base_score: int = Field(default=50)
    risk_variance_threshold: float = Field(default=2.0)

    # Sample-size floors
    asset_pair_min_trades: int = Field(default=3)
    mood_min_entries: int = Field(default=2)

    # Behaviour thresholds
    overtrading_threshold: int = Field(default=5)  # trades per calendar day
    rule_adherence_min_rules: int = Field(default=2)  # momentum needs strictly more


settings = Settings()
