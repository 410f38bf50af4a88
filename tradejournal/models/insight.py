"""Monthly "wrapped" insight cards."""

from collections.abc import Iterator

from pydantic import BaseModel, Field

NOT_ENOUGH_DATA = "Not enough data"

# Fixed presentation order of the monthly cards
INSIGHT_KEYS: tuple[str, ...] = (
    "win_rate",
    "winning_streak",
    "losing_streak",
    "most_active_time",
    "favorite_setup",
    "avg_holding_time",
    "mood_performance",
    "overtrading",
    "emotional_heatmap",
)


class InsightData(BaseModel):
    """Single narrative card."""

    value: str
    description: str
    additional_info: str | None = None

    model_config = {"frozen": True}

    @property
    def has_data(self) -> bool:
        return self.value != NOT_ENOUGH_DATA


class MonthlyInsights(BaseModel):
    """The full set of cards for one calendar month."""

    month: int = Field(ge=1, le=12)
    year: int
    win_rate: InsightData
    winning_streak: InsightData
    losing_streak: InsightData
    most_active_time: InsightData
    favorite_setup: InsightData
    avg_holding_time: InsightData
    mood_performance: InsightData
    overtrading: InsightData
    emotional_heatmap: InsightData
    # day of month -> emotion -> entry count
    heatmap: dict[int, dict[str, int]] = Field(default_factory=dict)
    is_overtrading: bool = False

    model_config = {"frozen": True}

    def items(self) -> Iterator[tuple[str, InsightData]]:
        for key in INSIGHT_KEYS:
            yield key, getattr(self, key)
