from enum import Enum


class DailyPriceOutcome(str, Enum):
    """Result of the once-per-day price recording."""

    RECORDED = "recorded"
    ALREADY_RECORDED = "already_recorded"
