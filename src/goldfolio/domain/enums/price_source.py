from enum import Enum


class PriceSource(str, Enum):
    """Where a price observation came from."""

    API = "api"
    SCHEDULED_API = "scheduled-api"
    MANUAL = "manual"
    FALLBACK = "fallback"
