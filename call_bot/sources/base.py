from abc import ABC, abstractmethod
from typing import Any

from call_bot.sources.fetcher import RateLimitedFetcher, RetryPolicy
from call_bot.sources.models import Snapshot
from call_bot.tracking.models import AssetClass, MilestoneConvention


def to_float(value: Any) -> float:
    """Provider numbers arrive as str, int, float or null."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def to_text(value: Any) -> str | None:
    """*value* if the provider sent a non-empty string, else None."""
    return value if isinstance(value, str) and value else None


class AssetDataSource(ABC):
    """Reads one asset class from one market-data provider."""

    asset_class: AssetClass
    milestone_convention: MilestoneConvention = MilestoneConvention.MULTIPLIER
    unit: str = ""

    def __init__(self, fetcher: RateLimitedFetcher) -> None:
        self.fetcher = fetcher

    @abstractmethod
    async def fetch_snapshot(
        self,
        asset_id: str,
        *,
        chain: str | None = None,
        policy: RetryPolicy | None = None,
    ) -> Snapshot:
        """Return the asset's current snapshot.

        Raises AssetNotFoundError for unknown ids, RateLimitedError or
        RetriesExhaustedError once *policy* gives up.
        """
        ...

    def link(self, asset_id: str) -> str:
        """Marketplace/chart URL for the asset, empty if there is none."""
        return ""
