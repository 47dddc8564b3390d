import logging
from abc import ABC, abstractmethod

from call_bot.sources.models import Snapshot
from call_bot.tracking.models import Call, LeaderboardEntry

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """Where call announcements go. Trackers log, and never re-raise, sink errors."""

    @abstractmethod
    async def announce_creation(self, call: Call, snapshot: Snapshot) -> None:
        """Announce a newly registered call."""
        ...

    @abstractmethod
    async def announce_milestone(self, call: Call, milestone: float, current_price: float) -> None:
        """Announce that *call* crossed *milestone*."""
        ...

    @abstractmethod
    async def post_leaderboard(self, channel_id: str, entries: list[LeaderboardEntry]) -> None:
        """Publish the current top calls."""
        ...


class LogSink(NotificationSink):
    """Fallback when Discord isn't configured: announcements only go to the log."""

    async def announce_creation(self, call: Call, snapshot: Snapshot) -> None:
        logger.info(
            "New %s call: %s @ %s %s (caller=%s, channel=%s)",
            call.asset_class.label, call.name, call.baseline_price, call.unit,
            call.caller_name or call.caller_id, call.channel_id,
        )

    async def announce_milestone(self, call: Call, milestone: float, current_price: float) -> None:
        logger.info(
            "%s hit %s: %s -> %s %s",
            call.name, call.convention.format(milestone),
            call.baseline_price, current_price, call.unit,
        )

    async def post_leaderboard(self, channel_id: str, entries: list[LeaderboardEntry]) -> None:
        for rank, e in enumerate(entries, 1):
            logger.info(
                "#%d %s (%s) by %s: %.2fx",
                rank, e.call.display_name, e.call.asset_class.label,
                e.call.caller_name or e.call.caller_id, e.pnl_multiple,
            )
