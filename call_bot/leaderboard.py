"""Top calls by PnL multiple, across every tracker.

Works only through the trackers' read interface (``summaries`` and
``current_price``), so it never sees a half-updated call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from call_bot.delivery.base import NotificationSink
from call_bot.tracking.models import CallSummary, LeaderboardEntry
from call_bot.tracking.scheduler import TrackerScheduler

logger = logging.getLogger(__name__)


def rank_entries(entries: Iterable[LeaderboardEntry], limit: int = 10) -> list[LeaderboardEntry]:
    """Best PnL multiple first; ties keep collection order."""
    return sorted(entries, key=lambda e: e.pnl_multiple, reverse=True)[:limit]


def entry_for(summary: CallSummary, current_price: float | None) -> LeaderboardEntry | None:
    if not current_price or summary.baseline_price <= 0:
        return None
    return LeaderboardEntry(
        call=summary,
        current_price=current_price,
        pnl_multiple=current_price / summary.baseline_price,
    )


async def build_leaderboard(
    trackers: Iterable[TrackerScheduler], limit: int = 10
) -> list[LeaderboardEntry]:
    entries: list[LeaderboardEntry] = []
    for tracker in trackers:
        for summary in tracker.summaries():
            try:
                price = await tracker.current_price(summary.asset_id)
            except Exception:
                logger.exception(
                    "Error pricing %s %s for leaderboard", tracker.name, summary.asset_id
                )
                continue
            entry = entry_for(summary, price)
            if entry is not None:
                entries.append(entry)
    return rank_entries(entries, limit)


async def leaderboard_loop(
    trackers: list[TrackerScheduler],
    sink: NotificationSink,
    channel_id: str,
    interval_seconds: float,
    limit: int = 10,
) -> None:
    """Post the leaderboard now and then every *interval_seconds*."""
    logger.info(
        "Leaderboard loop started (interval=%ds, channel=%s)", interval_seconds, channel_id
    )
    while True:
        try:
            top = await build_leaderboard(trackers, limit)
            if top:
                await sink.post_leaderboard(channel_id, top)
                logger.info("Leaderboard posted (%d entries)", len(top))
            else:
                logger.info("Leaderboard skipped — no priced calls yet")
        except Exception:
            logger.exception("Error in leaderboard loop")

        await asyncio.sleep(interval_seconds)
