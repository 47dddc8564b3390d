import asyncio
import logging

import httpx
import uvicorn

from call_bot.config import Settings, settings
from call_bot.delivery.base import LogSink, NotificationSink
from call_bot.delivery.web.app import create_app
from call_bot.leaderboard import leaderboard_loop
from call_bot.sources.factory import create_sources, retry_policy
from call_bot.tracking.alert_gate import AlertGate
from call_bot.tracking.models import AssetClass
from call_bot.tracking.scheduler import TrackerScheduler
from call_bot.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def create_trackers(
    client: httpx.AsyncClient, sink: NotificationSink, cfg: Settings = settings
) -> dict[AssetClass, TrackerScheduler]:
    """One tracker per asset class, each with its own registry and alert gate."""
    creation_policy = retry_policy(cfg, cfg.creation_max_attempts)
    sweep_policy = retry_policy(cfg, cfg.sweep_max_attempts)

    trackers = {}
    for asset_class, source in create_sources(client, cfg).items():
        trackers[asset_class] = TrackerScheduler(
            source,
            sink,
            gate=AlertGate(cfg.alert_cooldown_seconds),
            thresholds=cfg.milestones,
            interval_seconds=cfg.tracker_interval_seconds,
            creation_policy=creation_policy,
            sweep_policy=sweep_policy,
            sweep_fetch_timeout=cfg.sweep_fetch_timeout_seconds,
            cooldown_scope=cfg.cooldown_scope,
        )
    return trackers


async def main() -> None:
    setup_logging()
    logger.info("Starting Call Bot")

    # Discord: announcements + slash commands
    sink: NotificationSink
    delivery = None
    if settings.discord_bot_token:
        from call_bot.delivery.discord_bot import DiscordDelivery

        delivery = DiscordDelivery()
        sink = delivery
        logger.info("Discord delivery enabled")
    else:
        sink = LogSink()
        logger.warning("DISCORD_BOT_TOKEN not set — announcements will only be logged")

    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        trackers = create_trackers(client, sink)
        if delivery is not None:
            delivery.register_trackers(trackers)

        tasks = [t.run() for t in trackers.values()]
        logger.info(
            "Trackers: %s (interval=%ds)",
            ", ".join(t.name for t in trackers.values()),
            settings.tracker_interval_seconds,
        )

        if delivery is not None:
            tasks.append(delivery.start())

        if settings.leaderboard_channel_id:
            tasks.append(
                leaderboard_loop(
                    list(trackers.values()),
                    sink,
                    settings.leaderboard_channel_id,
                    settings.leaderboard_interval_seconds,
                    settings.leaderboard_size,
                )
            )
        else:
            logger.info("Leaderboard disabled — set LEADERBOARD_CHANNEL_ID to post it")

        if settings.web_enabled:
            server = uvicorn.Server(
                uvicorn.Config(
                    create_app(trackers),
                    host=settings.web_host,
                    port=settings.web_port,
                    log_level="info",
                )
            )
            tasks.append(server.serve())

        await asyncio.gather(*tasks)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
