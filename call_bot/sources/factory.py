"""Build the six data sources with one paced fetcher per provider."""

import logging

import httpx

from call_bot.config import Settings, settings as default_settings
from call_bot.sources.base import AssetDataSource
from call_bot.sources.dexscreener import TokenSource
from call_bot.sources.fetcher import RateLimitedFetcher, RetryPolicy
from call_bot.sources.magiceden import (
    ApeNFTSource,
    EthNFTSource,
    OrdinalSource,
    RuneSource,
    SolanaNFTSource,
)
from call_bot.tracking.models import AssetClass

logger = logging.getLogger(__name__)


def retry_policy(cfg: Settings, max_attempts: int | None) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=max_attempts,
        rate_limit_delay=cfg.rate_limit_backoff_seconds,
        rate_limit_delay_cap=cfg.rate_limit_backoff_cap_seconds,
        transient_delay=cfg.transient_retry_delay_seconds,
        jitter=cfg.retry_jitter_seconds,
    )


def create_sources(
    client: httpx.AsyncClient, cfg: Settings | None = None
) -> dict[AssetClass, AssetDataSource]:
    cfg = cfg or default_settings
    sweep_policy = retry_policy(cfg, cfg.sweep_max_attempts)

    dexscreener = RateLimitedFetcher(
        client,
        "DexScreener",
        min_interval=cfg.dexscreener_min_interval,
        default_policy=sweep_policy,
    )

    me_headers = {}
    if cfg.magic_eden_api_key:
        me_headers["Authorization"] = f"Bearer {cfg.magic_eden_api_key}"
    else:
        logger.warning("MAGIC_EDEN_API_KEY not set — EVM NFT and BTC lookups may be rejected")
    magiceden = RateLimitedFetcher(
        client,
        "MagicEden",
        min_interval=cfg.magic_eden_min_interval,
        per_minute=cfg.magic_eden_requests_per_minute,
        headers=me_headers,
        default_policy=sweep_policy,
    )

    sources: list[AssetDataSource] = [
        TokenSource(dexscreener, cfg.dexscreener_base_url),
        SolanaNFTSource(magiceden, cfg.magic_eden_base_url),
        EthNFTSource(magiceden, cfg.magic_eden_base_url),
        ApeNFTSource(magiceden, cfg.magic_eden_base_url),
        RuneSource(magiceden, cfg.magic_eden_base_url),
        OrdinalSource(magiceden, cfg.magic_eden_base_url),
    ]
    return {s.asset_class: s for s in sources}
