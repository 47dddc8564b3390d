"""Magic Eden clients: Solana, Ethereum and ApeChain NFTs, Bitcoin runes and ordinals.

All five share one fetcher (one pacing budget) since they hit the same API.
Optional sub-resources (activity feeds, collection metadata) are read once
with ``SINGLE_ATTEMPT`` and dropped on failure instead of being retried.
"""

from __future__ import annotations

import logging
from typing import Any

from call_bot.config import settings
from call_bot.errors import AssetNotFoundError, FetchError, TransientProviderError
from call_bot.sources.base import AssetDataSource, to_float, to_int, to_text
from call_bot.sources.fetcher import SINGLE_ATTEMPT, RateLimitedFetcher, RetryPolicy
from call_bot.sources.models import Snapshot
from call_bot.tracking.models import AssetClass, MilestoneConvention

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


def _require_dict(data: Any, what: str) -> dict:
    if not isinstance(data, dict) or not data:
        raise TransientProviderError(f"Magic Eden returned no {what}")
    return data


def _as_list(data: Any, key: str) -> list:
    """Some endpoints return a bare list, others wrap it in ``{key: [...]}``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    raise TransientProviderError(f"Magic Eden returned no {key}")


class _MagicEdenSource(AssetDataSource):
    def __init__(self, fetcher: RateLimitedFetcher, base_url: str | None = None) -> None:
        super().__init__(fetcher)
        self.base_url = (base_url or settings.magic_eden_base_url).rstrip("/")

    async def _optional(self, url: str, params: dict | None = None) -> Any | None:
        try:
            return await self.fetcher.fetch(url, params=params, policy=SINGLE_ATTEMPT)
        except FetchError as exc:
            logger.debug("Optional Magic Eden resource %s skipped: %s", url, exc)
            return None


# ---------------------------------------------------------------------------
# Solana NFTs
# ---------------------------------------------------------------------------


class SolanaNFTSource(_MagicEdenSource):
    """Reference price: collection floor in SOL. Milestones are multipliers."""

    asset_class = AssetClass.SOLANA_NFT
    milestone_convention = MilestoneConvention.MULTIPLIER
    unit = "SOL"

    async def fetch_snapshot(
        self,
        asset_id: str,
        *,
        chain: str | None = None,
        policy: RetryPolicy | None = None,
    ) -> Snapshot:
        return await self.fetcher.fetch(
            f"{self.base_url}/v2/collections/{asset_id}/stats",
            parse=lambda d: self._snapshot(_require_dict(d, "collection stats"), asset_id),
            policy=policy,
            asset_id=asset_id,
        )

    def _snapshot(self, stats: dict, asset_id: str) -> Snapshot:
        floor = round(to_float(stats.get("floorPrice")) / LAMPORTS_PER_SOL, 3)
        avg_24h = round(to_float(stats.get("avgPrice24hr")) / LAMPORTS_PER_SOL, 3)
        # The stats endpoint has no 24h volume; all-time volume stands in for it
        volume = round(to_float(stats.get("volumeAll")) / LAMPORTS_PER_SOL, 2)
        change = round((floor - avg_24h) / avg_24h * 100, 2) if avg_24h else 0.0

        return Snapshot(
            reference_price=floor,
            volume_24h=volume,
            listed_or_tx_count=to_int(stats.get("listedCount")),
            price_change_24h=change,
            display_name=stats.get("symbol") or asset_id,
            unit=self.unit,
            social_links={
                "Magic Eden": self.link(asset_id),
                "Tensor": f"https://www.tensor.trade/trade/{asset_id}",
            },
        )

    def link(self, asset_id: str) -> str:
        return f"https://magiceden.io/marketplace/{asset_id}"


# ---------------------------------------------------------------------------
# EVM NFTs (Ethereum, ApeChain)
# ---------------------------------------------------------------------------


class EvmNFTSource(_MagicEdenSource):
    """Reference price: ``floorAsk`` in the chain's native unit. Milestones are multipliers."""

    milestone_convention = MilestoneConvention.MULTIPLIER
    chain_slug: str = ""

    async def fetch_snapshot(
        self,
        asset_id: str,
        *,
        chain: str | None = None,
        policy: RetryPolicy | None = None,
    ) -> Snapshot:
        def parse(data: Any) -> Snapshot:
            if not isinstance(data, dict) or not isinstance(data.get("collections"), list):
                raise TransientProviderError("Magic Eden returned no collections field")
            if not data["collections"]:
                raise AssetNotFoundError(asset_id, f"no {self.chain_slug} collection for contract")
            return self._snapshot(data["collections"][0], asset_id)

        return await self.fetcher.fetch(
            f"{self.base_url}/v3/rtp/{self.chain_slug}/collections/v7",
            params={"contract": asset_id},
            parse=parse,
            policy=policy,
            asset_id=asset_id,
        )

    def _snapshot(self, collection: dict, asset_id: str) -> Snapshot:
        price = ((collection.get("floorAsk") or {}).get("price") or {})
        volume = (collection.get("volume") or {}).get("1day")
        links = {}
        if collection.get("externalUrl"):
            links["website"] = collection["externalUrl"]
        if collection.get("twitterUsername"):
            links["twitter"] = f"https://twitter.com/{collection['twitterUsername']}"
        if collection.get("discordUrl"):
            links["discord"] = collection["discordUrl"]

        return Snapshot(
            reference_price=to_float((price.get("amount") or {}).get("native")),
            volume_24h=to_float(volume.get("native") if isinstance(volume, dict) else volume),
            listed_or_tx_count=to_int(collection.get("tokenCount")),
            price_change_24h=to_float((price.get("change") or {}).get("1day")),
            display_name=collection.get("name") or asset_id,
            image_url=collection.get("image"),
            social_links=links,
            unit=self.unit,
        )


class EthNFTSource(EvmNFTSource):
    asset_class = AssetClass.ETH_NFT
    chain_slug = "ethereum"
    unit = "ETH"

    def link(self, asset_id: str) -> str:
        return f"https://opensea.io/assets/ethereum/{asset_id}"


class ApeNFTSource(EvmNFTSource):
    asset_class = AssetClass.APE_NFT
    chain_slug = "apechain"
    unit = "APE"

    def link(self, asset_id: str) -> str:
        return f"https://magiceden.io/collections/apechain/{asset_id}"


# ---------------------------------------------------------------------------
# Bitcoin runes and ordinals
# ---------------------------------------------------------------------------


class RuneSource(_MagicEdenSource):
    """Reference price: best ask unit price in sats (0 when nothing is listed).

    Milestones are multipliers, same as the token and NFT sources.
    """

    asset_class = AssetClass.RUNE
    milestone_convention = MilestoneConvention.MULTIPLIER
    unit = "sats"

    async def fetch_snapshot(
        self,
        asset_id: str,
        *,
        chain: str | None = None,
        policy: RetryPolicy | None = None,
    ) -> Snapshot:
        base = f"{self.base_url}/v2/ord/btc/runes"
        market = await self.fetcher.fetch(
            f"{base}/market/{asset_id}/info",
            parse=lambda d: _require_dict(d, "rune market info"),
            policy=policy,
            asset_id=asset_id,
        )
        orders = await self.fetcher.fetch(
            f"{base}/orders/{asset_id}",
            params={"side": "sell", "sort": "unitPriceAsc"},
            parse=lambda d: _as_list(d, "orders"),
            policy=policy,
            asset_id=asset_id,
        )
        activities = await self._optional(f"{base}/activities/{asset_id}")

        asks = [to_float(o.get("unitPrice")) for o in orders if isinstance(o, dict)]
        asks = [a for a in asks if a > 0]
        metadata: dict[str, Any] = {"total_volume": to_float(market.get("totalVolume"))}
        if activities is not None:
            try:
                metadata["recent_activity_count"] = len(_as_list(activities, "activities"))
            except TransientProviderError:
                pass

        return Snapshot(
            reference_price=min(asks) if asks else 0.0,
            volume_24h=to_float(market.get("volume24h")),
            listed_or_tx_count=len(orders),
            display_name=(
                to_text(market.get("runeName")) or to_text(market.get("spacedRune")) or asset_id
            ),
            image_url=to_text(market.get("imageURI")),
            social_links={"Magic Eden": self.link(asset_id)},
            unit=self.unit,
            metadata=metadata,
        )

    def link(self, asset_id: str) -> str:
        return f"https://magiceden.io/ordinals/runes/{asset_id}"


class OrdinalSource(_MagicEdenSource):
    """Reference price: collection floor from the stats endpoint, as reported.

    Milestones are PERCENT changes here: ``5`` fires on a +5% floor move, not a
    5x. The only source read this way.
    """

    asset_class = AssetClass.ORDINAL
    milestone_convention = MilestoneConvention.PERCENT
    unit = "BTC"

    async def fetch_snapshot(
        self,
        asset_id: str,
        *,
        chain: str | None = None,
        policy: RetryPolicy | None = None,
    ) -> Snapshot:
        base = f"{self.base_url}/v2/ord/btc"
        stats = await self.fetcher.fetch(
            f"{base}/stat",
            params={"collectionSymbol": asset_id},
            parse=lambda d: _require_dict(d, "collection stats"),
            policy=policy,
            asset_id=asset_id,
        )
        collection = await self._optional(f"{base}/collections/{asset_id}")
        activities = await self._optional(
            f"{base}/activities",
            params={"collectionSymbol": asset_id, "limit": 100, "offset": 0},
        )

        info = collection if isinstance(collection, dict) else {}
        links = {"Magic Eden": self.link(asset_id)}
        for key, label in (("websiteLink", "website"), ("twitterLink", "twitter"), ("discordLink", "discord")):
            if to_text(info.get(key)):
                links[label] = info[key]
        metadata: dict[str, Any] = {"total_volume": to_float(stats.get("totalVolume"))}
        if activities is not None:
            try:
                metadata["recent_activity_count"] = len(_as_list(activities, "activities"))
            except TransientProviderError:
                pass

        return Snapshot(
            reference_price=to_float(stats.get("floorPrice")),
            volume_24h=to_float(stats.get("volume24h")),
            listed_or_tx_count=to_int(stats.get("listedCount")),
            display_name=to_text(info.get("name")) or asset_id,
            image_url=to_text(info.get("imageURI")),
            social_links=links,
            unit=self.unit,
            metadata=metadata,
        )

    def link(self, asset_id: str) -> str:
        return f"https://magiceden.io/ordinals/collections/{asset_id}"
