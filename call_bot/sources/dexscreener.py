"""DexScreener client for fungible-token calls (any chain)."""

import logging
from typing import Any

from call_bot.config import settings
from call_bot.errors import AssetNotFoundError, TransientProviderError
from call_bot.sources.base import AssetDataSource, to_float as _float
from call_bot.sources.fetcher import RetryPolicy
from call_bot.sources.models import Snapshot
from call_bot.tracking.models import AssetClass, MilestoneConvention

logger = logging.getLogger(__name__)


def _liquidity(pair: dict) -> float:
    liquidity = pair.get("liquidity")
    if not isinstance(liquidity, dict):
        return 0.0
    return _float(liquidity.get("usd"))


def _well_formed(pair: Any) -> bool:
    return isinstance(pair, dict) and isinstance(pair.get("liquidity") or {}, dict)


def select_best_pair(pairs: list[dict], chain: str | None = None) -> dict | None:
    """Highest-liquidity pair, optionally restricted to one chain.

    Pairs that are not objects, or whose liquidity is not an object, are skipped.
    """
    pairs = [p for p in pairs if _well_formed(p)]
    if chain:
        pairs = [p for p in pairs if (p.get("chainId") or "").lower() == chain.lower()]
    if not pairs:
        return None
    return max(pairs, key=_liquidity)


def extract_pair_details(pair: dict) -> dict:
    """Extract useful details from a DexScreener pair response."""
    base = pair.get("baseToken") or {}
    txns = (pair.get("txns") or {}).get("h24") or {}
    price_change = pair.get("priceChange") or {}

    return {
        "symbol": (base.get("symbol") or "???").upper(),
        "name": base.get("name", ""),
        "address": base.get("address", ""),
        "price_usd": _float(pair.get("priceUsd")),
        "market_cap": pair.get("marketCap") or pair.get("fdv"),
        "liquidity_usd": _liquidity(pair),
        "volume_24h": _float((pair.get("volume") or {}).get("h24")),
        "buys_24h": int(txns.get("buys") or 0),
        "sells_24h": int(txns.get("sells") or 0),
        "price_change_24h": _float(price_change.get("h24")),
        "pair_address": pair.get("pairAddress", ""),
        "dex": pair.get("dexId", ""),
        "chain": pair.get("chainId", ""),
        "url": pair.get("url", ""),
    }


def _social_links(pair: dict) -> dict[str, str]:
    info = pair.get("info") or {}
    links: dict[str, str] = {}
    websites = info.get("websites") or []
    if websites and websites[0].get("url"):
        links["website"] = websites[0]["url"]
    for social in info.get("socials") or []:
        kind, url = social.get("type"), social.get("url")
        if kind and url:
            links[kind] = url
    return links


class TokenSource(AssetDataSource):
    """Reference price: USD price of the highest-liquidity pair.

    Milestones are multipliers (2 = the price doubled).
    """

    asset_class = AssetClass.TOKEN
    milestone_convention = MilestoneConvention.MULTIPLIER
    unit = "USD"

    def __init__(self, fetcher, base_url: str | None = None) -> None:
        super().__init__(fetcher)
        self.base_url = (base_url or settings.dexscreener_base_url).rstrip("/")

    async def fetch_snapshot(
        self,
        asset_id: str,
        *,
        chain: str | None = None,
        policy: RetryPolicy | None = None,
    ) -> Snapshot:
        def parse(data: Any) -> Snapshot:
            if not isinstance(data, dict) or "pairs" not in data:
                raise TransientProviderError("DexScreener response has no 'pairs' field")
            pairs = data.get("pairs") or []
            pair = select_best_pair(pairs, chain)
            if pair is None:
                if pairs and not any(_well_formed(p) for p in pairs):
                    raise TransientProviderError("DexScreener returned only malformed pairs")
                where = f" on {chain}" if chain else ""
                raise AssetNotFoundError(asset_id, f"no DexScreener pairs{where}")
            return self._snapshot(pair)

        return await self.fetcher.fetch(
            f"{self.base_url}/tokens/{asset_id}",
            parse=parse,
            policy=policy,
            asset_id=asset_id,
        )

    def _snapshot(self, pair: dict) -> Snapshot:
        d = extract_pair_details(pair)
        pair_info = pair.get("info") or {}

        return Snapshot(
            reference_price=d["price_usd"],
            volume_24h=d["volume_24h"],
            listed_or_tx_count=d["buys_24h"] + d["sells_24h"],
            price_change_24h=d["price_change_24h"],
            display_name=d["symbol"],
            image_url=pair_info.get("imageUrl"),
            social_links=_social_links(pair),
            unit=self.unit,
            metadata={
                "market_cap": d["market_cap"],
                "liquidity_usd": d["liquidity_usd"],
                "buys_24h": d["buys_24h"],
                "sells_24h": d["sells_24h"],
                "pair_address": d["pair_address"],
                "dex": d["dex"],
                "chain": d["chain"],
                "url": d["url"],
            },
        )

    def link(self, asset_id: str) -> str:
        return f"https://dexscreener.com/search?q={asset_id}"
