"""Discord embeds for call announcements, milestones and the leaderboard."""

from __future__ import annotations

from datetime import datetime, timezone

import discord

from call_bot.sources.models import Snapshot
from call_bot.tracking.models import Call, LeaderboardEntry

_GREEN = discord.Color.from_str("#00ff00")
_MEDALS = ("🥇", "🥈", "🥉")


def fmt_number(n: float | None) -> str:
    if n is None:
        return "N/A"
    if n >= 1_000_000_000:
        return f"{n / 1_000_000_000:.2f}B"
    if n >= 1_000_000:
        return f"{n / 1_000_000:.2f}M"
    if n >= 1_000:
        return f"{n / 1_000:.2f}K"
    return f"{n:,.2f}"


def fmt_price(price: float | None, unit: str) -> str:
    if price is None:
        return "N/A"
    if unit == "USD":
        if price >= 1:
            return f"${price:,.4f}"
        return f"${price:.8g}"
    if unit == "sats":
        return f"{price:,.0f} sats"
    if unit == "BTC":
        return f"{price:.8g} BTC"
    return f"{price:.3f} {unit}".rstrip()


def fmt_volume(volume: float, unit: str) -> str:
    if unit == "USD":
        return f"${fmt_number(volume)}"
    return f"{fmt_number(volume)} {unit}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def creation_embed(call: Call, snapshot: Snapshot, link: str = "") -> discord.Embed:
    lines = [
        f"Called by: <@{call.caller_id}>",
        f"**Initial Price:** {fmt_price(call.baseline_price, call.unit)}",
        f"**24h Volume:** {fmt_volume(snapshot.volume_24h, call.unit)}",
    ]
    meta = snapshot.metadata
    if meta.get("market_cap"):
        lines.append(f"**Market Cap:** ${fmt_number(float(meta['market_cap']))}")
    if meta.get("liquidity_usd"):
        lines.append(f"**Liquidity:** ${fmt_number(float(meta['liquidity_usd']))}")
    if snapshot.price_change_24h:
        lines.append(f"**24h Change:** {snapshot.price_change_24h:+.2f}%")
    if "buys_24h" in meta:
        lines.append(f"**24h Transactions:** {meta['buys_24h']} buys, {meta['sells_24h']} sells")
    else:
        lines.append(f"**Listed Count:** {snapshot.listed_or_tx_count:,}")
    lines += ["", f"**ID:**\n`{call.asset_id}`"]
    if meta.get("dex"):
        lines.append(f"**DEX:** {meta['dex']}")
    if meta.get("url") or link:
        lines.append(f"**Chart:** [View]({meta.get('url') or link})")

    embed = discord.Embed(
        title=f"🎯 New {call.asset_class.label} Call: {call.name}",
        description="\n".join(lines),
        color=_GREEN,
        timestamp=_now(),
    )
    if snapshot.image_url:
        embed.set_thumbnail(url=snapshot.image_url)
    links = " | ".join(f"[{name}]({url})" for name, url in snapshot.social_links.items())
    if links:
        embed.add_field(name="Links", value=links[:1024], inline=False)
    return embed


def milestone_embed(call: Call, milestone: float, current_price: float, link: str = "") -> discord.Embed:
    label = call.convention.format(milestone)
    lines = [
        f"**Initial Price:** {fmt_price(call.baseline_price, call.unit)}",
        f"**Current Price:** {fmt_price(current_price, call.unit)}",
        f"**Milestone:** {label} 🚀",
        f"Called by: <@{call.caller_id}>",
        "",
        f"**ID:**\n`{call.asset_id}`",
    ]
    url = call.metadata.get("url") or link
    if url:
        lines.append(f"[View]({url})")
    return discord.Embed(
        title=f"🎯 {call.name} Hit {label}!",
        description="\n".join(lines),
        color=_GREEN,
        timestamp=_now(),
    )


def leaderboard_embed(entries: list[LeaderboardEntry]) -> discord.Embed:
    blocks = []
    for i, e in enumerate(entries):
        medal = _MEDALS[i] if i < len(_MEDALS) else "🏅"
        c = e.call
        blocks.append(
            f"{medal} **{c.caller_name or f'<@{c.caller_id}>'}** - {c.asset_class.label}\n"
            f"Symbol: `{c.display_name}`\n"
            f"PnL: {e.pnl_pct:.2f}% ({e.pnl_multiple:.2f}x)\n"
            f"Entry: {fmt_price(c.baseline_price, c.unit)}\n"
            f"Current: {fmt_price(e.current_price, c.unit)}\n"
        )
    embed = discord.Embed(
        title="🏆 Top Calls Leaderboard",
        description="\n".join(blocks) or "No calls yet.",
        color=_GREEN,
        timestamp=_now(),
    )
    embed.set_footer(text="Daily Leaderboard")
    return embed
