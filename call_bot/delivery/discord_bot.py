import logging
from typing import Literal

import discord
from discord import app_commands

from call_bot.config import settings
from call_bot.delivery.base import NotificationSink
from call_bot.delivery.embeds import creation_embed, leaderboard_embed, milestone_embed
from call_bot.errors import CallError
from call_bot.leaderboard import build_leaderboard
from call_bot.sources.models import Snapshot
from call_bot.tracking.models import AssetClass, Call, LeaderboardEntry
from call_bot.tracking.scheduler import TrackerScheduler

logger = logging.getLogger(__name__)

TokenChain = Literal["solana", "ethereum", "base", "bsc"]


class _CallBotClient(discord.Client):
    def __init__(self, guild_id: int) -> None:
        super().__init__(intents=discord.Intents.default())
        self.tree = app_commands.CommandTree(self)
        self._guild_id = guild_id

    async def setup_hook(self) -> None:
        if self._guild_id:
            guild = discord.Object(id=self._guild_id)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
        else:
            synced = await self.tree.sync()
        logger.info("Synced %d slash commands", len(synced))

    async def on_ready(self) -> None:
        logger.info("Discord bot online as %s", self.user)


class DiscordDelivery(NotificationSink):
    """Posts announcements to Discord and handles the /…call slash commands."""

    def __init__(self) -> None:
        self._client = _CallBotClient(settings.discord_guild_id)
        self._role_id = settings.holders_role_id
        self._trackers: dict[AssetClass, TrackerScheduler] = {}
        self._register_commands()

    def register_trackers(self, trackers: dict[AssetClass, TrackerScheduler]) -> None:
        self._trackers = dict(trackers)

    async def start(self) -> None:
        async with self._client:
            await self._client.start(settings.discord_bot_token)

    # -----------------------------------------------------------------------
    # NotificationSink
    # -----------------------------------------------------------------------

    def _mention(self, text: str) -> str:
        if self._role_id:
            return f"<@&{self._role_id}> {text}"
        return text

    async def _send(self, channel_id: str, content: str, embed: discord.Embed) -> None:
        cid = int(channel_id)
        channel = self._client.get_channel(cid) or await self._client.fetch_channel(cid)
        await channel.send(
            content=content,
            embed=embed,
            allowed_mentions=discord.AllowedMentions(roles=True),
        )

    def _link(self, call: Call) -> str:
        tracker = self._trackers.get(call.asset_class)
        return tracker.source.link(call.asset_id) if tracker else ""

    async def announce_creation(self, call: Call, snapshot: Snapshot) -> None:
        await self._send(
            call.channel_id,
            self._mention(f"New {call.asset_class.label.lower()} call alert! 🚨"),
            creation_embed(call, snapshot, self._link(call)),
        )

    async def announce_milestone(self, call: Call, milestone: float, current_price: float) -> None:
        await self._send(
            call.channel_id,
            self._mention(f"{call.convention.format(milestone)} milestone reached! 🎯"),
            milestone_embed(call, milestone, current_price, self._link(call)),
        )

    async def post_leaderboard(self, channel_id: str, entries: list[LeaderboardEntry]) -> None:
        await self._send(channel_id, "", leaderboard_embed(entries))

    # -----------------------------------------------------------------------
    # Slash commands
    # -----------------------------------------------------------------------

    async def _handle_call(
        self,
        interaction: discord.Interaction,
        asset_class: AssetClass,
        asset_id: str,
        chain: str | None = None,
    ) -> None:
        await interaction.response.defer(thinking=True)
        label = asset_class.label
        tracker = self._trackers.get(asset_class)
        if tracker is None:
            await interaction.followup.send(f"{label} tracking is not running.")
            return

        try:
            call = await tracker.create_call(
                str(interaction.channel_id),
                str(interaction.user.id),
                asset_id,
                chain=chain,
                caller_name=interaction.user.display_name,
            )
        except CallError as exc:
            await interaction.followup.send(f"❌ Error creating {label} call: {exc}")
            return
        except Exception:
            logger.exception("Unexpected error creating %s call for %s", label, asset_id)
            await interaction.followup.send(
                f"Failed to create {label} call. Please check the identifier and try again."
            )
            return

        await interaction.followup.send(f"{label} call created for **{call.name}** 🎯")

    def _register_commands(self) -> None:
        tree = self._client.tree

        @tree.command(name="call", description="Create a new token call")
        @app_commands.describe(address="Token contract address", chain="Chain the token trades on")
        async def call_cmd(interaction: discord.Interaction, address: str, chain: TokenChain) -> None:
            await self._handle_call(interaction, AssetClass.TOKEN, address, chain)

        @tree.command(name="nftcall", description="Call a Solana NFT collection")
        @app_commands.describe(collection="The Magic Eden collection symbol (from URL)")
        async def nftcall_cmd(interaction: discord.Interaction, collection: str) -> None:
            await self._handle_call(interaction, AssetClass.SOLANA_NFT, collection)

        @tree.command(name="ethnftcall", description="Call an Ethereum NFT collection")
        @app_commands.describe(address="Collection contract address")
        async def ethnftcall_cmd(interaction: discord.Interaction, address: str) -> None:
            await self._handle_call(interaction, AssetClass.ETH_NFT, address)

        @tree.command(name="apenftcall", description="Call an ApeChain NFT collection")
        @app_commands.describe(address="Collection contract address")
        async def apenftcall_cmd(interaction: discord.Interaction, address: str) -> None:
            await self._handle_call(interaction, AssetClass.APE_NFT, address)

        @tree.command(name="runecall", description="Call a Bitcoin rune")
        @app_commands.describe(symbol="The rune symbol")
        async def runecall_cmd(interaction: discord.Interaction, symbol: str) -> None:
            await self._handle_call(interaction, AssetClass.RUNE, symbol)

        @tree.command(name="ordinalcall", description="Call a Bitcoin ordinal collection")
        @app_commands.describe(symbol="The Magic Eden collection symbol")
        async def ordinalcall_cmd(interaction: discord.Interaction, symbol: str) -> None:
            await self._handle_call(interaction, AssetClass.ORDINAL, symbol)

        @tree.command(name="leaderboard", description="Show the best-performing calls")
        async def leaderboard_cmd(interaction: discord.Interaction) -> None:
            await interaction.response.defer(thinking=True)
            top = await build_leaderboard(self._trackers.values(), settings.leaderboard_size)
            await interaction.followup.send(embed=leaderboard_embed(top))
