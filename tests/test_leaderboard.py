"""Tests for leaderboard ranking and the daily posting loop."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from call_bot.errors import RetriesExhaustedError
from call_bot.leaderboard import build_leaderboard, entry_for, leaderboard_loop, rank_entries
from call_bot.tracking.models import AssetClass, CallSummary, LeaderboardEntry

from conftest import FakeSource, PercentSource, RecordingSink


def summary(asset_id, baseline=1.0, asset_class=AssetClass.TOKEN):
    now = datetime.now(timezone.utc)
    return CallSummary(
        asset_id=asset_id,
        asset_class=asset_class,
        display_name=asset_id.upper(),
        baseline_price=baseline,
        caller_id="u1",
        caller_name="alice",
        unit="USD",
        created_at=now,
        last_update=now,
        achieved_milestones=frozenset(),
    )


class TestRanking:
    def test_best_multiple_first_and_limited(self):
        entries = [
            LeaderboardEntry(summary(f"a{i}"), price, price)
            for i, price in enumerate([1.5, 8.0, 0.5, 3.0])
        ]
        top = rank_entries(entries, limit=3)
        assert [e.call.asset_id for e in top] == ["a1", "a3", "a0"]

    def test_entry_for_skips_missing_price(self):
        assert entry_for(summary("a"), None) is None
        assert entry_for(summary("a"), 0.0) is None

    def test_entry_pnl(self):
        entry = entry_for(summary("a", baseline=2.0), 5.0)
        assert entry.pnl_multiple == 2.5
        assert entry.pnl_pct == 150.0
        assert entry.to_dict()["pnl_multiple"] == 2.5


class TestBuildLeaderboard:
    @pytest.mark.asyncio
    async def test_ranks_across_asset_classes(self, make_tracker, sink):
        tokens = make_tracker(FakeSource({"pepe": 1.0, "wif": 2.0}), sink)
        ordinals = make_tracker(PercentSource({"nodemonkes": 0.01}), sink)
        for tracker in (tokens, ordinals):
            for asset_id in tracker.source.prices:
                await tracker.create_call("chan", "user", asset_id)

        tokens.source.prices.update({"pepe": 4.0, "wif": 1.0})
        ordinals.source.prices["nodemonkes"] = 0.03

        top = await build_leaderboard([tokens, ordinals], limit=10)

        assert [(e.call.asset_id, e.pnl_multiple) for e in top] == [
            ("pepe", 4.0),
            ("nodemonkes", pytest.approx(3.0)),
            ("wif", 0.5),
        ]

    @pytest.mark.asyncio
    async def test_unpriceable_calls_are_left_out(self, make_tracker, sink):
        tracker = make_tracker(FakeSource({"a": 1.0, "b": 1.0}), sink)
        await tracker.create_call("chan", "user", "a")
        await tracker.create_call("chan", "user", "b")
        tracker.source.prices["a"] = RetriesExhaustedError("down")
        tracker.source.prices["b"] = 2.0

        top = await build_leaderboard([tracker])
        assert [e.call.asset_id for e in top] == ["b"]

    @pytest.mark.asyncio
    async def test_empty(self, make_tracker, sink):
        assert await build_leaderboard([make_tracker(FakeSource(), sink)]) == []


class TestLeaderboardLoop:
    @pytest.mark.asyncio
    async def test_posts_then_sleeps(self, make_tracker, monkeypatch):
        sink = RecordingSink()
        tracker = make_tracker(FakeSource({"a": 1.0}), sink)
        await tracker.create_call("chan", "user", "a")
        sleep = AsyncMock(side_effect=asyncio.CancelledError())
        monkeypatch.setattr("call_bot.leaderboard.asyncio.sleep", sleep)

        with pytest.raises(asyncio.CancelledError):
            await leaderboard_loop([tracker], sink, "board", 86400, limit=5)

        [(channel, entries)] = sink.leaderboards
        assert channel == "board"
        assert entries[0].call.asset_id == "a"
        sleep.assert_awaited_once_with(86400)

    @pytest.mark.asyncio
    async def test_nothing_posted_without_calls(self, make_tracker, monkeypatch):
        sink = RecordingSink()
        tracker = make_tracker(FakeSource(), sink)
        monkeypatch.setattr(
            "call_bot.leaderboard.asyncio.sleep", AsyncMock(side_effect=asyncio.CancelledError())
        )

        with pytest.raises(asyncio.CancelledError):
            await leaderboard_loop([tracker], sink, "board", 86400)

        assert sink.leaderboards == []
