"""Tests for the in-memory call registry."""

import math

import pytest

from call_bot.errors import DuplicateCallError, InvalidBaselineError
from call_bot.sources.models import Snapshot
from call_bot.tracking.models import AssetClass, MilestoneConvention
from call_bot.tracking.registry import CallRegistry


def snap(price, name="PEPE", unit="USD"):
    return Snapshot(reference_price=price, display_name=name, unit=unit, metadata={"chain": "solana"})


@pytest.fixture
def registry():
    return CallRegistry(AssetClass.TOKEN)


class TestCreate:
    def test_create_stores_baseline(self, registry):
        call = registry.create("abc", snap(0.25), "u1", "c1", caller_name="alice")

        assert registry.get("abc") is call
        assert call.baseline_price == 0.25
        assert call.achieved_milestones == set()
        assert call.asset_class is AssetClass.TOKEN
        assert call.caller_name == "alice"
        assert call.display_name == "PEPE"
        assert call.metadata == {"chain": "solana"}
        assert "abc" in registry
        assert len(registry) == 1

    def test_convention_is_kept(self, registry):
        call = registry.create("abc", snap(1), "u1", "c1", convention=MilestoneConvention.PERCENT)
        assert call.convention is MilestoneConvention.PERCENT

    def test_duplicate_rejected(self, registry):
        registry.create("abc", snap(1.0), "u1", "c1")
        with pytest.raises(DuplicateCallError):
            registry.create("abc", snap(2.0), "u2", "c1")
        assert registry.get("abc").baseline_price == 1.0

    @pytest.mark.parametrize("price", [0.0, -1.0, math.inf])
    def test_unusable_baseline_rejected(self, registry, price):
        with pytest.raises(InvalidBaselineError):
            registry.create("abc", snap(price), "u1", "c1")
        assert "abc" not in registry

    def test_unknown_asset(self, registry):
        assert registry.get("nope") is None


class TestListing:
    def test_insertion_order(self, registry):
        for asset in ("c", "a", "b"):
            registry.create(asset, snap(1), "u", "ch")
        assert [c.asset_id for c in registry.list_all()] == ["c", "a", "b"]
        assert [c.asset_id for c in registry] == ["c", "a", "b"]

    def test_list_is_a_snapshot(self, registry):
        registry.create("a", snap(1), "u", "ch")
        registry.create("b", snap(1), "u", "ch")

        seen = []
        for call in registry.list_all():
            seen.append(call.asset_id)
            registry.create(call.asset_id + "-new", snap(1), "u", "ch")

        assert seen == ["a", "b"]
        assert len(registry) == 4

    def test_summaries_are_frozen_copies(self, registry):
        registry.create("a", snap(1), "u", "ch")
        summary = registry.summaries()[0]

        registry.record_milestone("a", 2)
        assert summary.achieved_milestones == frozenset()
        assert registry.summaries()[0].achieved_milestones == frozenset({2})


class TestMutation:
    def test_record_milestone_is_idempotent(self, registry):
        registry.create("a", snap(1), "u", "ch")
        assert registry.record_milestone("a", 2) is True
        assert registry.record_milestone("a", 2) is False
        assert registry.get("a").achieved_milestones == {2}

    def test_touch_updates_last_update(self, registry):
        call = registry.create("a", snap(1), "u", "ch")
        before = call.last_update
        registry.touch("a")
        assert call.last_update >= before
        assert call.created_at <= call.last_update
