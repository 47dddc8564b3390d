"""Shared fakes for tracker tests: a scripted data source and a recording sink."""

import pytest

from call_bot.delivery.base import NotificationSink
from call_bot.sources.base import AssetDataSource
from call_bot.sources.fetcher import RetryPolicy
from call_bot.sources.models import Snapshot
from call_bot.tracking.alert_gate import AlertGate
from call_bot.tracking.models import AssetClass, MilestoneConvention
from call_bot.tracking.scheduler import TrackerScheduler

NO_WAIT = RetryPolicy(max_attempts=2, rate_limit_delay=0, transient_delay=0, jitter=0)


class FakeClock:
    """Manually advanced clock; its sleep() advances time instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeSource(AssetDataSource):
    """Returns scripted prices per asset id; an Exception value is raised instead."""

    asset_class = AssetClass.TOKEN
    unit = "USD"

    def __init__(self, prices=None):
        super().__init__(fetcher=None)
        self.prices = dict(prices or {})
        self.requested: list[str] = []

    async def fetch_snapshot(self, asset_id, *, chain=None, policy=None):
        self.requested.append(asset_id)
        value = self.prices[asset_id]
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            value = await value()
        return Snapshot(reference_price=value, display_name=asset_id.upper(), unit=self.unit)


class PercentSource(FakeSource):
    asset_class = AssetClass.ORDINAL
    milestone_convention = MilestoneConvention.PERCENT
    unit = "BTC"


class RecordingSink(NotificationSink):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.creations = []
        self.milestones = []
        self.leaderboards = []

    async def announce_creation(self, call, snapshot):
        if self.fail:
            raise RuntimeError("discord down")
        self.creations.append((call.asset_id, snapshot.reference_price))

    async def announce_milestone(self, call, milestone, current_price):
        if self.fail:
            raise RuntimeError("discord down")
        self.milestones.append((call.asset_id, milestone, current_price))

    async def post_leaderboard(self, channel_id, entries):
        self.leaderboards.append((channel_id, entries))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def make_tracker(clock):
    def _make(source, sink, **kwargs):
        kwargs.setdefault("gate", AlertGate(300, clock=clock))
        kwargs.setdefault("creation_policy", NO_WAIT)
        kwargs.setdefault("sweep_policy", NO_WAIT)
        return TrackerScheduler(source, sink, **kwargs)

    return _make
