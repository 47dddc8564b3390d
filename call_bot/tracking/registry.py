"""In-memory registry of active calls for one asset class."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Iterator

from call_bot.errors import DuplicateCallError, InvalidBaselineError
from call_bot.sources.models import Snapshot
from call_bot.tracking.models import AssetClass, Call, CallSummary, MilestoneConvention

logger = logging.getLogger(__name__)


class CallRegistry:
    """Calls keyed by asset id, kept in insertion order. Calls are never removed.

    Every method is synchronous so that, on a single event loop, no other task
    can interleave between the duplicate check and the insert.
    """

    def __init__(self, asset_class: AssetClass) -> None:
        self.asset_class = asset_class
        self._calls: dict[str, Call] = {}

    def __contains__(self, asset_id: str) -> bool:
        return asset_id in self._calls

    def __len__(self) -> int:
        return len(self._calls)

    def __iter__(self) -> Iterator[Call]:
        return iter(self.list_all())

    def create(
        self,
        asset_id: str,
        baseline: Snapshot,
        caller_id: str,
        channel_id: str,
        *,
        caller_name: str = "",
        chain: str | None = None,
        convention: MilestoneConvention = MilestoneConvention.MULTIPLIER,
    ) -> Call:
        if asset_id in self._calls:
            raise DuplicateCallError(asset_id)
        price = baseline.reference_price
        if not math.isfinite(price) or price <= 0:
            raise InvalidBaselineError(asset_id, price)

        call = Call(
            asset_id=asset_id,
            asset_class=self.asset_class,
            baseline_price=price,
            caller_id=caller_id,
            channel_id=channel_id,
            display_name=baseline.display_name,
            caller_name=caller_name,
            chain=chain,
            unit=baseline.unit,
            convention=convention,
            metadata=dict(baseline.metadata),
        )
        self._calls[asset_id] = call
        logger.info(
            "%s call registered: %s @ %s %s by %s",
            self.asset_class.label, asset_id, price, baseline.unit, caller_name or caller_id,
        )
        return call

    def get(self, asset_id: str) -> Call | None:
        return self._calls.get(asset_id)

    def list_all(self) -> list[Call]:
        """Calls in insertion order. A new list, so creates during iteration are safe."""
        return list(self._calls.values())

    def record_milestone(self, asset_id: str, milestone: float) -> bool:
        """Mark *milestone* achieved. Returns False if it already was."""
        call = self._calls[asset_id]
        if milestone in call.achieved_milestones:
            return False
        call.achieved_milestones.add(milestone)
        return True

    def touch(self, asset_id: str) -> None:
        self._calls[asset_id].last_update = datetime.now(timezone.utc)

    def summaries(self) -> list[CallSummary]:
        return [CallSummary.of(c) for c in self._calls.values()]
