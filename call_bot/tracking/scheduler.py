"""Per-asset-class call tracker: creation plus the fixed-interval sweep.

One ``TrackerScheduler`` per asset class, each owning its registry and alert
gate. A sweep walks a snapshot of the registry in insertion order; any error
on one call is logged and the sweep moves on to the next.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal, Sequence

from call_bot.delivery.base import NotificationSink
from call_bot.errors import CallCreationError, CallError, DuplicateCallError, FetchError
from call_bot.sources.base import AssetDataSource
from call_bot.sources.fetcher import RetryPolicy
from call_bot.tracking.alert_gate import AlertGate
from call_bot.tracking.milestones import MILESTONES, evaluate
from call_bot.tracking.models import Call, CallSummary
from call_bot.tracking.registry import CallRegistry

logger = logging.getLogger(__name__)

CooldownScope = Literal["milestone", "asset"]


@dataclass
class SweepReport:
    attempted: int = 0
    failed: int = 0
    alerts_sent: int = 0
    milestones_recorded: int = 0


class TrackerScheduler:
    def __init__(
        self,
        source: AssetDataSource,
        sink: NotificationSink,
        *,
        registry: CallRegistry | None = None,
        gate: AlertGate | None = None,
        thresholds: Sequence[float] = MILESTONES,
        interval_seconds: float = 60,
        creation_policy: RetryPolicy | None = None,
        sweep_policy: RetryPolicy | None = None,
        sweep_fetch_timeout: float | None = None,
        cooldown_scope: CooldownScope = "milestone",
    ) -> None:
        self.source = source
        self.sink = sink
        self.asset_class = source.asset_class
        self.registry = registry if registry is not None else CallRegistry(source.asset_class)
        self.gate = gate if gate is not None else AlertGate()
        self.thresholds = tuple(thresholds)
        self.interval_seconds = interval_seconds
        self.creation_policy = (
            creation_policy if creation_policy is not None else RetryPolicy(max_attempts=5)
        )
        self.sweep_policy = sweep_policy
        self.sweep_fetch_timeout = sweep_fetch_timeout
        self.cooldown_scope = cooldown_scope

    @property
    def name(self) -> str:
        return self.asset_class.label

    def _gate_key(self, asset_id: str, milestone: float) -> str:
        if self.cooldown_scope == "asset":
            return asset_id
        return f"{asset_id}:{milestone:g}"

    # -----------------------------------------------------------------------
    # Creation
    # -----------------------------------------------------------------------

    async def create_call(
        self,
        channel_id: str,
        caller_id: str,
        asset_id: str,
        chain: str | None = None,
        caller_name: str = "",
    ) -> Call:
        """Fetch a baseline, register the call and announce it.

        Raises CallError for a blank id, DuplicateCallError, InvalidBaselineError
        or CallCreationError.
        """
        asset_id = asset_id.strip()
        if not asset_id:
            raise CallError(f"A {self.name} identifier is required")
        if asset_id in self.registry:
            raise DuplicateCallError(asset_id)

        logger.info(
            "Creating %s call for %s (channel=%s, caller=%s)",
            self.name, asset_id, channel_id, caller_name or caller_id,
        )
        try:
            snapshot = await self.source.fetch_snapshot(
                asset_id, chain=chain, policy=self.creation_policy
            )
        except FetchError as exc:
            logger.warning("%s call for %s failed: %s", self.name, asset_id, exc)
            raise CallCreationError(str(exc)) from exc

        # Re-checked by create(): another call for the same asset may have
        # been registered while the fetch was in flight.
        call = self.registry.create(
            asset_id,
            snapshot,
            caller_id,
            channel_id,
            caller_name=caller_name,
            chain=chain,
            convention=self.source.milestone_convention,
        )

        try:
            await self.sink.announce_creation(call, snapshot)
        except Exception as exc:
            logger.warning("Creation announcement failed for %s: %s", asset_id, exc)
        return call

    # -----------------------------------------------------------------------
    # Sweep
    # -----------------------------------------------------------------------

    async def _fetch_current(self, call: Call):
        fetch = self.source.fetch_snapshot(
            call.asset_id, chain=call.chain, policy=self.sweep_policy
        )
        if self.sweep_fetch_timeout is None:
            return await fetch
        return await asyncio.wait_for(fetch, timeout=self.sweep_fetch_timeout)

    async def _check_call(self, call: Call, report: SweepReport) -> None:
        snapshot = await self._fetch_current(call)
        current = snapshot.reference_price
        if current <= 0:
            logger.debug("%s %s: no usable price this tick", self.name, call.asset_id)
            return

        crossed = evaluate(
            call.baseline_price,
            current,
            call.achieved_milestones,
            self.thresholds,
            call.convention,
        )
        for milestone in crossed:
            if self.gate.try_consume(self._gate_key(call.asset_id, milestone)):
                try:
                    await self.sink.announce_milestone(call, milestone, current)
                    report.alerts_sent += 1
                except Exception as exc:
                    logger.warning(
                        "Milestone alert failed for %s (%s): %s",
                        call.asset_id, call.convention.format(milestone), exc,
                    )
            else:
                logger.info(
                    "%s %s hit %s during cooldown — alert suppressed",
                    self.name, call.asset_id, call.convention.format(milestone),
                )
            # Recorded even when suppressed: each milestone is detected once
            if self.registry.record_milestone(call.asset_id, milestone):
                report.milestones_recorded += 1

        self.registry.touch(call.asset_id)

    async def sweep(self) -> SweepReport:
        report = SweepReport()
        for call in self.registry.list_all():
            report.attempted += 1
            try:
                await self._check_call(call, report)
            except asyncio.TimeoutError:
                report.failed += 1
                logger.warning(
                    "%s %s: fetch timed out after %ss, skipping this tick",
                    self.name, call.asset_id, self.sweep_fetch_timeout,
                )
            except Exception:
                report.failed += 1
                logger.exception("Error checking %s call %s", self.name, call.asset_id)

        if report.attempted:
            logger.debug(
                "%s sweep: %d checked, %d failed, %d alerts",
                self.name, report.attempted, report.failed, report.alerts_sent,
            )
        return report

    async def run(self) -> None:
        """Sweep forever, every ``interval_seconds``."""
        logger.info(
            "%s tracker started (interval=%ss, cooldown=%ss per %s)",
            self.name, self.interval_seconds, self.gate.cooldown_seconds, self.cooldown_scope,
        )
        while True:
            try:
                await self.sweep()
            except Exception:
                logger.exception("Error in %s tracker loop", self.name)

            await asyncio.sleep(self.interval_seconds)

    # -----------------------------------------------------------------------
    # Read interface
    # -----------------------------------------------------------------------

    def summaries(self) -> list[CallSummary]:
        return self.registry.summaries()

    async def current_price(self, asset_id: str) -> float | None:
        """Current reference price, or None if the provider can't give one."""
        call = self.registry.get(asset_id)
        try:
            snapshot = await self.source.fetch_snapshot(
                asset_id,
                chain=call.chain if call else None,
                policy=self.creation_policy,
            )
        except FetchError as exc:
            logger.warning("Price lookup failed for %s %s: %s", self.name, asset_id, exc)
            return None
        return snapshot.reference_price or None
