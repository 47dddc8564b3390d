"""In-memory call records and the read-only views handed to reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class AssetClass(str, Enum):
    TOKEN = "token"
    SOLANA_NFT = "solana_nft"
    ETH_NFT = "eth_nft"
    APE_NFT = "ape_nft"
    RUNE = "rune"
    ORDINAL = "ordinal"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    AssetClass.TOKEN: "Token",
    AssetClass.SOLANA_NFT: "Solana NFT",
    AssetClass.ETH_NFT: "ETH NFT",
    AssetClass.APE_NFT: "APE NFT",
    AssetClass.RUNE: "Rune",
    AssetClass.ORDINAL: "Ordinal",
}


class MilestoneConvention(str, Enum):
    """How a threshold like ``5`` is read against the baseline.

    MULTIPLIER: current / baseline >= 5 (a 5x).
    PERCENT: (current - baseline) / baseline * 100 >= 5 (a +5% move).
    """

    MULTIPLIER = "x"
    PERCENT = "%"

    def format(self, milestone: float) -> str:
        return f"{milestone:g}{self.value}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Call:
    """One tracked asset. Only ``achieved_milestones`` and ``last_update`` change."""

    asset_id: str
    asset_class: AssetClass
    baseline_price: float
    caller_id: str
    channel_id: str
    display_name: str = ""
    caller_name: str = ""
    chain: str | None = None
    unit: str = ""
    convention: MilestoneConvention = MilestoneConvention.MULTIPLIER
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    last_update: datetime = field(default_factory=_utcnow)
    achieved_milestones: set[float] = field(default_factory=set)

    @property
    def name(self) -> str:
        return self.display_name or self.asset_id


@dataclass(frozen=True)
class CallSummary:
    """Read-only copy of a call, safe to hold while a sweep mutates the call itself."""

    asset_id: str
    asset_class: AssetClass
    display_name: str
    baseline_price: float
    caller_id: str
    caller_name: str
    unit: str
    created_at: datetime
    last_update: datetime
    achieved_milestones: frozenset[float]

    @classmethod
    def of(cls, call: Call) -> CallSummary:
        return cls(
            asset_id=call.asset_id,
            asset_class=call.asset_class,
            display_name=call.name,
            baseline_price=call.baseline_price,
            caller_id=call.caller_id,
            caller_name=call.caller_name,
            unit=call.unit,
            created_at=call.created_at,
            last_update=call.last_update,
            achieved_milestones=frozenset(call.achieved_milestones),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "asset_class": self.asset_class.value,
            "display_name": self.display_name,
            "baseline_price": self.baseline_price,
            "caller_id": self.caller_id,
            "caller_name": self.caller_name,
            "unit": self.unit,
            "created_at": self.created_at.isoformat(),
            "last_update": self.last_update.isoformat(),
            "achieved_milestones": sorted(self.achieved_milestones),
        }


@dataclass(frozen=True)
class LeaderboardEntry:
    call: CallSummary
    current_price: float
    pnl_multiple: float

    @property
    def pnl_pct(self) -> float:
        return (self.pnl_multiple - 1) * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.call.to_dict(),
            "current_price": self.current_price,
            "pnl_multiple": self.pnl_multiple,
            "pnl_pct": self.pnl_pct,
        }
