"""Pydantic models for normalized market-data reads."""

from typing import Any

from pydantic import BaseModel, Field


class Snapshot(BaseModel):
    """One normalized read of an asset from one provider.

    Providers that don't report a field leave it at its default; consumers
    must tolerate partial snapshots.
    """

    reference_price: float = 0.0
    volume_24h: float = 0.0
    listed_or_tx_count: int = 0
    price_change_24h: float = 0.0
    display_name: str = ""
    image_url: str | None = None
    social_links: dict[str, str] = Field(default_factory=dict)
    unit: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
