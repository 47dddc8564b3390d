"""Exceptions shared by the fetcher, the data sources and the trackers."""


class FetchError(Exception):
    """A market-data provider could not produce a usable response."""


class TransientProviderError(FetchError):
    """Timeout, 5xx, malformed or empty payload. Safe to retry."""


class RateLimitedError(FetchError):
    """The provider kept answering 429 until the retry policy ran out."""


class RetriesExhaustedError(FetchError):
    """Transient failures until the retry policy ran out."""


class AssetNotFoundError(FetchError):
    """The provider says the asset does not exist. Never retried."""

    def __init__(self, asset_id: str, detail: str = "") -> None:
        self.asset_id = asset_id
        self.detail = detail
        msg = f"Asset not found: {asset_id}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class CallError(Exception):
    """A call could not be created. The message is shown to the caller."""


class DuplicateCallError(CallError):
    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"{asset_id} is already being tracked")


class InvalidBaselineError(CallError):
    def __init__(self, asset_id: str, price: float) -> None:
        self.asset_id = asset_id
        self.price = price
        super().__init__(f"Cannot track {asset_id}: baseline price is {price}")


class CallCreationError(CallError):
    """Wraps the FetchError that prevented a call from being created."""
