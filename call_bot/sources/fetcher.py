"""Paced HTTP GET with retry/backoff, shared by every market-data source.

Each provider gets its own ``RateLimitedFetcher`` so pacing is per provider:
DexScreener allows ~300 req/min, the Magic Eden public API 2 QPS and
120 req/min. Retries are driven by a ``RetryPolicy``; background sweeps use
an unbounded policy, user-initiated calls a bounded one.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from call_bot.errors import (
    AssetNotFoundError,
    FetchError,
    RateLimitedError,
    RetriesExhaustedError,
    TransientProviderError,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

# Error strings providers return for unknown collections/runes/tokens
_NOT_FOUND_MARKERS = (
    "not found",
    "does not exist",
    "invalid collection",
    "invalid rune",
    "unknown collection",
)

# Log unbounded retries every N attempts instead of every attempt
_LOG_EVERY = 10


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait between tries.

    ``max_attempts=None`` retries forever. 429s back off by
    ``attempt * rate_limit_delay`` (capped); everything else waits
    ``transient_delay`` plus up to ``jitter`` seconds so that assets tracked
    in parallel do not hit the provider in lock-step.
    """

    max_attempts: int | None = None
    rate_limit_delay: float = 2.0
    rate_limit_delay_cap: float = 65.0
    transient_delay: float = 0.5
    jitter: float = 0.2

    def allows(self, attempt: int) -> bool:
        return self.max_attempts is None or attempt < self.max_attempts

    def delay(self, attempt: int, rate_limited: bool) -> float:
        if rate_limited:
            return min(attempt * self.rate_limit_delay, self.rate_limit_delay_cap)
        if self.jitter > 0:
            return self.transient_delay + random.uniform(0, self.jitter)
        return self.transient_delay


# Cosmetic sub-resources: one try, then degrade
SINGLE_ATTEMPT = RetryPolicy(max_attempts=1)


class RateLimiter:
    """Minimum spacing between requests plus an optional per-minute quota."""

    def __init__(
        self,
        min_interval: float = 0.0,
        per_minute: int | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self.per_minute = per_minute
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request: float | None = None
        self._window_start = clock()
        self._window_count = 0

    async def wait(self) -> None:
        async with self._lock:
            if self.per_minute:
                now = self._clock()
                if now - self._window_start >= 60:
                    self._window_start = now
                    self._window_count = 0
                if self._window_count >= self.per_minute:
                    remaining = 60 - (now - self._window_start)
                    if remaining > 0:
                        logger.info("Per-minute quota reached, waiting %.1fs", remaining)
                        await self._sleep(remaining)
                    self._window_start = self._clock()
                    self._window_count = 0

            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < self.min_interval:
                    await self._sleep(self.min_interval - elapsed)

            self._last_request = self._clock()
            self._window_count += 1


def _not_found_detail(payload: Any) -> str | None:
    """Return the provider's error text if it explicitly says "not found"."""
    if not isinstance(payload, dict):
        return None
    for key in ("error", "msg", "message"):
        value = payload.get(key)
        if isinstance(value, str) and any(m in value.lower() for m in _NOT_FOUND_MARKERS):
            return value
    return None


def _decode(resp: httpx.Response) -> Any:
    if not resp.content or not resp.content.strip():
        raise TransientProviderError(f"Empty response from {resp.request.url}")
    try:
        return resp.json()
    except ValueError as exc:
        raise TransientProviderError(f"Malformed JSON from {resp.request.url}") from exc


class RateLimitedFetcher:
    """GETs JSON from one provider, paced and retried.

    ``parse`` turns the decoded payload into whatever the source needs. It may
    raise ``TransientProviderError`` (payload present but unusable, retried) or
    ``AssetNotFoundError`` (raised straight through). Lookup and conversion
    errors from a payload of the wrong shape count as transient.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        name: str,
        *,
        min_interval: float = 0.0,
        per_minute: int | None = None,
        headers: dict[str, str] | None = None,
        default_policy: RetryPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._client = client
        self._headers = {"Accept": "application/json", **(headers or {})}
        self.default_policy = default_policy or RetryPolicy()
        self._sleep = sleep
        self.limiter = RateLimiter(min_interval, per_minute, clock=clock, sleep=sleep)

    async def fetch(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        parse: Callable[[Any], Any] | None = None,
        policy: RetryPolicy | None = None,
        asset_id: str = "",
    ) -> Any:
        policy = policy or self.default_policy
        attempt = 0

        while True:
            attempt += 1
            rate_limited = False
            await self.limiter.wait()

            try:
                resp = await self._client.get(url, params=params, headers=self._headers)
                if resp.status_code == 429:
                    rate_limited = True
                    raise TransientProviderError(f"{self.name} 429 rate limited")
                if resp.status_code == 404:
                    raise AssetNotFoundError(asset_id or url, f"{self.name} returned 404")
                if resp.status_code >= 400:
                    raise TransientProviderError(f"{self.name} HTTP {resp.status_code}")

                payload = _decode(resp)
                detail = _not_found_detail(payload)
                if detail:
                    raise AssetNotFoundError(asset_id or url, detail)
                if parse is None:
                    return payload
                try:
                    return parse(payload)
                except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
                    raise TransientProviderError(
                        f"{self.name} payload malformed: {exc!r}"
                    ) from exc

            except AssetNotFoundError:
                raise
            except TransientProviderError as exc:
                last_error: FetchError = exc
            except httpx.HTTPError as exc:
                last_error = TransientProviderError(f"{self.name} request failed: {exc!r}")
                last_error.__cause__ = exc

            if not policy.allows(attempt):
                logger.warning(
                    "%s: giving up on %s after %d attempt(s): %s",
                    self.name, asset_id or url, attempt, last_error,
                )
                if rate_limited:
                    raise RateLimitedError(
                        f"{self.name} still rate limited after {attempt} attempt(s)"
                    ) from last_error
                raise RetriesExhaustedError(
                    f"{self.name} failed after {attempt} attempt(s): {last_error}"
                ) from last_error

            wait = policy.delay(attempt, rate_limited)
            if rate_limited:
                logger.warning("%s 429 — retry %d in %.1fs", self.name, attempt, wait)
            elif attempt == 1 or attempt % _LOG_EVERY == 0:
                logger.warning(
                    "%s: %s (attempt %d, retry in %.2fs)",
                    self.name, last_error, attempt, wait,
                )
            else:
                logger.debug("%s: %s — retry in %.2fs", self.name, last_error, wait)
            await self._sleep(wait)
