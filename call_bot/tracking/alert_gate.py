import time
from typing import Callable

DEFAULT_COOLDOWN_SECONDS = 5 * 60


class AlertGate:
    """Per-key cooldown: at most one alert per key per window."""

    def __init__(
        self,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._last_alert: dict[str, float] = {}

    def try_consume(self, key: str) -> bool:
        """Record an alert for *key* and return True, unless still cooling down."""
        now = self._clock()
        last = self._last_alert.get(key)
        if last is not None and now - last < self.cooldown_seconds:
            return False
        self._last_alert[key] = now
        return True

    def remaining(self, key: str) -> float:
        """Seconds until *key* may alert again (0 if it may alert now)."""
        last = self._last_alert.get(key)
        if last is None:
            return 0.0
        return max(0.0, self.cooldown_seconds - (self._clock() - last))
