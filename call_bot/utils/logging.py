import logging
import sys

from call_bot.config import settings

_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

# Libraries that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "discord", "discord.gateway", "uvicorn.access")


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once for the whole process."""
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    if not any(getattr(h, "_call_bot", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._call_bot = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
