from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_parse_none_str="none"
    )

    # Discord
    discord_bot_token: str = ""
    discord_guild_id: int = 0  # sync slash commands to one guild (instant) instead of globally
    holders_role_id: str = ""  # role pinged on new calls and milestones
    leaderboard_channel_id: str = ""

    # Providers
    dexscreener_base_url: str = "https://api.dexscreener.com/latest/dex"
    magic_eden_base_url: str = "https://api-mainnet.magiceden.dev"
    magic_eden_api_key: str = ""

    # Pacing (seconds between requests, per provider)
    dexscreener_min_interval: float = 0.2  # 300 req/min
    magic_eden_min_interval: float = 0.5  # 2 QPS
    magic_eden_requests_per_minute: int = 120
    http_timeout_seconds: float = 15.0

    # Retry
    creation_max_attempts: int = 5
    sweep_max_attempts: int | None = None  # None = keep trying
    sweep_fetch_timeout_seconds: float | None = 300.0  # None = no timeout on sweep fetches
    rate_limit_backoff_seconds: float = 2.0  # attempt * this on 429
    rate_limit_backoff_cap_seconds: float = 65.0
    transient_retry_delay_seconds: float = 0.5
    retry_jitter_seconds: float = 0.2

    # Tracking
    tracker_interval_seconds: int = 60
    alert_cooldown_seconds: int = 300
    cooldown_scope: Literal["milestone", "asset"] = "milestone"
    milestones: list[float] = [2, 3, 4, 5, 10, 20, 50]

    # Leaderboard
    leaderboard_interval_seconds: int = 24 * 60 * 60
    leaderboard_size: int = 10

    # Web
    web_enabled: bool = True
    web_host: str = "0.0.0.0"
    web_port: int = 8888

    log_level: str = "INFO"

    @field_validator("milestones")
    @classmethod
    def _strictly_increasing(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("milestones must not be empty")
        for prev, cur in zip(value, value[1:]):
            if cur <= prev:
                raise ValueError("milestones must be strictly increasing")
        return value


settings = Settings()
