"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "player-pulse"
    debug: bool = False
    log_level: str = "INFO"

    # Backing key-value store: "memory" or "redis"
    store_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"

    # Telemetry buffers
    telemetry_ttl_seconds: int = 3600
    action_buffer_cap: int = 1000
    input_buffer_cap: int = 2000
    combat_buffer_cap: int = 100

    # Detector windows (milliseconds)
    window_short_ms: int = 30_000
    window_medium_ms: int = 120_000
    window_long_ms: int = 300_000

    # Interventions
    intervention_log_cap: int = 50
    intervention_log_ttl_seconds: int = 3600

    model_config = {"env_prefix": "PULSE_"}


settings = Settings()
