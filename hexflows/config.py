from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = "INFO"

    # Game rules
    tiles_per_type: int = 10
    default_num_players: int = 2

    # Seed for the plugin's tile bag when a match config gives none
    plugin_random_seed: int | None = None

    model_config = SettingsConfigDict(
        env_prefix="FLOWS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
