"""Engine settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Umbra configuration. All values come from environment variables."""

    # Storage
    data_dir: Path = Field(default=Path("data"))
    memory_db_path: Path = Field(default=Path("data/memories.db"))
    artifacts_dir: Path = Field(default=Path("data/artifacts"))
    schemas_dir: Path = Field(default=Path("config/personalities"))

    # Conversation window
    compaction_threshold: int = Field(default=25)
    idle_timeout_minutes: int = Field(default=15)
    idle_min_turns: int = Field(default=5)
    max_buffered_turns: int = Field(default=200)
    recent_window_size: int = Field(default=10)

    # Memory retrieval
    memory_scan_limit: int = Field(default=1000)

    # Search permalinks
    guild_id: str = Field(default="359380840213512192")
    permalink_template: str = Field(
        default="https://discord.com/channels/{guild_id}/{channel_id}/{message_id}"
    )

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="UMBRA_", env_file=_env_file(), env_file_encoding="utf-8"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def idle_timeout_ms(self) -> int:
        return self.idle_timeout_minutes * 60 * 1000

    def permalink(self, channel_id: str, message_id: str) -> str:
        """Build a message permalink for the configured guild."""
        return self.permalink_template.format(
            guild_id=self.guild_id, channel_id=channel_id, message_id=message_id
        )


settings = Settings()
