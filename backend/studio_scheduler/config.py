# backend/studio_scheduler/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/scheduling.db"
    redis_url: str | None = None

    default_timezone: str = "America/New_York"
    horizon_days: int = 90
    slot_duration_minutes: int = 60
    cache_ttl_seconds: int = 86400
    pending_blocks_slots: bool = True

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative sqlite path is anchored at the repo root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
