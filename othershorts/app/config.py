from typing import List
import json

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "OtherShorts"
    app_env: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/app.db"

    # read raw string from env (works with comma-separated values)
    cors_origins: str = ""

    # duration lookup for takeout ingestion
    youtube_api_key: str = ""
    youtube_api_url: str = "https://www.googleapis.com/youtube/v3/videos"
    youtube_batch_size: int = 50
    youtube_timeout_seconds: int = 15

    # anything longer than this is not a short (older builds used 60)
    shorts_max_seconds: int = 180

    feed_batch_size: int = 5

    # off: ratings stay append-only, a retried submit appends a second row
    enforce_unique_ratings: bool = False

    @property
    def cors_origins_list(self) -> List[str]:
        s = (self.cors_origins or "").strip()
        if not s:
            return []
        if s.startswith("["):
            # also accept JSON list
            return [str(x) for x in json.loads(s)]
        return [part.strip() for part in s.split(",") if part.strip()]


settings = Settings()
