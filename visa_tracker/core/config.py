# ================================
# file: visa_tracker/core/config.py
# ================================
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Listening address
    HOST: str = "0.0.0.0"
    PORT: int = 4087

    # Storage layout: <DATA_DIR>/settings.json, <DATA_DIR>/applicants.json
    DATA_DIR: str = "data"
    UPLOADS_DIR: str = "uploads"
    # Client bundle (index.html + assets)
    WEB_DIR: str = "web"

    SESSION_SECRET: str = "change-me-please"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 7  # 7 days

    # Off = open API, every caller is treated as admin
    AUTH_ENABLED: bool = False
    # Per-collection lock around read-modify-write (single process only)
    STORE_LOCKING: bool = False

    MAX_REQUEST_MB: int = 50
    CORS_ALLOW_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def data_path(self) -> Path:
        return Path(self.DATA_DIR)

    @property
    def uploads_path(self) -> Path:
        return Path(self.UPLOADS_DIR)

    @property
    def web_path(self) -> Path:
        return Path(self.WEB_DIR)

    @property
    def max_request_bytes(self) -> int:
        return self.MAX_REQUEST_MB * 1024 * 1024


# App-wide singleton
settings = Settings()
