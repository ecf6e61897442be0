from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    database_url: str = Field(default="sqlite:///./workledger.db", alias="DATABASE_URL")
    data_dir: Path = Field(default=Path("files"), alias="DATA_DIR")
    workers_file: str = Field(default="workers.json", alias="WORKERS_FILE")
    static_dir: Path = Field(default=Path("static"), alias="STATIC_DIR")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")
    environment: str = Field(default="local", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    port: int = Field(default=3000, alias="PORT")

    @property
    def workers_path(self) -> Path:
        return self.data_dir / self.workers_file


@lru_cache
def get_settings() -> Settings:
    return Settings()
