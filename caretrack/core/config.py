"""Application configuration with environment variables."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from caretrack.core.rules import DEFAULT_MAX_BACKDATE_DAYS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: major.minor.patch)
    VERSION: str = "0.1.0"

    LOG_LEVEL: str = "INFO"

    # Storage backend
    STORAGE_TYPE: Literal["json", "memory"] = "json"
    DATA_DIR: str = "./data"
    BACKUP_DIR: str = ""  # Defaults to <DATA_DIR>/backups when empty
    ENABLE_CACHE: bool = True

    # Advisory lock retry policy (seconds)
    LOCK_RETRIES: int = 5
    LOCK_MIN_TIMEOUT: float = 0.1
    LOCK_MAX_TIMEOUT: float = 1.0

    # How far back activities and shift notes may be logged
    MAX_BACKDATE_DAYS: int = DEFAULT_MAX_BACKDATE_DAYS

    @property
    def data_path(self) -> Path:
        return Path(self.DATA_DIR)

    @property
    def backup_path(self) -> Path:
        if self.BACKUP_DIR:
            return Path(self.BACKUP_DIR)
        return self.data_path / "backups"


settings = Settings()
