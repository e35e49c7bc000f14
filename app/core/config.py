from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./app/db/ledger_service.db"
    LEDGER_PRECISION: int = Field(2, ge=0, le=6)
    LEDGER_TOLERANCE_UNITS: int = Field(1, ge=0)
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
