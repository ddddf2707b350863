# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./stock_ledger.db"

    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # "development" appends exception detail to generic failure messages
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"

    # Default lifetime of derived read results (forecasts, suggestions, alerts)
    CACHE_TTL_SECONDS: int = 300

    FRONTEND_URL: Optional[str] = None

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() == "development"

settings = Settings()
