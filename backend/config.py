# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_stockledger.db"

    # Upper bound for a single statement; guards lock waits on contended stock rows
    DB_STATEMENT_TIMEOUT_MS: int = 15000

    LOG_LEVEL: str = "INFO"
    FRONTEND_URL: Optional[str] = None

    # When False, notifications are delivered inline instead of as background tasks
    NOTIFICATIONS_ASYNC: bool = True

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()

# Azure/Heroku style URLs use the deprecated scheme name
if settings.DATABASE_URL.startswith("postgres://"):
    settings.DATABASE_URL = settings.DATABASE_URL.replace("postgres://", "postgresql://", 1)
