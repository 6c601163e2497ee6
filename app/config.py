from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent

class Settings(BaseSettings):
    PROJECT_NAME: str = "Ledgerline API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    DATABASE_URL: str = f"sqlite+aiosqlite:///{BASE_DIR}/data/ledgerline.db"

    SECRET_KEY: str = "change-me-in-production"
    SESSION_COOKIE_NAME: str = "auth-token"
    SESSION_MAX_AGE_DAYS: int = 7
    COOKIE_SECURE: bool = False

    BACKEND_CORS_ORIGINS: list[str] = ["*"]

    ENFORCE_CATEGORY_LISTS: bool = True
    DEFAULT_PAGE_SIZE: int = 10
    ACTIVITY_LOG_DEFAULT_LIMIT: int = 10

    OWNER_NAME: str = "Owner"
    OWNER_EMAIL: Optional[str] = None
    OWNER_PASSWORD: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @property
    def session_max_age_seconds(self) -> int:
        return self.SESSION_MAX_AGE_DAYS * 24 * 60 * 60

settings = Settings()
