import os
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "FinPro Planner"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Dev server (backend/main.py)
    HOST: str = "0.0.0.0"
    PORT: int = 8004
    RELOAD: bool = False

    # Local default is SQLite next to backend/; PostgreSQL URLs are accepted too
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./finpro.db")

    # Gamification
    DISCRETIONARY_CATEGORIES: str = "Shopping,Entertainment"
    LEADERBOARD_SIZE: int = 10

    # Reports
    TREND_MONTHS: int = 6
    DEFAULT_DURATION: str = "monthly"

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    @property
    def discretionary_categories(self) -> List[str]:
        return [c.strip().lower() for c in self.DISCRETIONARY_CATEGORIES.split(",") if c.strip()]

settings = Settings()
