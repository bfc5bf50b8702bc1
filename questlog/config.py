# questlog/config.py
from pydantic_settings import BaseSettings
from typing import FrozenSet, Optional
from pydantic import Field

class Settings(BaseSettings):
    SECRET_KEY: str = Field("change-me-in-production")
    ALGORITHM: str = Field("HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(30)

    DATABASE_URL: str = Field("sqlite+aiosqlite:///./questlog.db")
    SQLALCHEMY_DATABASE_URL: Optional[str] = None
    SQL_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    # Zone of the system clock. A "calendar day" is a day in this zone.
    REPORT_TIMEZONE: str = "UTC"

    # Weekly window: comma-separated Python weekdays (Mon=0). Default Wed/Thu.
    WEEKLY_REPORT_WEEKDAYS: str = "2,3"

    STRUGGLING_THRESHOLD: float = 0.5
    WEEKLY_PLANNED_HOURS: float = 25.0

    model_config = {
        "env_file": ".env",
        "extra": "allow",
    }

    @property
    def effective_database_url(self) -> str:
        url = self.SQLALCHEMY_DATABASE_URL or self.DATABASE_URL
        # Ensure asyncpg is used
        if url.startswith("postgresql://") and "+asyncpg" not in url:
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @property
    def weekly_window(self) -> FrozenSet[int]:
        """
        Returns:
          - frozenset of weekday numbers on which a weekly report may be created
        """
        days = {int(d.strip()) for d in self.WEEKLY_REPORT_WEEKDAYS.split(",") if d.strip()}
        if not days or any(d < 0 or d > 6 for d in days):
            raise ValueError(f"Invalid WEEKLY_REPORT_WEEKDAYS: {self.WEEKLY_REPORT_WEEKDAYS!r}")
        return frozenset(days)

settings = Settings()
