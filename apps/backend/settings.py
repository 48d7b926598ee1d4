import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv() # Load env vars from .env


class Settings(BaseModel):
    database_url: str = "sqlite:///./crew_scheduler.db"
    cron_secret: str = ""
    cron_timezone: str = "Asia/Taipei"
    log_level: str = "INFO"
    port: int = 8765

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL", cls.model_fields["database_url"].default),
            cron_secret=os.environ.get("CRON_SECRET", ""),
            cron_timezone=os.environ.get("CRON_TIMEZONE", "Asia/Taipei"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            port=int(os.environ.get("PORT", 8765)),
        )


settings = Settings.from_env()


def get_settings() -> Settings:
    return settings
