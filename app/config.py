from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./logbook.db"

    # Slack (optional). Leave the token empty to disable Slack DMs;
    # notifications are still stored in the notifications table.
    slack_bot_token: str = ""

    # Timezone used for entry dates and start/end times (WIB by default)
    timezone: str = "Asia/Jakarta"

    # Notifications older than this (and already read) are removed by the scheduler
    notification_retention_days: int = 30

    # Weekly digest of pending reviews sent to mentors
    # In production this is Friday 4 PM. Set enable_scheduler=false for local testing.
    enable_scheduler: bool = True
    review_digest_day: str = "fri"
    review_digest_hour: int = 16

    # Application
    app_env: str = "development"
    cors_origins: str = "*"  # comma separated
    log_level: str = "INFO"
    log_dir: str = "logs"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
