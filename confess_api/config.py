"""
Application configuration using environment variables.
"""
import os
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Confessions API"
    debug: bool = False
    environment: str = "development"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./confessions.db")

    # CORS
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "https://fptu.tech",
    ]

    # Cache
    cache_default_ttl_minutes: int = 30
    cache_cleanup_interval_minutes: int = 60
    cache_max_entries: int = 1024

    # Push notifications (FCM legacy HTTP API)
    push_endpoint: str = "https://fcm.googleapis.com/fcm/send"
    push_server_key: str = os.getenv("PUSH_SERVER_KEY", "")
    push_timeout_seconds: float = 10.0
    approve_notification_title: str = "Confess đã được duyệt"
    approve_notification_body: str = "Thật tuyệt vời!"
    # Rejections currently go out with the approval copy
    reject_notification_title: str = "Confess đã được duyệt"
    reject_notification_body: str = "Thật tuyệt vời!"
    notification_click_action: str = "http://fptu.tech/my-confess"
    notification_icon: str = "https://fptu.tech/assets/images/fptuhcm-confessions.png"

    # Listing
    search_limit: int = 50
    default_page_size: int = 20

    # Workflow
    strict_rollback: bool = False

    # Rate limiting
    submit_rate_limit: str = "10/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Validate push credentials on startup
settings = get_settings()
if settings.environment == "production" and not settings.push_server_key:
    raise ValueError(
        "PUSH_SERVER_KEY must be set in production! "
        "Use the server key from the Firebase console."
    )
