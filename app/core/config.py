# app/core/config.py

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose passes the
    # root .env through), unknown variables are ignored.
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"

    # --- Database URLs ---
    DATABASE_URL_PROD: str = ""
    DATABASE_URL_LOCAL: str = "sqlite:///./demo_scheduling.db"

    # --- Auth ---
    JWT_SECRET: str = "change-me"
    INTERNAL_API_KEY: str = "change-me-internal"

    # --- Email (Resend) ---
    EMAILS_ENABLED: bool = False
    RESEND_API_KEY: str = ""
    RESEND_FROM_DOMAIN: str = "example.com"
    DEMO_TEAM_EMAIL: str = "sales@example.com"
    SUPPORT_EMAIL: str = "hello@example.com"

    # --- HTTP ---
    RATE_LIMIT_ENABLED: bool = True
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"

    @property
    def DATABASE_URL(self) -> str:
        return (
            self.DATABASE_URL_LOCAL if self.ENV == "local" else self.DATABASE_URL_PROD
        )


# Create a single instance of the settings
settings = Settings()
