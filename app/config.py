# app/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Primary store ─────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./data/carhire.db"

    # ── Secondary store (optional mirror) ─────────────────────────────────
    MONGODB_URI: Optional[str] = None    # Leave empty to disable mirroring
    MONGODB_DB: Optional[str] = None
    MONGODB_TIMEOUT_MS: int = 3000
    MONGODB_RETRY_SECONDS: int = 30      # Cool-down after a failed connect

    # ── Security ──────────────────────────────────────────────────────────
    JWT_SECRET: str = "dev_secret"
    JWT_EXPIRE_DAYS: int = 7
    DEFAULT_ADMIN_EMAIL: str = "admin@carhire.local"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"
    CORS_ORIGINS: str = "*"

    # ── OTP ───────────────────────────────────────────────────────────────
    OTP_TTL_MINUTES: int = 10
    OTP_MAX_ATTEMPTS: int = 5

    # ── Email (SendGrid) ──────────────────────────────────────────────────
    ENVIRONMENT: str = "development"
    SENDGRID_API_KEY: Optional[str] = None
    SENDER_EMAIL: str = "no-reply@carhire.local"
    SUPPORT_EMAIL: Optional[str] = None
    SENDGRID_SANDBOX: bool = False

    # ── Uploads ───────────────────────────────────────────────────────────
    UPLOAD_DIR: str = "./uploads"

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_origin_list(self) -> list:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
