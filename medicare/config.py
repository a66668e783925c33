import os
from pydantic_settings import BaseSettings
from typing import List

from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Storage: "firestore" in deployments, "memory" for local runs
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "firestore")

    # Firebase
    FIREBASE_PROJECT_ID: str = os.getenv("FIREBASE_PROJECT_ID", "")
    FIREBASE_DATABASE_ID: str = os.getenv("FIREBASE_DATABASE_ID", "(default)")
    GOOGLE_APPLICATION_CREDENTIALS: str = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "")

    @property
    def IS_PRODUCTION(self) -> bool:
        """Check if running in production"""
        return self.ENVIRONMENT == "production"

    # Session
    SESSION_COOKIE_NAME: str = "medicare_session"
    SESSION_MAX_AGE: int = 86400 * 7  # 7 days

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    # Scheduling
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")
    ALLOW_CONFIRMED_DELETE: bool = False

    # Reminders
    REMINDERS_ENABLED: bool = True
    REMINDER_INTERVAL_SECONDS: int = 3600
    REMINDER_LEAD_HOURS: int = 24

    # SMTP
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS: bool = True
    EMAIL_FROM_ADDRESS: str = os.getenv("EMAIL_FROM_ADDRESS", "Medicare <noreply@medicare.local>")

    class Config:
        env_file = ".env"
        case_sensitive = True


# Singleton instance
settings = Settings()
