from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DATABASE_URL: str

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    # Password-less first login issues a token that can only set a password
    PASSWORD_SETUP_TOKEN_EXPIRE_MINUTES: int = 15

    ENVIRONMENT: str = "development"  # "development" or "production"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    QR_BASE_URL: str = "http://localhost:3000/menu"
    UPLOADS_DIR: str = "uploads"

    BILLING_WEBHOOK_SECRET: Optional[str] = None
    BILLING_WEBHOOK_TOLERANCE_SECONDS: int = 300

    ANALYTICS_WINDOW_DAYS: int = 30
    DEFAULT_SUBSCRIPTION_PLAN: str = "pro"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
