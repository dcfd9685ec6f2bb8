from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    APP_NAME: str = "Procurement RFQ"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 8000

    DATABASE_URL: str = "sqlite+aiosqlite:///./procurement.db"
    DATABASE_SYNC_URL: str = ""
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE: int = 300
    DB_SSL_REQUIRED: bool = False

    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    QUOTE_TOKEN_EXPIRE_DAYS: int = 7

    S3_UPLOAD_REGION: str = "us-east-1"
    S3_UPLOAD_BUCKET: str = "procurement-uploads"
    S3_UPLOAD_PREFIX: str = ""
    S3_PUBLIC_BASE: Optional[str] = None
    S3_ACCESS_KEY_ID: str = ""
    S3_SECRET_ACCESS_KEY: str = ""
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024
    PRESIGN_EXPIRES_SECONDS: int = 60

    BREVO_API_KEY: Optional[str] = None
    EMAIL_FROM_ADDRESS: str = "noreply@procurement.example.com"
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # Award rules; 0 disables the value threshold
    AWARD_VALUE_THRESHOLD: float = 0.0
    AWARD_SPLIT_REQUIRES_APPROVAL: bool = True

    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
