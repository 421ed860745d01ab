"""Bot and admin API configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    TELEGRAM_BOT_TOKEN: str = ""
    RIDER_BOT_TOKEN: str = ""
    DATABASE_URL: str = "postgresql+asyncpg://vayaride:vayaride@db:5432/vayaride"
    APP_BASE_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Admin API (approval trigger)
    ADMIN_API_ENABLED: bool = True
    ADMIN_API_HOST: str = "0.0.0.0"
    ADMIN_API_PORT: int = 8000
    ADMIN_API_KEY: str = ""

    # Media store (S3-compatible)
    MEDIA_S3_BUCKET: str = ""
    MEDIA_S3_REGION: str = ""
    MEDIA_S3_ENDPOINT_URL: str = ""
    MEDIA_S3_ACCESS_KEY_ID: str = ""
    MEDIA_S3_SECRET_ACCESS_KEY: str = ""
    MEDIA_PUBLIC_BASE_URL: str = ""
    MEDIA_FOLDER: str = "vayaride"

    FILE_DOWNLOAD_TIMEOUT_SEC: float = 5.0
    MEDIA_UPLOAD_TIMEOUT_SEC: float = 180.0
    PIN_TTL_HOURS: int = 24

    class Config:
        env_file = ".env"
        extra = "allow"


settings = Settings()
