"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
No sensitive values should be hardcoded here.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "Interviews.tv Media API"
    VERSION: str = "0.1.0"
    API_PREFIX: str = "/api"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./interviews_media.db"
    DATABASE_ECHO: bool = False

    # Security - REQUIRED (no defaults for sensitive values)
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # CORS
    CORS_ORIGINS: list[str] = []

    # Storage layout (paths below STORAGE_ROOT)
    STORAGE_ROOT: str = "./storage"
    RECORDINGS_PATH: str = "recordings"
    PROCESSED_PATH: str = "processed"
    THUMBNAILS_PATH: str = "thumbnails"
    TEMP_PATH: str = "temp"

    # Storage policy
    MAX_FILE_SIZE: int = 2 * 1024 * 1024 * 1024  # 2 GB
    ALLOWED_VIDEO_FORMATS: list[str] = ["mp4", "webm", "mkv", "avi", "mov"]
    STORAGE_QUOTA_GB: int = 100
    CLEANUP_DAYS: int = 90

    # Streaming
    STREAM_CHUNK_SIZE: int = 64 * 1024

    # Logging
    LOG_JSON: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
