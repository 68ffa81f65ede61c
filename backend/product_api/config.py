from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    DB_TIMEOUT_SECONDS: int = 5
    RESET_DB: bool = False
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api/v1"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]

    # blob storage for product images
    STORAGE_TYPE: str = "local"
    STORAGE_BASE_PATH: str = "./storage"
    STORAGE_BASE_URL: str = "/uploads"
    BLOB_LOCK_TIMEOUT_SECONDS: int = 10
    MAX_IMAGE_SIZE_BYTES: int = 5 * 1024 * 1024

    DEFAULT_PAGE_LIMIT: int = 20

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
