import os
from typing import List
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Always load .env from root
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Settings(BaseSettings):
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", 1440))  # 24 hours default

    # Full URL wins over the individual parts below
    DATABASE_URL: str | None = os.getenv("DATABASE_URL")
    DB_USER: str | None = os.getenv("DB_USER")
    DB_PASS: str | None = os.getenv("DB_PASS")
    DB_HOST: str | None = os.getenv("DB_HOST", "localhost")
    DB_PORT: str | None = os.getenv("DB_PORT", "5432")
    DB_NAME: str | None = os.getenv("DB_NAME", "buildings")
    DB_MAX_RETRIES: int = int(os.getenv("DB_MAX_RETRIES", 3))
    DB_RETRY_BACKOFF_MS: int = int(os.getenv("DB_RETRY_BACKOFF_MS", 1000))

    # Business rules
    MAX_BULK_FLATS: int = int(os.getenv("MAX_BULK_FLATS", 200))
    MAX_FLAT_NUMBER_LENGTH: int = int(os.getenv("MAX_FLAT_NUMBER_LENGTH", 10))
    MAX_BUILDING_NAME_LENGTH: int = int(
        os.getenv("MAX_BUILDING_NAME_LENGTH", 100))
    REQUEST_CACHE_TTL_SECONDS: int = int(
        os.getenv("REQUEST_CACHE_TTL_SECONDS", 30))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:8002",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()


def get_database_url() -> str:
    if settings.DATABASE_URL:
        return settings.DATABASE_URL
    return (
        f"postgresql+psycopg2://{settings.DB_USER}:{settings.DB_PASS}@{settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}"
    )
