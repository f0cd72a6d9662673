from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env", "../.env"), env_file_encoding="utf-8", extra="ignore")

    GCS_BUCKET: str | None = None
    GCS_PROJECT_ID: str | None = None
    GCS_CREDENTIALS_FILE: str | None = None
    GOOGLE_APPLICATION_CREDENTIALS: str | None = None
    STORAGE_FOLDER: str = "uploads"

    UPLOAD_URL_EXPIRES_MINUTES: int = 2
    DOWNLOAD_URL_EXPIRES_YEARS: int = 5
    DOWNLOAD_CHUNK_SIZE: int = 1024 * 1024

    LOG_LEVEL: str = "INFO"
    APP_BASE_PATH: str = ""

    @field_validator("STORAGE_FOLDER", mode="before")
    @classmethod
    def normalize_folder(cls, v):
        value = str(v or "").strip().strip("/")
        return value or "uploads"

    @field_validator("UPLOAD_URL_EXPIRES_MINUTES", "DOWNLOAD_URL_EXPIRES_YEARS")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("expiry window must be at least 1")
        return v

    @field_validator("APP_BASE_PATH", mode="before")
    @classmethod
    def normalize_base_path(cls, v):
        if v is None:
            return ""
        value = str(v).strip()
        if value in ("", "/"):
            return ""
        if not value.startswith("/"):
            value = "/" + value
        return value.rstrip("/")

    @property
    def credentials_file(self) -> str | None:
        return self.GCS_CREDENTIALS_FILE or self.GOOGLE_APPLICATION_CREDENTIALS


settings = Settings()
