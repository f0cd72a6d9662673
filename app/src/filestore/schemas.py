from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UploadUrlRequest(BaseModel):
    filename: str = Field(min_length=1)
    content_type: str | None = None

    @field_validator("content_type", mode="before")
    @classmethod
    def normalize_content_type(cls, v):
        if v is None:
            return None
        value = str(v).strip()
        return value or None


class SignedUrlOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    key: str
    expires_at: datetime
