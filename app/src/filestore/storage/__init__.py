from __future__ import annotations

import logging

from filestore.errors import ConfigurationError
from filestore.settings import settings
from filestore.storage.base import StorageBackend
from filestore.storage.gcs import GCSStorage, connect_bucket

logger = logging.getLogger(__name__)

_storage: StorageBackend | None = None


def init_storage() -> StorageBackend:
    global _storage
    if _storage is None:
        if not settings.GCS_BUCKET:
            raise ConfigurationError("GCS_BUCKET nao configurado")
        credentials_file = settings.credentials_file
        if not credentials_file:
            raise ConfigurationError("GCS_CREDENTIALS_FILE nao configurado")
        bucket = connect_bucket(settings.GCS_BUCKET, credentials_file, settings.GCS_PROJECT_ID)
        _storage = GCSStorage(
            bucket,
            folder=settings.STORAGE_FOLDER,
            upload_url_minutes=settings.UPLOAD_URL_EXPIRES_MINUTES,
            download_url_years=settings.DOWNLOAD_URL_EXPIRES_YEARS,
        )
        logger.info("Storage GCS inicializado: gs://%s/%s", settings.GCS_BUCKET, settings.STORAGE_FOLDER)
    return _storage


def get_storage_backend() -> StorageBackend:
    return init_storage()
