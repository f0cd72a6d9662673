from __future__ import annotations

import asyncio
import functools
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, BinaryIO

from google.api_core import exceptions as gcp_exceptions
from google.cloud import storage

from filestore.errors import ConfigurationError, MetadataError, TransferError
from filestore.storage.base import (
    DownloadResult,
    FileNotFound,
    SignedUrlGrant,
    StorageBackend,
    StoredFile,
    generate_file_key,
)

logger = logging.getLogger(__name__)

STORAGE_OBJECT_KIND = "storage#object"
NOT_FOUND_STATUSES = {403, 404}
# V4 signatures cap expiration at seven days; read grants need years.
SIGNED_URL_VERSION = "v2"


def connect_bucket(bucket_name: str, credentials_file: str, project: str | None = None) -> storage.Bucket:
    if not Path(credentials_file).is_file():
        raise ConfigurationError(f"Arquivo de credenciais GCS nao encontrado: {credentials_file}")
    kwargs = {"project": project} if project else {}
    client = storage.Client.from_service_account_json(credentials_file, **kwargs)
    return client.bucket(bucket_name)


def add_years(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def _resource(blob) -> dict[str, Any]:
    """Raw JSON resource of the blob.

    ``Blob`` exposes no public accessor for the resource as a whole and none
    at all for ``kind``, so this is the only place that reads ``_properties``.
    """
    return dict(blob._properties)


def stream_size(stream: BinaryIO) -> int | None:
    try:
        if not stream.seekable():
            return None
        position = stream.tell()
        end = stream.seek(0, os.SEEK_END)
        stream.seek(position)
    except (AttributeError, OSError, ValueError):
        return None
    return end - position


class GCSStorage(StorageBackend):
    def __init__(
        self,
        bucket: storage.Bucket,
        folder: str = "uploads",
        upload_url_minutes: int = 2,
        download_url_years: int = 5,
    ):
        self.bucket = bucket
        self.folder = folder
        self.upload_url_minutes = upload_url_minutes
        self.download_url_years = download_url_years

    def object_name(self, file_key: str) -> str:
        return f"{self.folder}/{file_key}"

    def _upload(
        self, filename: str, stream: BinaryIO, mime_type: str | None, size: int | None
    ) -> dict[str, Any]:
        file_key = generate_file_key(filename)
        blob = self.bucket.blob(self.object_name(file_key))
        if size is None:
            size = stream_size(stream)
        try:
            # a known size up to 8 MiB selects the single-request multipart upload
            blob.upload_from_file(stream, content_type=mime_type, size=size)
        except (gcp_exceptions.GoogleAPICallError, OSError) as exc:
            logger.error("Falha no upload de %s", file_key, exc_info=exc)
            raise TransferError(f"Falha no upload de {file_key}: {exc}", original=exc) from exc

        blob.metadata = {"name": filename}
        try:
            blob.patch()
        except (gcp_exceptions.GoogleAPICallError, OSError) as exc:
            logger.error("Falha ao gravar metadata de %s", file_key, exc_info=exc)
            raise MetadataError(
                f"Falha ao gravar metadata de {file_key}: {exc}", file_key=file_key, original=exc
            ) from exc

        metadata = _resource(blob)
        metadata["fileKey"] = file_key
        logger.info("Upload concluido: %s (%s bytes)", file_key, metadata.get("size"))
        return metadata

    def _download(self, file_key: str) -> DownloadResult:
        blob = self.bucket.blob(self.object_name(file_key))
        try:
            blob.reload()
        except gcp_exceptions.GoogleAPICallError as exc:
            if exc.code in NOT_FOUND_STATUSES:
                logger.info("Arquivo inacessivel (%s): %s", exc.code, file_key)
                return FileNotFound(file_key)
            raise

        metadata = _resource(blob)
        if metadata.get("kind") != STORAGE_OBJECT_KIND:
            logger.warning("Metadata inesperada para %s: kind=%s", file_key, metadata.get("kind"))
            return FileNotFound(file_key)
        return StoredFile(file_key=file_key, metadata=metadata, stream=functools.partial(blob.open, "rb"))

    def _sign(self, file_key: str, method: str, expires_at: datetime, content_type: str | None = None) -> str:
        blob = self.bucket.blob(self.object_name(file_key))
        return blob.generate_signed_url(
            version=SIGNED_URL_VERSION,
            expiration=expires_at,
            method=method,
            content_type=content_type,
        )

    async def upload(
        self, filename: str, stream: BinaryIO, mime_type: str | None = None, size: int | None = None
    ) -> dict[str, Any]:
        return await asyncio.to_thread(self._upload, filename, stream, mime_type, size)

    async def download(self, file_key: str) -> DownloadResult:
        return await asyncio.to_thread(self._download, file_key)

    async def gen_upload_url(self, filename: str, mime_type: str | None = None) -> SignedUrlGrant:
        file_key = generate_file_key(filename)
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=self.upload_url_minutes)
        url = await asyncio.to_thread(self._sign, file_key, "PUT", expires_at, mime_type)
        logger.info("URL de upload gerada para %s", file_key)
        return SignedUrlGrant(url=url, key=file_key, expires_at=expires_at)

    async def gen_download_url(self, file_key: str) -> SignedUrlGrant:
        expires_at = add_years(datetime.now(timezone.utc), self.download_url_years)
        url = await asyncio.to_thread(self._sign, file_key, "GET", expires_at)
        logger.info("URL de download gerada para %s", file_key)
        return SignedUrlGrant(url=url, key=file_key, expires_at=expires_at)
