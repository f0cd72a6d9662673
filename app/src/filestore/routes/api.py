from __future__ import annotations

from typing import Annotated, Any, BinaryIO, Iterator
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import StreamingResponse

from filestore.errors import MetadataError, TransferError
from filestore.schemas import SignedUrlOut, UploadUrlRequest
from filestore.settings import settings
from filestore.storage import get_storage_backend
from filestore.storage.base import FileNotFound, StorageBackend, StoredFile

router = APIRouter()

Storage = Annotated[StorageBackend, Depends(get_storage_backend)]


def _iter_chunks(reader: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    with reader:
        while True:
            chunk = reader.read(chunk_size)
            if not chunk:
                break
            yield chunk


def _content_disposition(filename: str) -> str:
    quoted = quote(filename, safe="")
    if quoted == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename*=utf-8''{quoted}"


async def _require_file(storage: StorageBackend, file_key: str) -> StoredFile:
    result = await storage.download(file_key)
    if isinstance(result, FileNotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    return result


@router.post("/files", response_model=dict[str, Any], status_code=status.HTTP_201_CREATED)
async def api_upload_file(storage: Storage, file: Annotated[UploadFile, File()]):
    try:
        return await storage.upload(file.filename or "", file.file, file.content_type, file.size)
    except (TransferError, MetadataError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.post("/files/upload-url", response_model=SignedUrlOut)
async def api_upload_url(payload: UploadUrlRequest, storage: Storage):
    grant = await storage.gen_upload_url(payload.filename, payload.content_type)
    return SignedUrlOut.model_validate(grant)


@router.get("/files/{file_key}")
async def api_download_file(file_key: str, storage: Storage):
    stored = await _require_file(storage, file_key)
    headers = {}
    if stored.original_name:
        headers["Content-Disposition"] = _content_disposition(stored.original_name)
    if stored.size is not None:
        headers["Content-Length"] = str(stored.size)
    return StreamingResponse(
        _iter_chunks(stored.stream(), settings.DOWNLOAD_CHUNK_SIZE),
        media_type=stored.content_type,
        headers=headers,
    )


@router.get("/files/{file_key}/metadata", response_model=dict[str, Any])
async def api_file_metadata(file_key: str, storage: Storage):
    stored = await _require_file(storage, file_key)
    return stored.metadata


@router.get("/files/{file_key}/download-url", response_model=SignedUrlOut)
async def api_download_url(file_key: str, storage: Storage):
    grant = await storage.gen_download_url(file_key)
    return SignedUrlOut.model_validate(grant)
