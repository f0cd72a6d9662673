from __future__ import annotations

import os
import re
import unicodedata
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO, Callable

FALLBACK_BASENAME = "file"
MAX_FILENAME_BYTES = 255
MAX_SANITIZE_PASSES = 4

_PATH_SEPARATORS = re.compile(r"[/\\]")
_ILLEGAL_CHARS = re.compile(r'[?<>\\:*|"/]')
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x80-\x9f]")
_DOTS_ONLY = re.compile(r"^\.+$")
_WINDOWS_RESERVED = re.compile(r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])$", re.IGNORECASE)
_WINDOWS_TRAILING = re.compile(r"[. ]+$")
_APOSTROPHES = re.compile(r"['’]")


def _last_segment(filename: str) -> str:
    segments = [part for part in _PATH_SEPARATORS.split(filename) if part not in ("", ".", "..")]
    return segments[-1] if segments else ""


def _truncate_utf8(value: str, limit: int) -> str:
    encoded = value.encode("utf-8")
    if len(encoded) <= limit:
        return value
    return encoded[:limit].decode("utf-8", errors="ignore")


def _strip_unsafe(filename: str) -> str:
    name = _last_segment(filename)
    name = _ILLEGAL_CHARS.sub("", name)
    name = _CONTROL_CHARS.sub("", name)
    if _DOTS_ONLY.match(name):
        return ""
    name = _WINDOWS_TRAILING.sub("", name)
    name = _truncate_utf8(name, MAX_FILENAME_BYTES)
    return _WINDOWS_TRAILING.sub("", name)


def _deburr(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _char_class(ch: str) -> str:
    if ch.isdigit():
        return "digit"
    if ch.isupper():
        return "upper"
    return "lower"


def _split_words(value: str) -> list[str]:
    words: list[str] = []
    current = ""
    for index, ch in enumerate(value):
        if not ch.isalnum():
            if current:
                words.append(current)
            current = ""
            continue
        if current:
            prev = _char_class(current[-1])
            kind = _char_class(ch)
            nxt = value[index + 1] if index + 1 < len(value) else ""
            boundary = (
                (prev == "digit") != (kind == "digit")
                or (prev == "lower" and kind == "upper")
                or (prev == "upper" and kind == "upper" and nxt.isalpha() and nxt.islower())
            )
            if boundary:
                words.append(current)
                current = ""
        current += ch
    if current:
        words.append(current)
    return words


def camel_case(value: str) -> str:
    words = _split_words(_APOSTROPHES.sub("", _deburr(value)))
    parts = []
    for index, word in enumerate(words):
        word = word.lower()
        parts.append(word if index == 0 else word[:1].upper() + word[1:])
    return "".join(parts)


def _sanitize_once(filename: str) -> str:
    name = _strip_unsafe(filename)
    base, ext = os.path.splitext(name)
    base = camel_case(base)
    if not base or _WINDOWS_RESERVED.match(base):
        base = FALLBACK_BASENAME
    if len((base + ext).encode("utf-8")) > MAX_FILENAME_BYTES:
        # deburring can expand characters, so the limit is enforced again here
        budget = MAX_FILENAME_BYTES - len(ext.encode("utf-8"))
        if budget < len(FALLBACK_BASENAME):
            ext = ""
            budget = MAX_FILENAME_BYTES
        base = _truncate_utf8(base, budget)
        if not base or _WINDOWS_RESERVED.match(base):
            base = FALLBACK_BASENAME
    return base + ext


def sanitize_filename(filename: str | None) -> str:
    result = _sanitize_once(filename or "")
    # one-letter words camel-case into capital runs ("planAB") that re-split
    # differently, so repeat until the name no longer changes
    for _ in range(MAX_SANITIZE_PASSES):
        again = _sanitize_once(result)
        if again == result:
            break
        result = again
    return result


def generate_file_key(filename: str | None) -> str:
    return f"{uuid.uuid4()}-{sanitize_filename(filename)}"


@dataclass
class SignedUrlGrant:
    url: str
    key: str
    expires_at: datetime


@dataclass
class StoredFile:
    file_key: str
    metadata: dict[str, Any]
    stream: Callable[[], BinaryIO] = field(repr=False)

    @property
    def original_name(self) -> str | None:
        return (self.metadata.get("metadata") or {}).get("name")

    @property
    def content_type(self) -> str:
        return self.metadata.get("contentType") or "application/octet-stream"

    @property
    def size(self) -> int | None:
        size = self.metadata.get("size")
        return int(size) if size is not None else None


@dataclass
class FileNotFound:
    file_key: str

    @property
    def message(self) -> str:
        return f"No such file: {self.file_key}."


DownloadResult = StoredFile | FileNotFound


class StorageBackend:
    async def upload(
        self, filename: str, stream: BinaryIO, mime_type: str | None = None, size: int | None = None
    ) -> dict[str, Any]:  # pragma: no cover - interface
        raise NotImplementedError

    async def download(self, file_key: str) -> DownloadResult:  # pragma: no cover - interface
        raise NotImplementedError

    async def gen_upload_url(
        self, filename: str, mime_type: str | None = None
    ) -> SignedUrlGrant:  # pragma: no cover - interface
        raise NotImplementedError

    async def gen_download_url(self, file_key: str) -> SignedUrlGrant:  # pragma: no cover - interface
        raise NotImplementedError
