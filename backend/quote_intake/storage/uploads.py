"""
Attachment storage on local disk.

Files are written under UPLOAD_DIR with a random name that keeps only the
lowercased extension of the client filename. Limits are checked for every
part before the first byte is written.
"""
from __future__ import annotations

import logging
import os
import shutil
import uuid
from dataclasses import dataclass
from typing import BinaryIO, Iterable, List, Optional

from starlette.datastructures import UploadFile

from quote_intake.core.config import settings
from quote_intake.core.errors import ApiError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StoredUpload:
    original_name: str
    mime_type: Optional[str]
    size: int
    stored_filename: str


def upload_dir() -> str:
    return os.path.abspath(settings.UPLOAD_DIR)


def ensure_upload_dir() -> str:
    path = upload_dir()
    os.makedirs(path, exist_ok=True)
    return path


def _measure(fileobj: BinaryIO) -> int:
    fileobj.seek(0, os.SEEK_END)
    size = fileobj.tell()
    fileobj.seek(0)
    return size


def _is_blank_part(upload: UploadFile, size: int) -> bool:
    # Browsers send an empty, unnamed part for a file input left empty
    return not upload.filename and size == 0


def new_stored_filename(original_name: str) -> str:
    _, ext = os.path.splitext(original_name or "")
    return uuid.uuid4().hex + ext.lower()


def max_request_bytes() -> int:
    return settings.MAX_UPLOAD_FILES * settings.MAX_UPLOAD_BYTES + settings.MAX_FORM_FIELDS_BYTES


def check_declared_size(content_length: Optional[str]) -> None:
    """
    Refuse a body whose declared length cannot fit within the upload limits,
    before any of it is parsed or spooled. A missing or malformed header is
    left to the per-file checks in store_uploads.
    """
    try:
        declared = int(content_length) if content_length is not None else None
    except ValueError:
        return
    if declared is not None and declared > max_request_bytes():
        raise ApiError.validation(
            "File too large",
            internal=f"declared body of {declared} bytes (max {max_request_bytes()})",
        )


def store_uploads(uploads: Iterable[UploadFile]) -> List[StoredUpload]:
    """
    Validate count and size of every upload, then write them to disk.

    Raises ApiError (validation) when a limit is exceeded; in that case no
    file has been written. Raises ApiError (server) on disk failure.
    """
    measured = []
    for upload in uploads:
        size = _measure(upload.file)
        if _is_blank_part(upload, size):
            continue
        if size > settings.MAX_UPLOAD_BYTES:
            raise ApiError.validation(
                "File too large",
                internal=f"{upload.filename!r} is {size} bytes (max {settings.MAX_UPLOAD_BYTES})",
            )
        measured.append((upload, size))

    if len(measured) > settings.MAX_UPLOAD_FILES:
        raise ApiError.validation(
            "Too many files",
            internal=f"{len(measured)} files (max {settings.MAX_UPLOAD_FILES})",
        )

    target_dir = ensure_upload_dir()
    stored: List[StoredUpload] = []
    for upload, size in measured:
        original_name = upload.filename or ""
        stored_filename = new_stored_filename(original_name)
        try:
            with open(os.path.join(target_dir, stored_filename), "wb") as out:
                shutil.copyfileobj(upload.file, out, _CHUNK_SIZE)
        except OSError as exc:
            if stored:
                logger.warning("Upload aborted; %d file(s) left without a quote: %s",
                               len(stored), [s.stored_filename for s in stored])
            raise ApiError.server(internal=f"writing {stored_filename} failed: {exc}") from exc

        stored.append(StoredUpload(
            original_name=original_name,
            mime_type=upload.content_type,
            size=size,
            stored_filename=stored_filename,
        ))

    return stored


def resolve_stored_path(stored_filename: str) -> Optional[str]:
    """
    Map a stored filename to its absolute path inside UPLOAD_DIR.
    Returns None for names that would resolve outside the directory.
    """
    if not stored_filename:
        return None
    base = upload_dir()
    full = os.path.abspath(os.path.join(base, stored_filename))
    if os.path.dirname(full) != base:
        return None
    return full
