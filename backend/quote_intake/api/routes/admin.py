# backend/quote_intake/api/routes/admin.py
from __future__ import annotations

import logging
import mimetypes
import os
from typing import Any, List, Optional
from urllib.parse import quote as percent_encode

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from quote_intake.api.deps import get_schema_features
from quote_intake.core.errors import ApiError
from quote_intake.core.security import require_admin, require_admin_allow_query
from quote_intake.crud import quotes as crud
from quote_intake.db.schema_features import SchemaFeatures
from quote_intake.db.session import get_db
from quote_intake.models.quote import QuoteStatus
from quote_intake.schemas.quote import (
    QuoteDetailResponse,
    QuoteListItem,
    StatusUpdateIn,
    StatusUpdateResponse,
)
from quote_intake.storage.uploads import resolve_stored_path

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

# Punctuation left unescaped in the download filename, on top of "-_."
_FILENAME_SAFE = "!*'()~"


@router.get("/quotes", response_model=List[QuoteListItem], dependencies=[Depends(require_admin)])
def list_quotes(
    status: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None),
    # Parsed leniently by the crud layer; junk falls back to the defaults
    limit: Optional[str] = Query(default=None),
    offset: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    rows = crud.list_quotes(
        db,
        status=status,
        q=q,
        limit=limit if limit is not None else crud.DEFAULT_LIMIT,
        offset=offset if offset is not None else 0,
    )
    return [QuoteListItem.model_validate(r) for r in rows]


@router.get("/quotes/{quote_id}", response_model=QuoteDetailResponse, dependencies=[Depends(require_admin)])
def get_quote(
    quote_id: int,
    db: Session = Depends(get_db),
    features: SchemaFeatures = Depends(get_schema_features),
):
    quote = crud.get_quote(db, quote_id, features)
    if not quote:
        raise ApiError.not_found(internal=f"quote {quote_id}")

    files = crud.list_attachments(db, quote_id)
    return QuoteDetailResponse(quote=quote, files=files)


@router.patch(
    "/quotes/{quote_id}/status",
    response_model=StatusUpdateResponse,
    dependencies=[Depends(require_admin)],
)
def update_quote_status(
    quote_id: int,
    body: Any = Body(default=None),
    db: Session = Depends(get_db),
):
    # A missing or non-object body is just a bad status
    payload = StatusUpdateIn.model_validate(body) if isinstance(body, dict) else StatusUpdateIn()
    new_status = QuoteStatus.parse(payload.status)
    if new_status is None:
        raise ApiError.validation("Bad status", internal=f"status {payload.status!r}")

    row = crud.update_status(db, quote_id, new_status)
    if not row:
        raise ApiError.not_found(internal=f"quote {quote_id}")

    logger.info("Quote %s status -> %s", quote_id, new_status.value)
    return StatusUpdateResponse.model_validate(row)


def _media_type(mime_type: Optional[str], original_name: Optional[str]) -> str:
    if mime_type:
        return mime_type
    guessed, _ = mimetypes.guess_type(original_name or "")
    return guessed or "application/octet-stream"


@router.get("/files/{file_id}", dependencies=[Depends(require_admin_allow_query)])
def download_file(
    file_id: int,
    db: Session = Depends(get_db),
):
    """
    Stream an attachment inline.
    Reachable with `?token=` so that plain links from the admin page work.
    """
    attachment = crud.get_attachment(db, file_id)
    if not attachment:
        raise ApiError.not_found(internal=f"attachment {file_id}: no row")

    full = resolve_stored_path(attachment.path)
    if not full or not os.path.isfile(full):
        logger.warning("Attachment %s row exists but file %r is missing", file_id, attachment.path)
        raise ApiError.not_found(internal=f"attachment {file_id}: file missing on disk")

    encoded_name = percent_encode(attachment.original_name or "", safe=_FILENAME_SAFE)
    disposition = f'inline; filename="{encoded_name}"'
    return FileResponse(
        full,
        media_type=_media_type(attachment.mime_type, attachment.original_name),
        headers={"Content-Disposition": disposition},
    )
