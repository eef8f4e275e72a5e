# backend/quote_intake/api/routes/quotes.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from quote_intake.api.deps import get_schema_features
from quote_intake.crud.quotes import create_quote, link_attachments
from quote_intake.core.errors import ApiError
from quote_intake.db.schema_features import SchemaFeatures
from quote_intake.db.session import get_db
from quote_intake.schemas.quote import QuoteSubmitIn, QuoteSubmitResponse
from quote_intake.security.rate_limiter import limit_quote_submissions
from quote_intake.storage.uploads import check_declared_size, store_uploads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quotes", tags=["quotes"])

FILES_FIELD = "files"


@router.post(
    "/multipart",
    response_model=QuoteSubmitResponse,
    dependencies=[Depends(limit_quote_submissions)],
)
async def submit_quote(
    request: Request,
    db: Session = Depends(get_db),
    features: SchemaFeatures = Depends(get_schema_features),
) -> QuoteSubmitResponse:
    """
    Public intake form: text fields plus up to MAX_UPLOAD_FILES files under `files`.

    Files are stored before the fields are validated and are not removed
    if a later step fails.
    """
    check_declared_size(request.headers.get("content-length"))
    try:
        form = await request.form()
    except Exception as exc:
        raise ApiError.validation(internal=f"unreadable multipart body: {exc}") from exc

    fields = {}
    uploads = []
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key != FILES_FIELD:
                raise ApiError.validation(internal=f"unexpected file field {key!r}")
            uploads.append(value)
        else:
            fields[key] = value

    stored = store_uploads(uploads)
    orphans = [s.stored_filename for s in stored]

    try:
        data = QuoteSubmitIn.model_validate(fields)
    except ValidationError as exc:
        if orphans:
            logger.warning("Invalid submission left %d uploaded file(s) without a quote: %s", len(orphans), orphans)
        raise ApiError.validation(internal=f"{exc.error_count()} invalid field(s)") from exc

    try:
        quote_id = create_quote(db, data, features)
    except SQLAlchemyError as exc:
        db.rollback()
        if orphans:
            logger.warning("Quote insert failed; %d uploaded file(s) orphaned: %s", len(orphans), orphans)
        logger.exception("multipart submit error")
        raise ApiError.server(internal=str(exc)) from exc

    linked = link_attachments(db, quote_id, stored)
    logger.info("Quote %s submitted with %d/%d attachment(s)", quote_id, linked, len(stored))
    return QuoteSubmitResponse(id=quote_id)
