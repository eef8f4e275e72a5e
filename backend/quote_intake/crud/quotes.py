# backend/quote_intake/crud/quotes.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quote_intake.db.schema_features import SchemaFeatures
from quote_intake.models.attachment import Attachment
from quote_intake.models.quote import Quote, QuoteStatus, utcnow
from quote_intake.schemas.quote import QuoteSubmitIn
from quote_intake.storage.uploads import StoredUpload

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 160
DEFAULT_LIMIT = 20
MAX_LIMIT = 200

quotes_table = Quote.__table__
files_table = Attachment.__table__


def quote_columns(features: SchemaFeatures) -> list:
    """Columns that exist in the connected schema, in table order."""
    return [c for c in quotes_table.columns if c.name != "urgency" or features.has_urgency]


def create_quote(db: Session, data: QuoteSubmitIn, features: SchemaFeatures) -> int:
    now = utcnow()
    values = {
        "name": data.name,
        "treatment": data.treatment or None,
        "email": data.email,
        "phone": data.phone,
        "whatsapp": data.whatsapp or None,
        "country": data.country or None,
    }
    if features.has_urgency:
        values["urgency"] = data.urgency.value if data.urgency else None
    values.update({
        "notes": data.notes or None,
        "consent": data.consent_given,
        "status": QuoteStatus.PENDING.value,
        "created_at": now,
        "updated_at": now,
    })

    stmt = insert(quotes_table).values(**values).returning(quotes_table.c.id)
    quote_id = db.execute(stmt).scalar_one()
    db.commit()
    return quote_id


def link_attachments(db: Session, quote_id: int, uploads: Sequence[StoredUpload]) -> int:
    """
    Insert one attachment row per stored upload, each committed on its own.

    A failed insert leaves that file on disk without a row; it is logged and
    the remaining uploads are still linked. Returns the number linked.
    """
    linked = 0
    for up in uploads:
        try:
            db.execute(insert(files_table).values(
                quote_id=quote_id,
                original_name=up.original_name,
                mime_type=up.mime_type,
                size=up.size,
                path=up.stored_filename,
                created_at=utcnow(),
            ))
            db.commit()
            linked += 1
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not link upload %s to quote %s; file left unreferenced",
                             up.stored_filename, quote_id)
    return linked


def _clamp_int(raw, default: int, lo: int, hi: Optional[int] = None) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = default
    value = max(lo, value)
    if hi is not None:
        value = min(hi, value)
    return value


def clamp_limit(raw) -> int:
    return _clamp_int(raw, DEFAULT_LIMIT, 1, MAX_LIMIT)


def clamp_offset(raw) -> int:
    return _clamp_int(raw, 0, 0)


def list_quotes(
    db: Session,
    status: Optional[str] = None,
    q: Optional[str] = None,
    limit=DEFAULT_LIMIT,
    offset=0,
) -> List[dict]:
    """
    Newest-first summaries. An unknown status is ignored rather than rejected;
    `q` matches case-insensitively inside name, email or notes.
    """
    t = quotes_table
    stmt = select(
        t.c.id,
        t.c.name,
        t.c.treatment,
        t.c.status,
        t.c.created_at,
        func.substr(func.coalesce(t.c.notes, ""), 1, SNIPPET_LENGTH).label("snippet"),
    )

    wanted = QuoteStatus.parse(status)
    if wanted is not None:
        stmt = stmt.where(t.c.status == wanted.value)

    term = (q or "").strip().lower()
    if term:
        stmt = stmt.where(
            func.lower(t.c.name).contains(term, autoescape=True)
            | func.lower(t.c.email).contains(term, autoescape=True)
            | func.lower(func.coalesce(t.c.notes, "")).contains(term, autoescape=True)
        )

    stmt = (
        stmt.order_by(t.c.created_at.desc(), t.c.id.desc())
        .limit(clamp_limit(limit))
        .offset(clamp_offset(offset))
    )
    return [dict(row) for row in db.execute(stmt).mappings()]


def get_quote(db: Session, quote_id: int, features: SchemaFeatures) -> Optional[dict]:
    stmt = select(*quote_columns(features)).where(quotes_table.c.id == quote_id)
    row = db.execute(stmt).mappings().first()
    return dict(row) if row else None


def list_attachments(db: Session, quote_id: int) -> List[dict]:
    f = files_table
    stmt = (
        select(f.c.id, f.c.original_name, f.c.mime_type, f.c.size)
        .where(f.c.quote_id == quote_id)
        .order_by(f.c.id)
    )
    return [dict(row) for row in db.execute(stmt).mappings()]


def update_status(db: Session, quote_id: int, status: QuoteStatus) -> Optional[dict]:
    """Set status and bump updated_at in one statement; None if the id is unknown."""
    t = quotes_table
    stmt = (
        update(t)
        .where(t.c.id == quote_id)
        .values(status=status.value, updated_at=utcnow())
        .returning(t.c.id, t.c.status, t.c.updated_at)
    )
    row = db.execute(stmt).mappings().first()
    db.commit()
    return dict(row) if row else None


def get_attachment(db: Session, attachment_id: int) -> Optional[Attachment]:
    return db.get(Attachment, attachment_id)


def delete_quote(db: Session, quote_id: int) -> bool:
    """
    Remove a quote; its attachment rows go with it through the foreign key
    cascade. Files on disk are left in place.
    """
    result = db.execute(delete(quotes_table).where(quotes_table.c.id == quote_id))
    db.commit()
    return result.rowcount > 0
