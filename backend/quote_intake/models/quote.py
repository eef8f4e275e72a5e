# backend/quote_intake/models/quote.py
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_intake.db.base import Base


class QuoteStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    QUOTED = "quoted"
    SCHEDULED = "scheduled"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value) -> "QuoteStatus | None":
        """Return the matching status, or None for anything outside the enumeration."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class Urgency(str, Enum):
    # Values come verbatim from the segmented control on the public form
    ASAP = "Dès que possible"
    WITHIN_3_MONTHS = "Dans 1–3 mois"
    LATER = "Plus tard"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_STATUS_VALUES = ",".join(f"'{s.value}'" for s in QuoteStatus)


class Quote(Base):
    __tablename__ = "quotes"
    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_quotes_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(Text, nullable=False)
    treatment: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(Text, nullable=False)
    whatsapp: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Absent on older deployments; see db.schema_features
    urgency: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    consent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    status: Mapped[str] = mapped_column(
        String(16), default=QuoteStatus.PENDING.value, server_default=QuoteStatus.PENDING.value, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    attachments = relationship(
        "Attachment",
        back_populates="quote",
        cascade="all,delete-orphan",
        passive_deletes=True,
    )
