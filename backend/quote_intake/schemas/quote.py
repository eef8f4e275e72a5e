from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, validate_email

from quote_intake.models.quote import QuoteStatus, Urgency


class QuoteSubmitIn(BaseModel):
    """
    Text fields of the public multipart form.
    Unknown form fields are dropped; files are handled separately.
    """
    model_config = ConfigDict(extra='ignore')

    name: str = Field(min_length=2)
    treatment: Optional[str] = None
    email: str
    phone: str = Field(min_length=4)
    whatsapp: Optional[str] = None
    country: Optional[str] = None
    urgency: Optional[Urgency] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    # Checkbox arrives as the literal strings sent by the form
    consent: Optional[Literal['true', 'false']] = None

    @field_validator('email')
    @classmethod
    def check_email(cls, v: str) -> str:
        # Validated, but stored exactly as typed
        validate_email(v)
        return v

    @property
    def consent_given(self) -> bool:
        return self.consent == 'true'


class QuoteSubmitResponse(BaseModel):
    model_config = ConfigDict(extra='forbid')

    id: int


class QuoteListItem(BaseModel):
    """Row of the admin list; notes are cut to a short snippet."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    treatment: Optional[str] = None
    status: QuoteStatus
    created_at: datetime
    snippet: str = ''


class QuoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    treatment: Optional[str] = None
    email: str
    phone: str
    whatsapp: Optional[str] = None
    country: Optional[str] = None
    urgency: Optional[str] = None
    notes: Optional[str] = None
    consent: bool = False
    status: QuoteStatus
    created_at: datetime
    updated_at: datetime


class AttachmentListItem(BaseModel):
    """Attachment metadata; the stored path is deliberately not part of it."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None


class QuoteDetailResponse(BaseModel):
    quote: QuoteOut
    files: List[AttachmentListItem] = []


class StatusUpdateIn(BaseModel):
    # Any JSON value; QuoteStatus.parse decides
    status: Any = None


class StatusUpdateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: QuoteStatus
    updated_at: datetime
