# backend/quote_intake/models/__init__.py
from .quote import Quote, QuoteStatus, Urgency
from .attachment import Attachment

__all__ = ["Quote", "QuoteStatus", "Urgency", "Attachment"]
