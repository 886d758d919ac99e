from sqlalchemy import Column, Integer, String, DateTime, LargeBinary
from datetime import datetime, timezone
from .database import Base
import enum


class QuoteStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class QuoteItemCategory(str, enum.Enum):
    SERVICE = "service"
    ADDITIONAL = "additional"
    DISCOUNT = "discount"
    SURCHARGE = "surcharge"


class AdjustmentCategory(str, enum.Enum):
    BASE = "base"
    DISCOUNT = "discount"
    SURCHARGE = "surcharge"
    ADDITIONAL = "additional"


def _utcnow():
    return datetime.now(timezone.utc)


class CachedDocumentRecord(Base):
    """Rendered quote PDF, one row per quote. Backs SqlCacheStorage."""
    __tablename__ = "cached_documents"

    quote_id = Column(String, primary_key=True)
    quote_number = Column(String, nullable=False)
    checksum = Column(String, nullable=False)
    filename = Column(String, nullable=False)
    content = Column(LargeBinary, nullable=False)
    size_bytes = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
