import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Float, Text, Date, DateTime
from database import Base
import enum


# ─── Enums ────────────────────────────────────────────────────────────────────

class StatementSection(str, enum.Enum):
    PAYMENTS = "payments"
    PURCHASES = "purchases"


class PatternType(str, enum.Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    REGEX = "regex"


# ─── Helper ───────────────────────────────────────────────────────────────────

def generate_uuid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


# ─── Models ───────────────────────────────────────────────────────────────────

class Transaction(Base):
    """A classified transaction extracted from a statement (or entered by hand)."""
    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=generate_uuid)

    # Transaction data
    date = Column(Date, nullable=False, index=True)
    posting_date = Column(Date)
    amount = Column(Float, nullable=False)  # always the absolute value
    section = Column(String)  # payments / purchases, carries the sign
    raw_merchant = Column(Text, nullable=False)
    clean_merchant = Column(String)
    category = Column(String, index=True)
    description = Column(Text)  # Original statement line
    reference_number = Column(String)
    account_number = Column(String)  # last four digits only

    # Metadata
    pdf_source = Column(String)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class MerchantMapping(Base):
    """Rule mapping a raw merchant pattern to a clean name and category."""
    __tablename__ = "merchant_mappings"

    id = Column(String, primary_key=True, default=generate_uuid)
    raw_pattern = Column(String, nullable=False, index=True)
    clean_name = Column(String, nullable=False)
    category = Column(String)
    pattern_type = Column(String, nullable=False, default=PatternType.CONTAINS.value)
    created_at = Column(DateTime, default=utcnow)
