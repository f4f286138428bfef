from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime

from models import PatternType


# ─── Transaction Schemas ──────────────────────────────────────────────────────

class TransactionResponse(BaseModel):
    id: str
    date: date
    posting_date: Optional[date] = None
    amount: float
    section: Optional[str] = None
    raw_merchant: str
    clean_merchant: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    reference_number: Optional[str] = None
    account_number: Optional[str] = None
    pdf_source: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: int
    has_more: bool


class TransactionUpdate(BaseModel):
    clean_merchant: Optional[str] = None
    category: Optional[str] = None


# ─── Upload Schemas ───────────────────────────────────────────────────────────

class UploadDebug(BaseModel):
    pages_processed: int
    parsing_method: str
    account_identifier: Optional[str] = None
    sample_transactions: list[dict] = []


class UploadResponse(BaseModel):
    success: bool = True
    transaction_count: int
    message: str
    transactions: list[TransactionResponse]
    debug: UploadDebug


# ─── Merchant Mapping Schemas ─────────────────────────────────────────────────

class MerchantMappingCreate(BaseModel):
    raw_pattern: str = Field(..., min_length=1, max_length=255)
    clean_name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = None
    pattern_type: PatternType = PatternType.CONTAINS


class MerchantMappingResponse(BaseModel):
    id: str
    raw_pattern: str
    clean_name: str
    category: Optional[str] = None
    pattern_type: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClassificationResponse(BaseModel):
    merchant: str
    clean_name: str
    category: Optional[str] = None
