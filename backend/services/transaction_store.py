"""Persistence store for classified transactions."""
import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from exceptions import StoreError
from models import Transaction, utcnow
from parsers.base import ParsedStatementRecord
from services.merchant_classifier import ClassificationResult

logger = logging.getLogger("Tally.Store.Transactions")


class TransactionStore:
    def __init__(self, db: Session):
        self.db = db

    def insert_many(
        self,
        items: Iterable[Tuple[ParsedStatementRecord, ClassificationResult]],
        pdf_source: Optional[str] = None,
    ) -> List[Transaction]:
        """Insert classified records in one commit and return the stored rows."""
        rows = []
        for record, classification in items:
            rows.append(Transaction(
                date=record.transaction_date,
                posting_date=record.posting_date,
                amount=record.amount,
                section=record.section.value if record.section else None,
                raw_merchant=record.description,
                clean_merchant=classification.clean_name,
                category=classification.category,
                description=record.raw_line or record.description,
                reference_number=record.reference_number,
                account_number=record.account_number,
                pdf_source=pdf_source,
            ))
        try:
            self.db.add_all(rows)
            self.db.commit()
            for row in rows:
                self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to save transactions to database: {e}") from e

        logger.info(f"💾 Stored {len(rows)} transactions")
        return rows

    def query(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Transaction], int]:
        """Newest first. Returns ``(page, total matching rows)``."""
        try:
            query = self.db.query(Transaction)
            if category:
                query = query.filter(Transaction.category == category)
            if start_date:
                query = query.filter(Transaction.date >= start_date)
            if end_date:
                query = query.filter(Transaction.date <= end_date)

            total = query.count()
            rows = (
                query.order_by(Transaction.date.desc(), Transaction.created_at.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to fetch transactions: {e}") from e
        return rows, total

    def get(self, transaction_id: str) -> Optional[Transaction]:
        return self.db.query(Transaction).filter(Transaction.id == transaction_id).first()

    def update(
        self,
        transaction_id: str,
        clean_merchant: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Optional[Transaction]:
        """Set clean name and category; ``None`` when the id does not exist."""
        try:
            txn = self.get(transaction_id)
            if txn is None:
                return None
            txn.clean_merchant = clean_merchant
            txn.category = category
            txn.updated_at = utcnow()
            self.db.commit()
            self.db.refresh(txn)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to update transaction: {e}") from e
        return txn

    def delete(self, transaction_id: str) -> bool:
        try:
            deleted = self.db.query(Transaction).filter(Transaction.id == transaction_id).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to delete transaction: {e}") from e
        return deleted > 0

    def delete_all(self) -> int:
        try:
            deleted = self.db.query(Transaction).delete()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to delete transactions: {e}") from e
        logger.info(f"Deleted {deleted} transactions")
        return deleted
