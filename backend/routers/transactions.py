import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from database import get_db
from exceptions import StoreError
from schemas import TransactionListResponse, TransactionResponse, TransactionUpdate
from services.transaction_store import TransactionStore

logger = logging.getLogger("Tally.Transactions")

router = APIRouter()


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    limit: int = Query(100, ge=1, le=5000),
    offset: int = Query(0, ge=0),
    category: Optional[str] = Query(None, description="Filter by category"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """Stored transactions, newest first."""
    try:
        rows, total = TransactionStore(db).query(
            start_date=start_date,
            end_date=end_date,
            category=category,
            offset=offset,
            limit=limit,
        )
    except StoreError as e:
        logger.error(f"Error fetching transactions: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch transactions")

    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in rows],
        total=total,
        has_more=(offset + limit) < total,
    )


@router.put("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: str,
    body: TransactionUpdate,
    db: Session = Depends(get_db),
):
    """Correct the clean merchant name and category of a transaction."""
    try:
        txn = TransactionStore(db).update(transaction_id, body.clean_merchant, body.category)
    except StoreError as e:
        logger.error(f"Error updating transaction: {e}")
        raise HTTPException(status_code=500, detail="Failed to update transaction")
    if txn is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionResponse.model_validate(txn)


@router.delete("/transactions/{transaction_id}")
def delete_transaction(transaction_id: str, db: Session = Depends(get_db)):
    try:
        deleted = TransactionStore(db).delete(transaction_id)
    except StoreError as e:
        logger.error(f"Error deleting transaction: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete transaction")
    if not deleted:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return {"success": True}


@router.delete("/transactions")
def delete_all_transactions(db: Session = Depends(get_db)):
    try:
        deleted = TransactionStore(db).delete_all()
    except StoreError as e:
        logger.error(f"Error deleting transactions: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete transactions")
    return {"success": True, "deleted": deleted}
