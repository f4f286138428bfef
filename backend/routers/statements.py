import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from exceptions import DocumentDecodeError, EmptyDocumentError, StoreError
from orchestrator import process_statement
from schemas import TransactionResponse, UploadDebug, UploadResponse
from services.merchant_classifier import MerchantClassifier, get_classifier

logger = logging.getLogger("Tally.Statements")

router = APIRouter()

ACCEPTED_CONTENT_TYPES = {"application/pdf", "application/json"}


@router.post("/upload-pdf", response_model=UploadResponse)
async def upload_statement(
    pdf: UploadFile = File(...),
    statement_year: Optional[int] = Query(None, ge=1970, le=2100),
    db: Session = Depends(get_db),
    classifier: MerchantClassifier = Depends(get_classifier),
):
    """Extract, classify and store the transactions of one statement."""
    filename = pdf.filename or "statement.pdf"
    is_pdf_name = filename.lower().endswith(".pdf")
    if pdf.content_type not in ACCEPTED_CONTENT_TYPES and not is_pdf_name:
        raise HTTPException(status_code=400, detail="File must be a PDF")

    content = await pdf.read()
    if len(content) > settings.MAX_FILE_SIZE_MB * 1024 * 1024:
        raise HTTPException(
            status_code=400,
            detail=f"File {filename} exceeds {settings.MAX_FILE_SIZE_MB}MB limit",
        )

    year = statement_year or settings.DEFAULT_STATEMENT_YEAR
    logger.info(f"Processing file: {filename}, size: {len(content)} bytes, year: {year}")

    try:
        result = await process_statement(
            content,
            statement_year=year,
            db=db,
            classifier=classifier,
            pdf_source=filename,
        )
    except (DocumentDecodeError, EmptyDocumentError) as e:
        raise HTTPException(status_code=400, detail=f"Failed to process PDF: {e}")
    except StoreError as e:
        logger.error(f"Database error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save transactions to database: {e}")

    if not result.found:
        diagnostics = result.parse_result.diagnostics
        return JSONResponse(
            status_code=422,
            content={
                "error": "No transactions found in PDF. This might be a different format than expected.",
                "debug": diagnostics.to_dict() if diagnostics else {"pages_extracted": result.pages_processed},
            },
        )

    stored = [TransactionResponse.model_validate(t) for t in result.transactions]
    return UploadResponse(
        transaction_count=len(stored),
        message=f"Successfully processed {len(stored)} transactions from {filename}",
        transactions=stored,
        debug=UploadDebug(
            pages_processed=result.pages_processed,
            parsing_method=result.parse_result.method,
            account_identifier=result.parse_result.account_identifier,
            sample_transactions=[t.model_dump(mode="json") for t in stored[:3]],
        ),
    )
