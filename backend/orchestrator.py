import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from config import settings
from models import Transaction
from parsers.base import ParsedStatementRecord, StatementParseResult
from parsers.fallback import FallbackStatementParser
from parsers.statement import parse_statement
from services.merchant_classifier import ClassificationResult, MerchantClassifier
from services.pdf_processor import extract_page_lines
from services.transaction_store import TransactionStore

logger = logging.getLogger("Tally.Pipeline")


@dataclass
class ProcessingResult:
    """Outcome of one document run through the pipeline."""

    parse_result: StatementParseResult
    pages_processed: int
    classified: List[ClassificationResult] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.parse_result.found


def classify_records(
    records: List[ParsedStatementRecord], classifier: MerchantClassifier
) -> List[ClassificationResult]:
    return classifier.classify_many([record.description for record in records])


async def process_statement(
    content: bytes,
    statement_year: int,
    db: Session,
    classifier: MerchantClassifier,
    pdf_source: Optional[str] = None,
    min_line_length: Optional[int] = None,
) -> ProcessingResult:
    """Decode, parse, classify and store one statement.

    Decoding runs in the default executor; everything after it is
    synchronous and sequential for this document.

    Raises:
        DocumentDecodeError / EmptyDocumentError: the document is unusable,
            nothing is parsed or classified.
        StoreError: saving the transactions failed.
    """
    start = time.time()
    logger.info(f"📄 Processing {pdf_source or 'document'} ({len(content)} bytes)")

    loop = asyncio.get_running_loop()
    pages = await loop.run_in_executor(None, lambda: extract_page_lines(content))
    logger.info(f"  Extracted {len(pages)} page(s)")

    fallback_parser = FallbackStatementParser(min_line_length=min_line_length or settings.FALLBACK_MIN_LINE_LENGTH)
    parse_result = parse_statement(pages, statement_year, fallback_parser=fallback_parser)
    result = ProcessingResult(parse_result=parse_result, pages_processed=len(pages))
    if not parse_result.found:
        logger.warning(f"  ❌ No transactions found in {pdf_source or 'document'}")
        return result

    records = list(parse_result.records)
    result.classified = classify_records(records, classifier)
    result.transactions = TransactionStore(db).insert_many(zip(records, result.classified), pdf_source=pdf_source)

    logger.info(
        f"  ✅ {len(result.transactions)} transactions via {parse_result.method} parser "
        f"in {time.time() - start:.2f}s"
    )
    return result
