"""
Layout-aware statement parser for card statements with a fixed column grid:

    Transaction  Posting  Description            Reference  Account  Amount
    05/01        05/03    STARBUCKS STORE 1234   1234       1234     -5.25

Rows are only read inside a "Payments and Other Credits" or "Purchases and
Adjustments" section. Totals, interest and fee lines close the section until
the next header shows up.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from models import StatementSection
from parsers.base import (
    BaseStatementParser,
    ParsedStatementRecord,
    StatementParseResult,
    extract_account_identifier,
    match_column_row,
    parse_amount,
    parse_date_token,
)

logger = logging.getLogger("Tally.Parser.Layout")

SECTION_HEADERS = (
    (re.compile(r"Payments\s+and\s+Other\s+Credits", re.IGNORECASE), StatementSection.PAYMENTS),
    (re.compile(r"Purchases\s+and\s+Adjustments", re.IGNORECASE), StatementSection.PURCHASES),
)
TOTAL_PAYMENTS_RE = re.compile(r"TOTAL\s+PAYMENTS", re.IGNORECASE)
SECTION_END_RE = re.compile(
    r"TOTAL\s+(?:PAYMENTS|PURCHASES)|Interest\s+Charged|Fees\s+Charged",
    re.IGNORECASE,
)
COLUMN_HEADER_RE = re.compile(r"Transaction.*Date.*Description", re.IGNORECASE)
CONTINUED_RE = re.compile(r"continued\s+on\s+next\s+page", re.IGNORECASE)


def parse_row(line: str, statement_year: int, section: Optional[StatementSection]) -> Optional[ParsedStatementRecord]:
    """Read one grid row; ``None`` when the line is not a transaction."""
    columns = match_column_row(line)
    if columns is None:
        return None
    try:
        transaction_date = parse_date_token(columns.transaction_date, statement_year)
        posting_date = parse_date_token(columns.posting_date, statement_year)
    except ValueError:
        logger.debug(f"Impossible date on row: {line!r}")
        return None

    return ParsedStatementRecord(
        transaction_date=transaction_date,
        posting_date=posting_date,
        description=columns.description,
        reference_number=columns.reference_number,
        account_number=columns.account_number,
        amount=abs(parse_amount(columns.amount)),
        section=section,
        raw_line=line,
    )


def detect_section_header(line: str) -> Optional[StatementSection]:
    for pattern, section in SECTION_HEADERS:
        if pattern.search(line):
            return section
    return None


class LayoutStatementParser(BaseStatementParser):
    name = "layout"

    def parse(self, lines: Sequence[str], statement_year: int) -> StatementParseResult:
        records: List[ParsedStatementRecord] = []
        section: Optional[StatementSection] = None
        consuming = False

        for raw in lines:
            line = raw.strip()
            if not line:
                continue

            # "TOTAL PURCHASES AND ADJUSTMENTS" also contains a header phrase
            if SECTION_END_RE.search(line):
                if TOTAL_PAYMENTS_RE.search(line):
                    section = None
                consuming = False
                continue

            header = detect_section_header(line)
            if header is not None:
                section = header
                consuming = True
                logger.debug(f"Entering {section.value} section")
                continue

            if not consuming or section is None:
                continue
            if COLUMN_HEADER_RE.search(line) or CONTINUED_RE.search(line):
                continue

            record = parse_row(line, statement_year, section)
            if record is not None:
                records.append(record)

        logger.info(f"Layout parser found {len(records)} transaction(s)")
        return StatementParseResult(
            records=tuple(records),
            account_identifier=extract_account_identifier(lines),
            method=self.name,
        )
