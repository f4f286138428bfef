"""
Generic fallback parser, used when the layout-aware parser finds nothing.

Each strategy is a pure function ``(line, statement_year) -> record | None``.
They are tried in a fixed order per line and the first hit wins:

1. positional_strict: the full grid row, whitespace-tolerant
2. simple_triple:     ``MM/DD [MM/DD] description [$]amount``
3. loose_scan:        first date token ... first amount token, anywhere
"""
from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from parsers.base import (
    AMOUNT_BODY,
    BaseStatementParser,
    ParsedStatementRecord,
    StatementParseResult,
    extract_account_identifier,
    match_column_row,
    normalize_whitespace,
    parse_amount,
    parse_date_token,
    section_for_amount,
)

logger = logging.getLogger("Tally.Parser.Fallback")

Strategy = Callable[[str, int], Optional[ParsedStatementRecord]]

DATE_TOKEN = r"\d{1,2}/\d{1,2}(?:/\d{2,4})?"
AMOUNT_TOKEN = rf"-?\$?{AMOUNT_BODY}"

SIMPLE_TRIPLE_RE = re.compile(
    rf"^({DATE_TOKEN})(?:\s+(\d{{1,2}}/\d{{1,2}}))?\s+(.+?)\s+({AMOUNT_TOKEN})$"
)
LOOSE_DATE_RE = re.compile(rf"(?<![\d/])({DATE_TOKEN})(?![\d/])")
LOOSE_AMOUNT_RE = re.compile(rf"(?<![\d,.])({AMOUNT_TOKEN})(?![\d])")

# Totals, balances, headers and pagination markers
NOISE_RE = re.compile(r"\b(?:total|balance|interest|fees?|page|continued)\b", re.IGNORECASE)

DEFAULT_MIN_LINE_LENGTH = 8


def _record(
    line: str,
    statement_year: int,
    date_token: str,
    description: str,
    amount_token: str,
    posting_token: Optional[str] = None,
    reference_number: Optional[str] = None,
    account_number: Optional[str] = None,
) -> Optional[ParsedStatementRecord]:
    description = description.strip()
    if not description:
        return None
    try:
        transaction_date = parse_date_token(date_token, statement_year)
        posting_date = parse_date_token(posting_token, statement_year) if posting_token else None
        signed = parse_amount(amount_token)
    except ValueError:
        return None
    if signed == 0:
        return None

    return ParsedStatementRecord(
        transaction_date=transaction_date,
        posting_date=posting_date,
        description=description,
        reference_number=reference_number,
        account_number=account_number,
        amount=abs(signed),
        section=section_for_amount(signed),
        raw_line=line,
    )


# ─── Strategies ───────────────────────────────────────────────────────────────

def positional_strict(line: str, statement_year: int) -> Optional[ParsedStatementRecord]:
    columns = match_column_row(line)
    if columns is None:
        return None
    return _record(
        line,
        statement_year,
        columns.transaction_date,
        columns.description,
        columns.amount,
        posting_token=columns.posting_date,
        reference_number=columns.reference_number,
        account_number=columns.account_number,
    )


def simple_triple(line: str, statement_year: int) -> Optional[ParsedStatementRecord]:
    match = SIMPLE_TRIPLE_RE.match(normalize_whitespace(line))
    if not match:
        return None
    date_token, posting_token, description, amount_token = match.groups()
    return _record(line, statement_year, date_token, description, amount_token, posting_token=posting_token)


def loose_scan(line: str, statement_year: int) -> Optional[ParsedStatementRecord]:
    date_match = LOOSE_DATE_RE.search(line)
    amount_match = LOOSE_AMOUNT_RE.search(line)
    if not date_match or not amount_match:
        return None
    if amount_match.start() < date_match.end():
        return None

    description = normalize_whitespace(line[date_match.end():amount_match.start()])
    # Too short to be a merchant, usually a line that merely mentions a date and a number
    if len(description) <= 2:
        return None
    return _record(line, statement_year, date_match.group(1), description, amount_match.group(1))


FALLBACK_STRATEGIES: Tuple[Strategy, ...] = (positional_strict, simple_triple, loose_scan)


# ─── Parser ───────────────────────────────────────────────────────────────────

def is_noise(line: str, min_length: int = DEFAULT_MIN_LINE_LENGTH) -> bool:
    return len(line) < min_length or bool(NOISE_RE.search(line))


class FallbackStatementParser(BaseStatementParser):
    name = "fallback"

    def __init__(
        self,
        strategies: Sequence[Strategy] = FALLBACK_STRATEGIES,
        min_line_length: int = DEFAULT_MIN_LINE_LENGTH,
    ):
        self.strategies = tuple(strategies)
        self.min_line_length = min_line_length

    def parse_line(self, line: str, statement_year: int) -> Optional[ParsedStatementRecord]:
        line = line.strip()
        if is_noise(line, self.min_line_length):
            return None
        for strategy in self.strategies:
            record = strategy(line, statement_year)
            if record is not None:
                logger.debug(f"{strategy.__name__}: {record.description} - ${record.amount:.2f}")
                return record
        return None

    def parse(self, lines: Sequence[str], statement_year: int) -> StatementParseResult:
        records: List[ParsedStatementRecord] = []
        for line in lines:
            record = self.parse_line(line, statement_year)
            if record is not None:
                records.append(record)

        logger.info(f"Fallback parser found {len(records)} transaction(s)")
        return StatementParseResult(
            records=tuple(records),
            account_identifier=extract_account_identifier(lines),
            method=self.name,
        )
