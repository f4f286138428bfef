"""Shared record types, column grammar and base interface for statement parsers."""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional, Sequence, Tuple

from models import StatementSection

# ─── Token patterns ───────────────────────────────────────────────────────────

# 1,234.56 / 1234.56 / 5.25, always two decimal places
AMOUNT_BODY = r"(?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2}"

ROW_START_RE = re.compile(r"^\d{2}/\d{2}")
AMOUNT_TAIL_RE = re.compile(rf"(?:^|\s)(-?{AMOUNT_BODY})$")
FOUR_DIGIT_TAIL_RE = re.compile(r"(?:^|\s)(\d{4})$")
DATES_AND_DESC_RE = re.compile(r"^(\d{2}/\d{2})\s+(\d{2}/\d{2})\s+(.+)$")

# "Account# 4400 6630 1110 8217"
ACCOUNT_RE = re.compile(r"Account[#\s]+(\d{4}\s*\d{4}\s*\d{4}\s*\d{4})", re.IGNORECASE)

WHITESPACE_RE = re.compile(r"\s+")


# ─── Records ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ParsedStatementRecord:
    """One transaction row recovered from statement text."""

    transaction_date: date
    description: str
    amount: float
    posting_date: Optional[date] = None
    reference_number: Optional[str] = None
    account_number: Optional[str] = None
    section: Optional[StatementSection] = None
    raw_line: str = ""


@dataclass(frozen=True)
class ParseDiagnostics:
    """Context explaining why a document produced no transactions."""

    pages_extracted: int
    total_text_length: int
    page_stats: Tuple[Dict, ...] = ()
    date_candidates: int = 0
    amount_candidates: int = 0
    dollar_signs: int = 0
    sample_lines: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "pages_extracted": self.pages_extracted,
            "total_text_length": self.total_text_length,
            "page_stats": list(self.page_stats),
            "search_patterns": {
                "date_patterns": self.date_candidates,
                "amount_patterns": self.amount_candidates,
                "dollar_signs": self.dollar_signs,
            },
            "sample_lines": list(self.sample_lines),
        }


@dataclass(frozen=True)
class StatementParseResult:
    records: Tuple[ParsedStatementRecord, ...] = ()
    account_identifier: Optional[str] = None
    method: str = "none"
    diagnostics: Optional[ParseDiagnostics] = None

    @property
    def found(self) -> bool:
        return bool(self.records)


@dataclass(frozen=True)
class ColumnMatch:
    """Raw string groups of a ``MM/DD MM/DD desc ref acct amount`` row."""

    transaction_date: str
    posting_date: str
    description: str
    reference_number: str
    account_number: str
    amount: str


# ─── Helpers ──────────────────────────────────────────────────────────────────

def normalize_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text).strip()


def parse_amount(token: str) -> float:
    """Parse ``-$1,234.56``-style tokens into a signed float."""
    cleaned = token.replace("$", "").replace(",", "").strip()
    return round(float(cleaned), 2)


def parse_date_token(token: str, statement_year: int) -> date:
    """Turn ``MM/DD`` or ``MM/DD/YY[YY]`` into a date.

    ``MM/DD`` takes ``statement_year``. Two-digit years below 50 are read as
    20xx, the rest as 19xx. Raises ``ValueError`` for impossible dates.
    """
    parts = token.split("/")
    if len(parts) == 2:
        year = statement_year
    elif len(parts) == 3:
        year = int(parts[2])
        if year < 50:
            year += 2000
        elif year < 100:
            year += 1900
    else:
        raise ValueError(f"Not a date token: {token!r}")
    return date(year, int(parts[0]), int(parts[1]))


def match_column_row(line: str) -> Optional[ColumnMatch]:
    """Peel amount, account tail and reference number off the end of ``line``.

    Returns ``None`` as soon as any step fails; the line is then not a
    transaction row.
    """
    line = normalize_whitespace(line)
    if not ROW_START_RE.match(line):
        return None

    amount_match = AMOUNT_TAIL_RE.search(line)
    if not amount_match:
        return None
    before_amount = line[:amount_match.start(1)].strip()

    acct_match = FOUR_DIGIT_TAIL_RE.search(before_amount)
    if not acct_match:
        return None
    before_acct = before_amount[:acct_match.start(1)].strip()

    ref_match = FOUR_DIGIT_TAIL_RE.search(before_acct)
    if not ref_match:
        return None
    before_ref = before_acct[:ref_match.start(1)].strip()

    dates_match = DATES_AND_DESC_RE.match(before_ref)
    if not dates_match:
        return None

    tx_date, post_date, description = dates_match.groups()
    description = description.strip()
    if not description:
        return None

    return ColumnMatch(
        transaction_date=tx_date,
        posting_date=post_date,
        description=description,
        reference_number=ref_match.group(1),
        account_number=acct_match.group(1),
        amount=amount_match.group(1),
    )


def section_for_amount(amount: float) -> StatementSection:
    """Without section headers, a credit shows up as a negative amount."""
    return StatementSection.PAYMENTS if amount < 0 else StatementSection.PURCHASES


def extract_account_identifier(lines: Sequence[str]) -> Optional[str]:
    match = ACCOUNT_RE.search("\n".join(lines))
    if match:
        return WHITESPACE_RE.sub("", match.group(1))
    return None


# ─── Parser interface ─────────────────────────────────────────────────────────

class BaseStatementParser(ABC):
    """All statement parsers must implement the parse method."""

    name: str = "base"

    @abstractmethod
    def parse(self, lines: Sequence[str], statement_year: int) -> StatementParseResult:
        """
        Extract transaction records from a document's ordered lines.

        Args:
            lines: every line of the document, pages concatenated in order
            statement_year: year assigned to dates printed as MM/DD

        Returns:
            StatementParseResult; an empty ``records`` tuple is a normal
            outcome, never an exception.
        """
        pass
