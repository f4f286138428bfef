"""Statement parsing entry point: layout-aware first, generic fallback second."""
from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from parsers.base import AMOUNT_BODY, ParseDiagnostics, StatementParseResult
from parsers.fallback import FallbackStatementParser
from parsers.layout import LayoutStatementParser
from parsers.reflow import PageLines, flatten_lines

logger = logging.getLogger("Tally.Parser")

DATE_CANDIDATE_RE = re.compile(r"\d{1,2}/\d{1,2}")
AMOUNT_CANDIDATE_RE = re.compile(AMOUNT_BODY)

PAGE_SAMPLE_CHARS = 300
SAMPLE_LINE_COUNT = 20


def build_diagnostics(pages: Sequence[PageLines]) -> ParseDiagnostics:
    """Summarise what the document looked like, for "nothing found" reports."""
    full_text = "\n".join(page.text for page in pages)
    page_stats = tuple(
        {
            "page_number": page.page_number,
            "length": len(page.text),
            "lines": len(page.lines),
            "sample": page.text[:PAGE_SAMPLE_CHARS],
        }
        for page in pages
    )
    return ParseDiagnostics(
        pages_extracted=len(pages),
        total_text_length=sum(len(page.text) for page in pages),
        page_stats=page_stats,
        date_candidates=len(DATE_CANDIDATE_RE.findall(full_text)),
        amount_candidates=len(AMOUNT_CANDIDATE_RE.findall(full_text)),
        dollar_signs=full_text.count("$"),
        sample_lines=tuple(flatten_lines(pages)[:SAMPLE_LINE_COUNT]),
    )


def parse_statement(
    pages: Sequence[PageLines],
    statement_year: int,
    layout_parser: Optional[LayoutStatementParser] = None,
    fallback_parser: Optional[FallbackStatementParser] = None,
) -> StatementParseResult:
    """Run the layout-aware parser, falling back to the generic one on zero rows.

    Layout-aware results always win when there are any. When both parsers
    come back empty the result has ``method == "none"`` and carries
    diagnostics instead of raising.
    """
    layout_parser = layout_parser or LayoutStatementParser()
    fallback_parser = fallback_parser or FallbackStatementParser()
    lines = flatten_lines(pages)
    logger.info(f"Parsing {len(lines)} line(s) from {len(pages)} page(s)")

    result = layout_parser.parse(lines, statement_year)
    if result.found:
        return result

    logger.info("Layout parser found nothing, trying fallback strategies")
    result = fallback_parser.parse(lines, statement_year)
    if result.found:
        return result

    diagnostics = build_diagnostics(pages)
    logger.warning(
        f"No transactions found ({diagnostics.date_candidates} date-like and "
        f"{diagnostics.amount_candidates} amount-like tokens in {diagnostics.pages_extracted} page(s))"
    )
    return StatementParseResult(
        records=(),
        account_identifier=result.account_identifier,
        method="none",
        diagnostics=diagnostics,
    )
