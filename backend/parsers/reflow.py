"""
Text reflow: rebuilds reading-order lines from positioned text fragments.

A page arrives as an unordered bag of fragments, each carrying an (x, y)
position and one or more percent-encoded text runs. Fragments whose vertical
positions sit within ``threshold`` of the previous fragment belong to the same
physical line; within a line, text is read left to right.

Known limitation: two runs at nearly the same height that straddle the
threshold can land on different lines, which occasionally scrambles dense
tables.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple
from urllib.parse import unquote

from exceptions import EmptyDocumentError

logger = logging.getLogger("Tally.Reflow")

DEFAULT_Y_THRESHOLD = 0.5


@dataclass(frozen=True)
class RawTextFragment:
    """One positioned piece of page text."""

    x: float
    y: float
    runs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PageLines:
    """Reflowed lines of a single page, top to bottom."""

    page_number: int
    lines: Tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def decode_run(payload: str) -> str:
    """Percent-decode a text run, falling back to the raw payload."""
    try:
        return unquote(payload, errors="strict")
    except (UnicodeDecodeError, TypeError):
        logger.debug(f"Failed to decode text run {payload!r}, using raw text")
        return str(payload)


def _line_text(row: List[RawTextFragment]) -> str:
    parts = []
    for fragment in sorted(row, key=lambda f: f.x):
        parts.extend(decode_run(run) for run in fragment.runs if run)
    return "".join(parts).strip()


def group_lines(fragments: Iterable[RawTextFragment], threshold: float = DEFAULT_Y_THRESHOLD) -> List[str]:
    """Cluster fragments into lines by vertical proximity.

    A new line starts whenever a fragment sits more than ``threshold`` below
    the previous one. Lines that are empty after trimming are dropped.
    """
    ordered = sorted(fragments, key=lambda f: (f.y, f.x))

    lines: List[str] = []
    row: List[RawTextFragment] = []
    last_y = None
    for fragment in ordered:
        if last_y is not None and abs(fragment.y - last_y) > threshold:
            text = _line_text(row)
            if text:
                lines.append(text)
            row = []
        row.append(fragment)
        last_y = fragment.y

    text = _line_text(row)
    if text:
        lines.append(text)
    return lines


def reflow_page(fragments: Sequence[RawTextFragment], threshold: float = DEFAULT_Y_THRESHOLD) -> str:
    """Return the page as newline-delimited text ('' for an empty page)."""
    return "\n".join(group_lines(fragments, threshold))


def reflow_document(
    pages: Sequence[Sequence[RawTextFragment]],
    threshold: float = DEFAULT_Y_THRESHOLD,
) -> List[PageLines]:
    """Reflow every page of a document.

    Raises:
        EmptyDocumentError: the document has no pages at all.
    """
    if not pages:
        raise EmptyDocumentError("No pages found in document")

    logger.info(f"Reflowing {len(pages)} page(s)")
    result = []
    for index, fragments in enumerate(pages, start=1):
        if not fragments:
            logger.debug(f"Page {index} has no text elements")
        lines = tuple(group_lines(fragments, threshold))
        logger.debug(f"Page {index}: {len(fragments)} fragments -> {len(lines)} lines")
        result.append(PageLines(page_number=index, lines=lines))
    return result


def flatten_lines(pages: Sequence[PageLines]) -> List[str]:
    """All lines of a document, pages concatenated in order."""
    return [line for page in pages for line in page.lines]
