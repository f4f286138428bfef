"""Document source: turns uploaded bytes into positioned text fragments per page."""
import io
import json
import logging
import math
from typing import List, Optional
from urllib.parse import quote

import fitz  # PyMuPDF
import pdfplumber

from config import settings
from exceptions import DocumentDecodeError, EmptyDocumentError
from parsers.reflow import PageLines, RawTextFragment, reflow_document

logger = logging.getLogger("Tally.PDF")

PageFragments = List[RawTextFragment]


def _word_fragment(x: float, y: float, word: str) -> RawTextFragment:
    # Runs travel percent-encoded, the same as in pdf2json dumps. The trailing
    # space keeps neighbouring words apart once a line is stitched together.
    return RawTextFragment(x=float(x), y=float(y), runs=(quote(word + " ", safe=""),))


def extract_fragments_with_pymupdf(content: bytes) -> List[PageFragments]:
    """One fragment per word, positioned by its bottom edge (PDF points)."""
    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except Exception as e:
        raise DocumentDecodeError(f"PDF parsing failed: {e}") from e

    pages = []
    try:
        for page in doc:
            fragments = [
                _word_fragment(x0, y1, word)
                for x0, y0, x1, y1, word, *_ in page.get_text("words")
            ]
            pages.append(fragments)
    finally:
        doc.close()
    return pages


def extract_fragments_with_pdfplumber(content: bytes) -> List[PageFragments]:
    """Same contract as the PyMuPDF variant, via pdfplumber's word extraction."""
    try:
        pdf = pdfplumber.open(io.BytesIO(content))
    except Exception as e:
        raise DocumentDecodeError(f"PDF parsing failed: {e}") from e

    pages = []
    with pdf:
        for page in pdf.pages:
            words = page.extract_words() or []
            pages.append([_word_fragment(w["x0"], w["bottom"], w["text"]) for w in words])
    return pages


def _coordinate(text: dict, key: str) -> float:
    value = text.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise DocumentDecodeError(f"Invalid {key} position in pdf2json text: {value!r}")
    try:
        position = float(value)
    except ValueError as e:
        raise DocumentDecodeError(f"Invalid {key} position in pdf2json text: {value!r}") from e
    if not math.isfinite(position):
        raise DocumentDecodeError(f"Invalid {key} position in pdf2json text: {value!r}")
    return position


def _text_runs(text: dict) -> tuple:
    """String ``T`` payloads of a text element; malformed runs are skipped."""
    raw_runs = text.get("R")
    if not isinstance(raw_runs, list):
        return ()
    runs = []
    for run in raw_runs:
        payload = run.get("T") if isinstance(run, dict) else None
        if isinstance(payload, str) and payload:
            runs.append(payload)
        elif payload is not None or not isinstance(run, dict):
            logger.debug(f"Skipping malformed text run {run!r}")
    return tuple(runs)


def fragments_from_pdf2json(data: dict) -> List[PageFragments]:
    """Read a pdf2json-style dump: ``{"Pages": [{"Texts": [{"x", "y", "R": [{"T"}]}]}]}``.

    Raises:
        EmptyDocumentError: there is no ``Pages`` list.
        DocumentDecodeError: a text element is not an object or has a
            non-numeric position.
    """
    raw_pages = data.get("Pages") if isinstance(data, dict) else None
    if not isinstance(raw_pages, list):
        raise EmptyDocumentError("No pages found in document")

    pages = []
    for page_number, page in enumerate(raw_pages, start=1):
        texts = page.get("Texts") if isinstance(page, dict) else None
        fragments = []
        for text in texts if isinstance(texts, list) else []:
            if not isinstance(text, dict):
                raise DocumentDecodeError(f"Malformed text element on page {page_number}: {text!r}")
            fragments.append(RawTextFragment(
                x=_coordinate(text, "x"),
                y=_coordinate(text, "y"),
                runs=_text_runs(text),
            ))
        pages.append(fragments)
    return pages


def load_pdf2json(content: bytes) -> List[PageFragments]:
    try:
        data = json.loads(content)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DocumentDecodeError(f"Invalid pdf2json document: {e}") from e
    return fragments_from_pdf2json(data)


def extract_page_lines(content: bytes, backend: Optional[str] = None) -> List[PageLines]:
    """Decode ``content`` and reflow it into lines per page.

    PDF bytes go through the configured backend; a JSON body is read as a
    pdf2json dump.

    Raises:
        DocumentDecodeError: the bytes are not a readable document.
        EmptyDocumentError: the document has no pages.
    """
    if not content:
        raise DocumentDecodeError("Empty upload")

    if content.lstrip()[:1] in (b"{", b"["):
        pages = load_pdf2json(content)
        threshold = settings.REFLOW_Y_THRESHOLD
    else:
        backend = (backend or settings.PDF_BACKEND).lower()
        if backend == "pdfplumber":
            pages = extract_fragments_with_pdfplumber(content)
        elif backend == "pymupdf":
            pages = extract_fragments_with_pymupdf(content)
        else:
            raise ValueError(f"Unknown PDF backend: {backend}")
        threshold = settings.PDF_Y_THRESHOLD

    logger.info(f"Found {len(pages)} page(s) to process")
    page_lines = reflow_document(pages, threshold=threshold)
    for page in page_lines:
        logger.debug(f"Page {page.page_number} sample: {page.text[:200]!r}")
    return page_lines
