"""Tests for turning uploaded bytes into reflowed page lines."""
import json

import pytest

from conftest import make_pdf
from exceptions import DocumentDecodeError, EmptyDocumentError
from services.pdf_processor import extract_page_lines, fragments_from_pdf2json

STATEMENT_PAGES = [
    ["Purchases and Adjustments", "05/01 05/03 STARBUCKS STORE 1234 1234 1234 -5.25"],
    ["05/12 WHOLE FOODS MARKET $84.17"],
]


@pytest.mark.parametrize("backend", ["pymupdf", "pdfplumber"])
def test_pdf_words_are_reflowed_into_lines(backend):
    pages = extract_page_lines(make_pdf(STATEMENT_PAGES), backend=backend)

    assert [p.page_number for p in pages] == [1, 2]
    assert list(pages[0].lines) == STATEMENT_PAGES[0]
    assert list(pages[1].lines) == STATEMENT_PAGES[1]


def test_blank_pages_are_kept():
    pages = extract_page_lines(make_pdf([[], ["05/12 WHOLE FOODS MARKET $84.17"]]))
    assert len(pages) == 2
    assert pages[0].lines == ()


def test_empty_upload_is_rejected():
    with pytest.raises(DocumentDecodeError):
        extract_page_lines(b"")


def test_garbage_bytes_are_rejected():
    with pytest.raises((DocumentDecodeError, EmptyDocumentError)):
        extract_page_lines(b"%PDF-1.4 this is not really a pdf", backend="pymupdf")


def test_unknown_backend():
    with pytest.raises(ValueError):
        extract_page_lines(make_pdf([["hello"]]), backend="tesseract")


def test_pdf2json_dump_is_accepted():
    dump = {
        "Pages": [
            {
                "Texts": [
                    {"x": 10.0, "y": 4.2, "R": [{"T": "STARBUCKS%20STORE"}]},
                    {"x": 2.0, "y": 4.0, "R": [{"T": "05%2F01%20"}, {"T": "05%2F03%20"}]},
                    {"x": 2.0, "y": 5.1, "R": [{"T": "TOTAL%20PURCHASES"}]},
                ]
            }
        ]
    }
    pages = extract_page_lines(json.dumps(dump).encode())
    assert pages[0].lines == ("05/01 05/03 STARBUCKS STORE", "TOTAL PURCHASES")


def test_pdf2json_without_pages():
    with pytest.raises(EmptyDocumentError):
        extract_page_lines(b'{"Pages": []}')
    with pytest.raises(EmptyDocumentError):
        extract_page_lines(b'{"Meta": {"Title": "statement"}}')


def test_pdf2json_invalid_json():
    with pytest.raises(DocumentDecodeError):
        extract_page_lines(b'{"Pages": [')


def test_pdf2json_tolerates_missing_runs():
    pages = fragments_from_pdf2json({"Pages": [{"Texts": [{"x": 1, "y": 1}, {"x": 2, "y": 1, "R": [{"T": "ok"}]}]}, {}]})
    assert [len(p) for p in pages] == [2, 0]
    assert pages[0][0].runs == ()


def test_pdf2json_skips_malformed_runs_but_keeps_the_page():
    dump = {
        "Pages": [
            {
                "Texts": [
                    {"x": 1, "y": 1, "R": [{"T": 5}, {"T": "05%2F12%20CVS"}]},
                    {"x": "3.5", "y": 1, "R": ["oops", {"T": None}, {"T": "%209.99"}]},
                ]
            }
        ]
    }
    pages = extract_page_lines(json.dumps(dump).encode())
    assert pages[0].lines == ("05/12 CVS 9.99",)


@pytest.mark.parametrize(
    "text",
    [
        "oops",
        ["05%2F12"],
        {"x": "left", "y": 1, "R": [{"T": "CVS"}]},
        {"x": 1, "y": None, "R": [{"T": "CVS"}]},
        {"x": True, "y": 1, "R": [{"T": "CVS"}]},
        {"x": 1, "y": "nan", "R": [{"T": "CVS"}]},
    ],
)
def test_pdf2json_malformed_text_element_is_a_decode_error(text):
    with pytest.raises(DocumentDecodeError):
        extract_page_lines(json.dumps({"Pages": [{"Texts": [text]}]}).encode())
