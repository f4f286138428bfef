"""End-to-end tests for process_statement: decode, parse, classify, store."""
import asyncio

import pytest

from conftest import make_pdf
from exceptions import DocumentDecodeError, EmptyDocumentError
from models import Transaction
from orchestrator import process_statement


class SpyClassifier:
    def __init__(self, inner=None):
        self.inner = inner
        self.calls = []

    def classify_many(self, raw_merchants):
        self.calls.append(list(raw_merchants))
        return self.inner.classify_many(raw_merchants)


def run(coro):
    return asyncio.run(coro)


def test_statement_is_parsed_classified_and_stored(db_session, seeded_classifier):
    content = make_pdf([
        [
            "Account# 4400 6630 1110 8217",
            "Purchases and Adjustments",
            "05/01 05/03 STARBUCKS STORE 1234 1234 1234 -5.25",
            "TOTAL PURCHASES 5.25",
        ]
    ])
    result = run(process_statement(content, 2025, db_session, seeded_classifier, pdf_source="may.pdf"))

    assert result.found
    assert result.pages_processed == 1
    assert result.parse_result.method == "layout"
    assert result.parse_result.account_identifier == "4400663011108217"

    (txn,) = result.transactions
    assert txn.raw_merchant == "STARBUCKS STORE 1234"
    assert txn.amount == 5.25
    assert txn.section == "purchases"
    assert txn.clean_merchant == "Starbucks"
    assert txn.category == "Coffee"
    assert txn.pdf_source == "may.pdf"
    assert db_session.query(Transaction).count() == 1


def test_fallback_statement_uses_min_line_length(db_session, seeded_classifier):
    content = make_pdf([["05/12 CVS 9.99", "05/14 TARGET 00012345 $45.10"]])

    result = run(process_statement(content, 2025, db_session, seeded_classifier))
    assert result.parse_result.method == "fallback"
    assert [t.clean_merchant for t in result.transactions] == ["CVS", "Target"]

    db_session.query(Transaction).delete()
    db_session.commit()

    result = run(process_statement(content, 2025, db_session, seeded_classifier, min_line_length=20))
    assert [t.clean_merchant for t in result.transactions] == ["Target"]


def test_nothing_found_stores_nothing(db_session, seeded_classifier):
    spy = SpyClassifier(seeded_classifier)
    content = make_pdf([["Thank you for banking with us", "New balance 05/31 $1,200.50"]])

    result = run(process_statement(content, 2025, db_session, spy))

    assert not result.found
    assert result.parse_result.diagnostics.pages_extracted == 1
    assert result.transactions == []
    assert spy.calls == []
    assert db_session.query(Transaction).count() == 0


@pytest.mark.parametrize(
    "content, error",
    [
        (b"", DocumentDecodeError),
        (b'{"Pages": []}', EmptyDocumentError),
    ],
)
def test_unusable_document_never_reaches_classifier(db_session, content, error):
    spy = SpyClassifier()
    with pytest.raises(error):
        run(process_statement(content, 2025, db_session, spy))
    assert spy.calls == []
