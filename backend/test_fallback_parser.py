"""Tests for the generic fallback statement parser and its strategies."""
from datetime import date

import pytest

from models import StatementSection
from parsers.fallback import (
    FALLBACK_STRATEGIES,
    FallbackStatementParser,
    is_noise,
    loose_scan,
    positional_strict,
    simple_triple,
)

YEAR = 2025


@pytest.fixture
def parser():
    return FallbackStatementParser()


def test_strategies_are_tried_in_fixed_order():
    assert FALLBACK_STRATEGIES == (positional_strict, simple_triple, loose_scan)


def test_positional_strict_wins_over_looser_strategies(parser):
    line = "05/01   05/03 STARBUCKS STORE 1234   1234 1234 -5.25"
    record = parser.parse_line(line, YEAR)

    assert record.description == "STARBUCKS STORE 1234"
    assert record.reference_number == "1234"
    assert record.account_number == "1234"
    assert record.posting_date == date(2025, 5, 3)
    assert record.amount == 5.25


def test_loose_scan_alone_reads_the_same_line_differently():
    line = "05/01 05/03 STARBUCKS STORE 1234 1234 1234 -5.25"
    record = FallbackStatementParser(strategies=(loose_scan,)).parse_line(line, YEAR)

    assert record.description == "05/03 STARBUCKS STORE 1234 1234 1234"
    assert record.reference_number is None


def test_simple_triple_with_currency_sign(parser):
    record = parser.parse_line("05/12 WHOLE FOODS MARKET $84.17", YEAR)

    assert record.transaction_date == date(2025, 5, 12)
    assert record.posting_date is None
    assert record.description == "WHOLE FOODS MARKET"
    assert record.amount == 84.17
    assert record.section is StatementSection.PURCHASES


def test_simple_triple_with_posting_date(parser):
    record = parser.parse_line("05/12 05/13 WHOLE FOODS $1,084.17", YEAR)
    assert record.posting_date == date(2025, 5, 13)
    assert record.description == "WHOLE FOODS"
    assert record.amount == 1084.17


def test_negative_amount_is_a_payment(parser):
    record = parser.parse_line("05/12/24 ONLINE PAYMENT THANK YOU -$400.00", YEAR)

    assert record.transaction_date == date(2024, 5, 12)
    assert record.amount == 400.00
    assert record.section is StatementSection.PAYMENTS


def test_loose_scan_finds_date_and_amount_mid_line(parser):
    record = parser.parse_line("Ref 88 on 06/02 paid LOCAL HARDWARE 23.10 thanks", YEAR)

    assert record.transaction_date == date(2025, 6, 2)
    assert record.description == "paid LOCAL HARDWARE"
    assert record.amount == 23.10


def test_loose_scan_requires_description_longer_than_two_characters():
    assert loose_scan("06/02 ab 23.10 x", YEAR) is None
    assert loose_scan("06/02 abc 23.10 x", YEAR).description == "abc"


def test_loose_scan_requires_date_before_amount():
    assert loose_scan("23.10 paid on 06/02 okay", YEAR) is None


@pytest.mark.parametrize(
    "line",
    [
        "TOTAL PURCHASES 05/31 1,068.75",
        "05/31 NEW BALANCE 2,410.00",
        "05/31 INTEREST CHARGE ON PURCHASES 3.10",
        "05/31 LATE FEE 25.00",
        "Page 2 of 4",
        "Continued on next page 05/31 1.00",
        "5/1 1.0",
    ],
)
def test_noise_lines_are_skipped(parser, line):
    assert is_noise(line)
    assert parser.parse_line(line, YEAR) is None


def test_noise_keywords_match_whole_words_only():
    assert not is_noise("05/14 PAGEANT FLOWERS 42.00")
    assert not is_noise("05/14 FEESTA TACOS 12.00")


def test_minimum_line_length_is_configurable():
    line = "05/12 CVS 9.99"
    assert FallbackStatementParser().parse_line(line, YEAR).description == "CVS"
    assert FallbackStatementParser(min_line_length=20).parse_line(line, YEAR) is None


def test_zero_amounts_are_not_transactions(parser):
    assert parser.parse_line("05/12 ADJUSTMENT 0.00", YEAR) is None


def test_impossible_dates_are_skipped(parser):
    assert parser.parse_line("13/45 SOMETHING ODD 5.00", YEAR) is None


def test_month_day_dates_take_the_statement_year(parser):
    record = parser.parse_line("12/31 NEW YEAR PARTY SUPPLY 50.00", 2024)
    assert record.transaction_date == date(2024, 12, 31)


def test_parse_collects_every_matching_line(parser):
    lines = [
        "Account# 4400 6630 1110 8217",
        "05/12 WHOLE FOODS MARKET $84.17",
        "Statement closing summary",
        "05/14 SHELL OIL 57442 $40.00",
        "NEW BALANCE 124.17",
    ]
    result = parser.parse(lines, YEAR)

    assert result.method == "fallback"
    assert result.account_identifier == "4400663011108217"
    assert [r.description for r in result.records] == ["WHOLE FOODS MARKET", "SHELL OIL 57442"]


def test_parse_with_no_matches_is_empty_not_an_error(parser):
    result = parser.parse(["Thank you for banking with us", "Questions? Call us"], YEAR)
    assert result.records == ()
    assert not result.found
