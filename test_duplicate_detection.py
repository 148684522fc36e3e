from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from app.services.duplicate_detection import (
    SAME_BASE_AMOUNT_DIFFERENT_CURRENCY,
    SAME_DATE_AMOUNT_CURRENCY,
    SAME_DATE_CATEGORY_SIMILAR_AMOUNT,
    SAME_DESCRIPTION_AND_AMOUNT,
    detect_duplicates,
)


@dataclass
class Line:
    id: int
    expense_date: date
    amount: Decimal
    currency: str
    category: str = "food"
    description: str = ""
    amount_in_base: Decimal = Decimal("0")


def test_identical_date_amount_currency():
    lines = [
        Line(1, date(2026, 3, 1), Decimal("100"), "USD", "food", "lunch"),
        Line(2, date(2026, 3, 1), Decimal("100"), "USD", "transportation", "taxi"),
    ]
    groups = detect_duplicates(lines)
    assert len(groups) == 1
    assert groups[0].expense_ids == [1, 2]
    assert "date, amount, currency" in groups[0].reason


def test_unrelated_expenses():
    lines = [
        Line(1, date(2026, 3, 1), Decimal("100"), "USD", "food", "lunch"),
        Line(2, date(2026, 3, 5), Decimal("870"), "USD", "flights", "flight home"),
    ]
    assert detect_duplicates(lines) == []


def test_empty_input():
    assert detect_duplicates([]) == []


def test_similar_amount_same_category():
    lines = [
        Line(1, date(2026, 3, 1), Decimal("100"), "EUR", "accommodation"),
        Line(2, date(2026, 3, 1), Decimal("97"), "USD", "accommodation"),
    ]
    groups = detect_duplicates(lines)
    assert groups[0].reason == SAME_DATE_CATEGORY_SIMILAR_AMOUNT


def test_five_percent_difference_is_not_similar():
    lines = [
        Line(1, date(2026, 3, 1), Decimal("100"), "EUR", "accommodation"),
        Line(2, date(2026, 3, 1), Decimal("95"), "EUR", "accommodation"),
    ]
    assert detect_duplicates(lines) == []


def test_same_description_and_amount_on_different_dates():
    lines = [
        Line(1, date(2026, 3, 1), Decimal("42"), "EUR", "food", "  Museum Ticket"),
        Line(2, date(2026, 3, 3), Decimal("42"), "EUR", "miscellaneous", "museum ticket "),
    ]
    groups = detect_duplicates(lines)
    assert groups[0].reason == SAME_DESCRIPTION_AND_AMOUNT


def test_same_base_amount_in_different_currencies():
    lines = [
        Line(1, date(2026, 3, 1), Decimal("100"), "USD", "food", "a", Decimal("370.00")),
        Line(2, date(2026, 3, 1), Decimal("370.5"), "ILS", "transportation", "b", Decimal("370.50")),
    ]
    groups = detect_duplicates(lines)
    assert groups[0].reason == SAME_BASE_AMOUNT_DIFFERENT_CURRENCY


def test_reasons_are_unique_and_ordered():
    lines = [
        Line(1, date(2026, 3, 1), Decimal("100"), "USD", "food"),
        Line(2, date(2026, 3, 1), Decimal("100"), "USD", "food"),
        Line(3, date(2026, 3, 1), Decimal("98"), "USD", "food"),
        Line(4, date(2026, 3, 1), Decimal("100"), "USD", "food"),
    ]
    groups = detect_duplicates(lines)
    assert len(groups) == 1
    assert groups[0].expense_ids == [1, 2, 3, 4]
    assert groups[0].reason == f"{SAME_DATE_AMOUNT_CURRENCY}, {SAME_DATE_CATEGORY_SIMILAR_AMOUNT}"


def test_matches_only_against_seed():
    # 2 matches 1, 3 only matches 2; 3 is not pulled into the group
    lines = [
        Line(1, date(2026, 3, 1), Decimal("100"), "USD", "food", "x"),
        Line(2, date(2026, 3, 1), Decimal("100"), "USD", "flights", "dinner"),
        Line(3, date(2026, 3, 9), Decimal("100"), "EUR", "food", "dinner"),
    ]
    groups = detect_duplicates(lines)
    assert [g.expense_ids for g in groups] == [[1, 2]]


def test_deterministic():
    lines = [
        Line(1, date(2026, 3, 1), Decimal("100"), "USD"),
        Line(2, date(2026, 3, 1), Decimal("100"), "USD"),
        Line(3, date(2026, 3, 2), Decimal("55"), "EUR", "flights", "train"),
        Line(4, date(2026, 3, 4), Decimal("55"), "EUR", "food", "Train"),
    ]
    first = [(g.expense_ids, g.reason) for g in detect_duplicates(lines)]
    second = [(g.expense_ids, g.reason) for g in detect_duplicates(lines)]
    assert first == second
    assert len(first) == 2
