"""Possible duplicate expenses within one report.

Advisory only: the result is shown to the reviewing manager and never
blocks a submission.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from app.core.config import settings

SAME_DATE_AMOUNT_CURRENCY = "same date, amount, currency"
SAME_DATE_CATEGORY_SIMILAR_AMOUNT = "same date and category with similar amount"
SAME_DESCRIPTION_AND_AMOUNT = "same description and amount"
SAME_BASE_AMOUNT_DIFFERENT_CURRENCY = "same base-currency amount on same date (different currencies)"


@dataclass
class DuplicateGroup:
    expenses: list
    reason: str

    @property
    def expense_ids(self) -> List[int]:
        return [e.id for e in self.expenses]


def _category(expense) -> str:
    return getattr(expense.category, "value", expense.category)


def _normalized_description(expense) -> str:
    return (expense.description or "").strip().lower()


def match_reason(first, second) -> Optional[str]:
    """Return the first duplicate rule the two expenses satisfy, if any."""
    same_date = first.expense_date == second.expense_date
    first_amount = Decimal(str(first.amount))
    second_amount = Decimal(str(second.amount))

    if same_date and first_amount == second_amount and first.currency == second.currency:
        return SAME_DATE_AMOUNT_CURRENCY

    if same_date and _category(first) == _category(second):
        larger = max(first_amount, second_amount)
        tolerance = Decimal(str(settings.DUPLICATE_AMOUNT_TOLERANCE))
        if larger > 0 and abs(first_amount - second_amount) / larger < tolerance:
            return SAME_DATE_CATEGORY_SIMILAR_AMOUNT

    first_description = _normalized_description(first)
    if (
        first_description
        and first_description == _normalized_description(second)
        and first_amount == second_amount
    ):
        return SAME_DESCRIPTION_AND_AMOUNT

    if same_date and first.currency != second.currency:
        delta = abs(Decimal(str(first.amount_in_base)) - Decimal(str(second.amount_in_base)))
        if delta < Decimal(str(settings.DUPLICATE_BASE_AMOUNT_DELTA)):
            return SAME_BASE_AMOUNT_DIFFERENT_CURRENCY

    return None


def detect_duplicates(expenses: Sequence) -> List[DuplicateGroup]:
    """Group expenses that look like duplicates of each other.

    Every ungrouped expense seeds a pass over the later ungrouped ones; a
    match is always against the seed. An expense placed in a group never
    seeds or joins another group, so A~B and B~C without A~C leaves C out.
    """
    expenses = list(expenses)
    groups: List[DuplicateGroup] = []
    grouped = set()

    for i, seed in enumerate(expenses):
        if seed.id in grouped:
            continue

        members = [seed]
        reasons = []
        for other in expenses[i + 1:]:
            if other.id in grouped:
                continue
            reason = match_reason(seed, other)
            if reason:
                members.append(other)
                reasons.append(reason)
                grouped.add(other.id)

        if len(members) > 1:
            grouped.add(seed.id)
            unique_reasons = list(dict.fromkeys(reasons))
            groups.append(DuplicateGroup(expenses=members, reason=", ".join(unique_reasons)))

    return groups
