"""Approved budget versus actual spend for a report."""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import MalformedEnvelope, NotFound
from app.crud.expense import expense as expense_crud
from app.crud.report import report as report_crud
from app.crud.travel_request import travel_request as travel_request_crud

logger = logging.getLogger(__name__)

ON_BUDGET = "on budget"
WARNING = "warning"
OVER_BUDGET = "over budget"

ZERO = Decimal("0")

# Envelope line -> expense categories that roll into it
CATEGORY_ALIASES: Dict[str, tuple] = {
    "flights": ("flights",),
    "accommodation": ("accommodation", "hotels"),
    "meals": ("food", "meals"),
    "transport": ("transportation", "ground_transport", "car_rental", "taxi"),
}

REQUIRED_KEYS = ("flights", "accommodation_total", "meals_total", "transport", "total")


@dataclass
class BudgetLine:
    category: str
    approved: Decimal
    actual: Decimal
    difference: Decimal
    percentage_used: float
    band: str


@dataclass
class BudgetReconciliation:
    lines: List[BudgetLine]
    total: BudgetLine
    missing_keys: List[str] = field(default_factory=list)
    approval_number: Optional[str] = None


def budget_band(percentage_used: float) -> str:
    if percentage_used <= 100:
        return ON_BUDGET
    if percentage_used <= settings.BUDGET_WARNING_PERCENT:
        return WARNING
    return OVER_BUDGET


def build_line(category: str, approved: Decimal, actual: Decimal) -> BudgetLine:
    percentage = float(actual / approved * 100) if approved > 0 else 0.0
    # Banded on the exact ratio; only the reported figure is rounded.
    return BudgetLine(
        category=category,
        approved=approved,
        actual=actual,
        difference=approved - actual,
        percentage_used=round(percentage, 2),
        band=budget_band(percentage),
    )


def _as_envelope(budget) -> Dict[str, object]:
    if hasattr(budget, "model_dump"):
        return budget.model_dump()
    return dict(budget)


def _amount(envelope: Mapping[str, object], key: str) -> Optional[Decimal]:
    value = envelope.get(key)
    if value is None or value == "":
        return None
    return Decimal(str(value))


def check_envelope(envelope: Mapping[str, object]) -> None:
    """Raise MalformedEnvelope when required caps are absent.

    A per-night or per-day cap stands in for the matching total.
    """
    missing = []
    for key in REQUIRED_KEYS:
        if _amount(envelope, key) is not None:
            continue
        if key == "accommodation_total" and _amount(envelope, "accommodation_per_night") is not None:
            continue
        if key == "meals_total" and _amount(envelope, "meals_per_day") is not None:
            continue
        missing.append(key)
    if missing:
        raise MalformedEnvelope(missing)


def _cap(envelope, total_key: str, unit_key: Optional[str] = None, units: Optional[int] = None) -> Decimal:
    total = _amount(envelope, total_key)
    if total is not None:
        return total
    if unit_key and units:
        per_unit = _amount(envelope, unit_key)
        if per_unit is not None:
            return per_unit * units
    return ZERO


def reconcile(
    budget,
    expenses: Sequence,
    nights: Optional[int] = None,
    days: Optional[int] = None,
) -> Optional[BudgetReconciliation]:
    """Compare an approved envelope against normalized expense amounts.

    Returns None when there is no approved budget. Missing envelope keys
    count as zero and are listed on the result.
    """
    if budget is None:
        return None

    envelope = _as_envelope(budget)
    missing_keys: List[str] = []
    try:
        check_envelope(envelope)
    except MalformedEnvelope as exc:
        logger.warning(f"{exc.message}; treating them as zero")
        missing_keys = exc.missing_keys

    actual_by_category: Dict[str, Decimal] = {}
    for expense in expenses:
        category = getattr(expense.category, "value", expense.category)
        amount = Decimal(str(expense.amount_in_base or 0))
        actual_by_category[category] = actual_by_category.get(category, ZERO) + amount

    def actual_for(line: str) -> Decimal:
        return sum((actual_by_category.get(c, ZERO) for c in CATEGORY_ALIASES[line]), ZERO)

    approved_caps = {
        "flights": _cap(envelope, "flights"),
        "accommodation": _cap(envelope, "accommodation_total", "accommodation_per_night", nights),
        "meals": _cap(envelope, "meals_total", "meals_per_day", days),
        "transport": _cap(envelope, "transport"),
    }
    lines = [build_line(name, cap, actual_for(name)) for name, cap in approved_caps.items()]

    total_actual = sum(actual_by_category.values(), ZERO)
    total = build_line("total", _cap(envelope, "total"), total_actual)

    return BudgetReconciliation(lines=lines, total=total, missing_keys=missing_keys)


def reconcile_report(db: Session, report_id: int) -> Optional[BudgetReconciliation]:
    """Reconcile a stored report against the budget of its approved travel, if linked."""
    report = report_crud.get(db, report_id)
    if not report:
        raise NotFound(f"Report {report_id} not found")

    approved_travel = travel_request_crud.get_approved_travel_for_report(db, report_id=report_id)
    if not approved_travel:
        return None

    nights = max((report.trip_end_date - report.trip_start_date).days, 0)
    expenses = expense_crud.get_by_report(db, report_id=report_id)
    result = reconcile(approved_travel.approved_budget, expenses, nights=nights, days=nights + 1)
    result.approval_number = approved_travel.approval_number
    return result
