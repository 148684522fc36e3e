"""Expense report approval workflow.

draft -> open -> pending_approval -> closed, or back to open when the
manager rejects any line. Every state change is a conditional UPDATE on the
current status so two concurrent reviewers cannot both win.
"""
import logging
import secrets
from datetime import datetime
from decimal import Decimal
from typing import List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AlreadyPending,
    InvalidState,
    MissingJustification,
    NotFound,
    PermissionDenied,
    ReportNotPending,
    TokenAlreadyConsumed,
)
from app.crud.expense import expense as expense_crud
from app.crud.report import report as report_crud
from app.models.expense import Expense, ExpenseApprovalStatus, ExpenseCategory, ExpenseSource
from app.models.notification import NotificationEntity, NotificationKind
from app.models.report import Report, ReportAction, ReportStatus
from app.schemas.expense import ExpenseCreate, ExpenseUpdate
from app.schemas.report import ExpenseDecision, ReportCreate
from app.services.currency_service import DEFAULT_FALLBACK_RATES, StaticRateSource, normalize
from app.services.duplicate_detection import DuplicateGroup, detect_duplicates
from app.services.notification_service import NotificationDispatcher, NotificationEvent, dispatch_events

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = (ReportStatus.DRAFT, ReportStatus.OPEN)

rate_source = StaticRateSource()


def _get_report(db: Session, report_id: int) -> Report:
    report = report_crud.get(db, report_id)
    if not report:
        raise NotFound(f"Report {report_id} not found")
    return report


def _get_owned_report(db: Session, report_id: int, user_id: int) -> Report:
    report = _get_report(db, report_id)
    if report.user_id != user_id:
        raise PermissionDenied("Not authorized to modify this report")
    return report


def _ensure_editable(report: Report) -> None:
    if report.status not in EDITABLE_STATUSES:
        raise InvalidState(f"Report {report.id} is {report.status.value} and cannot be edited")


def _normalize_amount(amount, currency: str, rates: Optional[Mapping[str, Decimal]]) -> Decimal:
    if rates is None:
        rates = rate_source.get_rates(settings.BASE_CURRENCY)
    return normalize(amount, currency, rates, fallback_rates=DEFAULT_FALLBACK_RATES)


def recompute_total(db: Session, report: Report) -> Decimal:
    """Set the report total to the sum of its normalized lines."""
    db.flush()
    total = db.query(func.coalesce(func.sum(Expense.amount_in_base), 0)).filter(
        Expense.report_id == report.id
    ).scalar()
    report.total_amount = Decimal(str(total)).quantize(Decimal("0.01"))
    return report.total_amount


def _event(report: Report, kind: NotificationKind, recipient: Optional[int], title: str, message: str,
           action_url: Optional[str] = None) -> NotificationEvent:
    return NotificationEvent(
        kind=kind,
        entity_type=NotificationEntity.REPORT,
        entity_id=report.id,
        recipient_user_id=recipient,
        title=title,
        message=message,
        action_url=action_url,
    )


# ===== Employee side =====

def create_report(db: Session, *, user_id: int, data: ReportCreate) -> Report:
    if data.trip_end_date < data.trip_start_date:
        raise InvalidState("Trip end date must not be before the start date")
    report = report_crud.build(obj_in=data, user_id=user_id, status=ReportStatus.DRAFT, total_amount=Decimal("0"))
    db.add(report)
    db.flush()
    report_crud.log_action(db, report_id=report.id, action=ReportAction.CREATED, performed_by=user_id)
    db.commit()
    db.refresh(report)
    logger.info(f"Report {report.id} created by user {user_id}")
    return report


def open_report(db: Session, *, report_id: int, user_id: int) -> Report:
    report = _get_owned_report(db, report_id, user_id)
    if report.status == ReportStatus.OPEN:
        return report
    updated = db.query(Report).filter(
        Report.id == report_id,
        Report.status == ReportStatus.DRAFT,
    ).update({"status": ReportStatus.OPEN}, synchronize_session=False)
    if updated != 1:
        db.rollback()
        raise InvalidState(f"Report {report_id} is {report.status.value} and cannot be opened")
    report_crud.log_action(db, report_id=report_id, action=ReportAction.EDITED, performed_by=user_id,
                           notes="Report opened for editing")
    db.commit()
    db.refresh(report)
    return report


def add_expense(
    db: Session,
    *,
    report_id: int,
    user_id: int,
    data: ExpenseCreate,
    rates: Optional[Mapping[str, Decimal]] = None,
    source: ExpenseSource = ExpenseSource.EMPLOYEE,
) -> Expense:
    """Add a line to a report.

    Employees add lines while the report is editable; accounting may insert
    a line at any status.
    """
    if source == ExpenseSource.ACCOUNTING:
        report = _get_report(db, report_id)
    else:
        report = _get_owned_report(db, report_id, user_id)
        _ensure_editable(report)

    amount_in_base = _normalize_amount(data.amount, data.currency, rates)
    expense = expense_crud.build(
        obj_in=data,
        report_id=report.id,
        amount_in_base=amount_in_base,
        approval_status=ExpenseApprovalStatus.PENDING,
        created_by=user_id,
        source=source,
    )
    try:
        db.add(expense)
        recompute_total(db, report)
        report_crud.log_action(db, report_id=report.id, action=ReportAction.EDITED, performed_by=user_id,
                               notes=f"Expense added by {source.value}")
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(expense)
    return expense


def update_expense(
    db: Session,
    *,
    expense_id: int,
    user_id: int,
    data: ExpenseUpdate,
    rates: Optional[Mapping[str, Decimal]] = None,
) -> Expense:
    expense = expense_crud.get(db, expense_id)
    if not expense:
        raise NotFound(f"Expense {expense_id} not found")
    report = _get_owned_report(db, expense.report_id, user_id)
    _ensure_editable(report)

    changes = data.model_dump(exclude_unset=True)
    expense_crud.update(db, db_obj=expense, obj_in=changes, commit=False)
    if "amount" in changes or "currency" in changes:
        expense.amount_in_base = _normalize_amount(expense.amount, expense.currency, rates)
    recompute_total(db, report)
    report_crud.log_action(db, report_id=report.id, action=ReportAction.EDITED, performed_by=user_id,
                           notes=f"Expense {expense_id} updated")
    db.commit()
    db.refresh(expense)
    return expense


def remove_expense(db: Session, *, expense_id: int, user_id: int) -> Report:
    """Delete a line. Lines of a report that was ever submitted are kept."""
    expense = expense_crud.get(db, expense_id)
    if not expense:
        raise NotFound(f"Expense {expense_id} not found")
    report = _get_owned_report(db, expense.report_id, user_id)
    _ensure_editable(report)
    if report.submitted_at is not None:
        raise InvalidState("Expenses cannot be deleted once the report has been submitted")

    db.delete(expense)
    recompute_total(db, report)
    report_crud.log_action(db, report_id=report.id, action=ReportAction.EDITED, performed_by=user_id,
                           notes=f"Expense {expense_id} removed")
    db.commit()
    db.refresh(report)
    return report


def correct_category(db: Session, *, expense_id: int, accounting_user_id: int, category: ExpenseCategory) -> Expense:
    """Accounting-side category correction, allowed at any report status."""
    expense = expense_crud.get(db, expense_id)
    if not expense:
        raise NotFound(f"Expense {expense_id} not found")
    previous = expense.category
    expense.category = category
    report_crud.log_action(db, report_id=expense.report_id, action=ReportAction.EDITED,
                           performed_by=accounting_user_id,
                           notes=f"Expense {expense_id} category changed from {previous.value} to {category.value}")
    db.commit()
    db.refresh(expense)
    return expense


def find_duplicates(db: Session, *, report_id: int) -> List[DuplicateGroup]:
    _get_report(db, report_id)
    return detect_duplicates(expense_crud.get_by_report(db, report_id=report_id))


# ===== Submission =====

def submit_for_approval(
    db: Session,
    *,
    report_id: int,
    user_id: int,
    manager_id: int,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Tuple[Report, str]:
    """Send an open report to the manager and return it with its single-use token."""
    report = _get_owned_report(db, report_id, user_id)
    if manager_id == user_id:
        raise InvalidState("A report cannot be submitted to its own owner for approval")
    if report.status != ReportStatus.OPEN:
        raise AlreadyPending(f"Report {report_id} is {report.status.value}; only open reports can be submitted")
    if not expense_crud.get_by_report(db, report_id=report_id):
        raise InvalidState("Cannot submit a report without expenses")

    token = secrets.token_urlsafe(32)
    now = datetime.utcnow()
    try:
        updated = db.query(Report).filter(
            Report.id == report_id,
            Report.status == ReportStatus.OPEN,
        ).update({
            "status": ReportStatus.PENDING_APPROVAL,
            "manager_id": manager_id,
            "manager_approval_token": token,
            "manager_approval_requested_at": now,
            "submitted_at": now,
            "rejection_reason": None,
        }, synchronize_session=False)
        if updated != 1:
            raise AlreadyPending(f"Report {report_id} was submitted concurrently")

        db.query(Expense).filter(Expense.report_id == report_id).update({
            "approval_status": ExpenseApprovalStatus.PENDING,
            "manager_comment": None,
            "reviewed_at": None,
            "reviewed_by": None,
        }, synchronize_session=False)
        db.expire(report)
        recompute_total(db, report)
        report_crud.log_action(db, report_id=report_id, action=ReportAction.SUBMITTED, performed_by=user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(report)
    logger.info(f"Report {report_id} submitted for approval to manager {manager_id}")

    dispatch_events(db, [
        _event(
            report,
            NotificationKind.SUBMITTED,
            manager_id,
            f"Expense report awaiting approval: {report.trip_destination}",
            f"A travel expense report for {report.trip_destination} "
            f"({report.trip_start_date} - {report.trip_end_date}) totalling "
            f"{report.total_amount} {settings.BASE_CURRENCY} is waiting for your review.",
            action_url=settings.approval_link(token),
        )
    ], dispatcher)
    return report, token


# ===== Manager side =====

def _ensure_pending(report: Report, token: str) -> None:
    if report.status != ReportStatus.PENDING_APPROVAL:
        raise ReportNotPending(f"Report {report.id} is not pending approval")
    if not token or report.manager_approval_token != token:
        raise TokenAlreadyConsumed("This approval link is no longer valid")


def _consume(db: Session, report: Report, token: str, values: dict) -> None:
    """Conditional update of a pending report keyed on its current token."""
    updated = db.query(Report).filter(
        Report.id == report.id,
        Report.status == ReportStatus.PENDING_APPROVAL,
        Report.manager_approval_token == token,
    ).update(values, synchronize_session=False)
    if updated != 1:
        raise TokenAlreadyConsumed(f"Report {report.id} was already reviewed")


def _validate_decisions(lines: Mapping[int, Expense], decisions: Sequence[ExpenseDecision]) -> None:
    seen = set()
    for decision in decisions:
        if decision.expense_id not in lines:
            raise InvalidState(f"Expense {decision.expense_id} does not belong to this report")
        if decision.expense_id in seen:
            raise InvalidState(f"Expense {decision.expense_id} appears twice in the review")
        seen.add(decision.expense_id)
        if decision.status == ExpenseApprovalStatus.PENDING:
            raise InvalidState("A review decision must approve or reject the expense")
        if decision.status == ExpenseApprovalStatus.REJECTED and not (decision.comment or "").strip():
            raise MissingJustification(f"Expense {decision.expense_id} was rejected without a comment")


def _apply_aggregate(db: Session, report: Report, token: str, manager_id: int, now: datetime) -> List[NotificationEvent]:
    """Decide the report from the line decisions as stored right now."""
    db.flush()
    lines = db.query(Expense).filter(Expense.report_id == report.id).order_by(Expense.expense_date, Expense.id).all()
    statuses = [line.approval_status for line in lines]

    if not lines or ExpenseApprovalStatus.PENDING in statuses:
        _consume(db, report, token, {"updated_at": now})
        return []

    if all(status == ExpenseApprovalStatus.APPROVED for status in statuses):
        _consume(db, report, token, {
            "status": ReportStatus.CLOSED,
            "manager_approval_token": None,
            "approved_at": now,
            "approved_by": manager_id,
            "rejection_reason": None,
        })
        report_crud.log_action(db, report_id=report.id, action=ReportAction.APPROVED, performed_by=manager_id)
        logger.info(f"Report {report.id} approved by manager {manager_id}, forwarding to accounting")
        return [
            _event(report, NotificationKind.APPROVED, report.user_id,
                   f"Expense report approved: {report.trip_destination}",
                   "Your expense report was approved and forwarded to accounting."),
            _event(report, NotificationKind.FORWARDED_TO_ACCOUNTING, None,
                   f"Approved expense report: {report.trip_destination}",
                   f"Expense report {report.id} was approved by the manager and is ready for processing."),
        ]

    reason = "; ".join(
        line.manager_comment.strip()
        for line in lines
        if line.approval_status == ExpenseApprovalStatus.REJECTED and line.manager_comment
    )
    _consume(db, report, token, {
        "status": ReportStatus.OPEN,
        "manager_approval_token": None,
        "manager_approval_requested_at": None,
        "rejection_reason": reason,
    })
    report_crud.log_action(db, report_id=report.id, action=ReportAction.REJECTED, performed_by=manager_id, notes=reason)
    logger.info(f"Report {report.id} returned to employee by manager {manager_id}")
    return [
        _event(report, NotificationKind.REJECTED, report.user_id,
               f"Expense report returned: {report.trip_destination}",
               f"Your manager returned the report for corrections: {reason}"),
    ]


def apply_manager_review(
    db: Session,
    *,
    report_id: int,
    token: str,
    manager_id: int,
    decisions: Sequence[ExpenseDecision],
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Report:
    """Persist a batch of per-line decisions and decide the report.

    The whole batch is validated before anything is written and is applied
    in one transaction together with the aggregate decision.
    """
    report = _get_report(db, report_id)
    _ensure_pending(report, token)
    if report.manager_id is not None and report.manager_id != manager_id:
        raise PermissionDenied("Only the assigned manager can review this report")

    lines = {line.id: line for line in expense_crud.get_by_report(db, report_id=report_id)}
    _validate_decisions(lines, decisions)

    now = datetime.utcnow()
    try:
        for decision in decisions:
            line = lines[decision.expense_id]
            line.approval_status = decision.status
            line.manager_comment = (decision.comment or "").strip() or None
            line.reviewed_at = now
            line.reviewed_by = manager_id
        events = _apply_aggregate(db, report, token, manager_id, now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(report)
    dispatch_events(db, events, dispatcher)
    return report


def decide_by_token(
    db: Session,
    *,
    token: str,
    manager_id: int,
    action: str,
    rejection_reason: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Report:
    """Whole-report decision from the emailed approval link."""
    report = report_crud.get_by_token(db, token=token)
    if not report:
        raise TokenAlreadyConsumed("This approval link has already been used or is invalid")

    if action == "approve":
        decisions = [
            ExpenseDecision(expense_id=line.id, status=ExpenseApprovalStatus.APPROVED)
            for line in expense_crud.get_by_report(db, report_id=report.id)
        ]
        return apply_manager_review(
            db, report_id=report.id, token=token, manager_id=manager_id,
            decisions=decisions, dispatcher=dispatcher,
        )

    if action != "reject":
        raise InvalidState(f"Unknown action '{action}'")
    if not (rejection_reason or "").strip():
        raise MissingJustification("A rejection reason is required")

    _ensure_pending(report, token)
    if report.manager_id is not None and report.manager_id != manager_id:
        raise PermissionDenied("Only the assigned manager can review this report")

    reason = rejection_reason.strip()
    try:
        _consume(db, report, token, {
            "status": ReportStatus.OPEN,
            "manager_approval_token": None,
            "manager_approval_requested_at": None,
            "rejection_reason": reason,
        })
        report_crud.log_action(db, report_id=report.id, action=ReportAction.REJECTED, performed_by=manager_id, notes=reason)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(report)
    dispatch_events(db, [
        _event(report, NotificationKind.REJECTED, report.user_id,
               f"Expense report returned: {report.trip_destination}",
               f"Your manager returned the report for corrections: {reason}"),
    ], dispatcher)
    return report
