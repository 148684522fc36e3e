"""Expense report API endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app import crud
from app.db.database import get_db
from app.core.deps import get_accounting_user, get_current_user
from app.core.exceptions import NotFound, PermissionDenied
from app.models.expense import ExpenseSource
from app.models.report import Report
from app.schemas.auth import CurrentUser
from app.schemas.budget import BudgetComparisonResponse, DuplicateGroupResponse
from app.schemas.expense import CategoryCorrection, ExpenseCreate, ExpenseResponse, ExpenseUpdate
from app.schemas.report import (
    ManagerReview, ReportCreate, ReportHistoryResponse, ReportResponse,
    ReportSubmit, TokenDecision,
)
from app.services import report_approval
from app.services.budget_reconciliation import reconcile_report

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_visible_report(db: Session, report_id: int, current_user: CurrentUser) -> Report:
    report = crud.report.get(db, report_id)
    if not report:
        raise NotFound(f"Report {report_id} not found")
    if current_user.id not in (report.user_id, report.manager_id) and not current_user.is_accounting:
        raise PermissionDenied("Not authorized to view this report")
    return report


# ===== Employee Endpoints =====

@router.get("/", response_model=List[ReportResponse])
async def get_my_reports(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get all reports owned by the current user."""
    return crud.report.get_by_user(db, user_id=current_user.id)


@router.post("/", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    report_data: ReportCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return report_approval.create_report(db, user_id=current_user.id, data=report_data)


@router.get("/pending", response_model=List[ReportResponse])
async def get_reports_pending_my_review(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Reports waiting for the current user as manager."""
    return crud.report.get_pending_for_manager(db, manager_id=current_user.id)


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return _get_visible_report(db, report_id, current_user)


@router.post("/{report_id}/open", response_model=ReportResponse)
async def open_report(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return report_approval.open_report(db, report_id=report_id, user_id=current_user.id)


@router.post("/{report_id}/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def add_expense(
    report_id: int,
    expense_data: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Add a line; accounting managers may insert into any report."""
    report = crud.report.get(db, report_id)
    source = ExpenseSource.EMPLOYEE
    if report and report.user_id != current_user.id and current_user.is_accounting:
        source = ExpenseSource.ACCOUNTING
    return report_approval.add_expense(
        db, report_id=report_id, user_id=current_user.id, data=expense_data, source=source
    )


@router.put("/expenses/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return report_approval.update_expense(db, expense_id=expense_id, user_id=current_user.id, data=expense_data)


@router.delete("/expenses/{expense_id}", response_model=ReportResponse)
async def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return report_approval.remove_expense(db, expense_id=expense_id, user_id=current_user.id)


@router.patch("/expenses/{expense_id}/category", response_model=ExpenseResponse)
async def correct_expense_category(
    expense_id: int,
    correction: CategoryCorrection,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_accounting_user)
):
    return report_approval.correct_category(
        db, expense_id=expense_id, accounting_user_id=current_user.id, category=correction.category
    )


@router.post("/{report_id}/submit", response_model=ReportResponse)
async def submit_report(
    report_id: int,
    submit_data: ReportSubmit,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Submit an open report to the manager resolved by the org structure service.

    The approval link reaches the manager only through the notification.
    """
    report, _ = report_approval.submit_for_approval(
        db, report_id=report_id, user_id=current_user.id, manager_id=submit_data.manager_id
    )
    return report


# ===== Manager Endpoints =====

@router.post("/{report_id}/review", response_model=ReportResponse)
async def review_report(
    report_id: int,
    review: ManagerReview,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Apply the manager's per-line decisions in one batch."""
    return report_approval.apply_manager_review(
        db,
        report_id=report_id,
        token=review.token,
        manager_id=current_user.id,
        decisions=review.decisions,
    )


@router.post("/approve-by-token/{token}", response_model=ReportResponse)
async def decide_report_by_token(
    token: str,
    decision: TokenDecision,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Whole-report decision from the emailed approval link."""
    return report_approval.decide_by_token(
        db,
        token=token,
        manager_id=current_user.id,
        action=decision.action,
        rejection_reason=decision.rejection_reason,
    )


# ===== Analysis Endpoints =====

@router.get("/{report_id}/duplicates", response_model=List[DuplicateGroupResponse])
async def get_duplicate_expenses(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    _get_visible_report(db, report_id, current_user)
    groups = report_approval.find_duplicates(db, report_id=report_id)
    return [DuplicateGroupResponse(expense_ids=group.expense_ids, reason=group.reason) for group in groups]


@router.get("/{report_id}/budget", response_model=Optional[BudgetComparisonResponse])
async def get_budget_comparison(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Approved budget versus actual spend; null when no approved travel is linked."""
    _get_visible_report(db, report_id, current_user)
    result = reconcile_report(db, report_id)
    if result is None:
        return None
    return BudgetComparisonResponse.model_validate(result, from_attributes=True)


@router.get("/{report_id}/history", response_model=List[ReportHistoryResponse])
async def get_report_history(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    _get_visible_report(db, report_id, current_user)
    return crud.report.get_history(db, report_id=report_id)
