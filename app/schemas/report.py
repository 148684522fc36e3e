"""Pydantic schemas for expense reports and manager review."""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import date, datetime
from decimal import Decimal

from app.models.expense import ExpenseApprovalStatus
from app.models.report import ReportAction, ReportStatus
from app.schemas.expense import ExpenseResponse


class ReportCreate(BaseModel):
    trip_destination: str = Field(..., min_length=1, max_length=255)
    trip_purpose: Optional[str] = None
    trip_start_date: date
    trip_end_date: date


class ReportSubmit(BaseModel):
    """Manager resolved by the org structure service for this employee."""
    manager_id: int


class ExpenseDecision(BaseModel):
    expense_id: int
    status: ExpenseApprovalStatus  # approved or rejected
    comment: Optional[str] = None


class ManagerReview(BaseModel):
    token: str
    decisions: List[ExpenseDecision]


class TokenDecision(BaseModel):
    action: Literal["approve", "reject"]
    rejection_reason: Optional[str] = None


class ReportHistoryResponse(BaseModel):
    id: int
    action: ReportAction
    performed_by: int
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReportResponse(BaseModel):
    id: int
    user_id: int
    trip_destination: str
    trip_purpose: Optional[str] = None
    trip_start_date: date
    trip_end_date: date
    status: ReportStatus
    total_amount: Decimal
    manager_id: Optional[int] = None
    manager_approval_requested_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    expenses: List[ExpenseResponse] = []

    class Config:
        from_attributes = True
