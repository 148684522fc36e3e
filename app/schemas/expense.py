"""Pydantic schemas for expense lines."""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from app.models.expense import ExpenseApprovalStatus, ExpenseCategory, ExpenseSource


class ExpenseBase(BaseModel):
    expense_date: date
    category: ExpenseCategory
    description: str = Field("", max_length=2000)
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class ExpenseCreate(ExpenseBase):
    """Schema for adding an expense line to a report."""
    pass


class ExpenseUpdate(BaseModel):
    expense_date: Optional[date] = None
    category: Optional[ExpenseCategory] = None
    description: Optional[str] = Field(None, max_length=2000)
    amount: Optional[Decimal] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class CategoryCorrection(BaseModel):
    category: ExpenseCategory


class ExpenseResponse(ExpenseBase):
    id: int
    report_id: int
    amount_in_base: Decimal
    approval_status: ExpenseApprovalStatus
    manager_comment: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    created_by: int
    source: ExpenseSource

    class Config:
        from_attributes = True
