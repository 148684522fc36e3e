"""Schemas for approved budgets and the budget comparison."""
from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal


class ApprovedBudget(BaseModel):
    """Per-category caps approved with a travel request, in base currency."""
    flights: Optional[Decimal] = Field(None, ge=0)
    accommodation_per_night: Optional[Decimal] = Field(None, ge=0)
    accommodation_total: Optional[Decimal] = Field(None, ge=0)
    meals_per_day: Optional[Decimal] = Field(None, ge=0)
    meals_total: Optional[Decimal] = Field(None, ge=0)
    transport: Optional[Decimal] = Field(None, ge=0)
    other: Optional[Decimal] = Field(None, ge=0)
    total: Optional[Decimal] = Field(None, ge=0)


class ApprovedTravelCreate(BaseModel):
    approval_number: Optional[str] = None
    approved_budget: ApprovedBudget
    expense_report_id: Optional[int] = None


class BudgetLineResponse(BaseModel):
    category: str
    approved: Decimal
    actual: Decimal
    difference: Decimal
    percentage_used: float
    band: str


class BudgetComparisonResponse(BaseModel):
    approval_number: Optional[str] = None
    lines: List[BudgetLineResponse]
    total: BudgetLineResponse
    missing_keys: List[str] = []


class DuplicateGroupResponse(BaseModel):
    expense_ids: List[int]
    reason: str


class ApprovedTravelResponse(BaseModel):
    id: int
    travel_request_id: int
    expense_report_id: Optional[int] = None
    approval_number: Optional[str] = None
    approved_budget: ApprovedBudget

    class Config:
        from_attributes = True
