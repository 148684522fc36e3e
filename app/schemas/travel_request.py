"""Pydantic schemas for travel request API."""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal

from app.models.travel_request import TravelRequestStatus
from app.models.travel_request_approval_step import ApprovalStepStatus, ApproverRule


# ===== Approval Step Schemas =====

class ApprovalStepTemplate(BaseModel):
    """One level of the chain as resolved by the travel policy service."""
    approver_rule: ApproverRule = ApproverRule.DIRECT_MANAGER
    approver_user_id: Optional[int] = None
    skip_if_amount_under: Optional[Decimal] = Field(None, ge=0)
    skip_if_self_approver: bool = True


class ApprovalStepResponse(BaseModel):
    """Schema for approval step response."""
    id: int
    step_order: int
    approver_rule: ApproverRule
    approver_user_id: Optional[int] = None
    status: ApprovalStepStatus
    skip_reason: Optional[str] = None
    decided_at: Optional[datetime] = None
    decided_by: Optional[int] = None
    comment: Optional[str] = None

    class Config:
        from_attributes = True


class StepDecision(BaseModel):
    comment: Optional[str] = None


# ===== Travel Request Schemas =====

class TravelRequestCreate(BaseModel):
    """Schema for creating a travel request."""
    destination: str = Field(..., min_length=1, max_length=255)
    purpose: Optional[str] = None
    start_date: date
    end_date: date
    estimated_total: Decimal = Field(Decimal("0"), ge=0)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class TravelRequestSubmit(BaseModel):
    """Ordered approval levels to instantiate for this submission."""
    steps: List[ApprovalStepTemplate] = []


class TravelRequestResponse(BaseModel):
    """Schema for travel request response."""
    id: int
    tenant_id: Optional[str] = None
    user_id: int
    destination: str
    purpose: Optional[str] = None
    start_date: date
    end_date: date
    estimated_total: Decimal
    status: TravelRequestStatus
    submitted_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    approval_steps: List[ApprovalStepResponse] = []

    class Config:
        from_attributes = True
