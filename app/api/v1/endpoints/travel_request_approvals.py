"""Travel request approval workflow endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app import crud
from app.db.database import get_db
from app.core.deps import POLICY_ROLES, get_current_user
from app.core.exceptions import NotFound, PermissionDenied
from app.schemas.auth import CurrentUser
from app.schemas.travel_request import ApprovalStepResponse, StepDecision, TravelRequestResponse
from app.services import travel_approval

router = APIRouter()


@router.get("/{request_id}/approvals", response_model=List[ApprovalStepResponse])
async def get_travel_request_approvals(
    request_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get approval status for a travel request"""
    travel_request = crud.travel_request.get(db, request_id)
    if not travel_request:
        raise NotFound(f"Travel request {request_id} not found")

    steps = crud.travel_request.get_steps(db, travel_request_id=request_id)
    approver_ids = {step.approver_user_id for step in steps}
    if (
        current_user.id != travel_request.user_id
        and current_user.role not in POLICY_ROLES
        and current_user.id not in approver_ids
    ):
        raise PermissionDenied("Not authorized to view this approval chain")
    return steps


@router.post("/{request_id}/approvals/{step_id}/approve", response_model=TravelRequestResponse)
async def approve_travel_request_step(
    request_id: int,
    step_id: int,
    decision: StepDecision,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return travel_approval.approve_step(
        db, request_id=request_id, step_id=step_id, approver_id=current_user.id, comment=decision.comment
    )


@router.post("/{request_id}/approvals/{step_id}/reject", response_model=TravelRequestResponse)
async def reject_travel_request_step(
    request_id: int,
    step_id: int,
    decision: StepDecision,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Reject at the active level; a comment is mandatory."""
    return travel_approval.reject_step(
        db, request_id=request_id, step_id=step_id, approver_id=current_user.id, comment=decision.comment
    )
