"""Travel request API endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app import crud
from app.db.database import get_db
from app.core.deps import POLICY_ROLES, get_current_user
from app.core.exceptions import NotFound, PermissionDenied
from app.models.travel_request import TravelRequest, TravelRequestStatus
from app.schemas.auth import CurrentUser
from app.schemas.budget import ApprovedTravelCreate, ApprovedTravelResponse
from app.schemas.travel_request import TravelRequestCreate, TravelRequestResponse, TravelRequestSubmit
from app.services import travel_approval

router = APIRouter()
logger = logging.getLogger(__name__)


def _require_policy_role(current_user: CurrentUser) -> None:
    if current_user.role not in POLICY_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organisation admin or accounting manager role required"
        )


def _get_own_request(db: Session, request_id: int, current_user: CurrentUser) -> TravelRequest:
    travel_request = crud.travel_request.get(db, request_id)
    if not travel_request:
        raise NotFound(f"Travel request {request_id} not found")
    if travel_request.user_id != current_user.id and current_user.role not in POLICY_ROLES:
        raise PermissionDenied("Not authorized to access this travel request")
    return travel_request


# ===== User Travel Request Endpoints =====

@router.get("/", response_model=List[TravelRequestResponse])
async def get_user_travel_requests(
    status_filter: Optional[TravelRequestStatus] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get all travel requests for the current user."""
    requests = crud.travel_request.get_by_user(db, user_id=current_user.id)
    if status_filter:
        requests = [r for r in requests if r.status == status_filter]
    return requests


@router.post("/", response_model=TravelRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_travel_request(
    request_data: TravelRequestCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create a new travel request."""
    return travel_approval.create_travel_request(
        db, user_id=current_user.id, data=request_data, tenant_id=current_user.tenant_id
    )


@router.get("/{request_id}", response_model=TravelRequestResponse)
async def get_travel_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return _get_own_request(db, request_id, current_user)


@router.post("/{request_id}/submit", response_model=TravelRequestResponse)
async def submit_travel_request(
    request_id: int,
    submit_data: TravelRequestSubmit,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Submit with the approval levels resolved by the travel policy service."""
    return travel_approval.submit_travel_request(
        db, request_id=request_id, requester_id=current_user.id, step_templates=submit_data.steps
    )


@router.post("/{request_id}/cancel", response_model=TravelRequestResponse)
async def cancel_travel_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return travel_approval.cancel_travel_request(db, request_id=request_id, requester_id=current_user.id)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_travel_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Delete a travel request with its approval chain and notifications."""
    _get_own_request(db, request_id, current_user)
    travel_approval.delete_travel_request(db, request_id=request_id)


# ===== Policy Evaluator Endpoints =====

@router.post("/{request_id}/partially-approved", response_model=TravelRequestResponse)
async def mark_partially_approved(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    _require_policy_role(current_user)
    return travel_approval.mark_partially_approved(db, request_id=request_id)


@router.put("/{request_id}/approved-budget", response_model=ApprovedTravelResponse)
async def set_approved_budget(
    request_id: int,
    budget_data: ApprovedTravelCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Record the approved budget envelope and link it to an expense report."""
    _require_policy_role(current_user)
    return travel_approval.attach_approved_budget(db, request_id=request_id, data=budget_data)
