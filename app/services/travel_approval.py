"""Multi-level approval chain for pre-trip travel requests.

Steps are decided strictly in order. Before a step becomes active its skip
rule is evaluated, so a chain can advance (or finish) without any human
decision.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.exceptions import (
    InvalidState,
    MissingJustification,
    NotFound,
    PermissionDenied,
    StaleDecision,
)
from app.crud.travel_request import travel_request as travel_request_crud
from app.models.notification import Notification, NotificationEntity, NotificationKind
from app.models.report import Report
from app.models.travel_request import (
    ApprovedTravel,
    TravelPolicyViolation,
    TravelRequest,
    TravelRequestStatus,
)
from app.models.travel_request_approval_step import ApprovalStepStatus, TravelRequestApprovalStep
from app.schemas.budget import ApprovedTravelCreate
from app.schemas.travel_request import ApprovalStepTemplate, TravelRequestCreate
from app.services.notification_service import NotificationDispatcher, NotificationEvent, dispatch_events

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = (
    TravelRequestStatus.DRAFT,
    TravelRequestStatus.REJECTED,
    TravelRequestStatus.CANCELLED,
)
CANCELLABLE_STATUSES = (
    TravelRequestStatus.DRAFT,
    TravelRequestStatus.PENDING_APPROVAL,
    TravelRequestStatus.REJECTED,
    TravelRequestStatus.CANCELLED,
)
APPROVED_STATUSES = (TravelRequestStatus.APPROVED, TravelRequestStatus.PARTIALLY_APPROVED)

SELF_APPROVER_REASON = "Requester is their own approver"


def _get_request(db: Session, request_id: int) -> TravelRequest:
    travel_request = travel_request_crud.get(db, request_id)
    if not travel_request:
        raise NotFound(f"Travel request {request_id} not found")
    return travel_request


def _transition(db: Session, travel_request: TravelRequest, expected: Sequence[TravelRequestStatus],
                values: dict) -> None:
    """Conditional update of the request row; the loser of a race gets StaleDecision."""
    updated = db.query(TravelRequest).filter(
        TravelRequest.id == travel_request.id,
        TravelRequest.status.in_(expected),
    ).update(values, synchronize_session=False)
    if updated != 1:
        raise StaleDecision(f"Travel request {travel_request.id} was changed by someone else")
    db.expire(travel_request, list(values))


def _event(travel_request: TravelRequest, kind: NotificationKind, recipient: Optional[int],
           title: str, message: str) -> NotificationEvent:
    return NotificationEvent(
        kind=kind,
        entity_type=NotificationEntity.TRAVEL_REQUEST,
        entity_id=travel_request.id,
        recipient_user_id=recipient,
        title=title,
        message=message,
    )


def active_step(travel_request: TravelRequest) -> Optional[TravelRequestApprovalStep]:
    """Lowest pending step, only while the request awaits approval."""
    if travel_request.status != TravelRequestStatus.PENDING_APPROVAL:
        return None
    pending = [s for s in travel_request.approval_steps if s.status == ApprovalStepStatus.PENDING]
    if not pending:
        return None
    return min(pending, key=lambda s: s.step_order)


def evaluate_skip_rule(step: TravelRequestApprovalStep, travel_request: TravelRequest) -> Optional[str]:
    """Return the reason a step is skipped, or None when it needs a decision."""
    if (
        step.skip_if_self_approver
        and step.approver_user_id is not None
        and step.approver_user_id == travel_request.user_id
    ):
        return SELF_APPROVER_REASON

    threshold = step.skip_if_amount_under
    if threshold is not None:
        estimated = Decimal(str(travel_request.estimated_total or 0))
        if estimated < Decimal(str(threshold)):
            return f"Estimated total {estimated} is under the {threshold} approval threshold"
    return None


def _advance_chain(db: Session, travel_request: TravelRequest, now: datetime) -> List[NotificationEvent]:
    """Skip what can be skipped, then activate the next step or approve the request."""
    events = []
    db.flush()
    steps = travel_request_crud.get_steps(db, travel_request_id=travel_request.id)
    for step in steps:
        if step.status != ApprovalStepStatus.PENDING:
            continue
        reason = evaluate_skip_rule(step, travel_request)
        if reason is None:
            events.append(_event(
                travel_request, NotificationKind.SUBMITTED, step.approver_user_id,
                f"Travel request awaiting approval: {travel_request.destination}",
                f"A travel request to {travel_request.destination} ({travel_request.start_date} - "
                f"{travel_request.end_date}) is waiting for your decision at level {step.step_order}.",
            ))
            logger.info(f"Travel request {travel_request.id} waiting on step {step.step_order}")
            return events

        step.status = ApprovalStepStatus.SKIPPED
        step.skip_reason = reason
        logger.info(f"Travel request {travel_request.id} step {step.step_order} skipped: {reason}")
        events.append(_event(
            travel_request, NotificationKind.SKIPPED, travel_request.user_id,
            f"Approval level {step.step_order} skipped",
            f"Level {step.step_order} of your travel request to {travel_request.destination} "
            f"was skipped: {reason}",
        ))

    _transition(db, travel_request, (TravelRequestStatus.PENDING_APPROVAL,), {
        "status": TravelRequestStatus.APPROVED,
        "decided_at": now,
    })
    logger.info(f"Travel request {travel_request.id} approved")
    events.append(_event(
        travel_request, NotificationKind.APPROVED, travel_request.user_id,
        f"Travel request approved: {travel_request.destination}",
        f"Your travel request to {travel_request.destination} was approved.",
    ))
    return events


# ===== Requester side =====

def create_travel_request(
    db: Session, *, user_id: int, data: TravelRequestCreate, tenant_id: Optional[str] = None
) -> TravelRequest:
    return travel_request_crud.create(
        db, obj_in=data, user_id=user_id, tenant_id=tenant_id, status=TravelRequestStatus.DRAFT
    )


def submit_travel_request(
    db: Session,
    *,
    request_id: int,
    requester_id: int,
    step_templates: Sequence[ApprovalStepTemplate],
    dispatcher: Optional[NotificationDispatcher] = None,
) -> TravelRequest:
    """Instantiate the approval chain and activate its first step.

    A rejected or cancelled request can be submitted again; its previous
    steps are replaced.
    """
    travel_request = _get_request(db, request_id)
    if travel_request.user_id != requester_id:
        raise PermissionDenied("Only the requester can submit this travel request")
    if travel_request.status not in SUBMITTABLE_STATUSES:
        raise InvalidState(
            f"Travel request {request_id} is {travel_request.status.value} and cannot be submitted"
        )

    now = datetime.utcnow()
    try:
        for old_step in list(travel_request.approval_steps):
            db.delete(old_step)
        db.flush()
        db.expire(travel_request, ["approval_steps"])

        for order, template in enumerate(step_templates, start=1):
            db.add(TravelRequestApprovalStep(
                travel_request_id=request_id,
                step_order=order,
                approver_rule=template.approver_rule,
                approver_user_id=template.approver_user_id,
                skip_if_amount_under=template.skip_if_amount_under,
                skip_if_self_approver=template.skip_if_self_approver,
                status=ApprovalStepStatus.PENDING,
            ))

        travel_request.status = TravelRequestStatus.PENDING_APPROVAL
        travel_request.submitted_at = now
        travel_request.decided_at = None
        travel_request.rejection_reason = None
        travel_request.cancelled_at = None

        events = _advance_chain(db, travel_request, now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(travel_request)
    logger.info(f"Travel request {request_id} submitted with {len(step_templates)} approval levels")
    dispatch_events(db, events, dispatcher)
    return travel_request


def cancel_travel_request(db: Session, *, request_id: int, requester_id: int) -> TravelRequest:
    travel_request = _get_request(db, request_id)
    if travel_request.user_id != requester_id:
        raise PermissionDenied("Only the requester can cancel this travel request")
    if travel_request.status == TravelRequestStatus.CANCELLED:
        return travel_request
    if travel_request.status not in CANCELLABLE_STATUSES:
        raise InvalidState(
            f"Travel request {request_id} is {travel_request.status.value} and cannot be cancelled"
        )

    open_statuses = [s for s in CANCELLABLE_STATUSES if s != TravelRequestStatus.CANCELLED]
    try:
        _transition(db, travel_request, open_statuses, {
            "status": TravelRequestStatus.CANCELLED,
            "cancelled_at": datetime.utcnow(),
        })
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(travel_request)
    logger.info(f"Travel request {request_id} cancelled by requester")
    return travel_request


def delete_travel_request(db: Session, *, request_id: int) -> None:
    """Remove a request and everything that references it."""
    _get_request(db, request_id)
    try:
        db.query(TravelRequestApprovalStep).filter(
            TravelRequestApprovalStep.travel_request_id == request_id
        ).delete(synchronize_session="fetch")
        db.query(Notification).filter(
            Notification.entity_type == NotificationEntity.TRAVEL_REQUEST,
            Notification.entity_id == request_id,
        ).delete(synchronize_session="fetch")
        db.query(TravelPolicyViolation).filter(
            TravelPolicyViolation.travel_request_id == request_id
        ).delete(synchronize_session="fetch")
        db.query(ApprovedTravel).filter(
            ApprovedTravel.travel_request_id == request_id
        ).delete(synchronize_session="fetch")
        db.query(TravelRequest).filter(TravelRequest.id == request_id).delete(synchronize_session="fetch")
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Travel request {request_id} deleted")


# ===== Approver side =====

def _get_decidable_step(
    db: Session, travel_request: TravelRequest, step_id: int, approver_id: int
) -> TravelRequestApprovalStep:
    step = db.query(TravelRequestApprovalStep).filter(
        TravelRequestApprovalStep.id == step_id,
        TravelRequestApprovalStep.travel_request_id == travel_request.id,
    ).first()
    if not step:
        raise NotFound(f"Approval step {step_id} not found on travel request {travel_request.id}")
    if step.status != ApprovalStepStatus.PENDING:
        raise StaleDecision(f"Approval step {step_id} was already {step.status.value}")

    current = active_step(travel_request)
    if current is None or current.id != step.id:
        raise InvalidState(f"Approval step {step_id} is not the active step")
    if step.approver_user_id != approver_id:
        raise InvalidState(f"Approval step {step_id} is assigned to another approver")
    return step


def _decide(db: Session, step: TravelRequestApprovalStep, status: ApprovalStepStatus,
            approver_id: int, comment: Optional[str], now: datetime) -> None:
    updated = db.query(TravelRequestApprovalStep).filter(
        TravelRequestApprovalStep.id == step.id,
        TravelRequestApprovalStep.status == ApprovalStepStatus.PENDING,
    ).update({
        "status": status,
        "decided_at": now,
        "decided_by": approver_id,
        "comment": comment,
    }, synchronize_session=False)
    if updated != 1:
        raise StaleDecision(f"Approval step {step.id} was decided by someone else")
    db.expire(step)


def approve_step(
    db: Session,
    *,
    request_id: int,
    step_id: int,
    approver_id: int,
    comment: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> TravelRequest:
    travel_request = _get_request(db, request_id)
    step = _get_decidable_step(db, travel_request, step_id, approver_id)

    now = datetime.utcnow()
    try:
        _decide(db, step, ApprovalStepStatus.APPROVED, approver_id, (comment or "").strip() or None, now)
        events = _advance_chain(db, travel_request, now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(travel_request)
    dispatch_events(db, events, dispatcher)
    return travel_request


def reject_step(
    db: Session,
    *,
    request_id: int,
    step_id: int,
    approver_id: int,
    comment: Optional[str],
    dispatcher: Optional[NotificationDispatcher] = None,
) -> TravelRequest:
    """Reject at the active level; later levels stay pending and the chain ends."""
    if not (comment or "").strip():
        raise MissingJustification("A comment is required to reject a travel request")

    travel_request = _get_request(db, request_id)
    step = _get_decidable_step(db, travel_request, step_id, approver_id)

    reason = comment.strip()
    now = datetime.utcnow()
    try:
        _decide(db, step, ApprovalStepStatus.REJECTED, approver_id, reason, now)
        _transition(db, travel_request, (TravelRequestStatus.PENDING_APPROVAL,), {
            "status": TravelRequestStatus.REJECTED,
            "rejection_reason": reason,
            "decided_at": now,
        })
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(travel_request)
    logger.info(f"Travel request {request_id} rejected at step {step.step_order} by user {approver_id}")
    dispatch_events(db, [
        _event(travel_request, NotificationKind.REJECTED, travel_request.user_id,
               f"Travel request rejected: {travel_request.destination}",
               f"Your travel request to {travel_request.destination} was rejected: {reason}"),
    ], dispatcher)
    return travel_request


def mark_partially_approved(db: Session, *, request_id: int) -> TravelRequest:
    """Record the partial-approval outcome reported by the policy evaluator."""
    travel_request = _get_request(db, request_id)
    updated = db.query(TravelRequest).filter(
        TravelRequest.id == request_id,
        TravelRequest.status == TravelRequestStatus.PENDING_APPROVAL,
    ).update({
        "status": TravelRequestStatus.PARTIALLY_APPROVED,
        "decided_at": datetime.utcnow(),
    }, synchronize_session=False)
    if updated != 1:
        db.rollback()
        raise InvalidState(
            f"Travel request {request_id} is {travel_request.status.value}; "
            f"only pending requests can be partially approved"
        )
    db.commit()
    db.refresh(travel_request)
    return travel_request


def generate_approval_number(travel_request: TravelRequest) -> str:
    decided = travel_request.decided_at or datetime.utcnow()
    return f"TA-{decided.year}-{travel_request.id:05d}"


def attach_approved_budget(db: Session, *, request_id: int, data: ApprovedTravelCreate) -> ApprovedTravel:
    """Store the budget envelope of an approved request, optionally linking an expense report."""
    travel_request = _get_request(db, request_id)
    if travel_request.status not in APPROVED_STATUSES:
        raise InvalidState(f"Travel request {request_id} has not been approved")
    if data.expense_report_id is not None and not db.query(Report).filter(Report.id == data.expense_report_id).first():
        raise NotFound(f"Report {data.expense_report_id} not found")

    budget = data.approved_budget.model_dump(mode="json")
    approved_travel = travel_request.approved_travel
    if approved_travel is None:
        approved_travel = ApprovedTravel(travel_request_id=request_id)
        db.add(approved_travel)
    approved_travel.approved_budget = budget
    approved_travel.approval_number = data.approval_number or generate_approval_number(travel_request)
    if data.expense_report_id is not None:
        approved_travel.expense_report_id = data.expense_report_id
    db.commit()
    db.refresh(approved_travel)
    return approved_travel
