"""Travel request approval step model."""
from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Enum, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship

from app.models.base import BaseModel


class ApprovalStepStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SKIPPED = "skipped"


class ApproverRule(str, PyEnum):
    """How the policy service picked the approver for a level."""
    DIRECT_MANAGER = "direct_manager"
    ORG_ADMIN = "org_admin"
    ACCOUNTING_MANAGER = "accounting_manager"
    SPECIFIC_USER = "specific_user"


class TravelRequestApprovalStep(BaseModel):
    """One level of the approval chain of a travel request."""
    __tablename__ = "travel_request_approval_steps"
    __table_args__ = (
        UniqueConstraint("travel_request_id", "step_order", name="uq_travel_request_step_order"),
    )

    travel_request_id = Column(Integer, ForeignKey("travel_requests.id"), nullable=False, index=True)
    step_order = Column(Integer, nullable=False)
    approver_rule = Column(
        Enum(ApproverRule, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=ApproverRule.DIRECT_MANAGER,
    )
    approver_user_id = Column(Integer, nullable=True, index=True)
    status = Column(
        Enum(ApprovalStepStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=ApprovalStepStatus.PENDING,
    )

    # Skip rule evaluated before the level becomes active
    skip_if_amount_under = Column(Numeric(12, 2), nullable=True)
    skip_if_self_approver = Column(Boolean, nullable=False, default=True)
    skip_reason = Column(Text, nullable=True)

    decided_at = Column(DateTime, nullable=True)
    decided_by = Column(Integer, nullable=True)
    comment = Column(Text, nullable=True)

    # Relationships
    travel_request = relationship("TravelRequest", back_populates="approval_steps")
