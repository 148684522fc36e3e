"""Travel request models for pre-trip approval."""
from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer, Date, Enum, Numeric, JSON
from sqlalchemy.orm import relationship

from app.db.database import Base


class TravelRequestStatus(str, PyEnum):
    """Status options for travel requests."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially_approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class TravelRequest(Base):
    """Travel request model."""
    __tablename__ = "travel_requests"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(100), nullable=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    destination = Column(String(255), nullable=False)
    purpose = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    estimated_total = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(
        Enum(TravelRequestStatus, values_callable=lambda x: [e.value for e in x]),
        default=TravelRequestStatus.DRAFT,
        nullable=False,
        index=True
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    decided_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Relationships
    approval_steps = relationship(
        "TravelRequestApprovalStep",
        back_populates="travel_request",
        order_by="TravelRequestApprovalStep.step_order",
    )
    approved_travel = relationship("ApprovedTravel", back_populates="travel_request", uselist=False)


class ApprovedTravel(Base):
    """Approved budget envelope issued for an approved travel request.

    ``approved_budget`` holds the per-category caps: flights,
    accommodation_per_night, accommodation_total, meals_per_day,
    meals_total, transport, other and total.
    """
    __tablename__ = "approved_travels"

    id = Column(Integer, primary_key=True, index=True)
    travel_request_id = Column(Integer, ForeignKey("travel_requests.id", ondelete="CASCADE"), nullable=False, unique=True)
    expense_report_id = Column(Integer, ForeignKey("reports.id", ondelete="SET NULL"), nullable=True, index=True)
    approval_number = Column(String(50), nullable=True)
    approved_budget = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    travel_request = relationship("TravelRequest", back_populates="approved_travel")
    expense_report = relationship("Report", back_populates="approved_travel")


class TravelPolicyViolation(Base):
    """Policy violation recorded against a travel request by the policy evaluator."""
    __tablename__ = "travel_policy_violations"

    id = Column(Integer, primary_key=True, index=True)
    travel_request_id = Column(Integer, ForeignKey("travel_requests.id"), nullable=False, index=True)
    rule_name = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    severity = Column(String(20), nullable=False, default="warn")  # block, warn, require_approval
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
