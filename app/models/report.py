"""Expense report models."""
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer, Date, Enum, Numeric
from sqlalchemy.orm import relationship

from app.models.base import BaseModel


class ReportStatus(str, PyEnum):
    """Lifecycle of an expense report.

    A report the manager sends back goes to OPEN again; there is no
    terminal rejected state for reports.
    """
    DRAFT = "draft"
    OPEN = "open"
    PENDING_APPROVAL = "pending_approval"
    CLOSED = "closed"


class ReportAction(str, PyEnum):
    CREATED = "created"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    EDITED = "edited"


class Report(BaseModel):
    """Travel expense report owned by one employee."""
    __tablename__ = "reports"

    user_id = Column(Integer, nullable=False, index=True)
    trip_destination = Column(String(255), nullable=False)
    trip_purpose = Column(Text, nullable=True)
    trip_start_date = Column(Date, nullable=False)
    trip_end_date = Column(Date, nullable=False)
    status = Column(
        Enum(ReportStatus, values_callable=lambda x: [e.value for e in x]),
        default=ReportStatus.DRAFT,
        nullable=False,
        index=True,
    )
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    manager_id = Column(Integer, nullable=True, index=True)
    manager_approval_token = Column(String(128), nullable=True, unique=True, index=True)
    manager_approval_requested_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approved_by = Column(Integer, nullable=True)

    # Relationships
    expenses = relationship(
        "Expense",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="Expense.expense_date",
    )
    history = relationship(
        "ReportHistory",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="ReportHistory.id",
    )
    approved_travel = relationship("ApprovedTravel", back_populates="expense_report", uselist=False)


class ReportHistory(BaseModel):
    """Audit trail entry for a report transition."""
    __tablename__ = "report_history"

    report_id = Column(Integer, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(Enum(ReportAction, values_callable=lambda x: [e.value for e in x]), nullable=False)
    performed_by = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    report = relationship("Report", back_populates="history")
