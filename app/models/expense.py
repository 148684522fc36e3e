"""Expense line models for travel expense reports."""
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer, Date, Enum, Numeric
from sqlalchemy.orm import relationship

from app.models.base import BaseModel


class ExpenseCategory(str, PyEnum):
    """Category of a single expense line."""
    FLIGHTS = "flights"
    ACCOMMODATION = "accommodation"
    FOOD = "food"
    TRANSPORTATION = "transportation"
    MISCELLANEOUS = "miscellaneous"


class ExpenseApprovalStatus(str, PyEnum):
    """Manager decision on a single expense line."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ExpenseSource(str, PyEnum):
    EMPLOYEE = "employee"
    ACCOUNTING = "accounting"


class Expense(BaseModel):
    """One line of an expense report."""
    __tablename__ = "expenses"

    report_id = Column(Integer, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    expense_date = Column(Date, nullable=False, index=True)
    category = Column(Enum(ExpenseCategory, values_callable=lambda x: [e.value for e in x]), nullable=False)
    description = Column(Text, nullable=False, default="")
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)  # ISO 4217 currency code
    amount_in_base = Column(Numeric(12, 2), nullable=False)
    approval_status = Column(
        Enum(ExpenseApprovalStatus, values_callable=lambda x: [e.value for e in x]),
        default=ExpenseApprovalStatus.PENDING,
        nullable=False,
    )
    manager_comment = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(Integer, nullable=True)
    created_by = Column(Integer, nullable=False)
    source = Column(
        Enum(ExpenseSource, values_callable=lambda x: [e.value for e in x]),
        default=ExpenseSource.EMPLOYEE,
        nullable=False,
    )

    # Relationships
    report = relationship("Report", back_populates="expenses")
