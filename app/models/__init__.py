from .base import BaseModel
from .expense import Expense, ExpenseCategory, ExpenseApprovalStatus, ExpenseSource
from .report import Report, ReportHistory, ReportStatus, ReportAction
from .travel_request import TravelRequest, TravelRequestStatus, ApprovedTravel, TravelPolicyViolation
from .travel_request_approval_step import TravelRequestApprovalStep, ApprovalStepStatus, ApproverRule
from .notification import Notification, NotificationKind, NotificationEntity

__all__ = [
    "BaseModel", "Expense", "ExpenseCategory", "ExpenseApprovalStatus", "ExpenseSource",
    "Report", "ReportHistory", "ReportStatus", "ReportAction",
    "TravelRequest", "TravelRequestStatus", "ApprovedTravel", "TravelPolicyViolation",
    "TravelRequestApprovalStep", "ApprovalStepStatus", "ApproverRule",
    "Notification", "NotificationKind", "NotificationEntity",
]
