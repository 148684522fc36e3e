from .auth import TokenData, CurrentUser
from .expense import ExpenseCreate, ExpenseUpdate, ExpenseResponse, CategoryCorrection
from .report import (
    ReportCreate, ReportSubmit, ReportResponse, ReportHistoryResponse,
    ExpenseDecision, ManagerReview, TokenDecision,
)
from .travel_request import (
    TravelRequestCreate, TravelRequestSubmit, TravelRequestResponse,
    ApprovalStepTemplate, ApprovalStepResponse, StepDecision,
)
from .budget import (
    ApprovedBudget, ApprovedTravelCreate, BudgetLineResponse,
    BudgetComparisonResponse, DuplicateGroupResponse, ApprovedTravelResponse,
)
from .notification import NotificationResponse
