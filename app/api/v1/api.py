from fastapi import APIRouter
from app.api.v1.endpoints import notifications, reports, travel_request_approvals, travel_requests

# Create main API router
api_router = APIRouter()

api_router.include_router(
    reports.router,
    prefix="/reports",
    tags=["expense-reports"]
)

api_router.include_router(
    travel_requests.router,
    prefix="/travel-requests",
    tags=["travel-requests"]
)

api_router.include_router(
    travel_request_approvals.router,
    prefix="/travel-requests",
    tags=["travel-request-approvals"]
)

api_router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["notifications"]
)
