from typing import List, Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.travel_request import TravelRequest, ApprovedTravel
from app.models.travel_request_approval_step import TravelRequestApprovalStep
from app.schemas.travel_request import TravelRequestCreate


class CRUDTravelRequest(CRUDBase[TravelRequest, TravelRequestCreate, TravelRequestCreate]):
    def get_by_user(self, db: Session, *, user_id: int) -> List[TravelRequest]:
        return db.query(TravelRequest).filter(
            TravelRequest.user_id == user_id
        ).order_by(TravelRequest.id.desc()).all()

    def get_steps(self, db: Session, *, travel_request_id: int) -> List[TravelRequestApprovalStep]:
        return db.query(TravelRequestApprovalStep).filter(
            TravelRequestApprovalStep.travel_request_id == travel_request_id
        ).order_by(TravelRequestApprovalStep.step_order).all()

    def get_approved_travel_for_report(self, db: Session, *, report_id: int) -> Optional[ApprovedTravel]:
        return db.query(ApprovedTravel).filter(ApprovedTravel.expense_report_id == report_id).first()


travel_request = CRUDTravelRequest(TravelRequest)
