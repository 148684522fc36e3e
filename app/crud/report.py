from typing import List, Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.report import Report, ReportHistory, ReportAction, ReportStatus
from app.schemas.report import ReportCreate


class CRUDReport(CRUDBase[Report, ReportCreate, ReportCreate]):
    def get_by_user(self, db: Session, *, user_id: int) -> List[Report]:
        return db.query(Report).filter(Report.user_id == user_id).order_by(Report.id.desc()).all()

    def get_by_token(self, db: Session, *, token: str) -> Optional[Report]:
        return db.query(Report).filter(Report.manager_approval_token == token).first()

    def get_pending_for_manager(self, db: Session, *, manager_id: int) -> List[Report]:
        return db.query(Report).filter(
            Report.manager_id == manager_id,
            Report.status == ReportStatus.PENDING_APPROVAL,
        ).all()

    def log_action(
        self, db: Session, *, report_id: int, action: ReportAction, performed_by: int, notes: Optional[str] = None
    ) -> ReportHistory:
        """Append a history entry; the caller owns the transaction."""
        entry = ReportHistory(report_id=report_id, action=action, performed_by=performed_by, notes=notes)
        db.add(entry)
        return entry

    def get_history(self, db: Session, *, report_id: int) -> List[ReportHistory]:
        return db.query(ReportHistory).filter(
            ReportHistory.report_id == report_id
        ).order_by(ReportHistory.id).all()


report = CRUDReport(Report)
