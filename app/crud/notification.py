from datetime import datetime
from typing import List
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.notification import Notification, NotificationEntity
from app.schemas.notification import NotificationResponse


class CRUDNotification(CRUDBase[Notification, NotificationResponse, NotificationResponse]):
    def get_for_entity(
        self, db: Session, *, entity_type: NotificationEntity, entity_id: int
    ) -> List[Notification]:
        return db.query(Notification).filter(
            Notification.entity_type == entity_type,
            Notification.entity_id == entity_id,
        ).order_by(Notification.id).all()

    def get_for_user(self, db: Session, *, user_id: int, unread_only: bool = False) -> List[Notification]:
        query = db.query(Notification).filter(Notification.recipient_user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)
        return query.order_by(Notification.id.desc()).all()

    def mark_as_read(self, db: Session, *, notification: Notification) -> Notification:
        return self.update(db, db_obj=notification, obj_in={"is_read": True, "read_at": datetime.utcnow()})


notification = CRUDNotification(Notification)
