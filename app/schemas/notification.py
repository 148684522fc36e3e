from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from app.models.notification import NotificationEntity, NotificationKind


class NotificationResponse(BaseModel):
    id: int
    kind: NotificationKind
    entity_type: NotificationEntity
    entity_id: int
    recipient_user_id: Optional[int] = None
    title: str
    message: str
    action_url: Optional[str] = None
    is_read: bool
    sent_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
