from sqlalchemy import Column, String, Boolean, DateTime, Text, Integer, Enum
from app.models.base import BaseModel
import enum


class NotificationKind(str, enum.Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    SKIPPED = "skipped"
    FORWARDED_TO_ACCOUNTING = "forwarded_to_accounting"


class NotificationEntity(str, enum.Enum):
    REPORT = "report"
    TRAVEL_REQUEST = "travel_request"


class Notification(BaseModel):
    __tablename__ = "notifications"

    kind = Column(Enum(NotificationKind, values_callable=lambda x: [e.value for e in x]), nullable=False)
    entity_type = Column(Enum(NotificationEntity, values_callable=lambda x: [e.value for e in x]), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)
    recipient_user_id = Column(Integer, nullable=True, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
