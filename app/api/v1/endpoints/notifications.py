from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from app import crud
from app.core.deps import get_current_user
from app.db.database import get_db
from app.schemas.auth import CurrentUser
from app.schemas.notification import NotificationResponse

router = APIRouter()


@router.get("/", response_model=List[NotificationResponse])
def get_my_notifications(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    unread_only: bool = Query(False, description="Get only unread notifications"),
) -> Any:
    """Get current user's in-app notifications"""
    return crud.notification.get_for_user(db, user_id=current_user.id, unread_only=unread_only)


@router.post("/mark-read/{notification_id}")
def mark_notification_read(
    *,
    db: Session = Depends(get_db),
    notification_id: int,
    current_user: CurrentUser = Depends(get_current_user),
) -> Any:
    """Mark a notification as read"""
    notification = crud.notification.get(db, notification_id)
    if not notification or notification.recipient_user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )

    crud.notification.mark_as_read(db, notification=notification)
    return {"message": "Notification marked as read"}
