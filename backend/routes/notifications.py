# backend/routes/notifications.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from database import get_db, UnitOfWork
from models.users import User
from services import notification_service
from utils.tokenJWT import get_current_user
import schemas.notification as notification_schemas

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# Own notifications, newest first
@router.get("", response_model=notification_schemas.NotificationPage)
def list_notifications(
    is_read: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(15, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notification_service.list_user_notifications(
        db, current_user.id, is_read=is_read, page=page, page_size=page_size,
    )


# Declared before /{notification_id}/read so "read-all" is not parsed as an id
@router.patch("/read-all", response_model=notification_schemas.MarkAllReadResponse)
def mark_all_notifications_read(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    with UnitOfWork(db):
        count = notification_service.mark_all_as_read(db, current_user.id)
    return {"updated": count}


@router.patch("/{notification_id}/read", response_model=notification_schemas.NotificationOut)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with UnitOfWork(db):
        notification = notification_service.mark_as_read(db, notification_id, current_user.id)
    return notification
