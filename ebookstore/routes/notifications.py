from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import Session, select

from ebookstore.database import get_session
from ebookstore.models.notifications import Notification
from ebookstore.models.user import User
from ebookstore.services.notification_service import mark_all_read
from ebookstore.utils.token import get_current_user

router = APIRouter()


class NotificationUpdate(BaseModel):
    read: bool


@router.get("")
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        query = query.where(Notification.read == False)  # noqa: E712

    notifications = session.exec(
        query.order_by(Notification.created_at.desc()).limit(limit)
    ).all()

    unread = session.exec(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == current_user.id)
        .where(Notification.read == False)  # noqa: E712
    ).one()
    return {"notifications": notifications, "unread_count": unread}


@router.patch("/{notification_id}")
def update_notification(
    notification_id: int,
    data: NotificationUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    notification = session.get(Notification, notification_id)
    if not notification or notification.user_id != current_user.id:
        raise HTTPException(404, "Notification not found")

    notification.read = data.read
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


@router.post("/mark-all-read")
def read_all(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    updated = mark_all_read(session, current_user.id)
    return {"updated": updated}
