from typing import Optional

from sqlmodel import Session, select

from ebookstore.models.notifications import Notification, NotificationType


def create_notification(
    *,
    session: Session,
    user_id: int,
    title: str,
    message: str,
    type: NotificationType = NotificationType.info,
    link: Optional[str] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        link=link,
    )
    session.add(notification)
    session.flush()
    return notification


def mark_all_read(session: Session, user_id: int) -> int:
    unread = session.exec(
        select(Notification)
        .where(Notification.user_id == user_id)
        .where(Notification.read == False)  # noqa: E712
    ).all()

    for notification in unread:
        notification.read = True
        session.add(notification)

    session.commit()
    return len(unread)
