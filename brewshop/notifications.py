# brewshop/notifications.py

from typing import List

from sqlalchemy import update
from sqlmodel import Session, select

from brewshop.models import Notification, User


def list_notifications(session: Session, user: User, unread_only: bool = False) -> List[Notification]:
    statement = select(Notification).where(Notification.user_id == user.id)
    if unread_only:
        statement = statement.where(Notification.is_read == False)  # noqa: E712
    statement = statement.order_by(Notification.created_at.desc(), Notification.id.desc())
    return list(session.exec(statement).all())


def mark_notifications_read(session: Session, user: User) -> int:
    result = session.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read == False)  # noqa: E712
        .values(is_read=True)
    )
    session.commit()
    return result.rowcount
