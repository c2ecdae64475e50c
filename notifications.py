import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from analysis import current_month, month_bounds, notification_alerts
from auth import get_current_user
from database import (
    get_db,
    insert_ignore,
    Expense,
    MonthlyRecord,
    Notification,
    User,
    SessionLocal,
)
from schemas import NotificationOut

logger = logging.getLogger(__name__)

notifications_router = APIRouter()


def create_notification(db: Session, user_id: int, title, message, type="info", now=None) -> bool:
    """
    Store a notification unless the same title was already sent to the user
    today. Returns True when a row was written.
    """
    now = now or datetime.now()
    return insert_ignore(
        db,
        Notification,
        {
            "user_id": user_id,
            "title": title,
            "message": message,
            "type": type,
            "is_read": False,
            "date": now,
            "day": now.date(),
        },
        ["user_id", "title", "day"],
    )


def generate_for_user(db: Session, user_id: int, now: Optional[datetime] = None) -> int:
    now = now or datetime.now()
    month = current_month(now)
    record = (
        db.query(MonthlyRecord)
        .filter(MonthlyRecord.user_id == user_id, MonthlyRecord.month == month)
        .first()
    )
    start, end = month_bounds(month)
    month_expenses = (
        db.query(Expense)
        .filter(Expense.user_id == user_id, Expense.date >= start, Expense.date < end)
        .all()
    )

    created = 0
    for alert in notification_alerts(record, month_expenses, now):
        if create_notification(db, user_id, alert["title"], alert["message"], alert["type"], now):
            created += 1
    db.commit()
    return created


def latest_notifications(db: Session, user_id: int, limit: int):
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.date.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def sweep_notifications(now: Optional[datetime] = None):
    """Scheduled job: run the notification rules for every user."""
    with SessionLocal() as db:
        user_ids = [row.id for row in db.query(User.id).all()]
        total = 0
        for user_id in user_ids:
            try:
                total += generate_for_user(db, user_id, now)
            except Exception:
                logger.exception("Notification sweep failed for user %s", user_id)
                db.rollback()
    logger.info("Notification sweep created %d notifications for %d users", total, len(user_ids))


@notifications_router.post("/generate", response_model=list[NotificationOut])
async def generate_notifications(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    generate_for_user(db, current_user.id)
    return latest_notifications(db, current_user.id, 10)


@notifications_router.get("", response_model=list[NotificationOut])
async def get_notifications(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return latest_notifications(db, current_user.id, 20)


@notifications_router.put("/read")
async def mark_read(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    db.query(Notification).filter(Notification.user_id == current_user.id).update(
        {Notification.is_read: True}
    )
    db.commit()
    return {"msg": "All marked as read"}
