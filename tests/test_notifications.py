from datetime import datetime

import notifications
from database import Expense, MonthlyRecord, Notification, SessionLocal, User
from notifications import create_notification, generate_for_user, sweep_notifications


def make_user(db, email="asha@example.com"):
    user = User(username="asha", email=email, password=None)
    db.add(user)
    db.commit()
    return user


def test_generate_for_user_dedupes_by_title_per_day(db):
    user = make_user(db)
    db.add(
        MonthlyRecord(
            user_id=user.id,
            month="2025-03",
            income=0,
            expenses={"subscriptions": 499},
            savings={},
        )
    )
    db.commit()

    now = datetime(2025, 3, 3, 21, 0)
    assert generate_for_user(db, user.id, now) == 2
    assert generate_for_user(db, user.id, now.replace(hour=22)) == 0

    titles = sorted(n.title for n in db.query(Notification).all())
    assert titles == ["No Spend Day", "Subscription Reminder"]

    # next day the same alerts may fire again
    assert generate_for_user(db, user.id, datetime(2025, 3, 4, 21, 0)) == 2


def test_spike_uses_current_month_expenses(db):
    user = make_user(db)
    db.add_all(
        [
            Expense(user_id=user.id, title="Bread", amount=50, category="Food",
                    date=datetime(2025, 3, 1, 9)),
            Expense(user_id=user.id, title="Phone", amount=900, category="Gadgets",
                    date=datetime(2025, 3, 4, 9)),
            Expense(user_id=user.id, title="Old", amount=5000, category="Food",
                    date=datetime(2025, 2, 20, 9)),
        ]
    )
    db.commit()

    generate_for_user(db, user.id, datetime(2025, 3, 4, 12, 0))
    titles = [n.title for n in db.query(Notification).all()]
    assert titles == ["Unusual Spending Spike"]


def test_create_notification_skips_duplicates(db):
    user = make_user(db)
    now = datetime(2025, 3, 4, 9, 0)
    assert create_notification(db, user.id, "Wallet Low", "msg", "warning", now) is True
    db.commit()
    assert create_notification(db, user.id, "Wallet Low", "later", "warning", now.replace(hour=18)) is False
    assert create_notification(db, user.id, "Wallet Low", "msg", "warning", now.replace(day=5)) is True


def test_create_notification_from_two_sessions(db):
    user = make_user(db)
    now = datetime(2025, 3, 4, 9, 0)
    first, second = SessionLocal(), SessionLocal()
    try:
        written = [
            create_notification(first, user.id, "Wallet Low", "msg", "warning", now),
            create_notification(second, user.id, "Wallet Low", "msg", "warning", now),
        ]
        first.commit()
        second.commit()
    finally:
        first.close()
        second.close()

    assert sorted(written) == [False, True]
    assert db.query(Notification).filter(Notification.user_id == user.id).count() == 1


def seed_subscriptions(db, *users):
    for user in users:
        db.add(
            MonthlyRecord(
                user_id=user.id,
                month="2025-03",
                income=0,
                expenses={"subscriptions": 199},
                savings={},
            )
        )
    db.commit()


def test_sweep_covers_every_user(db):
    first = make_user(db)
    second = make_user(db, email="ravi@example.com")
    seed_subscriptions(db, first, second)

    sweep_notifications(datetime(2025, 3, 3, 10, 0))

    db.expire_all()
    reminders = db.query(Notification).filter(Notification.title == "Subscription Reminder").all()
    assert {n.user_id for n in reminders} == {first.id, second.id}


def test_sweep_continues_after_a_failing_user(db, monkeypatch):
    first = make_user(db)
    second = make_user(db, email="ravi@example.com")
    seed_subscriptions(db, first, second)

    real_generate = notifications.generate_for_user

    def fail_for_first(session, user_id, now=None):
        if user_id == first.id:
            raise RuntimeError("boom")
        return real_generate(session, user_id, now)

    monkeypatch.setattr(notifications, "generate_for_user", fail_for_first)

    sweep_notifications(datetime(2025, 3, 3, 10, 0))

    db.expire_all()
    owners = {n.user_id for n in db.query(Notification).all()}
    assert owners == {second.id}


def test_generate_list_and_mark_read(client, auth_headers):
    res = client.post("/api/notifications/generate", headers=auth_headers)
    assert res.status_code == 200
    assert isinstance(res.json(), list)

    client.post("/api/wallet/setup", json={"month": datetime.now().strftime("%Y-%m"), "limit": 100},
                headers=auth_headers)
    client.post("/api/wallet/spend", json={"amount": 150, "category": "Food"}, headers=auth_headers)

    items = client.get("/api/notifications", headers=auth_headers).json()
    assert "Wallet Overdraft!" in [n["title"] for n in items]
    assert all(n["is_read"] is False for n in items)

    res = client.put("/api/notifications/read", headers=auth_headers)
    assert res.json() == {"msg": "All marked as read"}
    items = client.get("/api/notifications", headers=auth_headers).json()
    assert items and all(n["is_read"] for n in items)
