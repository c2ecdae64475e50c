import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from analysis import (
    current_month,
    expense_agent_alerts,
    ledger_totals,
    money,
    month_bounds,
    spending_analysis,
)
from auth import get_current_user
from database import (
    get_db,
    insert_ignore,
    default_expenses,
    default_profile,
    default_savings,
    Expense,
    MonthlyRecord,
    RecordTransaction,
    User,
    WalletTransaction,
)
from notifications import create_notification
from schemas import (
    ExpenseCreate,
    ExpenseOut,
    LedgerAdd,
    LedgerDelete,
    MonthlyRecordIn,
    MonthlyRecordOut,
    ProfileUpdate,
    WalletRollover,
    WalletSetup,
    WalletSpend,
)

logger = logging.getLogger(__name__)

PERIOD_PATTERN = r"^(all|\d{4}-(0[1-9]|1[0-2]))$"

records_router = APIRouter()
expenses_router = APIRouter()
expense_agent_router = APIRouter()
wallet_router = APIRouter()
profile_router = APIRouter()


def find_record(db: Session, user_id: int, month: str) -> Optional[MonthlyRecord]:
    return (
        db.query(MonthlyRecord)
        .filter(MonthlyRecord.user_id == user_id, MonthlyRecord.month == month)
        .first()
    )


def latest_record(db: Session, user_id: int) -> Optional[MonthlyRecord]:
    return (
        db.query(MonthlyRecord)
        .filter(MonthlyRecord.user_id == user_id)
        .order_by(MonthlyRecord.month.desc())
        .first()
    )


def get_or_create_record(db: Session, user_id: int, month: str) -> MonthlyRecord:
    record = find_record(db, user_id, month)
    if record is not None:
        return record

    # a concurrent writer may create the same (user, month) row first
    insert_ignore(
        db,
        MonthlyRecord,
        {
            "user_id": user_id,
            "month": month,
            "income": 0.0,
            "expenses": default_expenses(),
            "savings": default_savings(),
            "wallet_limit": 0.0,
            "wallet_spent": 0.0,
            "wallet_rolled_over": False,
            "total_needs": 0.0,
            "total_wants": 0.0,
        },
        ["user_id", "month"],
    )
    return find_record(db, user_id, month)


def records_for_period(db: Session, user_id: int, period: str):
    query = db.query(MonthlyRecord).filter(MonthlyRecord.user_id == user_id)
    if period != "all":
        query = query.filter(MonthlyRecord.month == period)
    return query.order_by(MonthlyRecord.month.desc()).all()


def expenses_for_period(db: Session, user_id: int, period: str):
    query = db.query(Expense).filter(Expense.user_id == user_id)
    if period != "all":
        start, end = month_bounds(period)
        query = query.filter(Expense.date >= start, Expense.date < end)
    return query.order_by(Expense.date.desc()).all()


# --- monthly records ---


@records_router.post("", response_model=MonthlyRecordOut)
async def save_monthly_record(
    payload: MonthlyRecordIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = get_or_create_record(db, current_user.id, payload.month)

    sent = payload.model_fields_set
    if "income" in sent:
        record.income = payload.income
    if payload.expenses is not None:
        record.expenses = {
            **(record.expenses or default_expenses()),
            **payload.expenses.model_dump(exclude_unset=True),
        }
    if payload.savings is not None:
        record.savings = {
            **(record.savings or default_savings()),
            **payload.savings.model_dump(exclude_unset=True),
        }
    if "notes" in sent:
        record.notes = payload.notes

    db.commit()
    db.refresh(record)
    logger.info("Saved record %s for user %s", record.month, current_user.id)
    return MonthlyRecordOut.from_record(record)


@records_router.get("")
async def get_monthly_record(
    month: str = Query(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = find_record(db, current_user.id, month)
    if record is None:
        return {}
    return MonthlyRecordOut.from_record(record)


@records_router.get("/history", response_model=list[MonthlyRecordOut])
async def get_all_history(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    records = records_for_period(db, current_user.id, "all")
    return [MonthlyRecordOut.from_record(r) for r in records]


@records_router.get("/analyze")
async def get_spending_analysis(
    month: Optional[str] = Query(None, pattern=PERIOD_PATTERN),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    period = month or current_month()
    records = records_for_period(db, current_user.id, period)
    expenses = expenses_for_period(db, current_user.id, period)
    return spending_analysis(period, records, expenses)


# --- expenses ---


@expenses_router.get("", response_model=list[ExpenseOut])
async def get_expenses(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return expenses_for_period(db, current_user.id, "all")


@expenses_router.post("", response_model=ExpenseOut)
async def add_expense(
    expense: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_expense = Expense(
        user_id=current_user.id,
        title=expense.title,
        amount=expense.amount,
        category=expense.category,
        type=expense.type,
        source="manual",
        date=expense.date or datetime.now(),
    )
    db.add(db_expense)
    db.commit()
    db.refresh(db_expense)
    return db_expense


@expenses_router.delete("/{expense_id}")
async def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expense = db.get(Expense, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    if expense.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authorized"
        )
    db.delete(expense)
    db.commit()
    return {"msg": "Expense removed"}


# --- expense agent ledger ---


def refresh_ledger_totals(record: MonthlyRecord):
    record.total_needs, record.total_wants = ledger_totals(record.transactions)


@expense_agent_router.post("/add")
async def add_transaction(
    payload: LedgerAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = get_or_create_record(db, current_user.id, payload.month)
    record.transactions.append(
        RecordTransaction(
            title=payload.title,
            amount=payload.amount,
            category=payload.category,
            type=payload.type,
            date=datetime.now(),
        )
    )
    refresh_ledger_totals(record)
    db.commit()
    db.refresh(record)

    return {
        "msg": "Expense Added",
        "record": MonthlyRecordOut.from_record(record),
        "agent_alert": expense_agent_alerts(record),
    }


@expense_agent_router.post("/delete", response_model=MonthlyRecordOut)
async def delete_transaction(
    payload: LedgerDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = find_record(db, current_user.id, payload.month)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")

    record.transactions = [
        t for t in record.transactions if t.id != payload.transaction_id
    ]
    refresh_ledger_totals(record)
    db.commit()
    db.refresh(record)
    return MonthlyRecordOut.from_record(record)


# --- wallet ---


@wallet_router.post("/setup")
async def set_wallet_limit(
    payload: WalletSetup,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = get_or_create_record(db, current_user.id, payload.month)
    record.wallet_limit = payload.limit
    db.commit()
    db.refresh(record)
    logger.info("Wallet limit for %s set to %s", record.month, payload.limit)
    return {"msg": "Wallet limit set", "wallet": MonthlyRecordOut.from_record(record).wallet}


@wallet_router.post("/spend")
async def spend_from_wallet(
    payload: WalletSpend,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = find_record(db, current_user.id, current_month())
    if record is None or not record.wallet_limit:
        raise HTTPException(
            status_code=400, detail="Wallet not active. Please set a limit first."
        )

    now = datetime.now()
    record.wallet_spent = (record.wallet_spent or 0) + payload.amount
    record.wallet_transactions.append(
        WalletTransaction(
            title=payload.title or f"Quick: {payload.category}",
            amount=payload.amount,
            category=payload.category,
            date=now,
        )
    )
    db.add(
        Expense(
            user_id=current_user.id,
            title=payload.title or f"Wallet: {payload.category}",
            amount=payload.amount,
            category=payload.category,
            type="want",
            source="wallet",
            date=now,
        )
    )

    remaining = record.wallet_limit - record.wallet_spent
    if remaining < 0:
        create_notification(
            db,
            current_user.id,
            "Wallet Overdraft!",
            f"You exceeded your wallet by {money(abs(remaining))}.",
            "danger",
        )
    elif remaining < record.wallet_limit * 0.2:
        create_notification(
            db,
            current_user.id,
            "Wallet Low",
            f"Only {money(remaining)} left in your wallet.",
            "warning",
        )

    db.commit()
    db.refresh(record)
    return {"wallet": MonthlyRecordOut.from_record(record).wallet, "remaining": remaining}


@wallet_router.post("/rollover")
async def rollover_wallet(
    payload: WalletRollover,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = find_record(db, current_user.id, payload.month)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")

    if record.wallet_rolled_over:
        return {"msg": "Wallet already rolled over", "saved": 0}

    leftover = (record.wallet_limit or 0) - (record.wallet_spent or 0)
    if leftover <= 0:
        return {"msg": "Rollover complete", "saved": 0}

    savings = {**(record.savings or default_savings())}
    savings["cash"] = (savings.get("cash") or 0) + leftover
    record.savings = savings
    record.wallet_rolled_over = True
    create_notification(
        db,
        current_user.id,
        "Wallet Rollover",
        f"You saved {money(leftover)} from your wallet! "
        "It has been added to your Free Cash/Liquid Savings.",
        "success",
    )
    db.commit()
    logger.info("Rolled %s over into savings for %s", leftover, record.month)
    return {"msg": "Rollover complete", "saved": leftover}


# --- legacy profile ---


def merged_profile(user: User) -> dict:
    return {**default_profile(), **(user.profile or {})}


@profile_router.get("")
async def get_profile(current_user: User = Depends(get_current_user)):
    return merged_profile(current_user)


@profile_router.post("")
async def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    current_user.profile = {
        **merged_profile(current_user),
        **payload.model_dump(exclude_unset=True),
        "is_profile_complete": True,
    }
    db.commit()
    db.refresh(current_user)
    return current_user.profile
