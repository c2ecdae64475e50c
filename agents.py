import logging
from datetime import datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

import market
from analysis import (
    advisory_advice,
    advisory_metrics,
    affordability,
    asset_audit,
    current_month,
    monthly_plan,
    savings_projection,
    trading_free_cash,
    trading_plans,
    user_analytics,
)
from auth import get_current_user
from database import get_db, Expense, Goal, User
from router import (
    PERIOD_PATTERN,
    find_record,
    latest_record,
    records_for_period,
)
from schemas import AffordabilityCheck, AssetAudit, GoalCreate, GoalOut, GoalProgress

logger = logging.getLogger(__name__)

analytics_router = APIRouter()
savings_router = APIRouter()
advisory_router = APIRouter()


@analytics_router.get("")
async def get_user_analytics(
    month: Optional[str] = Query(None, pattern=PERIOD_PATTERN),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    period = month or "all"
    records = records_for_period(db, current_user.id, period)
    today = datetime.now().date()
    # wallet pulse always looks at the last seven days
    since = datetime.combine(today - timedelta(days=6), time.min)
    expenses = (
        db.query(Expense)
        .filter(
            Expense.user_id == current_user.id,
            Expense.source == "wallet",
            Expense.date >= since,
        )
        .all()
    )
    return user_analytics(records, expenses, today)


# --- saving agent ---


@savings_router.get("/analyze")
async def get_savings_analysis(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return savings_projection(latest_record(db, current_user.id))


@savings_router.post("/asset-audit")
async def analyze_asset(
    payload: AssetAudit, current_user: User = Depends(get_current_user)
):
    return asset_audit(
        payload.type, payload.value, payload.emi_amount, payload.tenure_years
    )


@savings_router.get("/trading")
async def get_trading_suggestions(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    record = latest_record(db, current_user.id)
    if record is None:
        return {"free_cash": 0, "plans": []}

    free_cash = trading_free_cash(record)
    if free_cash < 500:
        return {"free_cash": free_cash, "plans": [], "message": "Low funds"}

    quotes = market.get_watchlist_quotes()
    return {
        "free_cash": free_cash,
        "plans": trading_plans(free_cash, market.WATCHLIST, quotes),
    }


# --- advisory agent ---


def active_goals(db: Session, user_id: int):
    return (
        db.query(Goal)
        .filter(Goal.user_id == user_id, Goal.status == "Active")
        .order_by(Goal.created_at, Goal.id)
        .all()
    )


@advisory_router.get("/dashboard")
async def get_advisory_data(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    record = find_record(db, current_user.id, current_month())
    metrics = advisory_metrics(record)
    goals = active_goals(db, current_user.id)
    return {
        "metrics": {
            "income": metrics["income"],
            "free_cash": metrics["free_cash"],
            "total_saved": metrics["total_saved"],
        },
        "goals": [GoalOut.model_validate(g) for g in goals],
        "advice": advisory_advice(metrics, goals),
    }


@advisory_router.get("/plan")
async def generate_monthly_plan(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    record = find_record(db, current_user.id, current_month()) or latest_record(
        db, current_user.id
    )
    if record is None:
        raise HTTPException(
            status_code=404, detail="No monthly data found. Save a monthly record first."
        )
    return monthly_plan(record)


@advisory_router.post("/goals", response_model=GoalOut)
async def add_goal(
    payload: GoalCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    goal = Goal(
        user_id=current_user.id,
        title=payload.title,
        target_amount=payload.target_amount,
        saved_amount=0.0,
        deadline=payload.deadline,
        priority=payload.priority,
        status="Active",
        created_at=datetime.now(),
    )
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


@advisory_router.put("/goals/progress", response_model=GoalOut)
async def update_goal_progress(
    payload: GoalProgress,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    goal = db.get(Goal, payload.goal_id)
    if goal is None or goal.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Goal not found")

    goal.saved_amount = (goal.saved_amount or 0) + payload.amount
    if goal.saved_amount >= goal.target_amount:
        goal.status = "Completed"
        logger.info("Goal %s completed", goal.id)
    db.commit()
    db.refresh(goal)
    return goal


@advisory_router.post("/affordability")
async def check_affordability(
    payload: AffordabilityCheck,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = find_record(db, current_user.id, current_month())
    return affordability(record, payload.cost)
