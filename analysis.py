"""
Budget rules shared by the agent endpoints.

Everything here works on already fetched rows (MonthlyRecord, Expense, Goal)
and returns plain dicts ready to be sent as JSON.
"""
import math
from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from config import CURRENCY_SYMBOL, NEEDS_SHARE, SAVINGS_SHARE, WANTS_SHARE

FIXED_NEEDS = ("rent", "emi", "grocery", "electricity", "other_bills", "petrol")
FIXED_WANTS = ("subscriptions", "other_expense")
CATEGORY_LABELS = {
    "rent": "Rent",
    "emi": "EMI",
    "grocery": "Grocery",
    "electricity": "Electricity",
    "other_bills": "Other Bills",
    "petrol": "Petrol",
    "subscriptions": "Subscriptions",
    "other_expense": "Other",
}
IMPULSE_CATEGORIES = ("Shopping", "Entertainment", "Dining Out")

SIP_RETURN = 0.12
FD_RATE = 0.065
GOLD_RATE = 0.09


def money(amount) -> str:
    return f"{CURRENCY_SYMBOL}{round(amount):,}"


def pct(part, whole) -> float:
    if not whole:
        return 0
    return round(part / whole * 100, 1)


def current_month(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m")


def month_bounds(month: str):
    """Return [start, end) datetimes for a YYYY-MM key."""
    start = datetime.strptime(month + "-01", "%Y-%m-%d")
    return start, start + relativedelta(months=+1)


def next_month(month: str) -> str:
    start, end = month_bounds(month)
    return end.strftime("%Y-%m")


def _field(breakdown, name) -> float:
    try:
        return float((breakdown or {}).get(name) or 0)
    except (TypeError, ValueError):
        return 0.0


def sum_fields(breakdown, names) -> float:
    return sum(_field(breakdown, name) for name in names)


def savings_total(record, include_cash=True) -> float:
    names = ("sip", "fd_rd", "gold", "cash") if include_cash else ("sip", "fd_rd", "gold")
    return sum_fields(record.savings, names)


def ledger_totals(transactions):
    needs = sum(t.amount for t in transactions if t.type == "need")
    wants = sum(t.amount for t in transactions if t.type == "want")
    return needs, wants


# --- expense agent ---


def expense_agent_alerts(record) -> Optional[list]:
    """Alerts for a record's ledger transactions, or None when all is well."""
    income = record.income or 1
    needs = record.total_needs or 0
    wants = record.total_wants or 0
    alerts = []

    if needs > income * 0.60:
        alerts.append(
            {
                "level": "warning",
                "message": f"Your 'Needs' are high ({round(needs / income * 100)}% of income). "
                "Review fixed costs like Rent/EMI.",
            }
        )

    if wants > income * WANTS_SHARE:
        alerts.append(
            {
                "level": "danger",
                "message": f"You are overspending on 'Wants' ({round(wants / income * 100)}% of income). "
                f"Suggested limit: {money(income * WANTS_SHARE)}",
            }
        )

    impulse_total = sum(
        t.amount
        for t in record.transactions
        if t.type == "want" and t.category in IMPULSE_CATEGORIES
    )
    if impulse_total > income * 0.10:
        alerts.append(
            {
                "level": "warning",
                "message": f"You spent {money(impulse_total)} on impulse categories this month. "
                'Try a "No Spend Weekend" to recover.',
            }
        )

    return alerts or None


# --- spending analysis ---


def budget_alerts(income, needs, wants, savings) -> list:
    alerts = []
    if not income:
        if needs or wants:
            alerts.append({"type": "info", "msg": "No income recorded for this period"})
        return alerts

    if needs > income * NEEDS_SHARE:
        alerts.append(
            {
                "type": "warning",
                "msg": f"Needs are at {pct(needs, income)}% of income (target 50%).",
            }
        )
    if wants > income * WANTS_SHARE:
        alerts.append(
            {
                "type": "danger",
                "msg": f"Wants are at {pct(wants, income)}% of income (target 30%). "
                f"Cut back to {money(income * WANTS_SHARE)}.",
            }
        )
    if savings < income * SAVINGS_SHARE:
        alerts.append(
            {
                "type": "warning",
                "msg": f"Savings are at {pct(savings, income)}% of income (target 20%).",
            }
        )
    return alerts


def spending_analysis(period: str, records, expenses) -> dict:
    income = 0.0
    needs = 0.0
    wants = 0.0
    savings = 0.0
    categories = {}
    transactions = []

    def add_category(name, amount):
        if amount:
            categories[name] = round(categories.get(name, 0) + amount, 2)

    for record in records:
        income += record.income or 0
        savings += savings_total(record)
        for name in FIXED_NEEDS:
            amount = _field(record.expenses, name)
            needs += amount
            add_category(CATEGORY_LABELS[name], amount)
        for name in FIXED_WANTS:
            amount = _field(record.expenses, name)
            wants += amount
            add_category(CATEGORY_LABELS[name], amount)

        ledger_needs, ledger_wants = ledger_totals(record.transactions)
        needs += ledger_needs
        wants += ledger_wants
        for t in record.transactions:
            add_category(t.category or "Other", t.amount)
            transactions.append(
                {
                    "id": t.id,
                    "title": t.title,
                    "amount": t.amount,
                    "category": t.category,
                    "type": t.type,
                    "date": t.date,
                    "source": "ledger",
                }
            )

    for e in expenses:
        if e.type == "need":
            needs += e.amount
        else:
            wants += e.amount
        add_category(e.category, e.amount)
        transactions.append(
            {
                "id": e.id,
                "title": e.title,
                "amount": e.amount,
                "category": e.category,
                "type": e.type or "want",
                "date": e.date,
                "source": e.source or "manual",
            }
        )

    transactions.sort(key=lambda t: t["date"] or datetime.min, reverse=True)

    return {
        "period": period,
        "income": round(income, 2),
        "breakdown": {
            "needs": round(needs, 2),
            "wants": round(wants, 2),
            "savings": round(savings, 2),
        },
        "limits": {
            "needs": round(income * NEEDS_SHARE, 2),
            "wants": round(income * WANTS_SHARE, 2),
            "savings": round(income * SAVINGS_SHARE, 2),
        },
        "ratios": {
            "needs": pct(needs, income),
            "wants": pct(wants, income),
            "savings": pct(savings, income),
        },
        "alerts": budget_alerts(income, needs, wants, savings),
        "categories": categories,
        "transactions": transactions,
    }


# --- analytics ---


def wallet_history(expenses, today) -> list:
    """Seven daily buckets of wallet spend, index 6 is today."""
    buckets = [0.0] * 7
    for e in expenses:
        if e.source != "wallet" or e.date is None:
            continue
        days = (today - e.date.date()).days
        if 0 <= days < 7:
            buckets[6 - days] += e.amount
    return buckets


def user_analytics(records, expenses, today) -> dict:
    total_income = 0.0
    total_fixed = 0.0
    total_savings = 0.0
    total_wallet = 0.0

    for record in records:
        total_income += record.income or 0
        total_fixed += sum_fields(
            record.expenses,
            ("rent", "emi", "grocery", "electricity", "other_bills", "subscriptions"),
        )
        total_savings += savings_total(record)
        total_wallet += record.wallet_spent or 0

    return {
        "total_income": total_income,
        "total_spent": total_fixed + total_wallet,
        "total_saved": total_savings,
        "breakdown": {
            "fixed": total_fixed,
            "wants": total_wallet,
            "savings": total_savings,
        },
        "wallet_history": wallet_history(expenses, today),
        "scores": {
            "savings_rate": round(total_savings / total_income * 100) if total_income > 0 else 0,
            "liquidity": 80 if total_savings > 0 else 20,
        },
    }


# --- saving agent ---


def future_value(principal, monthly, rate, years) -> int:
    months = years * 12
    monthly_rate = rate / 12
    if monthly_rate == 0:
        return round(principal + monthly * months)
    growth = (1 + monthly_rate) ** months
    fv_lump = principal * growth
    fv_sip = monthly * ((growth - 1) / monthly_rate) * (1 + monthly_rate)
    return round(fv_lump + fv_sip)


def savings_projection(record, sip_return=SIP_RETURN) -> dict:
    savings = {"sip": 0.0, "fd_rd": 0.0, "gold": 0.0}
    income = 0.0
    has_emi = False
    if record is not None:
        savings = {name: _field(record.savings, name) for name in savings}
        income = record.income or 0
        has_emi = _field(record.expenses, "emi") > 0

    sip, fd, gold = savings["sip"], savings["fd_rd"], savings["gold"]
    sip_fv20 = future_value(0, sip, sip_return, 20)
    fd_fv20 = future_value(fd, 0, FD_RATE, 20)
    gold_fv20 = future_value(gold, 0, GOLD_RATE, 20)

    projection = {
        "years5": round(future_value(0, sip, sip_return, 5) + fd * 1.3 + gold * 1.4),
        "years10": round(future_value(0, sip, sip_return, 10) + fd * 1.7 + gold * 2.1),
        "years20": sip_fv20 + fd_fv20 + gold_fv20,
        "breakdown": {
            "sip": {"current": sip, "fv20": sip_fv20, "rate": f"{sip_return * 100:g}%"},
            "fd": {"current": fd, "fv20": fd_fv20, "rate": f"{FD_RATE * 100:g}%"},
            "gold": {"current": gold, "fv20": gold_fv20, "rate": f"{GOLD_RATE * 100:g}%"},
        },
    }

    suggestions = []
    total = sip + fd + gold
    if total == 0:
        suggestions.append(
            f"You have 0 savings recorded. Start a small SIP of {money(500)} today."
        )
    else:
        if fd > sip * 2:
            suggestions.append("Inflation Risk: Your FD allocation is high. Shift to SIPs.")
        if gold == 0:
            suggestions.append("Hedge Missing: Add 5-10% in Digital Gold.")
        if income > 0 and total < income * SAVINGS_SHARE:
            suggestions.append(
                f"Under-saving: You are saving only {total / income * 100:.1f}%. Target 20%."
            )

    return {
        "current_savings": savings,
        "projection": projection,
        "suggestions": suggestions,
        "has_emi": has_emi,
        "market_status": "Bearish (Buy)" if sip_return > SIP_RETURN else "Bullish (Hold)",
    }


def asset_audit(kind, value, emi_amount, tenure_years) -> dict:
    if kind == "house":
        fv = value * (1 + 0.06) ** 10
        interest = emi_amount * 12 * tenure_years - value
        net_gain = fv - (value + interest)
        if net_gain > 0:
            return {
                "verdict": "Wealth Creator",
                "message": f"Good Buy! In 10 years, asset value grows by {money(fv - value)}. "
                f"Net gain: {money(net_gain)}.",
                "chart_data": [value, value + interest, fv],
            }
        return {
            "verdict": "Interest Trap",
            "message": f"Caution: You pay {money(interest)} in interest.",
            "chart_data": [value, value + interest, fv],
        }

    depreciated = value * 0.85**5
    return {
        "verdict": "Liability",
        "message": f"Car value drops to {money(depreciated)} in 5 years.",
        "chart_data": [value, emi_amount * 12 * 5, depreciated],
    }


# --- trading ---


def trading_free_cash(record) -> float:
    income = record.income or 0
    fixed = sum_fields(record.expenses, ("rent", "emi", "grocery", "electricity"))
    saved = savings_total(record, include_cash=False)
    return max(0.0, income - fixed - saved - income * 0.1)


def trading_plans(free_cash, watchlist, quotes, limit=6) -> list:
    by_symbol = {w["symbol"]: w for w in watchlist}
    plans = []
    for quote in quotes:
        info = by_symbol.get(quote.get("symbol"))
        if info is None:
            continue
        price = quote.get("price") or 0
        if 0 < price < free_cash:
            qty = math.floor(free_cash / price)
            plans.append(
                {
                    "type": info["type"],
                    "name": info["name"],
                    "symbol": info["symbol"],
                    "price": price,
                    "change": quote.get("change") or 0,
                    "recommendation": f"Buy {qty} Qty",
                    "total_cost": round(qty * price, 2),
                }
            )

    plans.sort(key=lambda p: (p["type"] != "Safe", -p["change"]))
    plans = plans[:limit]

    if plans:
        share = free_cash / len(plans)
        for plan in plans:
            qty = math.floor(share / plan["price"])
            plan["allocation"] = {"amount": round(share, 2), "qty": qty}
    return plans


# --- advisory ---


def advisory_metrics(record) -> dict:
    if record is None:
        return {"income": 0, "free_cash": 0, "total_saved": 0, "emi": 0}
    income = record.income or 0
    fixed = sum_fields(record.expenses, ("rent", "emi", "grocery", "electricity"))
    wants = sum_fields(record.expenses, FIXED_WANTS)
    saved = savings_total(record)
    return {
        "income": income,
        "free_cash": max(0, income - fixed - saved - wants),
        "total_saved": saved,
        "emi": _field(record.expenses, "emi"),
    }


def advisory_advice(metrics, goals) -> list:
    income = metrics["income"]
    saved = metrics["total_saved"]
    advice = []

    if saved < income * 3:
        advice.append(
            {
                "type": "critical",
                "text": "Build Emergency Fund",
                "detail": f"You should have at least 3 months of income ({money(income * 3)}) saved. "
                f"Currently: {money(saved)}.",
            }
        )

    if metrics["emi"] > income * 0.4:
        advice.append(
            {
                "type": "warning",
                "text": "Debt Burden High",
                "detail": "Your EMIs are eating 40%+ of your income. "
                "Focus on prepaying the smallest loan first.",
            }
        )

    if metrics["free_cash"] > 10000:
        target = f"your '{goals[0].title}' goal" if goals else "a savings goal"
        advice.append(
            {
                "type": "opportunity",
                "text": "Deploy Idle Cash",
                "detail": f"You have {money(metrics['free_cash'])} unallocated. Consider boosting {target}.",
            }
        )
    return advice


def affordability(record, cost) -> dict:
    income = (record.income or 0) if record else 0
    cash = _field(record.savings, "cash") if record else 0
    rent = _field(record.expenses, "rent") if record else 0
    sip = _field(record.savings, "sip") if record else 0
    liquid = cash + max(0, income - rent - sip * 2)

    if cost > liquid:
        return {
            "verdict": "danger",
            "message": f"You cannot afford this. It exceeds your liquid cash ({money(liquid)}).",
            "liquid_cash": liquid,
        }
    if cost > liquid * 0.5:
        return {
            "verdict": "warning",
            "message": "Careful. This purchase will wipe out 50% of your available cash for the month.",
            "liquid_cash": liquid,
        }
    return {
        "verdict": "safe",
        "message": "Go ahead! You have enough liquid cash.",
        "liquid_cash": liquid,
    }


def monthly_plan(record) -> dict:
    income = record.income or 0
    hard_fixed = sum_fields(record.expenses, ("rent", "emi"))

    soft_current = sum_fields(
        record.expenses, ("grocery", "electricity", "other_bills", "petrol")
    )
    soft_target = round(soft_current * 0.9)

    _, ledger_wants = ledger_totals(record.transactions)
    wants_current = sum_fields(record.expenses, FIXED_WANTS) + ledger_wants
    wants_target = round(min(wants_current * 0.8, income * WANTS_SHARE))

    wallet_current = record.wallet_spent or 0
    wallet_target = round(wallet_current * 0.85)

    current_savings = income - hard_fixed - soft_current - wants_current - wallet_current
    projected = income - hard_fixed - soft_target - wants_target - wallet_target

    steps = []
    if soft_current - soft_target > 0:
        steps.append(
            f"Trim bills and groceries by 10% (save {money(soft_current - soft_target)})."
        )
    if wants_current - wants_target > 0:
        steps.append(
            f"Cap lifestyle spending at {money(wants_target)} (save {money(wants_current - wants_target)})."
        )
    if wallet_current - wallet_target > 0:
        steps.append(
            f"Lower the daily wallet to {money(wallet_target)} (save {money(wallet_current - wallet_target)})."
        )

    saved_amount = projected - current_savings
    return {
        "month": next_month(record.month),
        "based_on": record.month,
        "income": income,
        "breakdown": {
            "hard_fixed": hard_fixed,
            "soft_fixed": {"current": soft_current, "target": soft_target},
            "wants": {"current": wants_current, "target": wants_target},
            "wallet": {"current": wallet_current, "target": wallet_target},
        },
        "savings": {"current": current_savings, "projected": projected},
        "improvement": {
            "steps": steps,
            "saved_amount": saved_amount,
            "percentage": pct(saved_amount, income),
        },
    }


# --- notifications ---


def notification_alerts(record, month_expenses, now) -> list:
    """
    Rule set behind the notification feed, evaluated at ``now``.

    "No Spend Day" fires from 20:00 onwards (hour >= 20) once nothing has been
    logged for the day.
    """
    alerts = []
    day = now.day
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    total = sum(e.amount for e in month_expenses)
    daily_avg = total / day if month_expenses else 0
    spent_today = sum(
        e.amount for e in month_expenses if e.date and start_of_today <= e.date < start_of_today + timedelta(days=1)
    )

    if daily_avg > 0 and spent_today > daily_avg * 2.5:
        alerts.append(
            {
                "title": "Unusual Spending Spike",
                "message": f"You spent {money(spent_today)} today, which is significantly higher "
                f"than your daily average of {money(daily_avg)}.",
                "type": "warning",
            }
        )

    subscriptions = _field(record.expenses, "subscriptions") if record else 0
    if subscriptions > 0 and day <= 7:
        alerts.append(
            {
                "title": "Subscription Reminder",
                "message": f"Early month reminder: You have allocated {money(subscriptions)} "
                "for subscriptions. Check your renewals!",
                "type": "info",
            }
        )

    if now.hour >= 20 and spent_today == 0:
        alerts.append(
            {
                "title": "No Spend Day",
                "message": "Great job! You haven't recorded any variable expenses today. "
                "Keep the streak alive!",
                "type": "success",
            }
        )

    if record is not None and record.income:
        summary = spending_analysis(record.month, [record], month_expenses)
        income = summary["income"]
        breakdown = summary["breakdown"]
        if breakdown["needs"] > income * NEEDS_SHARE:
            alerts.append(
                {
                    "title": "Needs Over Budget",
                    "message": f"Needs are at {summary['ratios']['needs']}% of income this month (target 50%).",
                    "type": "warning",
                }
            )
        if breakdown["wants"] > income * WANTS_SHARE:
            alerts.append(
                {
                    "title": "Wants Over Budget",
                    "message": f"Wants are at {summary['ratios']['wants']}% of income this month (target 30%).",
                    "type": "danger",
                }
            )
        if breakdown["savings"] < income * SAVINGS_SHARE:
            alerts.append(
                {
                    "title": "Low Savings Rate",
                    "message": f"You are saving {summary['ratios']['savings']}% of income. Aim for 20%.",
                    "type": "info",
                }
            )
    return alerts
