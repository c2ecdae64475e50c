from datetime import date, datetime
from types import SimpleNamespace

import pytest

from analysis import (
    advisory_advice,
    advisory_metrics,
    affordability,
    asset_audit,
    expense_agent_alerts,
    future_value,
    monthly_plan,
    next_month,
    notification_alerts,
    savings_projection,
    spending_analysis,
    trading_free_cash,
    trading_plans,
    user_analytics,
    wallet_history,
)


def make_record(month="2025-03", income=0, expenses=None, savings=None,
                transactions=(), wallet_spent=0):
    transactions = list(transactions)
    return SimpleNamespace(
        month=month,
        income=income,
        expenses=expenses or {},
        savings=savings or {},
        transactions=transactions,
        wallet_spent=wallet_spent,
        total_needs=sum(t.amount for t in transactions if t.type == "need"),
        total_wants=sum(t.amount for t in transactions if t.type == "want"),
    )


def txn(amount, type="want", category="Shopping", when=None, id=1, title="Item"):
    return SimpleNamespace(
        id=id, title=title, amount=amount, category=category, type=type,
        date=when or datetime(2025, 3, 2, 12, 0),
    )


def expense(amount, type="want", category="Food", when=None, source="manual", id=1):
    return SimpleNamespace(
        id=id, title="Spend", amount=amount, category=category, type=type,
        source=source, date=when or datetime(2025, 3, 3, 9, 0),
    )


def test_spending_analysis_merges_records_and_expenses():
    record = make_record(
        income=10000,
        expenses={"rent": 4000, "grocery": 1500, "subscriptions": 500},
        savings={"sip": 1000},
        transactions=[txn(1200, when=datetime(2025, 3, 4))],
    )
    expenses = [
        expense(300, type="need", category="Health", id=7, when=datetime(2025, 3, 6)),
        expense(800, category="Food", source="wallet", id=8, when=datetime(2025, 3, 1)),
    ]

    result = spending_analysis("2025-03", [record], expenses)

    assert result["breakdown"] == {"needs": 5800, "wants": 2500, "savings": 1000}
    assert result["limits"] == {"needs": 5000, "wants": 3000, "savings": 2000}
    assert result["ratios"]["needs"] == 58.0
    assert [a["type"] for a in result["alerts"]] == ["warning", "warning"]
    assert result["categories"] == {
        "Rent": 4000,
        "Grocery": 1500,
        "Subscriptions": 500,
        "Shopping": 1200,
        "Health": 300,
        "Food": 800,
    }
    assert [t["source"] for t in result["transactions"]] == ["manual", "ledger", "wallet"]


def test_spending_analysis_flags_missing_income():
    result = spending_analysis("all", [], [expense(50)])
    assert result["alerts"] == [{"type": "info", "msg": "No income recorded for this period"}]
    assert result["ratios"] == {"needs": 0, "wants": 0, "savings": 0}


def test_spending_analysis_wants_over_limit_is_danger():
    record = make_record(income=1000, savings={"sip": 500}, transactions=[txn(400)])
    result = spending_analysis("2025-03", [record], [])
    assert [a["type"] for a in result["alerts"]] == ["danger"]


def test_expense_agent_alerts():
    record = make_record(
        income=10000,
        transactions=[
            txn(7000, type="need", category="Rent"),
            txn(3500, type="want", category="Shopping"),
        ],
    )
    alerts = expense_agent_alerts(record)
    assert [a["level"] for a in alerts] == ["warning", "danger", "warning"]


def test_expense_agent_alerts_none_when_within_limits():
    record = make_record(income=10000, transactions=[txn(100, category="Books")])
    assert expense_agent_alerts(record) is None


def test_future_value():
    assert future_value(0, 1000, 0.12, 1) == 12809
    assert future_value(1000, 0, 0.12, 1) == 1127
    assert future_value(1000, 100, 0, 5) == 7000


def test_savings_projection_without_record():
    result = savings_projection(None)
    assert result["projection"]["years20"] == 0
    assert len(result["suggestions"]) == 1
    assert result["has_emi"] is False
    assert result["market_status"] == "Bullish (Hold)"


def test_savings_projection_suggestions():
    record = make_record(
        income=100000, expenses={"emi": 5000}, savings={"sip": 1000, "fd_rd": 5000}
    )
    result = savings_projection(record)
    assert result["has_emi"] is True
    assert result["projection"]["breakdown"]["fd"]["rate"] == "6.5%"
    assert result["projection"]["years5"] == round(future_value(0, 1000, 0.12, 5) + 5000 * 1.3)
    joined = " ".join(result["suggestions"])
    assert "Inflation Risk" in joined
    assert "Hedge Missing" in joined
    assert "6.0%" in joined


def test_asset_audit_car_depreciates():
    result = asset_audit("car", 1000000, 20000, 5)
    assert result["verdict"] == "Liability"
    assert result["chart_data"][1] == 1200000
    assert result["chart_data"][2] == pytest.approx(1000000 * 0.85**5)


def test_asset_audit_house_interest_trap():
    result = asset_audit("house", 5000000, 60000, 20)
    assert result["verdict"] == "Interest Trap"


def test_trading_plans_sorting_and_allocation():
    watchlist = [
        {"symbol": "A", "name": "Alpha", "type": "Safe"},
        {"symbol": "B", "name": "Beta", "type": "Moderate"},
        {"symbol": "C", "name": "Gamma", "type": "Safe"},
        {"symbol": "D", "name": "Delta", "type": "Safe"},
    ]
    quotes = [
        {"symbol": "A", "price": 250, "change": 1},
        {"symbol": "B", "price": 100, "change": 5},
        {"symbol": "C", "price": 2000, "change": 9},
        {"symbol": "D", "price": 500, "change": 3},
        {"symbol": "Z", "price": 10, "change": 1},
    ]
    plans = trading_plans(1000, watchlist, quotes)

    assert [p["symbol"] for p in plans] == ["D", "A", "B"]
    assert plans[0]["recommendation"] == "Buy 2 Qty"
    assert plans[0]["total_cost"] == 1000
    assert [p["allocation"]["qty"] for p in plans] == [0, 1, 3]


def test_trading_free_cash():
    record = make_record(income=20000, expenses={"rent": 5000}, savings={"sip": 2000, "cash": 900})
    assert trading_free_cash(record) == 11000


def test_affordability_verdicts():
    record = make_record(
        income=30000, expenses={"rent": 10000}, savings={"sip": 5000, "cash": 2000}
    )
    assert affordability(record, 13000)["verdict"] == "danger"
    assert affordability(record, 7000)["verdict"] == "warning"
    safe = affordability(record, 5000)
    assert safe["verdict"] == "safe"
    assert safe["liquid_cash"] == 12000
    assert affordability(None, 0)["verdict"] == "safe"


def test_advisory_advice_covers_all_rules():
    record = make_record(
        income=50000,
        expenses={"emi": 25000},
        savings={"sip": 10000},
    )
    metrics = advisory_metrics(record)
    assert metrics["free_cash"] == 15000
    advice = advisory_advice(metrics, [SimpleNamespace(title="Europe Trip")])
    assert [a["text"] for a in advice] == [
        "Build Emergency Fund",
        "Debt Burden High",
        "Deploy Idle Cash",
    ]
    assert "Europe Trip" in advice[2]["detail"]


def test_monthly_plan():
    record = make_record(
        month="2025-12",
        income=50000,
        expenses={
            "rent": 15000,
            "emi": 5000,
            "grocery": 6000,
            "electricity": 2000,
            "other_bills": 1000,
            "petrol": 1000,
            "subscriptions": 1000,
            "other_expense": 4000,
        },
        transactions=[txn(5000)],
        wallet_spent=2000,
    )
    plan = monthly_plan(record)

    assert plan["month"] == "2026-01"
    assert plan["breakdown"]["hard_fixed"] == 20000
    assert plan["breakdown"]["soft_fixed"] == {"current": 10000, "target": 9000}
    assert plan["breakdown"]["wants"] == {"current": 10000, "target": 8000}
    assert plan["breakdown"]["wallet"] == {"current": 2000, "target": 1700}
    assert plan["savings"] == {"current": 8000, "projected": 11300}
    assert plan["improvement"]["saved_amount"] == 3300
    assert plan["improvement"]["percentage"] == 6.6
    assert len(plan["improvement"]["steps"]) == 3


def test_next_month_wraps_year():
    assert next_month("2024-12") == "2025-01"


def test_wallet_history_buckets():
    today = date(2025, 3, 10)
    expenses = [
        expense(50, source="wallet", when=datetime(2025, 3, 10, 8)),
        expense(20, source="wallet", when=datetime(2025, 3, 4, 8)),
        expense(99, source="wallet", when=datetime(2025, 3, 3, 8)),
        expense(70, source="manual", when=datetime(2025, 3, 10, 8)),
    ]
    assert wallet_history(expenses, today) == [20, 0, 0, 0, 0, 0, 50]


def test_user_analytics_totals():
    record = make_record(
        income=40000,
        expenses={"rent": 10000, "subscriptions": 500, "petrol": 700},
        savings={"sip": 4000, "cash": 1000},
        wallet_spent=1500,
    )
    result = user_analytics([record], [], date(2025, 3, 10))
    assert result["total_spent"] == 12000
    assert result["breakdown"] == {"fixed": 10500, "wants": 1500, "savings": 5000}
    assert result["scores"] == {"savings_rate": 12, "liquidity": 80}


def test_notification_alerts_quiet_evening():
    record = make_record(expenses={"subscriptions": 300})
    now = datetime(2025, 3, 5, 21, 30)
    alerts = notification_alerts(record, [expense(100, when=datetime(2025, 3, 2))], now)
    assert [a["title"] for a in alerts] == ["Subscription Reminder", "No Spend Day"]


def test_notification_alerts_spike_and_budget_rules():
    record = make_record(income=10000, expenses={"rent": 6000})
    now = datetime(2025, 3, 5, 10, 0)
    month_expenses = [
        expense(100, when=datetime(2025, 3, 1, 9)),
        expense(500, when=datetime(2025, 3, 5, 9)),
    ]
    titles = [a["title"] for a in notification_alerts(record, month_expenses, now)]
    assert titles == ["Unusual Spending Spike", "Needs Over Budget", "Low Savings Rate"]


@pytest.mark.parametrize(
    "now, fires",
    [
        (datetime(2025, 3, 12, 19, 59), False),
        (datetime(2025, 3, 12, 20, 0), True),
    ],
)
def test_no_spend_day_starts_at_eight_pm(now, fires):
    titles = [a["title"] for a in notification_alerts(None, [], now)]
    assert ("No Spend Day" in titles) is fires
