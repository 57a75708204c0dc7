"""
Budget math: income, subscriptions, net worth and bill distribution
across pay periods.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional

import numpy as np

from .config import (
    BALANCED_SCORE,
    MAX_PAYDAY_STEPS,
    OVERLOADED_FACTOR,
    TARGET_CEILING_FACTOR,
    UNDERLOADED_FACTOR,
)
from .dates import add_months, month_bounds
from .models import (
    Asset,
    BudgetSettings,
    Debt,
    IncomeSource,
    Subscription,
    SubscriptionFrequency,
)


# ---------- Income ----------

def gross_monthly_income(source: IncomeSource) -> float:
    if source.type == "salary" and source.amount:
        if source.pay_frequency == "weekly":
            return source.amount * 52 / 12
        if source.pay_frequency == "bi-weekly":
            return source.amount * 26 / 12
        if source.pay_frequency == "semi-monthly":
            return source.amount * 2
        if source.pay_frequency == "monthly":
            return source.amount
        raise ValueError(f"Unknown pay frequency: {source.pay_frequency!r}")
    if source.type == "hourly" and source.hourly_rate and source.hours_per_week:
        return source.hourly_rate * source.hours_per_week * 52 / 12
    return 0.0

def total_deduction_percent(source: IncomeSource) -> float:
    d = source.deductions
    if d is None:
        return 0.0
    return d.federal_tax + d.state_tax + d.medicare + d.social_security + d.retirement_401k + d.other

def net_monthly_income(source: IncomeSource) -> float:
    gross = gross_monthly_income(source)
    return max(0.0, gross - gross * total_deduction_percent(source) / 100)

def total_gross_monthly_income(sources: List[IncomeSource]) -> float:
    return sum(gross_monthly_income(s) for s in sources)

def total_monthly_income(sources: List[IncomeSource]) -> float:
    return sum(net_monthly_income(s) for s in sources)

def available_for_debt(budget: BudgetSettings) -> float:
    return max(0.0, total_monthly_income(budget.income_sources) - budget.monthly_expenses)


# ---------- Subscriptions ----------

def subscription_monthly_amount(amount: float, frequency: SubscriptionFrequency) -> float:
    value, unit = frequency.value, frequency.unit
    if value < 1:
        raise ValueError(f"Subscription interval must be at least 1, got {value!r}")
    if unit == "days":
        return amount / value * 30
    if unit == "weeks":
        return amount / value * 4.33
    if unit == "months":
        return amount / value
    if unit == "years":
        return amount / (value * 12)
    raise ValueError(f"Unknown subscription unit: {unit!r}")

def _step(d: date, frequency: SubscriptionFrequency) -> date:
    if frequency.value < 1:
        raise ValueError(f"Subscription interval must be at least 1, got {frequency.value!r}")
    if frequency.unit == "days":
        return d + timedelta(days=frequency.value)
    if frequency.unit == "weeks":
        return d + timedelta(weeks=frequency.value)
    if frequency.unit == "months":
        return add_months(d, frequency.value)
    if frequency.unit == "years":
        return add_months(d, 12 * frequency.value)
    raise ValueError(f"Unknown subscription unit: {frequency.unit!r}")

def next_billing_date(subscription: Subscription, today: Optional[date] = None) -> Optional[date]:
    """Roll the stored billing date forward until it is today or later."""
    if subscription.next_billing_date is None:
        return None
    today = today or date.today()
    billing = subscription.next_billing_date
    while billing < today:
        billing = _step(billing, subscription.frequency)
    return billing

def total_subscriptions_monthly(subscriptions: List[Subscription]) -> float:
    return sum(
        subscription_monthly_amount(s.amount, s.frequency) for s in subscriptions if s.is_active
    )


# ---------- Net worth ----------

def total_assets(assets: List[Asset]) -> float:
    return sum(a.balance for a in assets)

def total_debt(debts: List[Debt]) -> float:
    return sum(d.balance for d in debts)

def net_worth(assets: List[Asset], debts: List[Debt]) -> float:
    return total_assets(assets) - total_debt(debts)

def assets_by_type(assets: List[Asset]) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for a in assets:
        out[a.type] = out.get(a.type, 0.0) + a.balance
    return out

def asset_balance_history(assets: List[Asset]) -> List[Dict]:
    """Running total of all asset balances at every recorded history date."""
    entries = sorted(
        ((e.date, a.id, e.balance) for a in assets for e in a.balance_history),
        key=lambda t: t[0],
    )
    latest: Dict[str, float] = {}
    out = []
    for when, asset_id, balance in entries:
        latest[asset_id] = balance
        out.append({"date": when, "total_balance": sum(latest.values())})
    return out


# ---------- Paydays ----------

def paydays_in_month(source: IncomeSource, month_date: date) -> List[date]:
    if source.next_pay_date is None:
        return []

    first, last = month_bounds(month_date)
    last_day = last.day
    pay_day = source.next_pay_date.day

    if source.pay_frequency == "semi-monthly":
        if pay_day <= 15:
            day1, day2 = pay_day, min(pay_day + 14, 28)
        else:
            day1, day2 = max(pay_day - 14, 1), pay_day
        return [first.replace(day=min(day1, last_day)), first.replace(day=min(day2, last_day))]

    if source.pay_frequency == "monthly":
        return [first.replace(day=min(pay_day, last_day))]

    if source.pay_frequency == "weekly":
        interval = timedelta(days=7)
    elif source.pay_frequency == "bi-weekly":
        interval = timedelta(days=14)
    else:
        raise ValueError(f"Unknown pay frequency: {source.pay_frequency!r}")

    current = source.next_pay_date
    while current > first:
        current -= interval

    out = []
    for _ in range(MAX_PAYDAY_STEPS):
        if current > last:
            break
        if current >= first:
            out.append(current)
        current += interval
    return out


# ---------- Bill distribution ----------

@dataclass
class PayPeriod:
    id: str
    start_day: int
    end_day: int
    pay_date: date
    bills: List[Debt] = field(default_factory=list)
    total_amount: float = 0.0


@dataclass
class BillSuggestion:
    debt_id: str
    debt_name: str
    current_due_day: int
    suggested_due_day: int
    reason: str
    amount_impact: float


@dataclass
class DistributionAnalysis:
    pay_periods: List[PayPeriod]
    is_balanced: bool
    balance_score: int
    total_bill_amount: float
    suggestions: List[BillSuggestion]
    message: str


def analyze_pay_periods(sources: List[IncomeSource], month_date: Optional[date] = None) -> List[PayPeriod]:
    month_date = month_date or date.today()
    paydays = sorted({d for s in sources for d in paydays_in_month(s, month_date)})
    if not paydays:
        return []

    month_end = month_bounds(month_date)[1].day
    periods = []
    for i, pay_date in enumerate(paydays):
        end_day = paydays[i + 1].day - 1 if i < len(paydays) - 1 else month_end
        periods.append(PayPeriod(id=f"period-{i}", start_day=pay_date.day, end_day=end_day, pay_date=pay_date))

    # bills due before the first payday belong to the first period
    periods[0].start_day = 1
    return periods

def assign_bills_to_periods(debts: List[Debt], periods: List[PayPeriod]) -> List[PayPeriod]:
    out = [PayPeriod(id=p.id, start_day=p.start_day, end_day=p.end_day, pay_date=p.pay_date) for p in periods]
    if not out:
        return out
    for d in debts:
        target = next((p for p in out if p.start_day <= d.due_day <= p.end_day), out[0])
        target.bills.append(d)
        target.total_amount += d.minimum_payment
    return out

def balance_score(periods: List[PayPeriod]) -> int:
    """0-100, where 100 means every pay period carries the same bill total."""
    if len(periods) <= 1:
        return 100
    amounts = np.array([p.total_amount for p in periods], dtype=float)
    if amounts.sum() == 0:
        return 100
    mean = amounts.mean()
    cv = amounts.std() / mean if mean > 0 else 0.0
    return int(math.floor(max(0.0, min(100.0, 100 - cv * 100)) + 0.5))

def bill_suggestions(periods: List[PayPeriod]) -> List[BillSuggestion]:
    if len(periods) <= 1:
        return []

    avg = sum(p.total_amount for p in periods) / len(periods)
    overloaded = [p for p in periods if p.total_amount > avg * OVERLOADED_FACTOR]
    underloaded = [p for p in periods if p.total_amount < avg * UNDERLOADED_FACTOR]
    if not overloaded or not underloaded:
        return []

    # running totals of the lighter periods as bills get moved into them
    loads = {p.id: p.total_amount for p in underloaded}
    out = []
    for period in overloaded:
        to_move = period.total_amount - avg
        for bill in sorted(period.bills, key=lambda b: b.minimum_payment):
            if to_move <= 0:
                break
            target = next(
                (p for p in underloaded if loads[p.id] + bill.minimum_payment <= avg * TARGET_CEILING_FACTOR),
                None,
            )
            if target is None:
                continue
            out.append(BillSuggestion(
                debt_id=bill.id,
                debt_name=bill.name,
                current_due_day=bill.due_day,
                suggested_due_day=min(target.pay_date.day + 3, target.end_day),
                reason="Move to lighter pay period",
                amount_impact=bill.minimum_payment,
            ))
            to_move -= bill.minimum_payment
            loads[target.id] += bill.minimum_payment
    return out

def analyze_bill_distribution(debts: List[Debt], sources: List[IncomeSource],
                              month_date: Optional[date] = None) -> DistributionAnalysis:
    raw = analyze_pay_periods(sources, month_date)
    if not raw:
        return DistributionAnalysis(
            pay_periods=[], is_balanced=True, balance_score=0, total_bill_amount=0.0,
            suggestions=[], message="Add your income sources to analyze bill distribution.",
        )

    periods = assign_bills_to_periods(debts, raw)
    score = balance_score(periods)
    balanced = score >= BALANCED_SCORE
    suggestions = [] if balanced else bill_suggestions(periods)

    if not debts:
        message = "Add debts to analyze bill distribution."
    elif len(periods) == 1:
        message = "You have one pay period per month."
    elif balanced:
        message = "Your bills are well distributed!"
    elif suggestions:
        n = len(suggestions)
        message = f"Bills are uneven. {n} suggestion{'s' if n > 1 else ''} to balance."
    else:
        message = "Bills could be more evenly distributed."

    return DistributionAnalysis(
        pay_periods=periods,
        is_balanced=balanced,
        balance_score=score,
        total_bill_amount=sum(d.minimum_payment for d in debts),
        suggestions=suggestions,
        message=message,
    )
