"""
Financial calculation engine.

Month-by-month payoff simulation, amortization, strategy ordering and the
money formatting helpers used by the dashboard.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, List, Optional, Tuple

from .config import MAX_PLAN_MONTHS, PAID_OFF_EPSILON, STRATEGIES
from .dates import add_months, month_key, months_between
from .models import (
    AmortizationRow,
    Debt,
    DebtMonthPayment,
    DebtSummary,
    MonthlyPayment,
    PayoffMilestone,
    PayoffPlan,
    PayoffStep,
    StrategySettings,
)

logger = logging.getLogger(__name__)


# ---------- Utilities ----------

def round_money(x: float) -> float:
    """Round half up to 2 decimal places (not banker's rounding)."""
    return math.floor(x * 100.0 + 0.5) / 100.0

def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = "$" if currency == "USD" else f"{currency} "
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"

def format_compact_currency(amount: float, currency: str = "USD") -> str:
    """$1,234,567 -> $1.2M; amounts from 10k show no cents."""
    symbol = "$" if currency == "USD" else f"{currency} "
    if amount >= 100_000:
        for div, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
            if amount >= div:
                return f"{symbol}{amount / div:.1f}".rstrip("0").rstrip(".") + suffix
    if amount >= 10_000:
        return f"{symbol}{amount:,.0f}"
    return format_currency(amount, currency)

def format_percent(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"


# ---------- Basic calculations ----------

def calculate_monthly_interest(balance: float, apr: float) -> float:
    return balance * (apr / 12 / 100)

def calculate_utilization(balance: float, limit: float) -> float:
    if limit <= 0:
        return 0.0
    return balance / limit * 100

def split_payment(balance: float, apr: float, payment_amount: float) -> Tuple[float, float]:
    """Return (principal, interest) for one payment against the current balance."""
    interest = calculate_monthly_interest(balance, apr)
    principal = max(0.0, payment_amount - interest)
    return min(principal, balance), min(interest, payment_amount)

def calculate_debt_summary(debts: List[Debt]) -> DebtSummary:
    total_balance = sum(d.balance for d in debts)
    total_original = sum(d.original_balance for d in debts)

    with_limits = [d for d in debts if d.credit_limit and d.credit_limit > 0]
    total_limit = sum(d.credit_limit for d in with_limits)
    credit_used = sum(d.balance for d in with_limits)

    by_category: Dict[str, float] = {}
    for d in debts:
        by_category[d.category] = by_category.get(d.category, 0.0) + d.balance

    principal_paid = total_original - total_balance
    return DebtSummary(
        total_balance=total_balance,
        total_minimum_payments=sum(d.minimum_payment for d in debts),
        total_credit_limit=total_limit,
        credit_utilization=calculate_utilization(credit_used, total_limit),
        debts_by_category=by_category,
        principal_paid=principal_paid,
        percent_paid=(principal_paid / total_original * 100) if total_original > 0 else 0.0,
    )


# ---------- Single-debt amortization ----------

@dataclass
class PayoffEstimate:
    date: date
    months: int
    total_interest: float

def generate_amortization(debt: Debt, monthly_payment: float,
                          start_date: Optional[date] = None) -> List[AmortizationRow]:
    current = start_date or date.today()
    balance = debt.balance
    rows: List[AmortizationRow] = []

    while balance > PAID_OFF_EPSILON and len(rows) < MAX_PLAN_MONTHS:
        interest = calculate_monthly_interest(balance, debt.apr)
        payment = min(monthly_payment, balance + interest)
        principal = payment - interest
        balance = max(0.0, balance - principal)
        rows.append(AmortizationRow(
            date=add_months(current, len(rows)),
            payment=round_money(payment),
            principal=round_money(principal),
            interest=round_money(interest),
            balance=round_money(balance),
        ))
    return rows

def calculate_payoff_date(debt: Debt, monthly_payment: float,
                          start_date: Optional[date] = None) -> PayoffEstimate:
    start = start_date or date.today()
    balance = debt.balance
    months = 0
    total_interest = 0.0

    while balance > PAID_OFF_EPSILON and months < MAX_PLAN_MONTHS:
        interest = calculate_monthly_interest(balance, debt.apr)
        total_interest += interest
        payment = min(monthly_payment, balance + interest)
        balance = max(0.0, balance - (payment - interest))
        months += 1

    return PayoffEstimate(date=add_months(start, months), months=months,
                          total_interest=round_money(total_interest))


# ---------- Strategy ordering ----------

def sort_debts_by_strategy(debts: List[Debt], strategy: str) -> List[Debt]:
    """Avalanche: highest APR first. Snowball: lowest balance first.

    Both sorts are stable, so ties keep input order.
    """
    if strategy == "avalanche":
        return sorted(debts, key=lambda d: -d.apr)
    if strategy == "snowball":
        return sorted(debts, key=lambda d: d.balance)
    raise ValueError(f"Unknown strategy: {strategy!r} (expected one of {STRATEGIES})")

def _first_active(priority: List[Debt], active: List[Debt]) -> Optional[str]:
    active_ids = {d.id for d in active}
    for d in priority:
        if d.id in active_ids:
            return d.id
    return None


# ---------- Simulation Engine ----------

def generate_payoff_plan(debts: List[Debt], settings: StrategySettings,
                         start_date: Optional[date] = None) -> PayoffPlan:
    """
    Simulate month-by-month payments until every debt is paid off.

    The priority order is fixed up front from the original debts; each month
    the first still-active debt in that order receives everything above the
    current minimums plus any one-time funding dated in that month. Stops
    silently after MAX_PLAN_MONTHS. Input debts are never mutated.
    """
    start = start_date or date.today()
    if not debts:
        return PayoffPlan(debt_free_date=start, total_payments=0.0, total_interest=0.0)

    active = [replace(d) for d in debts]
    priority = sort_debts_by_strategy(debts, settings.strategy)
    originals = {d.id: d for d in debts}

    monthly_funding = settings.recurring_funding.amount
    total_minimums = sum(d.minimum_payment for d in debts)
    if monthly_funding < total_minimums:
        logger.warning(
            "Monthly funding %.2f is less than total minimum payments %.2f",
            monthly_funding, total_minimums,
        )

    steps: List[PayoffStep] = []
    breakdown: List[MonthlyPayment] = []
    recipient = _first_active(priority, active)
    step = PayoffStep(
        step_number=1,
        completion_date=None,
        debts_paying_minimum=[d.id for d in active if d.id != recipient],
        debt_receiving_extra=recipient,
    )

    total_payments = 0.0
    total_interest = 0.0
    applied_fundings = set()
    month_count = 0

    while active and month_count < MAX_PLAN_MONTHS:
        current = add_months(start, month_count)
        current_key = month_key(current)

        # 1) Extra = funding above current minimums, plus one-time lump sums
        current_minimums = sum(d.minimum_payment for d in active)
        extra = max(0.0, monthly_funding - current_minimums)
        for funding in settings.one_time_fundings:
            if funding.id in applied_fundings:
                continue
            if month_key(funding.date) == current_key:
                extra += funding.amount
                applied_fundings.add(funding.id)

        recipient = _first_active(priority, active)

        # 2) Pay every active debt
        rows: List[DebtMonthPayment] = []
        for d in active:
            gets_extra = d.id == recipient
            amount = d.minimum_payment + (extra if gets_extra else 0.0)

            interest = calculate_monthly_interest(d.balance, d.apr)
            payment = min(amount, d.balance + interest)
            interest_paid = min(interest, payment)
            principal = payment - interest_paid
            d.balance = max(0.0, d.balance - principal)

            total_payments += payment
            total_interest += interest_paid

            rows.append(DebtMonthPayment(
                debt_id=d.id,
                debt_name=d.name,
                amount=round_money(payment),
                principal=round_money(principal),
                interest=round_money(interest_paid),
                remaining_balance=round_money(d.balance),
                type="extra" if gets_extra else "minimum",
            ))

        # 3) Record
        breakdown.append(MonthlyPayment(
            month=current_key,
            payments=rows,
            total_payment=round_money(sum(r.amount for r in rows)),
            total_principal=round_money(sum(r.principal for r in rows)),
            total_interest=round_money(sum(r.interest for r in rows)),
        ))

        # 4) Retire paid-off debts
        paid_off = [d for d in active if d.balance <= PAID_OFF_EPSILON]
        for d in paid_off:
            step.milestones_in_step.append(PayoffMilestone(
                debt_id=d.id,
                debt_name=d.name,
                payoff_date=current,
                total_paid=originals[d.id].original_balance,
                interest_paid=0.0,
            ))
        active = [d for d in active if d.balance > PAID_OFF_EPSILON]

        # 5) Roll to the next step
        if paid_off and active:
            step.completion_date = current
            steps.append(step)
            recipient = _first_active(priority, active)
            step = PayoffStep(
                step_number=len(steps) + 1,
                completion_date=None,
                debts_paying_minimum=[d.id for d in active if d.id != recipient],
                debt_receiving_extra=recipient,
            )

        month_count += 1

    last_month = add_months(start, month_count - 1)
    if step.milestones_in_step or not steps:
        step.completion_date = last_month
        steps.append(step)

    return PayoffPlan(
        debt_free_date=last_month,
        total_payments=round_money(total_payments),
        total_interest=round_money(total_interest),
        steps=steps,
        monthly_breakdown=breakdown,
    )


# ---------- Scenario comparison ----------

@dataclass
class WhatIfComparison:
    baseline: PayoffPlan
    what_if: PayoffPlan
    months_saved: int
    interest_saved: float

def compare_what_if(debts: List[Debt], settings: StrategySettings, extra_amount: float,
                    start_date: Optional[date] = None) -> WhatIfComparison:
    """Same strategy with the recurring funding raised by `extra_amount`."""
    start = start_date or date.today()
    baseline = generate_payoff_plan(debts, settings, start)
    boosted = replace(
        settings,
        recurring_funding=replace(
            settings.recurring_funding,
            amount=settings.recurring_funding.amount + extra_amount,
        ),
    )
    what_if = generate_payoff_plan(debts, boosted, start)
    return WhatIfComparison(
        baseline=baseline,
        what_if=what_if,
        months_saved=months_between(baseline.debt_free_date, what_if.debt_free_date),
        interest_saved=round_money(baseline.total_interest - what_if.total_interest),
    )

def compare_strategies(debts: List[Debt], settings: StrategySettings,
                       start_date: Optional[date] = None) -> Dict[str, PayoffPlan]:
    start = start_date or date.today()
    return {
        name: generate_payoff_plan(debts, replace(settings, strategy=name), start)
        for name in STRATEGIES
    }
