"""
Milestone & streak computation.

Pure functions deriving progress milestones, per-debt payoff timelines and
payment streaks from debts, payments and a generated plan.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional

from .config import PROGRESS_THRESHOLDS, STREAK_LOOKBACK_MONTHS, STREAK_WALK_MAX_MONTHS
from .dates import add_months, same_month
from .models import Debt, MonthlyPayment, Payment, PayoffPlan, StreakData


@dataclass
class OverallMilestone:
    percent: int
    label: str
    emoji: str
    is_reached: bool
    amount_at_milestone: float
    estimated_date: Optional[date] = None


@dataclass
class DebtTimelineEntry:
    debt_id: str
    debt_name: str
    payoff_date: date
    current_balance: float
    original_balance: float
    percent_paid: float
    is_completed: bool


@dataclass
class ProgressStats:
    total_original: float
    total_paid: float
    percent_paid: float
    interest_paid: float
    completed_payments: int


MILESTONE_LABELS = {
    25: ("Quarter Way!", "🌟"),
    50: ("Halfway!", "🎯"),
    75: ("Almost There!", "🔥"),
    100: ("Debt Free!", "🎉"),
}


# ---------- Overall progress ----------

def compute_overall_milestones(percent_paid: float, total_original: float,
                               breakdown: List[MonthlyPayment]) -> List[OverallMilestone]:
    out: List[OverallMilestone] = []
    for percent in PROGRESS_THRESHOLDS:
        label, emoji = MILESTONE_LABELS[percent]
        target = total_original * percent / 100

        # first plan month whose cumulative principal reaches the target
        estimated = None
        cumulative = 0.0
        for month in breakdown:
            cumulative += month.total_principal
            if cumulative >= target:
                estimated = date.fromisoformat(month.month + "-01")
                break

        out.append(OverallMilestone(
            percent=percent,
            label=label,
            emoji=emoji,
            is_reached=percent_paid >= percent,
            amount_at_milestone=target,
            estimated_date=estimated,
        ))
    return out

def celebration_progress(debts: List[Debt], payments: List[Payment]) -> ProgressStats:
    """Aggregate progress from completed payments against the original balances."""
    completed = [p for p in payments if p.is_completed]
    total_original = sum(
        d.original_balance if d.original_balance is not None else d.balance for d in debts
    )
    total_paid = sum(p.principal or 0.0 for p in completed)
    return ProgressStats(
        total_original=total_original,
        total_paid=total_paid,
        percent_paid=(total_paid / total_original * 100) if total_original > 0 else 0.0,
        interest_paid=sum(p.interest or 0.0 for p in completed),
        completed_payments=len(completed),
    )


# ---------- Debt payoff timeline ----------

def compute_debt_payoff_timeline(debts: List[Debt], plan: PayoffPlan) -> List[DebtTimelineEntry]:
    payoff_dates = {}
    for step in plan.steps:
        for m in step.milestones_in_step:
            payoff_dates[m.debt_id] = m.payoff_date

    entries = []
    for d in debts:
        if d.original_balance and d.original_balance > 0:
            pct = min(100.0, (d.original_balance - d.balance) / d.original_balance * 100)
        else:
            pct = 0.0
        entries.append(DebtTimelineEntry(
            debt_id=d.id,
            debt_name=d.name,
            payoff_date=payoff_dates.get(d.id, plan.debt_free_date),
            current_balance=d.balance,
            original_balance=d.original_balance,
            percent_paid=pct,
            is_completed=d.balance <= 0,
        ))

    # completed debts first, then by payoff date
    return sorted(entries, key=lambda e: (not e.is_completed, e.payoff_date))


# ---------- Payment streak ----------

def _completed_in_month(payments: Iterable[Payment], month: date) -> bool:
    return any(
        p.is_completed and p.completed_at is not None and same_month(p.completed_at, month)
        for p in payments
    )

def compute_payment_streak(payments: List[Payment], debts: List[Debt],
                           now: Optional[datetime] = None) -> StreakData:
    """
    Consecutive months with a completed payment, counted backward from the
    month before `now` and stopping at the first gap. The longest streak scans
    a fixed lookback window and never reports less than the current streak.
    """
    if not payments or not debts:
        return StreakData()

    now = now or datetime.now()
    this_month = date(now.year, now.month, 1)

    streak = 0
    for i in range(1, STREAK_WALK_MAX_MONTHS + 1):
        if not _completed_in_month(payments, add_months(this_month, -i)):
            break
        streak += 1

    longest = 0
    run = 0
    for i in range(1, STREAK_LOOKBACK_MONTHS + 1):
        if _completed_in_month(payments, add_months(this_month, -i)):
            run += 1
            longest = max(longest, run)
        else:
            run = 0
    longest = max(longest, streak)

    this_month_count = sum(
        1 for p in payments
        if p.is_completed and p.completed_at is not None and same_month(p.completed_at, now)
    )
    return StreakData(
        consecutive_months=streak,
        current_month_on_track=this_month_count > 0,
        longest_streak=longest,
        total_completed_payments=sum(1 for p in payments if p.is_completed),
        this_month_payments=this_month_count,
    )
