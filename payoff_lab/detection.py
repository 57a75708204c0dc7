"""
Milestone detection.

Evaluates every celebration threshold against the current debts and payment
history, skips keys that were already celebrated, and fires at most one
event per pass: the highest-priority one.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Set, Tuple

from .calculations import generate_payoff_plan
from .config import INTEREST_THRESHOLDS, STREAK_THRESHOLDS
from .milestones import celebration_progress, compute_payment_streak
from .models import CelebrationStats, Debt, MilestoneEvent, Payment, StrategySettings

logger = logging.getLogger(__name__)

# Highest priority first
MILESTONE_PRIORITY = (
    "debt_free",
    "debt_paid_off",
    "progress_75",
    "progress_50",
    "progress_25",
    "interest_5000",
    "interest_1000",
    "interest_500",
    "streak_6",
    "streak_3",
    "first_payment",
)

UNKNOWN_PRIORITY = 999
UNKNOWN_DATE = "Unknown"

Detection = Tuple[MilestoneEvent, CelebrationStats]


def milestone_priority(milestone_type: str) -> int:
    try:
        return MILESTONE_PRIORITY.index(milestone_type)
    except ValueError:
        return UNKNOWN_PRIORITY


class InMemoryCelebratedStore:
    """Celebrated-keys set kept in memory. Same has/mark interface as the JSON store."""

    def __init__(self, keys: Optional[Iterable[str]] = None):
        self._keys: Set[str] = set(keys or ())

    def has(self, key: str) -> bool:
        return key in self._keys

    def mark(self, key: str) -> None:
        self._keys.add(key)

    def keys(self) -> Set[str]:
        return set(self._keys)


# ---------- Threshold evaluation ----------

def _progress_events(percent_paid: float) -> List[Tuple[str, MilestoneEvent]]:
    out = []
    if percent_paid >= 25:
        out.append(("progress_25", MilestoneEvent(
            type="progress_25", is_full_herd=False,
            headline="YOU'RE QUARTER WAY THERE! 🌟",
            subtext="Great start — 25% of your debt is crushed!",
        )))
    if percent_paid >= 50:
        out.append(("progress_50", MilestoneEvent(
            type="progress_50", is_full_herd=False,
            headline="HALFWAY THERE! 🎯",
            subtext="You're officially past the midpoint. Keep going!",
        )))
    if percent_paid >= 75:
        out.append(("progress_75", MilestoneEvent(
            type="progress_75", is_full_herd=False,
            headline="SO CLOSE! 🔥",
            subtext="75% done — you can see the finish line from here!",
        )))
    if percent_paid >= 100:
        out.append(("debt_free", MilestoneEvent(
            type="debt_free", is_full_herd=True,
            headline="YOU ARE DEBT FREE! 🎉",
            subtext="Every debt is gone. This is the moment. You did it!",
        )))
    return out

def _payoff_events(debts: List[Debt]) -> List[Tuple[str, MilestoneEvent]]:
    return [
        (f"debt_paid_off_{d.id}", MilestoneEvent(
            type="debt_paid_off", is_full_herd=True,
            headline=f"{d.name.upper()} IS PAID OFF! 🎊",
            subtext="One less debt. You are unstoppable!",
            debt_name=d.name,
            debt_id=d.id,
        ))
        for d in debts if d.balance <= 0
    ]

INTEREST_COPY = {
    500: ("SAVED $500 IN INTEREST! 💰", "That's real money back in your pocket."),
    1000: ("SAVED $1,000 IN INTEREST! 💰💰", "Four digits saved. You are a money wizard."),
    5000: ("SAVED $5,000 IN INTEREST! 🤑", "Five thousand dollars that stayed yours. Incredible."),
}

STREAK_COPY = {
    3: ("3-MONTH STREAK! 🔥", "Three months of consistent payments. Momentum is everything."),
    6: ("6-MONTH STREAK! ⚡", "Half a year of crushing it. You are a machine."),
}

def _interest_events(interest_saved: float) -> List[Tuple[str, MilestoneEvent]]:
    return [
        (f"interest_{amount}", MilestoneEvent(
            type=f"interest_{amount}", is_full_herd=False,
            headline=INTEREST_COPY[amount][0], subtext=INTEREST_COPY[amount][1],
        ))
        for amount in INTEREST_THRESHOLDS if interest_saved >= amount
    ]

def _streak_events(streak_months: int) -> List[Tuple[str, MilestoneEvent]]:
    return [
        (f"streak_{months}", MilestoneEvent(
            type=f"streak_{months}", is_full_herd=False,
            headline=STREAK_COPY[months][0], subtext=STREAK_COPY[months][1],
        ))
        for months in STREAK_THRESHOLDS if streak_months >= months
    ]


def detect_milestone(debts: List[Debt], payments: List[Payment], strategy: StrategySettings,
                     store, user_name: str = "", is_celebrating: bool = False,
                     now: Optional[datetime] = None) -> Optional[Detection]:
    """
    Run one detection pass.

    `store` needs `has(key)` and `mark(key)`. Returns the winning
    (event, stats) pair after marking its key, or None when nothing new
    qualifies, a celebration is already showing, or there are no debts.
    """
    if is_celebrating or not debts:
        return None

    progress = celebration_progress(debts, payments)
    streak = compute_payment_streak(payments, debts, now=now)

    debt_free_date = UNKNOWN_DATE
    try:
        plan = generate_payoff_plan(debts, strategy, now.date() if now else None)
        debt_free_date = plan.debt_free_date.isoformat()
    except Exception:
        logger.exception("Payoff plan generation failed during milestone detection")

    stats = CelebrationStats(
        user_name=user_name,
        total_original=progress.total_original,
        total_paid=progress.total_paid,
        percent_paid=progress.percent_paid,
        interest_saved=progress.interest_paid,
        debt_free_date=debt_free_date,
    )

    candidates = (
        _progress_events(progress.percent_paid)
        + _payoff_events(debts)
        + _interest_events(progress.interest_paid)
        + _streak_events(streak.consecutive_months)
    )
    if progress.completed_payments == 1:
        candidates.append(("first_payment", MilestoneEvent(
            type="first_payment", is_full_herd=False,
            headline="FIRST PAYMENT LOGGED! 🌱",
            subtext="Every journey starts with a single step. You've started!",
        )))

    pending = [(key, event) for key, event in candidates if not store.has(key)]
    if not pending:
        return None

    # stable: among equal types (several paid-off debts) input order wins
    key, event = min(pending, key=lambda item: milestone_priority(item[1].type))
    store.mark(key)
    logger.info("Milestone %s fired", key)
    return event, replace(stats, paid_off_debt_name=event.debt_name)


class MilestoneDetector:
    """
    Re-runs detection whenever the debts or payments change.

    The last seen inputs are snapshotted, so calling `update` with unchanged
    data is a no-op. A strategy change alone does not trigger a pass.
    """

    def __init__(self, store, on_celebrate: Callable[[MilestoneEvent, CelebrationStats], None],
                 user_name: str = ""):
        self.store = store
        self.on_celebrate = on_celebrate
        self.user_name = user_name
        self._last_debts: Optional[List[Debt]] = None
        self._last_payments: Optional[List[Payment]] = None

    def update(self, debts: List[Debt], payments: List[Payment], strategy: StrategySettings,
               is_celebrating: bool = False, now: Optional[datetime] = None) -> Optional[Detection]:
        if debts == self._last_debts and payments == self._last_payments:
            return None
        self._last_debts = copy.deepcopy(list(debts))
        self._last_payments = copy.deepcopy(list(payments))

        result = detect_milestone(
            debts, payments, strategy, self.store,
            user_name=self.user_name, is_celebrating=is_celebrating, now=now,
        )
        if result is not None:
            self.on_celebrate(*result)
        return result
