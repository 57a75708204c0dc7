"""Payoff Lab: debt payoff simulation, milestones and budget math."""

from .calculations import generate_payoff_plan, sort_debts_by_strategy
from .detection import InMemoryCelebratedStore, MilestoneDetector, detect_milestone
from .milestones import compute_payment_streak
from .models import (
    Debt,
    OneTimeFunding,
    Payment,
    PayoffPlan,
    RecurringFunding,
    StrategySettings,
)

__version__ = "0.1.0"
