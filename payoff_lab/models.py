from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from .config import DATA_VERSION, DEFAULT_CURRENCY, DEFAULT_DATE_FORMAT, DEFAULT_STRATEGY


# ---------- Debts & payments ----------

DEBT_CATEGORIES = {
    "credit_card": "Credit Card",
    "student_loan": "Student Loan",
    "personal_loan": "Personal Loan",
    "auto_loan": "Auto Loan",
    "mortgage": "Mortgage",
    "medical": "Medical",
    "other": "Other",
}

PAYMENT_TYPES = ("minimum", "extra", "one_time", "funding")


@dataclass
class Debt:
    id: str
    name: str
    balance: float
    apr: float                       # annual rate as a 0-100 number, e.g. 15.99
    minimum_payment: float
    due_day: int = 1
    category: str = "other"          # custom tags are allowed
    original_balance: Optional[float] = None
    credit_limit: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        # progress baseline; a later correction may push balance above it
        if self.original_balance is None:
            self.original_balance = self.balance


@dataclass
class Payment:
    id: str
    debt_id: str
    amount: float
    principal: float
    interest: float
    date: date
    type: str = "minimum"
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    note: str = ""


# ---------- Strategy ----------

@dataclass
class RecurringFunding:
    amount: float = 0.0              # total monthly amount across all debts
    day_of_month: int = 1
    extra_amount: float = 0.0


@dataclass
class OneTimeFunding:
    id: str
    name: str
    amount: float
    date: date
    is_applied: bool = False


@dataclass
class StrategySettings:
    strategy: str = DEFAULT_STRATEGY
    recurring_funding: RecurringFunding = field(default_factory=RecurringFunding)
    one_time_fundings: List[OneTimeFunding] = field(default_factory=list)


# ---------- Payoff plan ----------

@dataclass
class PayoffMilestone:
    debt_id: str
    debt_name: str
    payoff_date: date
    total_paid: float
    interest_paid: float = 0.0       # per-debt interest is not tracked by the simulator


@dataclass
class PayoffStep:
    step_number: int
    completion_date: Optional[date]
    debts_paying_minimum: List[str]
    debt_receiving_extra: Optional[str]
    milestones_in_step: List[PayoffMilestone] = field(default_factory=list)


@dataclass
class DebtMonthPayment:
    debt_id: str
    debt_name: str
    amount: float
    principal: float
    interest: float
    remaining_balance: float
    type: str                        # "minimum" | "extra"


@dataclass
class MonthlyPayment:
    month: str                       # "YYYY-MM"
    payments: List[DebtMonthPayment]
    total_payment: float
    total_principal: float
    total_interest: float


@dataclass
class PayoffPlan:
    debt_free_date: date
    total_payments: float
    total_interest: float
    steps: List[PayoffStep] = field(default_factory=list)
    monthly_breakdown: List[MonthlyPayment] = field(default_factory=list)

    @property
    def months(self) -> int:
        return len(self.monthly_breakdown)


@dataclass
class AmortizationRow:
    date: date
    payment: float
    principal: float
    interest: float
    balance: float


@dataclass
class DebtSummary:
    total_balance: float
    total_minimum_payments: float
    total_credit_limit: float
    credit_utilization: float        # percent
    debts_by_category: Dict[str, float]
    principal_paid: float
    percent_paid: float


# ---------- Celebrations ----------

@dataclass
class MilestoneEvent:
    type: str
    is_full_herd: bool               # True only for debt_paid_off and debt_free
    headline: str
    subtext: str
    debt_name: Optional[str] = None
    debt_id: Optional[str] = None


@dataclass
class CelebrationStats:
    user_name: str
    total_original: float
    total_paid: float
    percent_paid: float
    interest_saved: float
    debt_free_date: str              # ISO date, or "Unknown"
    paid_off_debt_name: Optional[str] = None


@dataclass
class StreakData:
    consecutive_months: int = 0
    current_month_on_track: bool = False
    longest_streak: int = 0
    total_completed_payments: int = 0
    this_month_payments: int = 0


# ---------- Budget ----------

PAY_FREQUENCIES = ("weekly", "bi-weekly", "semi-monthly", "monthly")


@dataclass
class Deductions:
    federal_tax: float = 0.0         # all percentages of gross
    state_tax: float = 0.0
    medicare: float = 0.0
    social_security: float = 0.0
    retirement_401k: float = 0.0
    other: float = 0.0


@dataclass
class IncomeSource:
    id: str
    name: str
    type: str = "salary"             # "salary" | "hourly"
    pay_frequency: str = "monthly"
    amount: Optional[float] = None   # per paycheck for salary
    hourly_rate: Optional[float] = None
    hours_per_week: Optional[float] = None
    deductions: Optional[Deductions] = None
    next_pay_date: Optional[date] = None


@dataclass
class BudgetSettings:
    income_sources: List[IncomeSource] = field(default_factory=list)
    monthly_expenses: float = 0.0


@dataclass
class SubscriptionFrequency:
    value: int = 1
    unit: str = "months"             # days | weeks | months | years


@dataclass
class Subscription:
    id: str
    name: str
    amount: float
    frequency: SubscriptionFrequency = field(default_factory=SubscriptionFrequency)
    next_billing_date: Optional[date] = None
    category: str = "other"
    is_active: bool = True


ASSET_TYPES = ("checking", "savings", "investment", "retirement", "property", "vehicle", "other")


@dataclass
class BalanceEntry:
    date: date
    balance: float


@dataclass
class Asset:
    id: str
    name: str
    type: str
    balance: float
    institution: str = ""
    interest_rate: Optional[float] = None
    balance_history: List[BalanceEntry] = field(default_factory=list)


# ---------- App state ----------

@dataclass
class UserSettings:
    user_name: str = ""
    currency: str = DEFAULT_CURRENCY
    date_format: str = DEFAULT_DATE_FORMAT


@dataclass
class AppData:
    version: str = DATA_VERSION
    debts: List[Debt] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)
    strategy: StrategySettings = field(default_factory=StrategySettings)
    settings: UserSettings = field(default_factory=UserSettings)
    budget: BudgetSettings = field(default_factory=BudgetSettings)
    assets: List[Asset] = field(default_factory=list)
    subscriptions: List[Subscription] = field(default_factory=list)
    exported_at: Optional[datetime] = None
