# ---------- Settings & Constants ----------

import os
from pathlib import Path

APP_NAME = "Payoff Lab"
APP_ICON = "🐄"

# ---------- Simulation ----------

# Hard cap on simulated months (30 years)
MAX_PLAN_MONTHS = 360

# Balances at or below this are treated as paid off
PAID_OFF_EPSILON = 0.01

STRATEGIES = ("avalanche", "snowball")
DEFAULT_STRATEGY = "avalanche"

# ---------- Milestones & streaks ----------

STREAK_LOOKBACK_MONTHS = 36
STREAK_WALK_MAX_MONTHS = 360

PROGRESS_THRESHOLDS = (25, 50, 75, 100)
INTEREST_THRESHOLDS = (500, 1000, 5000)
STREAK_THRESHOLDS = (3, 6)

# ---------- Bill distribution ----------

BALANCED_SCORE = 80
OVERLOADED_FACTOR = 1.15
UNDERLOADED_FACTOR = 0.85
TARGET_CEILING_FACTOR = 1.10

# Upper bound on weekly/bi-weekly payday stepping inside one month
MAX_PAYDAY_STEPS = 10

# ---------- Storage ----------

DATA_VERSION = "1.0.0"
DEFAULT_CURRENCY = "USD"
DEFAULT_DATE_FORMAT = "MM/DD/YYYY"

DATA_DIR = Path(os.environ.get("PAYOFF_LAB_DATA_DIR", Path.home() / ".payoff_lab"))
DATA_FILE = DATA_DIR / "app_data.json"
CELEBRATED_FILE = DATA_DIR / "celebrated.json"
