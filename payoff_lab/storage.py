"""
Persistent data store.

App data is kept as one JSON document on disk and written atomically
(temp file + replace). Backups use the same document with an
`exported_at` stamp. Celebrated milestone keys live in their own file
as a JSON array.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Set, Union

from .config import CELEBRATED_FILE, DATA_FILE
from .dates import clamp_due_day
from .models import (
    AppData,
    Asset,
    BalanceEntry,
    BudgetSettings,
    Debt,
    Deductions,
    IncomeSource,
    OneTimeFunding,
    Payment,
    RecurringFunding,
    StrategySettings,
    Subscription,
    SubscriptionFrequency,
    UserSettings,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class StorageError(Exception):
    pass


class ImportDataError(ValueError):
    pass


# ---------- JSON <-> dataclasses ----------

def _json_default(value: Any):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

def _date(value) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])

def _datetime(value) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))

def _debt(raw: Dict) -> Debt:
    return Debt(
        id=str(raw["id"]),
        name=raw.get("name", ""),
        balance=float(raw.get("balance", 0.0)),
        apr=float(raw.get("apr", 0.0)),
        minimum_payment=float(raw.get("minimum_payment", 0.0)),
        due_day=clamp_due_day(raw.get("due_day", 1)),
        category=raw.get("category", "other"),
        original_balance=raw.get("original_balance"),
        credit_limit=raw.get("credit_limit"),
        created_at=_datetime(raw.get("created_at")),
        updated_at=_datetime(raw.get("updated_at")),
    )

def _payment(raw: Dict) -> Payment:
    return Payment(
        id=str(raw["id"]),
        debt_id=str(raw["debt_id"]),
        amount=float(raw.get("amount", 0.0)),
        principal=float(raw.get("principal", 0.0)),
        interest=float(raw.get("interest", 0.0)),
        date=_date(raw.get("date")),
        type=raw.get("type", "minimum"),
        is_completed=bool(raw.get("is_completed", False)),
        completed_at=_datetime(raw.get("completed_at")),
        note=raw.get("note", ""),
    )

def _strategy(raw: Dict) -> StrategySettings:
    return StrategySettings(
        strategy=raw.get("strategy", "avalanche"),
        recurring_funding=RecurringFunding(**raw.get("recurring_funding", {})),
        one_time_fundings=[
            OneTimeFunding(
                id=str(f["id"]),
                name=f.get("name", ""),
                amount=float(f.get("amount", 0.0)),
                date=_date(f["date"]),
                is_applied=bool(f.get("is_applied", False)),
            )
            for f in raw.get("one_time_fundings", [])
        ],
    )

def _income_source(raw: Dict) -> IncomeSource:
    deductions = raw.get("deductions")
    return IncomeSource(
        id=str(raw["id"]),
        name=raw.get("name", ""),
        type=raw.get("type", "salary"),
        pay_frequency=raw.get("pay_frequency", "monthly"),
        amount=raw.get("amount"),
        hourly_rate=raw.get("hourly_rate"),
        hours_per_week=raw.get("hours_per_week"),
        deductions=Deductions(**deductions) if deductions else None,
        next_pay_date=_date(raw.get("next_pay_date")),
    )

def _subscription(raw: Dict) -> Subscription:
    frequency = raw.get("frequency") or {}
    return Subscription(
        id=str(raw["id"]),
        name=raw.get("name", ""),
        amount=float(raw.get("amount", 0.0)),
        frequency=SubscriptionFrequency(
            value=max(1, int(frequency.get("value", 1))),
            unit=frequency.get("unit", "months"),
        ),
        next_billing_date=_date(raw.get("next_billing_date")),
        category=raw.get("category", "other"),
        is_active=bool(raw.get("is_active", True)),
    )

def _asset(raw: Dict) -> Asset:
    return Asset(
        id=str(raw["id"]),
        name=raw.get("name", ""),
        type=raw.get("type", "other"),
        balance=float(raw.get("balance", 0.0)),
        institution=raw.get("institution", ""),
        interest_rate=raw.get("interest_rate"),
        balance_history=[
            BalanceEntry(date=_date(e["date"]), balance=float(e["balance"]))
            for e in raw.get("balance_history", [])
        ],
    )

def app_data_to_dict(data: AppData) -> Dict:
    return json.loads(json.dumps(asdict(data), default=_json_default))

def app_data_from_dict(raw: Dict) -> AppData:
    raw = migrate_data(raw)
    budget = raw["budget"]
    return AppData(
        version=raw["version"],
        debts=[_debt(d) for d in raw["debts"]],
        payments=[_payment(p) for p in raw["payments"]],
        strategy=_strategy(raw["strategy"]),
        settings=UserSettings(**raw["settings"]),
        budget=BudgetSettings(
            income_sources=[_income_source(s) for s in budget.get("income_sources", [])],
            monthly_expenses=float(budget.get("monthly_expenses", 0.0)),
        ),
        assets=[_asset(a) for a in raw["assets"]],
        subscriptions=[_subscription(s) for s in raw["subscriptions"]],
        exported_at=_datetime(raw.get("exported_at")),
    )

def migrate_data(raw: Dict) -> Dict:
    """Fill fields missing from older saves."""
    defaults = app_data_to_dict(AppData())
    migrated = dict(raw)
    for key in ("version", "payments", "settings", "strategy", "budget", "assets", "subscriptions"):
        if not migrated.get(key):
            migrated[key] = defaults[key]
    return migrated


# ---------- Load / save ----------

def load_data(path: PathLike = DATA_FILE) -> AppData:
    path = Path(path)
    if not path.exists():
        return AppData()
    try:
        return app_data_from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error("Failed to load data from %s: %s", path, e)
        return AppData()

def save_data(data: AppData, path: PathLike = DATA_FILE) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(asdict(data), indent=2, default=_json_default), encoding="utf-8")
        tmp.replace(path)
    except OSError as e:
        logger.error("Failed to save data to %s: %s", path, e)
        raise StorageError("Failed to save data") from e

def clear_data(path: PathLike = DATA_FILE) -> None:
    Path(path).unlink(missing_ok=True)


# ---------- Export / import ----------

def export_filename(now: Optional[datetime] = None) -> str:
    return f"debt-payoff-backup-{(now or datetime.now()).date().isoformat()}.json"

def export_data(data: AppData, now: Optional[datetime] = None) -> bytes:
    payload = asdict(data)
    payload["exported_at"] = now or datetime.now()
    return json.dumps(payload, indent=2, default=_json_default).encode("utf-8")

def import_data(content: Union[str, bytes]) -> AppData:
    try:
        raw = json.loads(content)
    except ValueError as e:
        raise ImportDataError("Failed to parse file. Please select a valid JSON file.") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("debts"), list) \
            or not isinstance(raw.get("strategy"), dict):
        raise ImportDataError("Invalid file format. Please select a valid backup file.")

    try:
        return app_data_from_dict(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise ImportDataError(f"Invalid file format: {e}") from e


# ---------- Celebrated milestones ----------

class JsonCelebratedStore:
    """Celebrated milestone keys persisted as a JSON array of strings."""

    def __init__(self, path: PathLike = CELEBRATED_FILE):
        self.path = Path(path)

    def keys(self) -> Set[str]:
        if not self.path.exists():
            return set()
        try:
            return set(json.loads(self.path.read_text(encoding="utf-8")))
        except (ValueError, TypeError) as e:
            logger.error("Ignoring unreadable celebrated keys in %s: %s", self.path, e)
            return set()

    def has(self, key: str) -> bool:
        return key in self.keys()

    def mark(self, key: str) -> None:
        keys = self.keys()
        keys.add(key)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(sorted(keys)), encoding="utf-8")
        tmp.replace(self.path)

    def reset(self) -> None:
        self.path.unlink(missing_ok=True)
