"""pandas views over plans and debts, plus CSV/Excel debt upload."""
from __future__ import annotations

import re
from typing import List

import numpy as np
import pandas as pd

from .dates import clamp_due_day
from .models import AmortizationRow, Debt, PayoffPlan

DEBT_COLUMNS = ["id", "name", "category", "balance", "original_balance", "apr", "minimum_payment", "due_day"]
REQUIRED_UPLOAD_COLUMNS = {"name", "balance", "apr", "minimum_payment"}


class UploadError(ValueError):
    pass


# ---------- Plan schedule ----------

def plan_to_frame(plan: PayoffPlan) -> pd.DataFrame:
    """One row per simulated month per active debt."""
    rows = []
    for period_index, month in enumerate(plan.monthly_breakdown, start=1):
        for p in month.payments:
            rows.append({
                "period_index": period_index,
                "month": month.month,
                "debt_id": p.debt_id,
                "debt": p.debt_name,
                "type": p.type,
                "payment": p.amount,
                "principal": p.principal,
                "interest": p.interest,
                "end_balance": p.remaining_balance,
            })
    return pd.DataFrame(rows, columns=[
        "period_index", "month", "debt_id", "debt", "type",
        "payment", "principal", "interest", "end_balance",
    ])

def totals_by_debt(schedule: pd.DataFrame) -> pd.DataFrame:
    return schedule.groupby("debt", as_index=False, sort=False).agg(
        periods=("period_index", "max"),
        final_balance=("end_balance", "last"),
        total_paid=("payment", "sum"),
        interest_paid=("interest", "sum"),
    )

def monthly_totals(schedule: pd.DataFrame) -> pd.DataFrame:
    return schedule.groupby(["period_index", "month"], as_index=False)[
        ["payment", "principal", "interest", "end_balance"]
    ].sum()

def amortization_to_frame(rows: List[AmortizationRow]) -> pd.DataFrame:
    return pd.DataFrame(
        [(r.date, r.payment, r.principal, r.interest, r.balance) for r in rows],
        columns=["date", "payment", "principal", "interest", "balance"],
    )


# ---------- Debts table ----------

def example_frame() -> pd.DataFrame:
    return pd.DataFrame([
        {"name": "AMEX", "category": "credit_card", "balance": 9764, "apr": 9.0, "minimum_payment": 120, "due_day": 15},
        {"name": "MBNA", "category": "credit_card", "balance": 8000, "apr": 0.0, "minimum_payment": 313.85, "due_day": 1},
        {"name": "Triangle", "category": "credit_card", "balance": 8653.87, "apr": 19.99, "minimum_payment": 90, "due_day": 10},
        {"name": "RBC LOC", "category": "personal_loan", "balance": 14782, "apr": 12.5, "minimum_payment": 180, "due_day": 20},
        {"name": "BMO LOC", "category": "personal_loan", "balance": 7366, "apr": 13.99, "minimum_payment": 120, "due_day": 12},
    ])

def debts_to_frame(debts: List[Debt]) -> pd.DataFrame:
    return pd.DataFrame(
        [{c: getattr(d, c) for c in DEBT_COLUMNS} for d in debts],
        columns=DEBT_COLUMNS,
    )

def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "debt"

def _num(value, default: float) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    return default if np.isnan(out) else out

def debts_from_frame(df: pd.DataFrame) -> List[Debt]:
    """Build Debt objects from an edited table; rows without a name are skipped."""
    debts: List[Debt] = []
    seen = set()
    for _, r in df.iterrows():
        raw_name = r.get("name", "")
        name = "" if pd.isna(raw_name) else str(raw_name).strip()
        if not name:
            continue

        raw_id = r.get("id")
        debt_id = str(raw_id) if raw_id is not None and not pd.isna(raw_id) and str(raw_id) else _slug(name)
        base, n = debt_id, 2
        while debt_id in seen:
            debt_id = f"{base}-{n}"
            n += 1
        seen.add(debt_id)

        balance = max(0.0, _num(r.get("balance"), 0.0))
        original = r.get("original_balance")
        category = r.get("category")
        debts.append(Debt(
            id=debt_id,
            name=name,
            balance=balance,
            apr=max(0.0, _num(r.get("apr"), 0.0)),
            minimum_payment=max(0.0, _num(r.get("minimum_payment"), 0.0)),
            due_day=clamp_due_day(_num(r.get("due_day"), 1)),
            category="other" if category is None or pd.isna(category) else str(category),
            original_balance=_num(original, balance) if original is not None else None,
        ))
    return debts

def frame_from_upload(file) -> pd.DataFrame:
    """Read a CSV (or Excel) debt list and normalise its columns."""
    try:
        df = pd.read_csv(file)
    except Exception:
        if hasattr(file, "seek"):
            file.seek(0)
        try:
            df = pd.read_excel(file)
        except Exception as e:
            raise UploadError(f"Upload failed: {e}") from e

    lower_cols = {str(c).strip().lower(): c for c in df.columns}
    missing = REQUIRED_UPLOAD_COLUMNS - set(lower_cols)
    if missing:
        raise UploadError(f"Missing required columns: {', '.join(sorted(missing))}")

    due_day = df[lower_cols["due_day"]] if "due_day" in lower_cols else pd.Series(1, index=df.index)
    category = df[lower_cols["category"]] if "category" in lower_cols else pd.Series("other", index=df.index)
    return pd.DataFrame({
        "name": df[lower_cols["name"]].astype(str),
        "category": category.fillna("other").astype(str),
        "balance": pd.to_numeric(df[lower_cols["balance"]], errors="coerce").fillna(0.0),
        "apr": pd.to_numeric(df[lower_cols["apr"]], errors="coerce").fillna(0.0),
        "minimum_payment": pd.to_numeric(df[lower_cols["minimum_payment"]], errors="coerce").fillna(0.0),
        "due_day": pd.to_numeric(due_day, errors="coerce").fillna(1).clip(1, 31).astype(int),
    })
