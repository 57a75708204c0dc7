from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Tuple, Union

DateLike = Union[date, datetime]


# ---------- Month arithmetic ----------

def _last_day_of_month(y: int, m: int) -> int:
    if m == 12:
        return 31
    return (date(y, m + 1, 1) - timedelta(days=1)).day

def add_months(d: date, n: int) -> date:
    ym = (d.year * 12 + (d.month - 1)) + n
    y = ym // 12
    m = ym % 12 + 1
    day = min(d.day, _last_day_of_month(y, m))
    return date(y, m, day)

def month_key(d: DateLike) -> str:
    """'YYYY-MM' key used to match one-time fundings and label breakdown rows."""
    return f"{d.year:04d}-{d.month:02d}"

def same_month(a: DateLike, b: DateLike) -> bool:
    return a.year == b.year and a.month == b.month

def month_bounds(d: DateLike) -> Tuple[date, date]:
    return date(d.year, d.month, 1), date(d.year, d.month, _last_day_of_month(d.year, d.month))

def months_between(later: date, earlier: date) -> int:
    """Whole calendar months from `earlier` to `later` (negative if later < earlier)."""
    months = (later.year - earlier.year) * 12 + (later.month - earlier.month)
    if months > 0 and later.day < earlier.day:
        months -= 1
    elif months < 0 and later.day > earlier.day:
        months += 1
    return months

def as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


# ---------- Due dates ----------

def clamp_due_day(day) -> int:
    return min(31, max(1, int(day)))

def next_due_date(due_day: int, from_date: DateLike | None = None) -> date:
    today = as_date(from_date or date.today())
    due_day = clamp_due_day(due_day)
    this_month_day = min(due_day, _last_day_of_month(today.year, today.month))
    due = date(today.year, today.month, this_month_day)
    if due >= today:
        return due
    nxt = add_months(date(today.year, today.month, 1), 1)
    return date(nxt.year, nxt.month, min(due_day, _last_day_of_month(nxt.year, nxt.month)))


# ---------- Formatting ----------

def _plural(n: int, word: str) -> str:
    return f"{n} {word}" + ("" if n == 1 else "s")

def format_time_until(target: date, from_date: date | None = None) -> str:
    """Format the time until debt-free as "X years Y months"."""
    start = from_date or date.today()
    total_months = months_between(target, start)

    if total_months < 0:
        return "Already debt-free!"
    if total_months == 0:
        return f"{(target - start).days} days"

    years, months = divmod(total_months, 12)
    if years == 0:
        return _plural(months, "month")
    if months == 0:
        return _plural(years, "year")
    return f"{_plural(years, 'year')} {_plural(months, 'month')}"

def format_days_until(target: date, from_date: date | None = None) -> str:
    days = (target - (from_date or date.today())).days
    if days < 0:
        return "Past"
    if days == 0:
        return "Today"
    if days == 1:
        return "1 day"
    return f"{days} days"

def format_ordinal(day: int) -> str:
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"
