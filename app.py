# app.py — Payoff Lab dashboard: plan, track payments, celebrate milestones, budget
# Run:
#   pip install -e .
#   streamlit run app.py
#
# Features:
# - Debts via editable table or CSV/Excel upload
# - Strategies: Avalanche, Snowball
# - Recurring monthly funding plus one-time lump sums
# - Month-by-month plan, payoff steps, charts, CSV/JSON export
# - What-if extra payment and strategy comparison
# - Payment log with streaks and milestone celebrations
# - Budget: income, subscriptions, net worth, bill distribution
# - Backup export/import

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, replace
from datetime import date, datetime
from typing import List

import matplotlib.pyplot as plt
import pandas as pd
import streamlit as st

from payoff_lab import budget, storage
from payoff_lab.calculations import (
    compare_strategies,
    compare_what_if,
    format_currency,
    format_percent,
    generate_payoff_plan,
    split_payment,
)
from payoff_lab.config import APP_ICON, APP_NAME, DATA_FILE
from payoff_lab.dates import format_ordinal, format_time_until, next_due_date
from payoff_lab.detection import MilestoneDetector
from payoff_lab.frames import (
    UploadError,
    debts_from_frame,
    debts_to_frame,
    example_frame,
    frame_from_upload,
    monthly_totals,
    plan_to_frame,
    totals_by_debt,
)
from payoff_lab.milestones import (
    celebration_progress,
    compute_debt_payoff_timeline,
    compute_overall_milestones,
    compute_payment_streak,
)
from payoff_lab.models import (
    ASSET_TYPES,
    DEBT_CATEGORIES,
    PAYMENT_TYPES,
    PAY_FREQUENCIES,
    AppData,
    Asset,
    BalanceEntry,
    BudgetSettings,
    Debt,
    IncomeSource,
    OneTimeFunding,
    Payment,
    RecurringFunding,
    Subscription,
    SubscriptionFrequency,
)

st.set_page_config(page_title=APP_NAME, page_icon=APP_ICON, layout="wide")


# ---------- Session state ----------

def _on_celebrate(event, stats):
    st.session_state.celebration = (event, stats)

if "data" not in st.session_state:
    st.session_state.data = storage.load_data(DATA_FILE)
    st.session_state.celebration = None
    st.session_state.detector = MilestoneDetector(
        storage.JsonCelebratedStore(),
        _on_celebrate,
        user_name=st.session_state.data.settings.user_name,
    )

data: AppData = st.session_state.data

def persist():
    try:
        storage.save_data(st.session_state.data, DATA_FILE)
    except storage.StorageError as e:
        st.error(str(e))


def _text(v) -> str:
    return "" if v is None or pd.isna(v) else str(v).strip()

def _opt_float(v):
    return None if v is None or pd.isna(v) else float(v)

def _opt_date(v):
    return None if v is None or pd.isna(v) else pd.Timestamp(v).date()


st.title(f"{APP_ICON} {APP_NAME} — Debt Payoff Tracker")
st.caption("Enter debts, pick a strategy and funding, log payments, and watch the plan shrink.")


# ---------- Sidebar: strategy & data ----------

with st.sidebar:
    st.subheader("Strategy")
    strategy_name = st.selectbox(
        "Payoff strategy", ["avalanche", "snowball"],
        index=0 if data.strategy.strategy == "avalanche" else 1,
        format_func=lambda s: "Avalanche (highest APR first)" if s == "avalanche" else "Snowball (lowest balance first)",
    )
    funding = st.number_input(
        "Total monthly funding (includes minimums)",
        min_value=0.0, value=float(data.strategy.recurring_funding.amount), step=50.0,
        help="Anything above the current minimums goes to the priority debt.",
    )
    start_dt = st.date_input("Plan start date", value=date.today())

    st.divider()
    st.subheader("One-time fundings")
    otf_df = pd.DataFrame(
        [{"name": f.name, "amount": f.amount, "date": f.date} for f in data.strategy.one_time_fundings],
        columns=["name", "amount", "date"],
    )
    otf_ed = st.data_editor(
        otf_df, num_rows="dynamic", hide_index=True, key="otf_editor",
        column_config={
            "name": st.column_config.TextColumn("Name"),
            "amount": st.column_config.NumberColumn("Amount", format="%.2f"),
            "date": st.column_config.DateColumn("Month"),
        },
    )

    st.divider()
    st.subheader("Settings")
    user_name = st.text_input("Your name", value=data.settings.user_name)

    st.divider()
    st.subheader("Backup")
    st.download_button(
        "Export backup JSON", data=storage.export_data(data),
        file_name=storage.export_filename(), mime="application/json", use_container_width=True,
    )
    backup = st.file_uploader("Import backup", type=["json"])
    if backup is not None and st.button("Replace data with backup", use_container_width=True):
        try:
            st.session_state.data = storage.import_data(backup.getvalue())
            persist()
            st.success("Backup imported.")
            st.rerun()
        except storage.ImportDataError as e:
            st.error(str(e))


# ---------- Debts ----------

st.subheader("Debts")
upload = st.file_uploader("Upload CSV/Excel (name, balance, apr, minimum_payment[, due_day, category])",
                          type=["csv", "xlsx", "xls"])
if upload is not None:
    try:
        base_df = frame_from_upload(upload)
    except UploadError as e:
        st.error(str(e))
        base_df = debts_to_frame(data.debts)
elif data.debts:
    base_df = debts_to_frame(data.debts)
else:
    st.info("No debts saved yet — starting from an example table.")
    base_df = example_frame()

ed = st.data_editor(
    base_df,
    use_container_width=True,
    num_rows="dynamic",
    hide_index=True,
    column_config={
        "id": st.column_config.TextColumn("ID", disabled=True),
        "name": st.column_config.TextColumn("Name"),
        "category": st.column_config.SelectboxColumn("Category", options=list(DEBT_CATEGORIES)),
        "balance": st.column_config.NumberColumn("Balance", format="%.2f"),
        "original_balance": st.column_config.NumberColumn("Original", format="%.2f"),
        "apr": st.column_config.NumberColumn("APR %", format="%.2f"),
        "minimum_payment": st.column_config.NumberColumn("Min Payment", format="%.2f"),
        "due_day": st.column_config.NumberColumn("Due Day", min_value=1, max_value=31),
    },
    key="debts_editor",
)

debts: List[Debt] = debts_from_frame(ed)

fundings = [
    OneTimeFunding(id=f"otf-{i}", name=_text(r["name"]) or "Lump sum",
                   amount=float(r["amount"]),
                   date=pd.Timestamp(r["date"]).date())
    for i, r in otf_ed.iterrows()
    if pd.notna(r.get("date")) and pd.notna(r.get("amount"))
]
minimums = sum(d.minimum_payment for d in debts)
data.debts = debts
data.strategy = replace(
    data.strategy,
    strategy=strategy_name,
    recurring_funding=RecurringFunding(amount=funding, extra_amount=max(0.0, funding - minimums)),
    one_time_fundings=fundings,
)
data.settings.user_name = user_name
st.session_state.detector.user_name = user_name

if st.button("Save", type="primary"):
    persist()
    st.success(f"Saved to {DATA_FILE}")

if not debts:
    st.info("Add at least one debt to build a plan.")
    st.stop()

if funding < minimums:
    st.warning(
        f"Monthly funding ({format_currency(funding)}) is below your total minimums "
        f"({format_currency(minimums)}). The plan will make slow or no progress."
    )


# ---------- Milestone detection ----------

st.session_state.detector.update(
    data.debts, data.payments, data.strategy,
    is_celebrating=st.session_state.celebration is not None,
)
if st.session_state.celebration is not None:
    event, stats = st.session_state.celebration
    if event.is_full_herd:
        st.balloons()
    st.success(f"**{event.headline}**  \n{event.subtext}")
    st.caption(
        f"{format_percent(stats.percent_paid)} paid · {format_currency(stats.interest_saved)} interest covered · "
        f"debt-free {stats.debt_free_date}"
    )
    if st.button("Dismiss celebration"):
        st.session_state.celebration = None
        st.rerun()


# ---------- Plan ----------

plan = generate_payoff_plan(debts, data.strategy, start_dt)
schedule = plan_to_frame(plan)

colA, colB, colC, colD = st.columns(4)
colA.metric("Debt-free date", plan.debt_free_date.strftime("%b %Y"))
colB.metric("Time to go", format_time_until(plan.debt_free_date, start_dt))
colC.metric("Total payments", format_currency(plan.total_payments))
colD.metric("Total interest", format_currency(plan.total_interest))

tab_plan, tab_charts, tab_whatif, tab_track, tab_budget = st.tabs(
    ["Plan", "Charts", "What If", "Track", "Budget"]
)

names = {d.id: d.name for d in debts}

with tab_plan:
    st.subheader("Payoff Steps")
    for step in plan.steps:
        focus = names.get(step.debt_receiving_extra, "—")
        done = ", ".join(m.debt_name for m in step.milestones_in_step) or "nothing yet"
        st.markdown(
            f"**Step {step.step_number}** — extra to **{focus}** until "
            f"{step.completion_date:%b %Y} · paid off: {done}"
        )

    st.subheader("Debt Timeline")
    timeline = compute_debt_payoff_timeline(debts, plan)
    st.dataframe(pd.DataFrame([asdict(t) for t in timeline]), use_container_width=True, hide_index=True)

    st.subheader("Totals by Account")
    st.dataframe(totals_by_debt(schedule), use_container_width=True, hide_index=True)

    st.subheader("Amortization Schedule")
    st.dataframe(schedule, use_container_width=True, height=380, hide_index=True)

    st.download_button("Download Schedule CSV", data=schedule.to_csv(index=False).encode("utf-8"),
                       file_name="debt_schedule.csv", mime="text/csv")

    scenario = {
        "debts": [asdict(d) for d in debts],
        "strategy": asdict(data.strategy),
        "plan": asdict(plan),
    }
    json_bytes = json.dumps(scenario, indent=2, default=str).encode("utf-8")
    st.download_button("Download Scenario JSON", data=json_bytes, file_name="debt_scenario.json",
                       mime="application/json")

with tab_charts:
    totals = monthly_totals(schedule)

    fig = plt.figure()
    plt.plot(totals["period_index"], totals["end_balance"])
    plt.title("Total Balance Over Time")
    plt.xlabel("Month")
    plt.ylabel("Total End Balance")
    st.pyplot(fig)

    fig2 = plt.figure()
    plt.plot(totals["period_index"], totals["interest"], label="Interest")
    plt.plot(totals["period_index"], totals["principal"], label="Principal")
    plt.title("Interest vs. Principal")
    plt.xlabel("Month")
    plt.ylabel("Amount")
    plt.legend()
    st.pyplot(fig2)

    fig3 = plt.figure()
    for dname, sd in schedule.groupby("debt", sort=False):
        plt.plot(sd["period_index"], sd["end_balance"], label=dname)
    plt.title("Per-Account Paydown")
    plt.xlabel("Month")
    plt.ylabel("End Balance")
    plt.legend()
    st.pyplot(fig3)

with tab_whatif:
    extra = st.select_slider("Extra monthly payment", options=[0, 50, 100, 200, 300, 500], value=100)
    cmp = compare_what_if(debts, data.strategy, float(extra), start_dt)
    c1, c2, c3 = st.columns(3)
    c1.metric("New debt-free date", cmp.what_if.debt_free_date.strftime("%b %Y"))
    c2.metric("Time saved", f"{cmp.months_saved} months")
    c3.metric("Interest saved", format_currency(cmp.interest_saved))

    st.subheader("Avalanche vs. Snowball")
    plans = compare_strategies(debts, data.strategy, start_dt)
    st.dataframe(pd.DataFrame([
        {"strategy": name, "debt_free": p.debt_free_date, "months": p.months,
         "total_interest": p.total_interest, "total_payments": p.total_payments}
        for name, p in plans.items()
    ]), use_container_width=True, hide_index=True)

with tab_track:
    st.subheader("Log a payment")
    with st.form("payment_form", clear_on_submit=True):
        debt_id = st.selectbox("Debt", [d.id for d in debts], format_func=lambda i: names[i])
        amount = st.number_input("Amount", min_value=0.0, step=10.0)
        payment_type = st.selectbox("Type", PAYMENT_TYPES, format_func=lambda t: t.replace("_", " ").title())
        submitted = st.form_submit_button("Mark as paid")
    if submitted and amount > 0:
        target = next(d for d in data.debts if d.id == debt_id)
        principal, interest = split_payment(target.balance, target.apr, amount)
        now = datetime.now()
        data.payments.append(Payment(
            id=str(uuid.uuid4()), debt_id=debt_id, amount=amount, principal=principal,
            interest=interest, date=now.date(), type=payment_type, is_completed=True, completed_at=now,
        ))
        target.balance = max(0.0, target.balance - principal)
        persist()
        st.rerun()

    streak = compute_payment_streak(data.payments, debts)
    s1, s2, s3, s4 = st.columns(4)
    s1.metric("Current streak", f"{streak.consecutive_months} months")
    s2.metric("Longest streak", f"{streak.longest_streak} months")
    s3.metric("Payments logged", streak.total_completed_payments)
    s4.metric("This month", "On track" if streak.current_month_on_track else "Not yet")

    progress = celebration_progress(debts, data.payments)
    st.progress(min(1.0, max(0.0, progress.percent_paid / 100)))
    for m in compute_overall_milestones(progress.percent_paid, progress.total_original, plan.monthly_breakdown):
        when = f" · est. {m.estimated_date:%b %Y}" if m.estimated_date else ""
        st.write(f"{m.emoji} {m.label} ({m.percent}%) — {'reached' if m.is_reached else 'ahead'}{when}")

    st.subheader("Upcoming bills")
    st.dataframe(pd.DataFrame([
        {"debt": d.name, "due": format_ordinal(d.due_day), "next_due": next_due_date(d.due_day),
         "minimum": d.minimum_payment}
        for d in sorted(debts, key=lambda d: next_due_date(d.due_day))
    ]), use_container_width=True, hide_index=True)

    if data.payments:
        st.subheader("Payment history")
        st.dataframe(pd.DataFrame([asdict(p) for p in data.payments]), use_container_width=True, hide_index=True)

with tab_budget:
    st.subheader("Income")
    prev_sources = {s.id: s for s in data.budget.income_sources}
    income_ed = st.data_editor(
        pd.DataFrame(
            [{"id": s.id, "name": s.name, "type": s.type, "pay_frequency": s.pay_frequency,
              "amount": s.amount, "hourly_rate": s.hourly_rate, "hours_per_week": s.hours_per_week,
              "next_pay_date": s.next_pay_date} for s in data.budget.income_sources],
            columns=["id", "name", "type", "pay_frequency", "amount", "hourly_rate", "hours_per_week",
                     "next_pay_date"],
        ),
        num_rows="dynamic", hide_index=True, use_container_width=True, key="income_editor",
        column_config={
            "id": st.column_config.TextColumn("ID", disabled=True),
            "name": st.column_config.TextColumn("Name"),
            "type": st.column_config.SelectboxColumn("Type", options=["salary", "hourly"]),
            "pay_frequency": st.column_config.SelectboxColumn("Frequency", options=list(PAY_FREQUENCIES)),
            "amount": st.column_config.NumberColumn("Per paycheck", format="%.2f"),
            "hourly_rate": st.column_config.NumberColumn("Hourly rate", format="%.2f"),
            "hours_per_week": st.column_config.NumberColumn("Hours / week"),
            "next_pay_date": st.column_config.DateColumn("Next payday"),
        },
    )
    expenses = st.number_input("Monthly expenses (excluding debt)", min_value=0.0,
                               value=float(data.budget.monthly_expenses), step=50.0)

    sources = []
    for _, r in income_ed.iterrows():
        if not _text(r["name"]):
            continue
        sid = _text(r["id"]) or str(uuid.uuid4())
        prev = prev_sources.get(sid)
        sources.append(IncomeSource(
            id=sid, name=_text(r["name"]),
            type=_text(r["type"]) or "salary",
            pay_frequency=_text(r["pay_frequency"]) or "monthly",
            amount=_opt_float(r["amount"]),
            hourly_rate=_opt_float(r["hourly_rate"]),
            hours_per_week=_opt_float(r["hours_per_week"]),
            deductions=prev.deductions if prev else None,
            next_pay_date=_opt_date(r["next_pay_date"]),
        ))
    data.budget = BudgetSettings(income_sources=sources, monthly_expenses=expenses)

    st.subheader("Subscriptions")
    subs_ed = st.data_editor(
        pd.DataFrame(
            [{"id": s.id, "name": s.name, "amount": s.amount, "every": s.frequency.value,
              "unit": s.frequency.unit, "next_billing_date": s.next_billing_date, "active": s.is_active}
             for s in data.subscriptions],
            columns=["id", "name", "amount", "every", "unit", "next_billing_date", "active"],
        ),
        num_rows="dynamic", hide_index=True, use_container_width=True, key="subs_editor",
        column_config={
            "id": st.column_config.TextColumn("ID", disabled=True),
            "amount": st.column_config.NumberColumn("Amount", format="%.2f"),
            "every": st.column_config.NumberColumn("Every", min_value=1, step=1),
            "unit": st.column_config.SelectboxColumn("Unit", options=["days", "weeks", "months", "years"]),
            "next_billing_date": st.column_config.DateColumn("Next bill"),
            "active": st.column_config.CheckboxColumn("Active"),
        },
    )
    data.subscriptions = [
        Subscription(
            id=_text(r["id"]) or str(uuid.uuid4()), name=_text(r["name"]),
            amount=_opt_float(r["amount"]) or 0.0,
            frequency=SubscriptionFrequency(max(1, int(_opt_float(r["every"]) or 1)), _text(r["unit"]) or "months"),
            next_billing_date=_opt_date(r["next_billing_date"]),
            is_active=bool(r["active"]) if pd.notna(r["active"]) else True,
        )
        for _, r in subs_ed.iterrows() if _text(r["name"])
    ]

    st.subheader("Assets")
    prev_assets = {a.id: a for a in data.assets}
    assets_ed = st.data_editor(
        pd.DataFrame(
            [{"id": a.id, "name": a.name, "type": a.type, "balance": a.balance, "institution": a.institution}
             for a in data.assets],
            columns=["id", "name", "type", "balance", "institution"],
        ),
        num_rows="dynamic", hide_index=True, use_container_width=True, key="assets_editor",
        column_config={
            "id": st.column_config.TextColumn("ID", disabled=True),
            "type": st.column_config.SelectboxColumn("Type", options=list(ASSET_TYPES)),
            "balance": st.column_config.NumberColumn("Balance", format="%.2f"),
        },
    )
    assets = []
    for _, r in assets_ed.iterrows():
        if not _text(r["name"]):
            continue
        aid = _text(r["id"]) or str(uuid.uuid4())
        balance = _opt_float(r["balance"]) or 0.0
        history = list(prev_assets[aid].balance_history) if aid in prev_assets else []
        if not history or history[-1].balance != balance:
            history.append(BalanceEntry(date=date.today(), balance=balance))
        assets.append(Asset(id=aid, name=_text(r["name"]), type=_text(r["type"]) or "other",
                            balance=balance, institution=_text(r["institution"]), balance_history=history))
    data.assets = assets

    income = budget.total_monthly_income(data.budget.income_sources)
    subs = budget.total_subscriptions_monthly(data.subscriptions)
    gross = budget.total_gross_monthly_income(data.budget.income_sources)
    b1, b2, b3, b4 = st.columns(4)
    b1.metric("Take-home / month", format_currency(income),
              delta=f"{format_currency(gross)} gross", delta_color="off")
    b2.metric("Available for debt", format_currency(budget.available_for_debt(data.budget)))
    b3.metric("Subscriptions / month", format_currency(subs))
    b4.metric("Net worth", format_currency(budget.net_worth(data.assets, debts)))

    upcoming = sorted(
        ((s, budget.next_billing_date(s)) for s in data.subscriptions if s.is_active),
        key=lambda t: t[1] or date.max,
    )
    if upcoming:
        st.dataframe(pd.DataFrame([
            {"subscription": s.name, "next_bill": nxt,
             "monthly": budget.subscription_monthly_amount(s.amount, s.frequency)}
            for s, nxt in upcoming
        ]), use_container_width=True, hide_index=True)

    if data.assets:
        st.subheader("Assets by type")
        st.bar_chart(pd.Series(budget.assets_by_type(data.assets)))

        history = pd.DataFrame(budget.asset_balance_history(data.assets))
        fig4 = plt.figure()
        plt.plot(history["date"], history["total_balance"])
        plt.title("Total Assets Over Time")
        plt.xlabel("Date")
        plt.ylabel("Total Balance")
        st.pyplot(fig4)

    st.subheader("Bill distribution")
    analysis = budget.analyze_bill_distribution(debts, data.budget.income_sources)
    st.write(analysis.message)
    if analysis.pay_periods:
        st.metric("Balance score", analysis.balance_score)
        st.dataframe(pd.DataFrame([
            {"pay_date": p.pay_date, "days": f"{p.start_day}–{p.end_day}",
             "bills": ", ".join(b.name for b in p.bills), "total": p.total_amount}
            for p in analysis.pay_periods
        ]), use_container_width=True, hide_index=True)
    for s in analysis.suggestions:
        st.info(f"Move **{s.debt_name}** from the {format_ordinal(s.current_due_day)} "
                f"to the {format_ordinal(s.suggested_due_day)} ({s.reason.lower()}).")
