"""Payoff simulator and supporting calculations."""

import logging
from datetime import date

import pytest

from payoff_lab.calculations import (
    calculate_debt_summary,
    calculate_payoff_date,
    compare_strategies,
    compare_what_if,
    format_compact_currency,
    format_currency,
    generate_amortization,
    generate_payoff_plan,
    round_money,
    sort_debts_by_strategy,
    split_payment,
)
from payoff_lab.config import MAX_PLAN_MONTHS
from payoff_lab.dates import add_months
from payoff_lab.models import Debt, OneTimeFunding, RecurringFunding, StrategySettings

START = date(2026, 1, 1)


def make_debt(debt_id, balance, apr, minimum, **kw):
    return Debt(id=debt_id, name=kw.pop("name", debt_id.upper()), balance=balance, apr=apr,
                minimum_payment=minimum, **kw)


def settings(amount, strategy="avalanche", fundings=None):
    return StrategySettings(
        strategy=strategy,
        recurring_funding=RecurringFunding(amount=amount),
        one_time_fundings=fundings or [],
    )


def payment_for(month, debt_id):
    return next(p for p in month.payments if p.debt_id == debt_id)


class TestSingleDebt:

    def test_first_month_split(self):
        """1200 at 12% with 100/month: 12.00 interest, 88.00 principal."""
        plan = generate_payoff_plan([make_debt("a", 1200, 12, 100)], settings(100), START)
        first = plan.monthly_breakdown[0].payments[0]
        assert first.interest == 12.00
        assert first.principal == 88.00
        assert first.remaining_balance == 1112.00
        assert first.amount == 100.00
        assert plan.monthly_breakdown[0].month == "2026-01"

    def test_full_schedule_worked_by_hand(self):
        """1200 at 12% with 100/month runs 13 months for 84.78 of interest."""
        plan = generate_payoff_plan([make_debt("a", 1200, 12, 100)], settings(100), START)
        assert plan.months == 13
        assert plan.debt_free_date == date(2027, 1, 1)

        fourth = plan.monthly_breakdown[3].payments[0]
        assert (fourth.interest, fourth.principal, fourth.remaining_balance) == (9.33, 90.67, 842.68)
        assert plan.monthly_breakdown[11].payments[0].remaining_balance == 83.94

        last = plan.monthly_breakdown[-1].payments[0]
        assert (last.amount, last.principal, last.interest) == (84.78, 83.94, 0.84)
        assert last.remaining_balance == 0.0
        assert plan.total_interest == 84.78
        assert plan.total_payments == 1284.78

    def test_matches_standalone_amortization(self):
        debt = make_debt("a", 5000, 18, 150)
        plan = generate_payoff_plan([debt], settings(200), START)
        estimate = calculate_payoff_date(debt, 200, START)
        rows = generate_amortization(debt, 200, START)

        assert plan.months == estimate.months == len(rows)
        assert plan.debt_free_date == add_months(START, estimate.months - 1)
        assert plan.total_interest == pytest.approx(estimate.total_interest, abs=0.01)
        for month, row in zip(plan.monthly_breakdown, rows):
            p = month.payments[0]
            assert (p.principal, p.interest, p.remaining_balance) == (row.principal, row.interest, row.balance)

    def test_last_payment_is_capped_at_payoff(self):
        plan = generate_payoff_plan([make_debt("a", 150, 0, 100)], settings(100), START)
        assert [m.payments[0].amount for m in plan.monthly_breakdown] == [100.0, 50.0]
        assert plan.total_payments == 150.0

    def test_zero_balance_debt_is_paid_off_in_first_month(self):
        plan = generate_payoff_plan([make_debt("a", 0, 10, 25)], settings(25), START)
        assert plan.months == 1
        assert plan.total_payments == 0.0
        assert plan.steps[0].milestones_in_step[0].debt_id == "a"


class TestPlanShape:

    def test_empty_debts_give_zero_plan(self):
        plan = generate_payoff_plan([], settings(500), START)
        assert plan.debt_free_date == START
        assert plan.total_payments == 0
        assert plan.total_interest == 0
        assert plan.steps == []
        assert plan.monthly_breakdown == []

    def test_idempotent_and_inputs_untouched(self):
        debts = [make_debt("a", 3000, 19.99, 90), make_debt("b", 800, 7, 40)]
        s = settings(400, fundings=[OneTimeFunding(id="bonus", name="Bonus", amount=1000, date=date(2026, 3, 1))])
        first = generate_payoff_plan(debts, s, START)
        second = generate_payoff_plan(debts, s, START)
        assert first == second
        assert [d.balance for d in debts] == [3000, 800]

    def test_paid_off_debts_leave_the_breakdown(self):
        debts = [make_debt("a", 300, 0, 100), make_debt("b", 2000, 5, 100)]
        plan = generate_payoff_plan(debts, settings(200), START)
        ids_per_month = [{p.debt_id for p in m.payments} for m in plan.monthly_breakdown]
        payoff = next(i for i, ids in enumerate(ids_per_month) if ids == {"b"})
        assert all(ids == {"a", "b"} for ids in ids_per_month[:payoff])
        assert all(ids == {"b"} for ids in ids_per_month[payoff:])

    def test_milestone_records_original_balance_and_no_interest(self):
        debt = make_debt("a", 1000, 10, 500, original_balance=2500)
        plan = generate_payoff_plan([debt], settings(500), START)
        milestone = plan.steps[-1].milestones_in_step[0]
        assert milestone.total_paid == 2500
        assert milestone.interest_paid == 0
        assert milestone.payoff_date == plan.debt_free_date

    def test_steps_roll_priority_after_payoff(self):
        debts = [make_debt("a", 500, 20, 25), make_debt("b", 2000, 10, 50)]
        plan = generate_payoff_plan(debts, settings(125), START)
        assert [s.debt_receiving_extra for s in plan.steps] == ["a", "b"]
        assert plan.steps[0].debts_paying_minimum == ["b"]
        assert plan.steps[1].debts_paying_minimum == []
        assert plan.steps[0].completion_date == plan.steps[0].milestones_in_step[0].payoff_date
        assert plan.steps[1].completion_date == plan.debt_free_date

    def test_month_totals_sum_rounded_rows(self):
        debts = [make_debt("a", 1234.56, 17.5, 45), make_debt("b", 987.65, 22.9, 35)]
        plan = generate_payoff_plan(debts, settings(150), START)
        month = plan.monthly_breakdown[0]
        assert month.total_payment == round_money(sum(p.amount for p in month.payments))
        assert month.total_interest == round_money(sum(p.interest for p in month.payments))


class TestStrategies:

    def test_avalanche_vs_snowball_first_recipient(self):
        debts = [make_debt("a", 3000, 20, 60), make_debt("b", 1000, 10, 30)]

        avalanche = generate_payoff_plan(debts, settings(190, "avalanche"), START).monthly_breakdown[0]
        assert payment_for(avalanche, "a").amount == 160
        assert payment_for(avalanche, "a").type == "extra"
        assert payment_for(avalanche, "b").amount == 30

        snowball = generate_payoff_plan(debts, settings(190, "snowball"), START).monthly_breakdown[0]
        assert payment_for(snowball, "b").amount == 130
        assert payment_for(snowball, "b").type == "extra"
        assert payment_for(snowball, "a").amount == 60

    def test_avalanche_extra_stays_on_highest_apr_until_paid(self):
        """Funding = minimums + 50: the 50 goes to the APR-20 debt, then shifts."""
        debts = [make_debt("a", 500, 20, 25), make_debt("b", 2000, 10, 50)]
        plan = generate_payoff_plan(debts, settings(125), START)

        a_done = False
        for month in plan.monthly_breakdown:
            ids = {p.debt_id for p in month.payments}
            b = payment_for(month, "b")
            if "a" in ids:
                a = payment_for(month, "a")
                if a.remaining_balance > 0:
                    assert a.amount == 75
                assert b.amount == 50
                assert b.type == "minimum"
            else:
                a_done = True
                if b.remaining_balance > 0:
                    assert b.amount == 125
                assert b.type == "extra"
        assert a_done

    def test_priority_is_fixed_up_front(self):
        """Snowball order comes from starting balances and is never re-sorted."""
        debts = [make_debt("a", 1000, 0, 10), make_debt("b", 1100, 0, 300)]
        plan = generate_payoff_plan(debts, settings(410, "snowball"), START)
        # by month 2 "b" has the lower balance, but "a" keeps the extra
        for month in plan.monthly_breakdown:
            if len(month.payments) == 2:
                assert payment_for(month, "a").type == "extra"

    def test_ties_keep_input_order(self):
        x = make_debt("x", 1000, 15, 50)
        y = make_debt("y", 1000, 15, 50)
        assert [d.id for d in sort_debts_by_strategy([x, y], "avalanche")] == ["x", "y"]
        assert [d.id for d in sort_debts_by_strategy([y, x], "avalanche")] == ["y", "x"]
        assert [d.id for d in sort_debts_by_strategy([y, x], "snowball")] == ["y", "x"]

        plan = generate_payoff_plan([y, x], settings(200), START)
        assert plan.steps[0].debt_receiving_extra == "y"

    def test_unknown_strategy_raises(self):
        with pytest.raises(ValueError):
            sort_debts_by_strategy([make_debt("a", 100, 1, 10)], "tsunami")

    def test_funding_equal_to_minimums_gives_no_extra_while_all_active(self):
        x = make_debt("x", 1000, 10, 100)
        y = make_debt("y", 3000, 15, 60)
        plan = generate_payoff_plan([x, y], settings(160), START)

        first_payoff = plan.steps[0].milestones_in_step[0]
        assert first_payoff.debt_id == "x"
        assert first_payoff.payoff_date == add_months(START, calculate_payoff_date(x, 100).months - 1)
        for month in plan.monthly_breakdown:
            if len(month.payments) == 2 and payment_for(month, "x").remaining_balance > 0:
                assert payment_for(month, "x").amount == 100
                assert payment_for(month, "y").amount == 60

    def test_funding_equal_to_minimums_matches_slowest_standalone(self):
        twins = [make_debt("a", 2400, 9, 110), make_debt("b", 2400, 9, 110)]
        plan = generate_payoff_plan(twins, settings(220), START)
        standalone = calculate_payoff_date(twins[0], 110, START)
        assert plan.debt_free_date == add_months(START, standalone.months - 1)


class TestFundingEdges:

    def test_one_time_funding_applied_once_in_its_month(self):
        lump = OneTimeFunding(id="tax", name="Tax refund", amount=500, date=date(2026, 2, 15))
        plan = generate_payoff_plan([make_debt("a", 1200, 0, 100)], settings(100, fundings=[lump]), START)
        amounts = [m.payments[0].amount for m in plan.monthly_breakdown]
        assert amounts[:3] == [100, 600, 100]
        assert plan.months == 7
        assert plan.debt_free_date == date(2026, 7, 1)

    def test_underfunded_plan_runs_to_cap_with_warning(self, caplog):
        debt = make_debt("a", 10000, 24, 100)
        with caplog.at_level(logging.WARNING, logger="payoff_lab.calculations"):
            plan = generate_payoff_plan([debt], settings(50), START)

        assert "less than total minimum payments" in caplog.text
        assert plan.months == MAX_PLAN_MONTHS
        assert plan.debt_free_date == add_months(START, MAX_PLAN_MONTHS - 1)
        assert len(plan.steps) == 1
        assert plan.steps[0].milestones_in_step == []
        assert plan.monthly_breakdown[-1].payments[0].remaining_balance == 10000


class TestHelpers:

    def test_round_money_rounds_half_up(self):
        assert round_money(0.125) == 0.13
        assert round_money(2.5) == 2.5
        assert round_money(1.004) == 1.0

    def test_split_payment(self):
        principal, interest = split_payment(1200, 12, 100)
        assert interest == pytest.approx(12.0)
        assert principal == pytest.approx(88.0)
        principal, interest = split_payment(1200, 12, 5)
        assert (principal, interest) == (0.0, 5)

    def test_debt_summary(self):
        debts = [
            make_debt("a", 500, 20, 25, original_balance=1000, credit_limit=2000, category="credit_card"),
            make_debt("b", 1500, 5, 100, original_balance=1500, category="auto_loan"),
        ]
        summary = calculate_debt_summary(debts)
        assert summary.total_balance == 2000
        assert summary.total_minimum_payments == 125
        assert summary.credit_utilization == pytest.approx(25.0)
        assert summary.debts_by_category == {"credit_card": 500, "auto_loan": 1500}
        assert summary.principal_paid == 500
        assert summary.percent_paid == pytest.approx(20.0)

    def test_what_if_extra_saves_time_and_interest(self):
        debts = [make_debt("a", 6000, 21, 150), make_debt("b", 2500, 8, 60)]
        cmp = compare_what_if(debts, settings(300), 200, START)
        assert cmp.what_if.months < cmp.baseline.months
        assert cmp.months_saved == cmp.baseline.months - cmp.what_if.months
        assert cmp.interest_saved > 0

    def test_avalanche_never_costs_more_interest(self):
        debts = [make_debt("a", 5000, 24, 100), make_debt("b", 1000, 6, 50)]
        plans = compare_strategies(debts, settings(250), START)
        assert set(plans) == {"avalanche", "snowball"}
        assert plans["avalanche"].total_interest < plans["snowball"].total_interest

    def test_currency_formatting(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(-3) == "-$3.00"
        assert format_compact_currency(1_234_567) == "$1.2M"
        assert format_compact_currency(150_000) == "$150K"
        assert format_compact_currency(12_345.6) == "$12,346"
        assert format_compact_currency(999.99) == "$999.99"
