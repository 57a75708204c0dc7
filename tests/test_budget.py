from datetime import date

import pytest

from payoff_lab.budget import (
    analyze_bill_distribution,
    asset_balance_history,
    assets_by_type,
    available_for_debt,
    balance_score,
    gross_monthly_income,
    net_monthly_income,
    net_worth,
    next_billing_date,
    paydays_in_month,
    subscription_monthly_amount,
    total_gross_monthly_income,
    total_monthly_income,
    total_subscriptions_monthly,
)
from payoff_lab.models import (
    Asset,
    BalanceEntry,
    BudgetSettings,
    Debt,
    Deductions,
    IncomeSource,
    Subscription,
    SubscriptionFrequency,
)


def bill(debt_id, due_day, minimum):
    return Debt(id=debt_id, name=debt_id.title(), balance=1000, apr=10,
                minimum_payment=minimum, due_day=due_day)


class TestIncome:

    @pytest.mark.parametrize("frequency,expected", [
        ("weekly", 1000 * 52 / 12),
        ("bi-weekly", 1000 * 26 / 12),
        ("semi-monthly", 2000),
        ("monthly", 1000),
    ])
    def test_salary_frequencies(self, frequency, expected):
        source = IncomeSource(id="job", name="Job", pay_frequency=frequency, amount=1000)
        assert gross_monthly_income(source) == pytest.approx(expected)

    def test_hourly(self):
        source = IncomeSource(id="gig", name="Gig", type="hourly", hourly_rate=20, hours_per_week=40)
        assert gross_monthly_income(source) == pytest.approx(3466.67, abs=0.01)

    def test_unknown_frequency_raises(self):
        with pytest.raises(ValueError):
            gross_monthly_income(IncomeSource(id="x", name="X", pay_frequency="daily", amount=100))

    def test_gross_total_ignores_deductions(self):
        sources = [
            IncomeSource(id="job", name="Job", amount=1000, deductions=Deductions(federal_tax=20)),
            IncomeSource(id="gig", name="Gig", type="hourly", hourly_rate=20, hours_per_week=40),
        ]
        assert total_gross_monthly_income(sources) == pytest.approx(4466.67, abs=0.01)
        assert total_monthly_income(sources) == pytest.approx(4266.67, abs=0.01)
        assert total_gross_monthly_income([]) == 0

    def test_deductions_and_available_for_debt(self):
        source = IncomeSource(id="job", name="Job", amount=5000,
                              deductions=Deductions(federal_tax=15, state_tax=5))
        assert net_monthly_income(source) == pytest.approx(4000)
        assert available_for_debt(BudgetSettings([source], monthly_expenses=1000)) == pytest.approx(3000)
        assert available_for_debt(BudgetSettings([source], monthly_expenses=4500)) == 0


class TestSubscriptions:

    def test_monthly_equivalents(self):
        assert subscription_monthly_amount(120, SubscriptionFrequency(1, "years")) == pytest.approx(10)
        assert subscription_monthly_amount(10, SubscriptionFrequency(1, "weeks")) == pytest.approx(43.3)
        assert subscription_monthly_amount(30, SubscriptionFrequency(30, "days")) == pytest.approx(30)
        assert subscription_monthly_amount(30, SubscriptionFrequency(3, "months")) == pytest.approx(10)
        with pytest.raises(ValueError):
            subscription_monthly_amount(30, SubscriptionFrequency(1, "fortnights"))

    def test_zero_interval_is_rejected(self):
        with pytest.raises(ValueError, match="at least 1"):
            subscription_monthly_amount(30, SubscriptionFrequency(0, "months"))
        sub = Subscription(id="s1", name="Music", amount=11, next_billing_date=date(2026, 1, 15),
                           frequency=SubscriptionFrequency(0, "days"))
        with pytest.raises(ValueError, match="at least 1"):
            next_billing_date(sub, today=date(2026, 3, 20))

    def test_only_active_subscriptions_count(self):
        subs = [
            Subscription(id="s1", name="Music", amount=11),
            Subscription(id="s2", name="Gym", amount=40, is_active=False),
        ]
        assert total_subscriptions_monthly(subs) == pytest.approx(11)

    def test_next_billing_date_rolls_forward(self):
        sub = Subscription(id="s1", name="Music", amount=11, next_billing_date=date(2026, 1, 15))
        assert next_billing_date(sub, today=date(2026, 3, 20)) == date(2026, 4, 15)
        assert next_billing_date(sub, today=date(2026, 1, 15)) == date(2026, 1, 15)
        assert next_billing_date(Subscription(id="s2", name="X", amount=1)) is None


class TestNetWorth:

    def test_totals_and_history(self):
        assets = [
            Asset(id="a", name="Checking", type="checking", balance=150,
                  balance_history=[BalanceEntry(date(2026, 1, 1), 100), BalanceEntry(date(2026, 3, 1), 150)]),
            Asset(id="b", name="Brokerage", type="investment", balance=50,
                  balance_history=[BalanceEntry(date(2026, 2, 1), 50)]),
        ]
        debts = [bill("card", 5, 25)]
        assert net_worth(assets, debts) == -800
        assert assets_by_type(assets) == {"checking": 150, "investment": 50}
        assert asset_balance_history(assets) == [
            {"date": date(2026, 1, 1), "total_balance": 100},
            {"date": date(2026, 2, 1), "total_balance": 150},
            {"date": date(2026, 3, 1), "total_balance": 200},
        ]


class TestPaydays:

    def test_semi_monthly(self):
        source = IncomeSource(id="j", name="J", pay_frequency="semi-monthly", amount=1,
                              next_pay_date=date(2026, 1, 1))
        assert paydays_in_month(source, date(2026, 2, 10)) == [date(2026, 2, 1), date(2026, 2, 15)]

    def test_bi_weekly_walks_back_then_forward(self):
        source = IncomeSource(id="j", name="J", pay_frequency="bi-weekly", amount=1,
                              next_pay_date=date(2026, 1, 2))
        assert paydays_in_month(source, date(2026, 1, 20)) == [
            date(2026, 1, 2), date(2026, 1, 16), date(2026, 1, 30),
        ]

    def test_monthly_clamps_to_month_end(self):
        source = IncomeSource(id="j", name="J", amount=1, next_pay_date=date(2026, 1, 31))
        assert paydays_in_month(source, date(2026, 2, 1)) == [date(2026, 2, 28)]

    def test_no_pay_date(self):
        assert paydays_in_month(IncomeSource(id="j", name="J", amount=1), date(2026, 2, 1)) == []


class TestBillDistribution:

    SEMI_MONTHLY = [IncomeSource(id="j", name="J", pay_frequency="semi-monthly", amount=2000,
                                 next_pay_date=date(2026, 3, 1))]

    def test_uneven_bills_get_a_suggestion(self):
        debts = [bill("rent", 5, 500), bill("car", 10, 400), bill("card", 20, 100)]
        analysis = analyze_bill_distribution(debts, self.SEMI_MONTHLY, date(2026, 3, 1))

        assert [(p.start_day, p.end_day) for p in analysis.pay_periods] == [(1, 14), (15, 31)]
        assert [p.total_amount for p in analysis.pay_periods] == [900, 100]
        assert analysis.balance_score == 20
        assert not analysis.is_balanced
        assert len(analysis.suggestions) == 1
        suggestion = analysis.suggestions[0]
        assert (suggestion.debt_id, suggestion.current_due_day, suggestion.suggested_due_day) == ("car", 10, 18)
        assert analysis.message == "Bills are uneven. 1 suggestion to balance."
        assert analysis.total_bill_amount == 1000

    def test_even_bills_are_balanced(self):
        debts = [bill("rent", 5, 300), bill("card", 20, 300)]
        analysis = analyze_bill_distribution(debts, self.SEMI_MONTHLY, date(2026, 3, 1))
        assert analysis.balance_score == 100
        assert analysis.is_balanced
        assert analysis.suggestions == []
        assert analysis.message == "Your bills are well distributed!"

    def test_without_income(self):
        analysis = analyze_bill_distribution([bill("rent", 5, 300)], [], date(2026, 3, 1))
        assert analysis.pay_periods == []
        assert analysis.balance_score == 0
        assert analysis.message == "Add your income sources to analyze bill distribution."

    def test_single_period_scores_full(self):
        monthly = [IncomeSource(id="j", name="J", amount=2000, next_pay_date=date(2026, 3, 1))]
        analysis = analyze_bill_distribution([bill("rent", 5, 300)], monthly, date(2026, 3, 1))
        assert analysis.balance_score == 100
        assert analysis.message == "You have one pay period per month."
        assert balance_score([]) == 100
