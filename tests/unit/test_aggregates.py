"""Unit tests for dashboard aggregates"""

from datetime import datetime, timezone
from types import SimpleNamespace
from lendbook.domain.aggregates import (
    daily_totals,
    loan_expense_trend,
    loan_profit,
    loan_profit_summary,
    profit_ledger_summary,
)
from lendbook.utils.date_utils import previous_month


def loan(created_at, loan_amount=10000, given_amount=9000, manual_profit=None):
    return SimpleNamespace(
        created_at=created_at,
        loan_amount=loan_amount,
        given_amount=given_amount,
        manual_profit=manual_profit,
    )


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def test_loan_profit_is_auto_without_manual_override():
    assert loan_profit(loan(NOW)) == 1000


def test_manual_profit_replaces_auto_profit():
    """A loan with a manual profit is counted once, at the manual amount"""
    assert loan_profit(loan(NOW, manual_profit=2500)) == 2500
    assert loan_profit(loan(NOW, manual_profit=0)) == 1000


def test_daily_totals_bucket_by_utc_day():
    loans = [
        loan(datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)),
        loan(datetime(2026, 3, 1, 1, 0)),  # naive timestamps are UTC
        loan(datetime(2026, 3, 2, 0, 15, tzinfo=timezone.utc), loan_amount=5000, given_amount=4500),
    ]
    trend = daily_totals(loans, loan_profit, lambda l: l.created_at)

    assert [(d.date, d.amount) for d in trend] == [("2026-03-01", 2000), ("2026-03-02", 500)]


def test_profit_summary_last_month_window():
    loans = [
        loan(datetime(2026, 2, 3, tzinfo=timezone.utc)),
        loan(datetime(2026, 2, 28, 23, 59, tzinfo=timezone.utc), manual_profit=300),
        loan(datetime(2026, 3, 1, tzinfo=timezone.utc)),
        loan(datetime(2025, 2, 10, tzinfo=timezone.utc)),
    ]
    summary = loan_profit_summary(loans, NOW)

    assert summary.total_amount == 3300
    assert summary.last_month_amount == 1300
    assert summary.count == 4
    assert summary.daily_trend[0].date == "2025-02-10"


def test_previous_month_wraps_year():
    assert previous_month(datetime(2026, 1, 10).date()) == (2025, 12)
    assert previous_month(datetime(2026, 7, 10).date()) == (2026, 6)


def test_expense_trend_sums_given_amounts():
    loans = [loan(NOW, given_amount=9000), loan(NOW, given_amount=4500)]
    assert [(d.date, d.amount) for d in loan_expense_trend(loans)] == [("2026-03-15", 13500)]


def test_profit_ledger_summary_uses_entry_date():
    profits = [
        SimpleNamespace(amount=2000, date=datetime(2026, 2, 20, tzinfo=timezone.utc), created_at=NOW),
        SimpleNamespace(amount=500, date=datetime(2026, 3, 2, tzinfo=timezone.utc), created_at=NOW),
    ]
    summary = profit_ledger_summary(profits, NOW)

    assert summary.total_amount == 2500
    assert summary.last_month_amount == 2000
    assert [d.date for d in summary.daily_trend] == ["2026-02-20", "2026-03-02"]
