"""Dashboard aggregates computed on the fly over a snapshot of records"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List

from lendbook.domain.models import AggregateSummary, DailyAmount
from lendbook.utils.date_utils import as_utc, previous_month, utc_date_key


def loan_profit(loan: Any) -> float:
    """
    Profit attributed to one loan.

    A positive manual profit overrides the automatic loan_amount - given_amount
    figure, so a loan is never counted twice.
    """
    if loan.manual_profit is not None and loan.manual_profit > 0:
        return float(loan.manual_profit)
    return float((loan.loan_amount or 0) - (loan.given_amount or 0))


def loan_expense(loan: Any) -> float:
    return float(loan.given_amount or 0)


def daily_totals(
    records: Iterable[Any],
    amount_of: Callable[[Any], float],
    date_of: Callable[[Any], datetime],
) -> List[DailyAmount]:
    """Sum amounts per UTC calendar day, oldest day first"""
    buckets: Dict[str, float] = defaultdict(float)
    for record in records:
        buckets[utc_date_key(date_of(record))] += amount_of(record)
    return [DailyAmount(date=day, amount=amount) for day, amount in sorted(buckets.items())]


def summarize(
    records: Iterable[Any],
    amount_of: Callable[[Any], float],
    date_of: Callable[[Any], datetime],
    now: datetime,
) -> AggregateSummary:
    """Total, last-calendar-month total, count and daily trend"""
    records = list(records)
    year, month = previous_month(as_utc(now).date())

    total = 0.0
    last_month = 0.0
    for record in records:
        amount = amount_of(record)
        total += amount
        when = as_utc(date_of(record))
        if when.year == year and when.month == month:
            last_month += amount

    return AggregateSummary(
        total_amount=total,
        last_month_amount=last_month,
        count=len(records),
        daily_trend=daily_totals(records, amount_of, date_of),
    )


def loan_profit_summary(loans: Iterable[Any], now: datetime) -> AggregateSummary:
    return summarize(loans, loan_profit, lambda loan: loan.created_at, now)


def loan_expense_trend(loans: Iterable[Any]) -> List[DailyAmount]:
    return daily_totals(loans, loan_expense, lambda loan: loan.created_at)


def profit_ledger_summary(profits: Iterable[Any], now: datetime) -> AggregateSummary:
    return summarize(profits, lambda p: float(p.amount or 0), lambda p: p.date or p.created_at, now)
