"""Report catalogs - which columns each export offers and how rows are built"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from lendbook.domain.exceptions import ValidationError
from lendbook.domain.models import DailyAmount
from lendbook.infrastructure.database.models import LoanCollection, Profit
from lendbook.infrastructure.reports.renderer import ReportColumn
from lendbook.utils.date_utils import utc_date_key

# Columns a loan export may include, in display order
LOAN_COLUMNS: Dict[str, ReportColumn] = {
    col.key: col
    for col in [
        ReportColumn("name", "Name", 22),
        ReportColumn("phone", "Phone", 14),
        ReportColumn("loan_amount", "Loan", 10),
        ReportColumn("given_amount", "Given", 10),
        ReportColumn("per_day_collection", "Per Day", 12),
        ReportColumn("days_for_loan", "Days", 10),
        ReportColumn("total_due_installments", "Due Inst.", 12),
        ReportColumn("total_paid_installments", "Paid Inst.", 12),
        ReportColumn("total_paid_loan", "Paid Loan", 12),
        ReportColumn("remaining_loan", "Remaining", 12),
        ReportColumn("aadhaar_number", "Aadhaar", 18),
        ReportColumn("pan_number", "PAN", 18),
        ReportColumn("referred_by", "Reference", 18),
        ReportColumn("status", "Status", 10),
        ReportColumn("loan_type", "Loan Type", 12),
        ReportColumn("manual_profit", "Manual Profit", 14),
    ]
}

DAILY_PROFIT_COLUMNS = [ReportColumn("date", "Date", 20), ReportColumn("amount", "Profit", 20)]
DAILY_EXPENSE_COLUMNS = [ReportColumn("date", "Date", 20), ReportColumn("amount", "Expense", 20)]
PROFIT_COLUMNS = [
    ReportColumn("date", "Date", 15),
    ReportColumn("title", "Title", 25),
    ReportColumn("amount", "Amount", 18),
    ReportColumn("description", "Description", 40),
]


def parse_csv(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma separated query parameter; None or "all" means no selection"""
    if value is None or value.strip() in ("", "all"):
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def select_loan_columns(fields: Optional[Sequence[str]]) -> List[ReportColumn]:
    """Requested loan columns in request order; unknown names are ignored"""
    if not fields:
        return list(LOAN_COLUMNS.values())
    columns = [LOAN_COLUMNS[f] for f in fields if f in LOAN_COLUMNS]
    if not columns:
        raise ValidationError(f"No known report fields in: {', '.join(fields)}")
    return columns


def loan_rows(loans: Sequence[LoanCollection]) -> List[Dict[str, Any]]:
    return [{key: getattr(loan, key) for key in LOAN_COLUMNS} for loan in loans]


def daily_rows(trend: Sequence[DailyAmount]) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """Rows for a per-day report plus its total row"""
    rows = [{"date": day.date, "amount": day.amount} for day in trend]
    return rows, {"date": "Total", "amount": sum(day.amount for day in trend)}


def profit_rows(profits: Sequence[Profit]) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    rows = [
        {
            "date": utc_date_key(p.date),
            "title": p.title,
            "amount": p.amount,
            "description": p.description,
        }
        for p in profits
    ]
    return rows, {"title": "Total", "amount": sum(float(p.amount or 0) for p in profits)}
