"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

# Loan status values
STATUS_OPEN = "Open"
STATUS_CLOSED = "Closed"
LOAN_STATUSES = (STATUS_OPEN, STATUS_CLOSED)

# Loan type values
LOAN_TYPE_NEW = "new"
LOAN_TYPE_RENEW = "renew"

# Raw manual profit as received from a client: number, numeric string, "" or None
RawProfit = Union[float, int, str, None]


@dataclass
class InstallmentEntry:
    """Single payment event appended to a loan's history"""

    amount: float
    paid_at: datetime
    remaining_after_installment: float


@dataclass
class LoanDraft:
    """Fields accepted when a loan is originated"""

    name: Optional[str] = None
    phone: Optional[str] = None
    loan_amount: Optional[float] = None
    given_amount: Optional[float] = None
    per_day_collection: Optional[float] = None
    days_for_loan: Optional[int] = None
    remaining_loan: Optional[float] = None
    aadhaar_number: Optional[str] = None
    pan_number: Optional[str] = None
    referred_by: Optional[str] = None
    status: Optional[str] = None
    loan_start_date: Optional[date] = None
    loan_end_date: Optional[date] = None
    loan_type: Optional[str] = None
    manual_profit: RawProfit = None


@dataclass
class LoanPatch:
    """Partial update of a loan. A field left as None is not touched."""

    name: Optional[str] = None
    phone: Optional[str] = None
    loan_amount: Optional[float] = None
    given_amount: Optional[float] = None
    per_day_collection: Optional[float] = None
    days_for_loan: Optional[int] = None
    remaining_loan: Optional[float] = None
    total_paid_loan: Optional[float] = None
    aadhaar_number: Optional[str] = None
    pan_number: Optional[str] = None
    referred_by: Optional[str] = None
    status: Optional[str] = None
    loan_start_date: Optional[date] = None
    loan_end_date: Optional[date] = None
    loan_type: Optional[str] = None
    manual_profit: RawProfit = None

    def provided(self) -> Dict[str, Any]:
        """Fields that carry a value, in declaration order"""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class RolloverTerms:
    """New loan cycle for an existing customer, looked up by phone"""

    phone: Optional[str] = None
    loan_amount: Optional[float] = None
    given_amount: Optional[float] = None
    per_day_collection: Optional[float] = None
    days_for_loan: Optional[int] = None
    loan_start_date: Optional[date] = None
    loan_end_date: Optional[date] = None
    remaining_loan: Optional[float] = None
    total_paid_loan: Optional[float] = None
    total_paid_installments: Optional[int] = None
    total_due_installments: Optional[int] = None
    status: Optional[str] = None
    loan_type: Optional[str] = None
    manual_profit: RawProfit = None


@dataclass
class ProfitDraft:
    """Profit ledger entry ready to be written"""

    title: str
    amount: float
    date: datetime
    description: str = ""
    loan_ref: Optional[Any] = None


@dataclass
class DailyAmount:
    """Amount summed for one UTC calendar day"""

    date: str  # YYYY-MM-DD
    amount: float


@dataclass
class AggregateSummary:
    """Totals over a snapshot of records"""

    total_amount: float
    last_month_amount: float
    count: int
    daily_trend: List[DailyAmount] = field(default_factory=list)
