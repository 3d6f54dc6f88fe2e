"""Typed query criteria, independent of any store's query language"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from lendbook.domain.exceptions import ValidationError
from lendbook.domain.ledger import normalize_status

# Fields a loan listing may be ordered by
LOAN_SORT_FIELDS = (
    "created_at",
    "updated_at",
    "name",
    "phone",
    "loan_amount",
    "given_amount",
    "remaining_loan",
    "total_paid_loan",
    "loan_start_date",
    "loan_end_date",
    "status",
)


@dataclass
class LoanCriteria:
    """
    Filters for listing loans.

    The date window is strict: a loan matches only when it starts on or after
    date_from and ends on or before date_to. Loans straddling a bound are
    excluded rather than clipped.
    """

    search: Optional[str] = None
    status: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def __post_init__(self):
        if self.search is not None:
            self.search = self.search.strip() or None
        if self.status is not None:
            self.status = normalize_status(self.status) if self.status.strip() else None
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValidationError("date_from must not be after date_to")


@dataclass
class ProfitCriteria:
    """Filters for listing profit entries (inclusive window on the entry date)"""

    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def __post_init__(self):
        if self.search is not None:
            self.search = self.search.strip() or None
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValidationError("date_from must not be after date_to")


@dataclass
class SortSpec:
    field: str = "created_at"
    descending: bool = True

    @classmethod
    def parse(cls, field: Optional[str], order: Optional[str], allowed=LOAN_SORT_FIELDS) -> "SortSpec":
        field = field or "created_at"
        if field not in allowed:
            raise ValidationError(f"Cannot sort by {field!r}")
        order = (order or "desc").lower()
        if order not in ("asc", "desc"):
            raise ValidationError("sort_order must be 'asc' or 'desc'")
        return cls(field=field, descending=order == "desc")


@dataclass
class PageRequest:
    page: int = 1
    page_size: int = 10

    def __post_init__(self):
        if self.page < 1:
            raise ValidationError("page must be 1 or greater")
        if self.page_size < 1:
            raise ValidationError("page_size must be 1 or greater")

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size
