"""Installment ledger rules - balance arithmetic and field normalisation"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from lendbook.domain.exceptions import ValidationError
from lendbook.domain.models import (
    InstallmentEntry,
    LoanDraft,
    RawProfit,
    LOAN_STATUSES,
    LOAN_TYPE_NEW,
    LOAN_TYPE_RENEW,
    STATUS_CLOSED,
    STATUS_OPEN,
)

REQUIRED_LOAN_FIELDS = ("name", "phone", "loan_amount", "given_amount", "per_day_collection")


def normalize_loan_type(value: Optional[str]) -> str:
    """Only an exact, case-insensitive "renew" counts as a renewal"""
    if value is not None and str(value).strip().lower() == LOAN_TYPE_RENEW:
        return LOAN_TYPE_RENEW
    return LOAN_TYPE_NEW


def normalize_manual_profit(value: RawProfit) -> Optional[float]:
    """
    Coerce a client-supplied manual profit.

    Empty string and None mean "not set". Anything else must be numeric.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None
    try:
        amount = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"manual_profit must be a number, got {value!r}") from e
    require_finite("manual_profit", amount)
    return amount


def require_finite(name: str, value: float) -> None:
    """Reject NaN and infinities"""
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number")


def normalize_status(value: Optional[str]) -> str:
    if value is None or value == "":
        return STATUS_OPEN
    for status in LOAN_STATUSES:
        if str(value).strip().lower() == status.lower():
            return status
    raise ValidationError(f"status must be one of {', '.join(LOAN_STATUSES)}")


def validate_draft(draft: LoanDraft) -> None:
    """Reject a new loan that lacks borrower or commercial fields"""
    missing = []
    for name in REQUIRED_LOAN_FIELDS:
        value = getattr(draft, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    validate_terms(draft.loan_amount, draft.given_amount, draft.per_day_collection)
    if draft.remaining_loan is not None:
        require_finite("remaining_loan", draft.remaining_loan)
        if draft.remaining_loan < 0:
            raise ValidationError("remaining_loan cannot be negative")


def validate_terms(loan_amount: float, given_amount: float, per_day_collection: float) -> None:
    require_finite("loan_amount", loan_amount)
    require_finite("given_amount", given_amount)
    require_finite("per_day_collection", per_day_collection)
    if loan_amount < 0:
        raise ValidationError("loan_amount cannot be negative")
    if given_amount < 0:
        raise ValidationError("given_amount cannot be negative")
    if per_day_collection <= 0:
        raise ValidationError("per_day_collection must be greater than zero")


def due_installments(remaining_loan: float, per_day_collection: float) -> int:
    """Daily payments still needed to clear the balance"""
    if remaining_loan <= 0 or not per_day_collection or per_day_collection <= 0:
        return 0
    return max(math.ceil(remaining_loan / per_day_collection), 0)


def refresh_running_state(loan: Any) -> None:
    """
    Re-derive due installments and closure from the current balance fields.

    A closed loan carries no balance; a zero balance closes the loan.
    """
    if loan.status == STATUS_CLOSED or loan.remaining_loan <= 0:
        loan.remaining_loan = 0
        loan.total_due_installments = 0
        loan.status = STATUS_CLOSED
    else:
        loan.total_due_installments = due_installments(loan.remaining_loan, loan.per_day_collection)


def apply_installment(loan: Any, amount: float, paid_at: Optional[datetime] = None) -> InstallmentEntry:
    """
    Apply one payment to a loan's running state.

    Requirements:
    - amount must be positive and no larger than the remaining balance
    - remaining balance is recomputed from loan_amount - total_paid_loan, floored at 0
    - due installments = ceil(remaining / per_day_collection); 0 and Closed once cleared

    Mutates the loan's scalar fields and returns the history entry to append.
    The caller persists both. On rejection the loan is left untouched.

    Example:
        loan_amount 10000, per_day 500, pay 600
        → remaining 9400, paid installments 1, due ceil(9400/500) = 19
    """
    if amount is None:
        raise ValidationError("Installment amount is required")
    require_finite("Installment amount", amount)
    if amount <= 0:
        raise ValidationError("Installment amount must be greater than zero")
    if amount > loan.remaining_loan:
        raise ValidationError(
            f"The installment amount {amount:g} exceeds the remaining loan balance of "
            f"{loan.remaining_loan:g}. Enter an amount up to {loan.remaining_loan:g}."
        )

    loan.total_paid_loan = (loan.total_paid_loan or 0) + amount
    loan.remaining_loan = max(loan.loan_amount - loan.total_paid_loan, 0)
    loan.total_paid_installments = (loan.total_paid_installments or 0) + 1

    if loan.remaining_loan <= 0:
        loan.total_due_installments = 0
        loan.status = STATUS_CLOSED
    else:
        loan.total_due_installments = due_installments(loan.remaining_loan, loan.per_day_collection)

    return InstallmentEntry(
        amount=amount,
        paid_at=paid_at or datetime.now(timezone.utc),
        remaining_after_installment=loan.remaining_loan,
    )
