"""Manual profit reconciliation - keeps a loan's declared profit mirrored in the profit ledger"""

from datetime import datetime, timezone
from typing import Any, Optional

from lendbook.domain.models import ProfitDraft


def first_present(*candidates: Any) -> Any:
    """Return the first candidate that is not None or blank"""
    for candidate in candidates:
        if candidate is None:
            continue
        if isinstance(candidate, str) and not candidate.strip():
            continue
        return candidate
    return None


def manual_profit_title(name: Optional[str], phone: Optional[str], loan_id: Any) -> str:
    """Title falls back name → phone → loan id"""
    return f"Manual Profit - {first_present(name, phone, loan_id)}"


def manual_profit_description(loan_id: Any, phone: Optional[str]) -> str:
    return f"Manual profit entered for loan {loan_id} ({first_present(phone, 'N/A')})"


def draft_manual_profit(
    loan_id: Any,
    name: Optional[str],
    phone: Optional[str],
    manual_profit: Optional[float],
    created_at: Optional[datetime] = None,
) -> Optional[ProfitDraft]:
    """
    Build the ledger entry that mirrors a loan's manual profit.

    Returns None when there is nothing to record (profit unset or not positive),
    in which case the ledger must be left alone.
    """
    if manual_profit is None:
        return None
    amount = float(manual_profit)
    if amount <= 0:
        return None

    return ProfitDraft(
        title=manual_profit_title(name, phone, loan_id),
        amount=amount,
        date=created_at or datetime.now(timezone.utc),
        description=manual_profit_description(loan_id, phone),
        loan_ref=loan_id,
    )
