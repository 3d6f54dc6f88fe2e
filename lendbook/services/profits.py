"""Profit ledger service - user entries, listing, summary and reset"""

import logging
import uuid
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from lendbook.domain.aggregates import profit_ledger_summary
from lendbook.domain.criteria import PageRequest, ProfitCriteria
from lendbook.domain.ledger import require_finite
from lendbook.domain.exceptions import NotFoundError, ValidationError
from lendbook.domain.models import AggregateSummary, ProfitDraft
from lendbook.infrastructure.database.models import Profit
from lendbook.infrastructure.database.repositories import LoanRepository, ProfitRepository
from lendbook.services.unit_of_work import transaction

logger = logging.getLogger(__name__)


class ProfitService:
    """Profit ledger operations shared by the dashboard and the loan book"""

    def __init__(self, db: Session, request_id: Optional[str] = None):
        self.db = db
        self.profits = ProfitRepository(db)
        self.loans = LoanRepository(db)
        self.request_id = request_id

    def create_profit(self, title: str, amount: float, when: date, description: str = "") -> Profit:
        """Record a profit entered directly by a user (not linked to a loan)"""
        if not title or not title.strip():
            raise ValidationError("title is required")
        require_finite("amount", amount)
        if isinstance(when, datetime):
            entry_date = when
        else:
            entry_date = datetime.combine(when, time.min, tzinfo=timezone.utc)

        with transaction(self.db, "create profit"):
            profit = self.profits.create(
                ProfitDraft(
                    title=title.strip(),
                    amount=float(amount),
                    date=entry_date,
                    description=(description or "").strip(),
                )
            )

        logger.info("Profit created", extra={"request_id": self.request_id, "profit_id": str(profit.id)})
        return profit

    def list_profits(self, criteria: ProfitCriteria, page: PageRequest) -> Dict[str, Any]:
        """
        One page of entries, newest first.

        total_count and total_amount cover every match, not just the page.
        """
        with transaction(self.db, "list profits", commit=False):
            matches = self.profits.find(criteria, descending=True)
            return {
                "profits": matches[page.skip : page.skip + page.page_size],
                "total_count": len(matches),
                "total_amount": sum(float(p.amount or 0) for p in matches),
                "page": page.page,
                "page_size": page.page_size,
            }

    def profits_for_report(self, criteria: ProfitCriteria) -> List[Profit]:
        with transaction(self.db, "load profits", commit=False):
            return self.profits.find(criteria, descending=False)

    def summary(self, now: Optional[datetime] = None) -> AggregateSummary:
        with transaction(self.db, "profit summary", commit=False):
            return profit_ledger_summary(self.profits.find(ProfitCriteria()), now or datetime.now(timezone.utc))

    def delete_profit(self, profit_id: uuid.UUID) -> None:
        with transaction(self.db, "delete profit"):
            profit = self.profits.get_by_id(profit_id)
            if profit is None:
                raise NotFoundError("Profit not found")
            self.profits.delete(profit)

        logger.info("Profit deleted", extra={"request_id": self.request_id, "profit_id": str(profit_id)})

    def reset_all(self) -> Dict[str, int]:
        """Delete every profit entry and clear every loan's manual profit"""
        with transaction(self.db, "reset profits"):
            deleted = self.profits.delete_all()
            cleared = self.loans.clear_manual_profits()

        logger.info(
            "All profits reset",
            extra={"request_id": self.request_id, "profits_deleted": deleted, "loans_cleared": cleared},
        )
        return {"profits_deleted": deleted, "loans_cleared": cleared}
