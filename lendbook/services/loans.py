"""Loan lifecycle service - origination, edits, collections and rollover"""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from lendbook.domain import ledger
from lendbook.domain.aggregates import loan_expense_trend, loan_profit_summary
from lendbook.domain.criteria import LoanCriteria, PageRequest, SortSpec
from lendbook.domain.exceptions import NotFoundError, ValidationError
from lendbook.domain.models import (
    AggregateSummary,
    DailyAmount,
    LoanDraft,
    LoanPatch,
    RolloverTerms,
    LOAN_TYPE_RENEW,
    STATUS_CLOSED,
)
from lendbook.domain.profit import draft_manual_profit
from lendbook.infrastructure.database.models import LoanCollection, Profit
from lendbook.infrastructure.database.repositories import LoanRepository, ProfitRepository
from lendbook.infrastructure.observability.logging import log_loan_event
from lendbook.infrastructure.observability.metrics import (
    loans_created_counter,
    profit_upserts_counter,
    record_installment,
)
from lendbook.services.unit_of_work import transaction


def upsert_manual_profit(
    profits: ProfitRepository,
    loan_id: uuid.UUID,
    name: Optional[str],
    phone: Optional[str],
    manual_profit: Optional[float],
    created_at: Optional[datetime] = None,
) -> Optional[Profit]:
    """
    Mirror a loan's manual profit into the profit ledger.

    No-op when the profit is unset or not positive. Otherwise the single entry
    linked to the loan is updated in place, or created when missing.
    """
    draft = draft_manual_profit(loan_id, name, phone, manual_profit, created_at)
    if draft is None:
        return None

    entry, created = profits.upsert_for_loan(draft)
    profit_upserts_counter.labels(action="created" if created else "updated").inc()
    return entry


class LoanService:
    """Orchestrates loan writes and the profit reconciliation that follows them"""

    def __init__(self, db: Session, request_id: Optional[str] = None):
        self.db = db
        self.loans = LoanRepository(db)
        self.profits = ProfitRepository(db)
        self.request_id = request_id

    def _reconcile(self, loan: LoanCollection, when: Optional[datetime]) -> None:
        upsert_manual_profit(
            self.profits,
            loan_id=loan.id,
            name=loan.name,
            phone=loan.phone,
            manual_profit=loan.manual_profit,
            created_at=when,
        )

    def _require(self, loan_id: uuid.UUID, for_update: bool = False) -> LoanCollection:
        loan = self.loans.get_for_update(loan_id) if for_update else self.loans.get_by_id(loan_id)
        if loan is None:
            raise NotFoundError("Loan not found")
        return loan

    def create_loan(self, draft: LoanDraft) -> LoanCollection:
        """
        Originate a loan.

        Running state starts empty: nothing paid, remaining = loan_amount unless
        given, due installments derived from the daily collection.
        """
        ledger.validate_draft(draft)
        manual_profit = ledger.normalize_manual_profit(draft.manual_profit)
        remaining = draft.remaining_loan if draft.remaining_loan is not None else draft.loan_amount

        with transaction(self.db, "create loan"):
            loan = LoanCollection(
                name=draft.name.strip(),
                phone=draft.phone.strip(),
                aadhaar_number=draft.aadhaar_number,
                pan_number=draft.pan_number,
                referred_by=draft.referred_by,
                loan_amount=draft.loan_amount,
                given_amount=draft.given_amount,
                per_day_collection=draft.per_day_collection,
                days_for_loan=draft.days_for_loan,
                total_paid_loan=0,
                remaining_loan=remaining,
                total_paid_installments=0,
                status=ledger.normalize_status(draft.status),
                loan_start_date=draft.loan_start_date,
                loan_end_date=draft.loan_end_date,
                loan_type=ledger.normalize_loan_type(draft.loan_type),
                manual_profit=manual_profit,
                cycle=1,
            )
            ledger.refresh_running_state(loan)
            self.loans.add(loan)

            if manual_profit and manual_profit > 0:
                self._reconcile(loan, loan.created_at)

        loans_created_counter.labels(loan_type=loan.loan_type).inc()
        log_loan_event("created", loan.id, self.request_id, loan_amount=loan.loan_amount, loan_type=loan.loan_type)
        return loan

    def update_loan(self, loan_id: uuid.UUID, patch: LoanPatch) -> LoanCollection:
        """Merge the provided fields onto the stored loan"""
        changes = patch.provided()
        if "loan_type" in changes:
            changes["loan_type"] = ledger.normalize_loan_type(changes["loan_type"])
        if "manual_profit" in changes:
            manual_profit = ledger.normalize_manual_profit(changes.pop("manual_profit"))
            if manual_profit is not None:
                changes["manual_profit"] = manual_profit
        if "status" in changes:
            changes["status"] = ledger.normalize_status(changes["status"])
        for key in ("name", "phone"):
            if key in changes:
                changes[key] = changes[key].strip()
                if not changes[key]:
                    raise ValidationError(f"{key} cannot be blank")
        for key in ("remaining_loan", "total_paid_loan"):
            if key in changes:
                ledger.require_finite(key, changes[key])
                if changes[key] < 0:
                    raise ValidationError(f"{key} cannot be negative")

        with transaction(self.db, "update loan"):
            loan = self._require(loan_id, for_update=True)
            for key, value in changes.items():
                setattr(loan, key, value)

            ledger.validate_terms(loan.loan_amount, loan.given_amount, loan.per_day_collection)
            ledger.refresh_running_state(loan)
            self.db.flush()

            if loan.manual_profit and loan.manual_profit > 0:
                self._reconcile(loan, loan.updated_at)

        log_loan_event("updated", loan.id, self.request_id, fields=sorted(changes))
        return loan

    def apply_installment(self, loan_id: uuid.UUID, amount: float) -> LoanCollection:
        """
        Record a payment against a loan.

        The loan row is locked for the duration of the read-modify-write so two
        concurrent payments cannot both start from the same balance.
        """
        with transaction(self.db, "apply installment"):
            loan = self._require(loan_id, for_update=True)
            try:
                entry = ledger.apply_installment(loan, amount)
            except ValidationError:
                record_installment(applied=False)
                raise
            self.loans.append_installment(loan, entry)
            self.db.flush()

        closed = loan.status == STATUS_CLOSED
        record_installment(applied=True, amount=amount, closed=closed)
        log_loan_event(
            "installment",
            loan.id,
            self.request_id,
            amount=amount,
            remaining_loan=loan.remaining_loan,
            closed=closed,
        )
        return loan

    def rollover_loan(self, terms: RolloverTerms) -> LoanCollection:
        """
        Start a new loan cycle on the customer's latest loan.

        Terms default to the previous cycle's, running state resets, and the
        installment history is carried over untouched.
        """
        phone = (terms.phone or "").strip()
        if not phone:
            raise ValidationError("Phone number is required")

        with transaction(self.db, "rollover loan"):
            loan = self.loans.latest_by_phone(phone)
            if loan is None:
                raise NotFoundError("No customer found with this phone number")

            loan_amount = terms.loan_amount if terms.loan_amount is not None else loan.loan_amount
            given_amount = terms.given_amount if terms.given_amount is not None else loan.given_amount
            per_day = terms.per_day_collection if terms.per_day_collection is not None else loan.per_day_collection
            ledger.validate_terms(loan_amount, given_amount, per_day)

            remaining = terms.remaining_loan if terms.remaining_loan is not None else loan_amount
            ledger.require_finite("remaining_loan", remaining)
            if remaining < 0:
                raise ValidationError("remaining_loan cannot be negative")

            loan.loan_amount = loan_amount
            loan.given_amount = given_amount
            loan.per_day_collection = per_day
            if terms.days_for_loan is not None:
                loan.days_for_loan = terms.days_for_loan
            loan.loan_start_date = terms.loan_start_date or date.today()
            loan.loan_end_date = terms.loan_end_date

            loan.remaining_loan = remaining
            loan.total_paid_loan = terms.total_paid_loan or 0
            loan.total_paid_installments = terms.total_paid_installments or 0
            loan.status = ledger.normalize_status(terms.status)
            loan.loan_type = ledger.normalize_loan_type(terms.loan_type or LOAN_TYPE_RENEW)
            loan.cycle = (loan.cycle or 1) + 1

            manual_profit = ledger.normalize_manual_profit(terms.manual_profit)
            if manual_profit is not None:
                loan.manual_profit = manual_profit

            ledger.refresh_running_state(loan)
            if terms.total_due_installments is not None and loan.status != STATUS_CLOSED:
                loan.total_due_installments = terms.total_due_installments
            self.db.flush()

            if loan.manual_profit and loan.manual_profit > 0:
                self._reconcile(loan, loan.updated_at)

        loans_created_counter.labels(loan_type=loan.loan_type).inc()
        log_loan_event(
            "rollover",
            loan.id,
            self.request_id,
            cycle=loan.cycle,
            loan_amount=loan.loan_amount,
            history_length=len(loan.installments),
        )
        return loan

    def delete_loan(self, loan_id: uuid.UUID) -> None:
        """Delete a loan, removing its linked profit entry first"""
        with transaction(self.db, "delete loan"):
            loan = self._require(loan_id, for_update=True)
            removed = self.profits.delete_by_loan_ref(loan.id)
            self.loans.delete(loan)

        log_loan_event("deleted", loan_id, self.request_id, profit_entries_removed=removed)

    def get_loan(self, loan_id: uuid.UUID) -> LoanCollection:
        with transaction(self.db, "get loan", commit=False):
            return self._require(loan_id)

    def get_loan_history(self, loan_id: uuid.UUID) -> Dict[str, Any]:
        """Borrower summary plus every recorded payment, oldest first"""
        with transaction(self.db, "get loan history", commit=False):
            loan = self._require(loan_id)
            history = [
                {
                    "date": inst.paid_at,
                    "amount_paid": inst.amount,
                    "remaining_after_installment": inst.remaining_after_installment,
                    "cycle": inst.cycle,
                }
                for inst in loan.installments
            ]
            return {
                "loan_id": loan.id,
                "name": loan.name,
                "phone": loan.phone,
                "total_loan": loan.loan_amount,
                "remaining_loan": loan.remaining_loan,
                "total_paid_loan": loan.total_paid_loan,
                "loan_start_date": loan.loan_start_date,
                "loan_end_date": loan.loan_end_date,
                "history": history,
            }

    def list_loans(
        self, criteria: LoanCriteria, sort: SortSpec, page: PageRequest
    ) -> Tuple[List[LoanCollection], int]:
        """One page of matching loans and the total number of matches"""
        with transaction(self.db, "list loans", commit=False):
            return self.loans.find(criteria, sort, page), self.loans.count(criteria)

    def loans_for_report(self, ids: Optional[Sequence[uuid.UUID]] = None) -> List[LoanCollection]:
        with transaction(self.db, "load loans", commit=False):
            return self.loans.all(ids)

    def profit_dashboard(self, now: Optional[datetime] = None) -> AggregateSummary:
        """Loan profit totals and daily trend over the current loan book"""
        with transaction(self.db, "profit dashboard", commit=False):
            return loan_profit_summary(self.loans.all(), now or datetime.now(timezone.utc))

    def daily_profit(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> List[DailyAmount]:
        with transaction(self.db, "daily profit", commit=False):
            loans = self.loans.created_between(date_from, date_to)
            return loan_profit_summary(loans, datetime.now(timezone.utc)).daily_trend

    def expense_dashboard(self) -> List[DailyAmount]:
        """Disbursed amounts per day of origination"""
        with transaction(self.db, "expense dashboard", commit=False):
            return loan_expense_trend(self.loans.all())
