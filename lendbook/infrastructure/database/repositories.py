"""Data access layer for loans and the profit ledger"""

import uuid
from typing import List, Optional, Sequence, Tuple
from sqlalchemy import or_, update
from sqlalchemy.orm import Session
from lendbook.infrastructure.database.models import LoanCollection, LoanInstallment, Profit
from lendbook.domain.criteria import LoanCriteria, PageRequest, ProfitCriteria, SortSpec
from lendbook.domain.models import InstallmentEntry, ProfitDraft
from lendbook.utils.date_utils import end_of_day, start_of_day


def _contains(column, text: str):
    """Case-insensitive substring match"""
    return column.ilike(f"%{text}%")


class LoanRepository:
    """Repository for loans and their installment history"""

    def __init__(self, db: Session):
        self.db = db

    def _filters(self, criteria: LoanCriteria) -> list:
        clauses = []
        if criteria.status:
            clauses.append(LoanCollection.status == criteria.status)
        if criteria.search:
            clauses.append(
                or_(
                    _contains(LoanCollection.name, criteria.search),
                    _contains(LoanCollection.phone, criteria.search),
                    _contains(LoanCollection.referred_by, criteria.search),
                )
            )
        # Strict window: the whole loan period must sit inside [date_from, date_to]
        if criteria.date_from:
            clauses.append(LoanCollection.loan_start_date >= criteria.date_from)
        if criteria.date_to:
            clauses.append(LoanCollection.loan_end_date <= criteria.date_to)
        return clauses

    def find(self, criteria: LoanCriteria, sort: SortSpec, page: PageRequest) -> List[LoanCollection]:
        """Fetch one page of loans matching the criteria"""
        column = getattr(LoanCollection, sort.field)
        order = column.desc() if sort.descending else column.asc()
        return (
            self.db.query(LoanCollection)
            .filter(*self._filters(criteria))
            .order_by(order, LoanCollection.id)
            .offset(page.skip)
            .limit(page.page_size)
            .all()
        )

    def count(self, criteria: LoanCriteria) -> int:
        return self.db.query(LoanCollection).filter(*self._filters(criteria)).count()

    def get_by_id(self, loan_id: uuid.UUID) -> Optional[LoanCollection]:
        return self.db.get(LoanCollection, loan_id)

    def get_for_update(self, loan_id: uuid.UUID) -> Optional[LoanCollection]:
        """Load a loan and lock its row until the transaction ends"""
        return (
            self.db.query(LoanCollection)
            .filter(LoanCollection.id == loan_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def latest_by_phone(self, phone: str) -> Optional[LoanCollection]:
        """Most recently created loan for a phone number, locked for update"""
        return (
            self.db.query(LoanCollection)
            .filter(LoanCollection.phone == phone)
            .order_by(LoanCollection.created_at.desc())
            .with_for_update()
            .populate_existing()
            .first()
        )

    def all(self, ids: Optional[Sequence[uuid.UUID]] = None) -> List[LoanCollection]:
        """Snapshot of every loan (or the given ids), oldest first"""
        query = self.db.query(LoanCollection)
        if ids is not None:
            query = query.filter(LoanCollection.id.in_(list(ids)))
        return query.order_by(LoanCollection.created_at.asc()).all()

    def created_between(self, date_from=None, date_to=None) -> List[LoanCollection]:
        query = self.db.query(LoanCollection)
        if date_from:
            query = query.filter(LoanCollection.created_at >= start_of_day(date_from))
        if date_to:
            query = query.filter(LoanCollection.created_at <= end_of_day(date_to))
        return query.order_by(LoanCollection.created_at.asc()).all()

    def add(self, loan: LoanCollection) -> LoanCollection:
        """Persist a new loan"""
        self.db.add(loan)
        self.db.flush()  # Get ID without committing
        return loan

    def append_installment(self, loan: LoanCollection, entry: InstallmentEntry) -> LoanInstallment:
        """Add a payment to the end of a loan's history"""
        sequence = len(loan.installments) + 1
        db_installment = LoanInstallment(
            sequence=sequence,
            cycle=loan.cycle,
            amount=entry.amount,
            paid_at=entry.paid_at,
            remaining_after_installment=entry.remaining_after_installment,
        )
        loan.installments.append(db_installment)
        return db_installment

    def delete(self, loan: LoanCollection) -> None:
        self.db.delete(loan)
        self.db.flush()

    def clear_manual_profits(self) -> int:
        """Null every loan's manual profit; returns the number of loans touched"""
        result = self.db.execute(
            update(LoanCollection)
            .where(LoanCollection.manual_profit.is_not(None))
            .values(manual_profit=None, version=LoanCollection.version + 1)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount


class ProfitRepository:
    """Repository for profit ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def _filters(self, criteria: ProfitCriteria) -> list:
        clauses = []
        if criteria.search:
            clauses.append(
                or_(
                    _contains(Profit.title, criteria.search),
                    _contains(Profit.description, criteria.search),
                )
            )
        if criteria.date_from:
            clauses.append(Profit.date >= start_of_day(criteria.date_from))
        if criteria.date_to:
            clauses.append(Profit.date <= end_of_day(criteria.date_to))
        return clauses

    def find(self, criteria: ProfitCriteria, descending: bool = True) -> List[Profit]:
        """All entries matching the criteria, ordered by entry date"""
        order = Profit.date.desc() if descending else Profit.date.asc()
        return self.db.query(Profit).filter(*self._filters(criteria)).order_by(order, Profit.id).all()

    def get_by_id(self, profit_id: uuid.UUID) -> Optional[Profit]:
        return self.db.get(Profit, profit_id)

    def find_by_loan_ref(self, loan_id: uuid.UUID) -> Optional[Profit]:
        return self.db.query(Profit).filter(Profit.loan_ref == loan_id).first()

    def create(self, draft: ProfitDraft) -> Profit:
        db_profit = Profit(
            title=draft.title,
            amount=draft.amount,
            date=draft.date,
            description=draft.description or "",
            loan_ref=draft.loan_ref,
        )
        self.db.add(db_profit)
        self.db.flush()
        return db_profit

    def upsert_for_loan(self, draft: ProfitDraft) -> Tuple[Profit, bool]:
        """
        Write the entry linked to draft.loan_ref, overwriting it in place if present.

        Returns (entry, created).
        """
        existing = self.find_by_loan_ref(draft.loan_ref)
        if existing is None:
            return self.create(draft), True

        existing.title = draft.title
        existing.amount = draft.amount
        existing.date = draft.date
        existing.description = draft.description
        self.db.flush()
        return existing, False

    def delete(self, profit: Profit) -> None:
        self.db.delete(profit)
        self.db.flush()

    def delete_by_loan_ref(self, loan_id: uuid.UUID) -> int:
        deleted = self.db.query(Profit).filter(Profit.loan_ref == loan_id).delete(synchronize_session="fetch")
        self.db.flush()
        return deleted

    def delete_all(self) -> int:
        return self.db.query(Profit).delete(synchronize_session="fetch")
