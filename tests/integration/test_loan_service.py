"""Integration tests for the loan lifecycle service against a real database"""

import uuid
import pytest
from dataclasses import replace
from datetime import date
from sqlalchemy.orm import Session
from lendbook.domain.criteria import LoanCriteria, PageRequest, SortSpec
from lendbook.domain import ledger
from lendbook.domain.exceptions import ConcurrentUpdateError, NotFoundError, ValidationError
from lendbook.domain.models import LoanDraft, LoanPatch, RolloverTerms
from lendbook.infrastructure.database.models import LoanCollection, Profit
from lendbook.infrastructure.database.repositories import LoanRepository, ProfitRepository
from lendbook.services.loans import LoanService, upsert_manual_profit
from lendbook.services.unit_of_work import transaction


def profits_for(db: Session, loan_id) -> list:
    return db.query(Profit).filter(Profit.loan_ref == loan_id).all()


def test_create_loan_defaults_running_state(loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(loan_draft)

    assert loan.remaining_loan == 10000
    assert loan.total_paid_loan == 0
    assert loan.total_paid_installments == 0
    assert loan.total_due_installments == 20
    assert loan.status == "Open"
    assert loan.loan_type == "new"
    assert loan.manual_profit is None
    assert loan.cycle == 1


def test_create_loan_requires_commercial_fields(loan_service: LoanService):
    with pytest.raises(ValidationError, match="given_amount"):
        loan_service.create_loan(LoanDraft(name="Asha", phone="1", loan_amount=1000, per_day_collection=100))


def test_create_loan_normalises_type_and_profit(db: Session, loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(replace(loan_draft, loan_type="RENEW", manual_profit=""))
    assert loan.loan_type == "renew"
    assert loan.manual_profit is None
    assert profits_for(db, loan.id) == []


def test_installment_scenario(loan_service: LoanService, loan_draft: LoanDraft):
    """600 on 10000 → 9400 left, 19 due; 15000 is then refused with state unchanged"""
    loan = loan_service.create_loan(loan_draft)

    loan = loan_service.apply_installment(loan.id, 600)
    assert loan.remaining_loan == 9400
    assert loan.total_paid_installments == 1
    assert loan.total_due_installments == 19
    assert len(loan.installments) == 1
    assert loan.installments[0].remaining_after_installment == 9400

    with pytest.raises(ValidationError):
        loan_service.apply_installment(loan.id, 15000)

    loan = loan_service.get_loan(loan.id)
    assert loan.remaining_loan == 9400
    assert loan.total_paid_loan == 600
    assert len(loan.installments) == loan.total_paid_installments == 1


def test_paying_in_full_closes_loan(loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(loan_draft)
    loan_service.apply_installment(loan.id, 4000)
    loan = loan_service.apply_installment(loan.id, 6000)

    assert loan.status == "Closed"
    assert loan.remaining_loan == 0
    assert loan.total_due_installments == 0
    assert [i.sequence for i in loan.installments] == [1, 2]

    with pytest.raises(ValidationError):
        loan_service.apply_installment(loan.id, 1)


def test_installment_on_missing_loan(loan_service: LoanService):
    with pytest.raises(NotFoundError):
        loan_service.apply_installment(uuid.uuid4(), 100)


def test_manual_profit_creates_single_linked_entry(db: Session, loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(replace(loan_draft, manual_profit=2000))

    entries = profits_for(db, loan.id)
    assert len(entries) == 1
    assert entries[0].amount == 2000
    assert "Asha" in entries[0].title


def test_update_overwrites_linked_profit_in_place(db: Session, loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(replace(loan_draft, manual_profit=2000))
    original_entry_id = profits_for(db, loan.id)[0].id

    loan_service.update_loan(loan.id, LoanPatch(manual_profit="3500"))

    entries = profits_for(db, loan.id)
    assert len(entries) == 1
    assert entries[0].id == original_entry_id
    assert entries[0].amount == 3500


def test_upsert_twice_keeps_one_entry_with_latest_amount(db: Session, loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(loan_draft)
    profits = ProfitRepository(db)

    upsert_manual_profit(profits, loan.id, "Asha", "9990001111", 1000)
    upsert_manual_profit(profits, loan.id, "Asha", "9990001111", 1800)
    db.commit()

    entries = profits_for(db, loan.id)
    assert len(entries) == 1
    assert entries[0].amount == 1800


def test_upsert_ignores_non_positive_profit(db: Session, loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(loan_draft)
    assert upsert_manual_profit(ProfitRepository(db), loan.id, "Asha", None, 0) is None
    assert profits_for(db, loan.id) == []


def test_update_applies_only_provided_fields(loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(loan_draft)
    created_at = loan.created_at

    loan = loan_service.update_loan(loan.id, LoanPatch(referred_by="Meena", loan_type="Renew"))

    assert loan.referred_by == "Meena"
    assert loan.loan_type == "renew"
    assert loan.name == "Asha"
    assert loan.loan_amount == 10000
    assert loan.created_at == created_at


def test_update_empty_manual_profit_keeps_stored_value(loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(replace(loan_draft, manual_profit=2000))
    loan = loan_service.update_loan(loan.id, LoanPatch(manual_profit="", name="Asha K"))
    assert loan.manual_profit == 2000


def test_update_missing_loan(loan_service: LoanService):
    with pytest.raises(NotFoundError):
        loan_service.update_loan(uuid.uuid4(), LoanPatch(name="x"))


def test_delete_cascades_to_profit_entry(db: Session, loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(replace(loan_draft, manual_profit=2000))
    loan_id = loan.id

    loan_service.delete_loan(loan_id)

    assert profits_for(db, loan_id) == []
    with pytest.raises(NotFoundError):
        loan_service.get_loan(loan_id)


def test_delete_missing_loan(loan_service: LoanService):
    with pytest.raises(NotFoundError):
        loan_service.delete_loan(uuid.uuid4())


def test_rollover_keeps_history_and_resets_balance(loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(loan_draft)
    loan_service.apply_installment(loan.id, 600)
    loan_service.apply_installment(loan.id, 400)

    rolled = loan_service.rollover_loan(RolloverTerms(phone="9990001111", loan_amount=5000))

    assert rolled.id == loan.id
    assert len(rolled.installments) == 2
    assert rolled.remaining_loan == 5000
    assert rolled.total_paid_loan == 0
    assert rolled.total_paid_installments == 0
    assert rolled.total_due_installments == 10
    assert rolled.status == "Open"
    assert rolled.loan_type == "renew"
    assert rolled.cycle == 2
    assert rolled.given_amount == 9000
    assert rolled.loan_start_date == date.today()


def test_rollover_reopens_closed_loan(loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(loan_draft)
    loan_service.apply_installment(loan.id, 10000)

    rolled = loan_service.rollover_loan(RolloverTerms(phone="9990001111", loan_amount=8000, given_amount=7000))
    assert rolled.status == "Open"
    assert rolled.remaining_loan == 8000

    rolled = loan_service.apply_installment(rolled.id, 500)
    assert rolled.installments[-1].cycle == 2
    assert rolled.total_paid_installments == 1


def test_rollover_picks_latest_loan_for_phone(loan_service: LoanService, loan_draft: LoanDraft):
    loan_service.create_loan(loan_draft)
    newest = loan_service.create_loan(replace(loan_draft, name="Asha (second)"))

    rolled = loan_service.rollover_loan(RolloverTerms(phone="9990001111"))
    assert rolled.id == newest.id


def test_rollover_unknown_phone(loan_service: LoanService):
    with pytest.raises(NotFoundError):
        loan_service.rollover_loan(RolloverTerms(phone="0000000000"))


def test_rollover_requires_phone(loan_service: LoanService):
    with pytest.raises(ValidationError):
        loan_service.rollover_loan(RolloverTerms(phone=" "))


def test_rollover_reconciles_manual_profit(db: Session, loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(replace(loan_draft, manual_profit=1000))
    loan_service.rollover_loan(RolloverTerms(phone="9990001111", manual_profit=1500))

    entries = profits_for(db, loan.id)
    assert [e.amount for e in entries] == [1500]


def test_history_lists_payments_in_order(loan_service: LoanService, loan_draft: LoanDraft):
    loan = loan_service.create_loan(loan_draft)
    loan_service.apply_installment(loan.id, 500)
    loan_service.apply_installment(loan.id, 700)

    history = loan_service.get_loan_history(loan.id)

    assert history["name"] == "Asha"
    assert history["total_loan"] == 10000
    assert history["remaining_loan"] == 8800
    assert [h["amount_paid"] for h in history["history"]] == [500, 700]
    assert [h["remaining_after_installment"] for h in history["history"]] == [9500, 8800]


def test_list_loans_filters_and_paginates(loan_service: LoanService, loan_draft: LoanDraft):
    loan_service.create_loan(replace(loan_draft, loan_start_date=date(2026, 1, 1), loan_end_date=date(2026, 1, 20)))
    loan_service.create_loan(
        replace(loan_draft, name="Bala", phone="8880002222", referred_by=None,
                loan_start_date=date(2026, 1, 10), loan_end_date=date(2026, 2, 15))
    )
    closed = loan_service.create_loan(replace(loan_draft, name="Chitra", phone="7770003333", referred_by="ravi kumar"))
    loan_service.apply_installment(closed.id, 10000)

    sort = SortSpec.parse(None, None)
    page = PageRequest(page=1, page_size=10)

    loans, total = loan_service.list_loans(LoanCriteria(search="RAVI"), sort, page)
    assert total == 2
    assert {l.name for l in loans} == {"Asha", "Chitra"}

    loans, total = loan_service.list_loans(LoanCriteria(status="Closed"), sort, page)
    assert [l.name for l in loans] == ["Chitra"]

    # Strict window: Bala's loan ends after the window and is excluded
    loans, total = loan_service.list_loans(
        LoanCriteria(date_from=date(2026, 1, 1), date_to=date(2026, 1, 31)), sort, page
    )
    assert [l.name for l in loans] == ["Asha"]

    loans, total = loan_service.list_loans(LoanCriteria(), SortSpec.parse("name", "asc"), PageRequest(page=2, page_size=2))
    assert total == 3
    assert [l.name for l in loans] == ["Chitra"]


def test_profit_dashboard_counts_manual_profit_once(loan_service: LoanService, loan_draft: LoanDraft):
    loan_service.create_loan(loan_draft)
    loan_service.create_loan(replace(loan_draft, phone="8880002222", manual_profit=2500))

    summary = loan_service.profit_dashboard()

    assert summary.total_amount == 3500
    assert summary.count == 2
    assert sum(d.amount for d in summary.daily_trend) == 3500


def test_expense_dashboard(loan_service: LoanService, loan_draft: LoanDraft):
    loan_service.create_loan(loan_draft)
    loan_service.create_loan(replace(loan_draft, given_amount=4000, loan_amount=4500))

    trend = loan_service.expense_dashboard()
    assert sum(d.amount for d in trend) == 13000


def test_stale_installment_is_rejected(
    db: Session, other_db: Session, loan_service: LoanService, loan_draft: LoanDraft
):
    """A writer that read the loan before another payment committed must not overwrite it"""
    loan = loan_service.create_loan(loan_draft)
    stale = other_db.get(LoanCollection, loan.id)
    assert len(stale.installments) == 0

    loan_service.apply_installment(loan.id, 600)

    entry = ledger.apply_installment(stale, 600)
    LoanRepository(other_db).append_installment(stale, entry)
    with pytest.raises(ConcurrentUpdateError):
        with transaction(other_db, "apply installment"):
            other_db.flush()

    db.expire_all()
    loan = loan_service.get_loan(loan.id)
    assert loan.total_paid_loan == 600
    assert loan.remaining_loan == 9400
    assert len(loan.installments) == 1


def test_rollover_reads_current_state_of_loaded_loan(
    db: Session, other_db: Session, loan_service: LoanService, loan_draft: LoanDraft
):
    loan = loan_service.create_loan(loan_draft)
    cached = loan_service.get_loan(loan.id)
    assert cached.cycle == 1

    LoanService(other_db).rollover_loan(RolloverTerms(phone="9990001111", loan_amount=5000))

    rolled = loan_service.rollover_loan(RolloverTerms(phone="9990001111"))
    assert rolled.cycle == 3
    assert rolled.loan_amount == 5000
