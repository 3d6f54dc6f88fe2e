"""/v1/loans - loan book, collections, rollover, dashboards and exports"""

from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from lendbook.api.dependencies import get_loan_service, page_request, parse_id
from lendbook.api.responses import file_response, ok
from lendbook.api.v1.schemas import (
    DailyAmountOut,
    Envelope,
    HistoryItem,
    InstallmentRequest,
    LoanCreateRequest,
    LoanDetailOut,
    LoanHistoryOut,
    LoanOut,
    LoanPageOut,
    LoanUpdateRequest,
    RolloverRequest,
    SummaryOut,
)
from lendbook.domain.criteria import LoanCriteria, PageRequest, SortSpec
from lendbook.domain.models import LoanDraft, LoanPatch, RolloverTerms
from lendbook.infrastructure.reports.renderer import render_excel, render_pdf
from lendbook.services.loans import LoanService
from lendbook.services import reports

router = APIRouter()

ReportFormat = Literal["excel", "pdf"]


def _summary_out(summary) -> SummaryOut:
    return SummaryOut(
        total_amount=summary.total_amount,
        last_month_amount=summary.last_month_amount,
        count=summary.count,
        daily_trend=[DailyAmountOut(date=d.date, amount=d.amount) for d in summary.daily_trend],
    )


@router.post("/loans", response_model=Envelope[LoanDetailOut], status_code=201)
def create_loan(body: LoanCreateRequest, service: LoanService = Depends(get_loan_service)):
    """
    Originate a loan.

    A positive manual_profit also writes the matching profit ledger entry.
    """
    loan = service.create_loan(LoanDraft(**body.model_dump()))
    return ok("Loan created successfully", LoanDetailOut.model_validate(loan))


@router.get("/loans", response_model=Envelope[LoanPageOut])
def list_loans(
    search: Optional[str] = Query(None, description="Substring of name, phone or referrer"),
    status: Optional[str] = Query(None, description="Open or Closed"),
    date_from: Optional[date] = Query(None, description="Loans starting on or after this day"),
    date_to: Optional[date] = Query(None, description="Loans ending on or before this day"),
    sort_by: Optional[str] = Query(None),
    sort_order: Optional[str] = Query(None, description="asc or desc"),
    page: PageRequest = Depends(page_request),
    service: LoanService = Depends(get_loan_service),
):
    """Search, filter, sort and paginate the loan book"""
    criteria = LoanCriteria(search=search, status=status, date_from=date_from, date_to=date_to)
    sort = SortSpec.parse(sort_by, sort_order)
    loans, total = service.list_loans(criteria, sort, page)
    return ok(
        "Loan list fetched successfully",
        LoanPageOut(
            items=[LoanOut.model_validate(loan) for loan in loans],
            total=total,
            page=page.page,
            page_size=page.page_size,
        ),
    )


@router.get("/loans/profit", response_model=Envelope[SummaryOut])
def loan_profit_dashboard(service: LoanService = Depends(get_loan_service)):
    """Total, last-month and daily profit across the loan book"""
    return ok("Daily profit calculated successfully", _summary_out(service.profit_dashboard()))


@router.get("/loans/expense", response_model=Envelope[List[DailyAmountOut]])
def loan_expense_dashboard(service: LoanService = Depends(get_loan_service)):
    """Amount disbursed per day"""
    trend = service.expense_dashboard()
    return ok("Daily expense calculated successfully", [DailyAmountOut(date=d.date, amount=d.amount) for d in trend])


@router.post("/loans/rollover", response_model=Envelope[LoanDetailOut])
def rollover_loan(body: RolloverRequest, service: LoanService = Depends(get_loan_service)):
    """
    Start a new loan cycle for an existing customer, found by phone.

    The previous installment history is kept.
    """
    loan = service.rollover_loan(RolloverTerms(**body.model_dump()))
    return ok(
        "New loan details saved. Previous installment history retained.",
        LoanDetailOut.model_validate(loan),
    )


@router.get("/loans/download/profit/{fmt}")
def download_daily_profit(
    fmt: ReportFormat,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    service: LoanService = Depends(get_loan_service),
):
    """Daily loan profit report with a total row"""
    rows, totals = reports.daily_rows(service.daily_profit(date_from, date_to))
    render = render_excel if fmt == "excel" else render_pdf
    content = render("Daily Profit Report", reports.DAILY_PROFIT_COLUMNS, rows, totals)
    return file_response(content, fmt, "profit")


@router.get("/loans/download/expense/{fmt}")
def download_daily_expense(fmt: ReportFormat, service: LoanService = Depends(get_loan_service)):
    """Daily disbursement report with a total row"""
    rows, totals = reports.daily_rows(service.expense_dashboard())
    render = render_excel if fmt == "excel" else render_pdf
    content = render("Daily Expense Report", reports.DAILY_EXPENSE_COLUMNS, rows, totals)
    return file_response(content, fmt, "expense")


@router.get("/loans/download/{fmt}")
def download_loans(
    fmt: ReportFormat,
    fields: Optional[str] = Query(None, description="Comma separated columns, or 'all'"),
    rows: Optional[str] = Query(None, description="Comma separated loan IDs"),
    service: LoanService = Depends(get_loan_service),
):
    """Loan book export, optionally restricted to some columns and loans"""
    columns = reports.select_loan_columns(reports.parse_csv(fields))
    selected = reports.parse_csv(rows)
    ids = [parse_id(value, "loan") for value in selected] if selected else None
    loan_rows = reports.loan_rows(service.loans_for_report(ids))

    if fmt == "excel":
        content = render_excel("Loan Collection", columns, loan_rows)
    else:
        content = render_pdf("Loan Collection Report", columns, loan_rows, wide=True)
    return file_response(content, fmt, "loan_collection")


@router.get("/loans/{loan_id}", response_model=Envelope[LoanDetailOut])
def get_loan(loan_id: str, service: LoanService = Depends(get_loan_service)):
    loan = service.get_loan(parse_id(loan_id, "loan"))
    return ok("Loan details fetched successfully", LoanDetailOut.model_validate(loan))


@router.patch("/loans/{loan_id}", response_model=Envelope[LoanDetailOut])
def update_loan(loan_id: str, body: LoanUpdateRequest, service: LoanService = Depends(get_loan_service)):
    """Partial update; only fields present in the body are changed"""
    patch = LoanPatch(**body.model_dump(exclude_unset=True))
    loan = service.update_loan(parse_id(loan_id, "loan"), patch)
    return ok("Loan updated successfully", LoanDetailOut.model_validate(loan))


@router.delete("/loans/{loan_id}", response_model=Envelope[None])
def delete_loan(loan_id: str, service: LoanService = Depends(get_loan_service)):
    """Delete a loan together with its linked profit entry"""
    service.delete_loan(parse_id(loan_id, "loan"))
    return ok("Loan deleted successfully")


@router.post("/loans/{loan_id}/installments", response_model=Envelope[LoanDetailOut])
def add_installment(loan_id: str, body: InstallmentRequest, service: LoanService = Depends(get_loan_service)):
    """
    Record a collected installment.

    Rejected with 400 when the amount exceeds the remaining balance.
    """
    loan = service.apply_installment(parse_id(loan_id, "loan"), body.amount)
    return ok("Installment added successfully", LoanDetailOut.model_validate(loan))


@router.get("/loans/{loan_id}/history", response_model=Envelope[LoanHistoryOut])
def get_loan_history(loan_id: str, service: LoanService = Depends(get_loan_service)):
    history = service.get_loan_history(parse_id(loan_id, "loan"))
    history["history"] = [HistoryItem(**item) for item in history["history"]]
    return ok("Loan payment history fetched successfully", LoanHistoryOut(**history))
