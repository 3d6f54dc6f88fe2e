"""/v1/profits - profit ledger entries, summary and exports"""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from lendbook.api.dependencies import get_profit_service, page_request, parse_id
from lendbook.api.responses import file_response, ok
from lendbook.api.v1.schemas import (
    DailyAmountOut,
    Envelope,
    ProfitCreateRequest,
    ProfitOut,
    ProfitPageOut,
    ResetOut,
    SummaryOut,
)
from lendbook.domain.criteria import PageRequest, ProfitCriteria
from lendbook.infrastructure.reports.renderer import render_excel, render_pdf
from lendbook.services.profits import ProfitService
from lendbook.services import reports

router = APIRouter()


@router.post("/profits", response_model=Envelope[ProfitOut], status_code=201)
def create_profit(body: ProfitCreateRequest, service: ProfitService = Depends(get_profit_service)):
    profit = service.create_profit(body.title, body.amount, body.date, body.description)
    return ok("Profit created successfully", ProfitOut.model_validate(profit))


@router.get("/profits", response_model=Envelope[ProfitPageOut])
def list_profits(
    search: Optional[str] = Query(None, description="Substring of title or description"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: PageRequest = Depends(page_request),
    service: ProfitService = Depends(get_profit_service),
):
    """Profit entries newest first, with the total amount over every match"""
    result = service.list_profits(ProfitCriteria(search=search, date_from=date_from, date_to=date_to), page)
    result["profits"] = [ProfitOut.model_validate(p) for p in result["profits"]]
    return ok("Profit list fetched successfully", ProfitPageOut(**result))


@router.get("/profits/summary", response_model=Envelope[SummaryOut])
def profit_summary(service: ProfitService = Depends(get_profit_service)):
    summary = service.summary()
    return ok(
        "Profit summary calculated successfully",
        SummaryOut(
            total_amount=summary.total_amount,
            last_month_amount=summary.last_month_amount,
            count=summary.count,
            daily_trend=[DailyAmountOut(date=d.date, amount=d.amount) for d in summary.daily_trend],
        ),
    )


@router.delete("/profits", response_model=Envelope[ResetOut])
def reset_profits(service: ProfitService = Depends(get_profit_service)):
    """Delete every profit entry and clear manual profit on every loan"""
    return ok("All profits deleted successfully", ResetOut(**service.reset_all()))


@router.get("/profits/download/{fmt}")
def download_profits(
    fmt: Literal["excel", "pdf"],
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    service: ProfitService = Depends(get_profit_service),
):
    """Profit ledger export, oldest first, with a total row"""
    profits = service.profits_for_report(ProfitCriteria(date_from=date_from, date_to=date_to))
    rows, totals = reports.profit_rows(profits)
    render = render_excel if fmt == "excel" else render_pdf
    content = render("Profit Report", reports.PROFIT_COLUMNS, rows, totals)
    return file_response(content, fmt, "profits")


@router.delete("/profits/{profit_id}", response_model=Envelope[None])
def delete_profit(profit_id: str, service: ProfitService = Depends(get_profit_service)):
    service.delete_profit(parse_id(profit_id, "profit"))
    return ok("Profit deleted successfully")
