"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from typing import Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Uniform response wrapper for every JSON endpoint"""

    status: str = "Success"
    message: str
    data: Optional[T] = None


# --- Loans ---------------------------------------------------------------


class LoanCreateRequest(BaseModel):
    """Request body for POST /v1/loans. Required fields are checked by the service."""

    name: Optional[str] = None
    phone: Optional[str] = None
    loan_amount: Optional[float] = None
    given_amount: Optional[float] = None
    per_day_collection: Optional[float] = None
    days_for_loan: Optional[int] = Field(None, ge=0)
    remaining_loan: Optional[float] = None
    aadhaar_number: Optional[str] = None
    pan_number: Optional[str] = None
    referred_by: Optional[str] = None
    status: Optional[str] = None
    loan_start_date: Optional[date] = None
    loan_end_date: Optional[date] = None
    loan_type: Optional[str] = None
    manual_profit: Optional[Union[float, str]] = None


class LoanUpdateRequest(BaseModel):
    """Request body for PATCH /v1/loans/{loan_id}; omitted fields are left unchanged"""

    name: Optional[str] = None
    phone: Optional[str] = None
    loan_amount: Optional[float] = None
    given_amount: Optional[float] = None
    per_day_collection: Optional[float] = None
    days_for_loan: Optional[int] = Field(None, ge=0)
    remaining_loan: Optional[float] = None
    total_paid_loan: Optional[float] = None
    aadhaar_number: Optional[str] = None
    pan_number: Optional[str] = None
    referred_by: Optional[str] = None
    status: Optional[str] = None
    loan_start_date: Optional[date] = None
    loan_end_date: Optional[date] = None
    loan_type: Optional[str] = None
    manual_profit: Optional[Union[float, str]] = None


class InstallmentRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/installments"""

    amount: float = Field(..., description="Amount collected")


class RolloverRequest(BaseModel):
    """Request body for POST /v1/loans/rollover"""

    phone: Optional[str] = None
    loan_amount: Optional[float] = None
    given_amount: Optional[float] = None
    per_day_collection: Optional[float] = None
    days_for_loan: Optional[int] = Field(None, ge=0)
    loan_start_date: Optional[date] = None
    loan_end_date: Optional[date] = None
    remaining_loan: Optional[float] = None
    total_paid_loan: Optional[float] = Field(None, ge=0)
    total_paid_installments: Optional[int] = Field(None, ge=0)
    total_due_installments: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None
    loan_type: Optional[str] = None
    manual_profit: Optional[Union[float, str]] = None


class InstallmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sequence: int
    cycle: int
    amount: float
    paid_at: datetime
    remaining_after_installment: float


class LoanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    phone: str
    aadhaar_number: Optional[str] = None
    pan_number: Optional[str] = None
    referred_by: Optional[str] = None
    loan_amount: float
    given_amount: float
    per_day_collection: float
    days_for_loan: Optional[int] = None
    total_paid_loan: float
    remaining_loan: float
    total_paid_installments: int
    total_due_installments: int
    status: str
    loan_start_date: Optional[date] = None
    loan_end_date: Optional[date] = None
    loan_type: str
    manual_profit: Optional[float] = None
    cycle: int
    created_at: datetime
    updated_at: datetime


class LoanDetailOut(LoanOut):
    installments: List[InstallmentOut] = []


class LoanPageOut(BaseModel):
    items: List[LoanOut]
    total: int
    page: int
    page_size: int


class HistoryItem(BaseModel):
    date: datetime
    amount_paid: float
    remaining_after_installment: float
    cycle: int


class LoanHistoryOut(BaseModel):
    loan_id: uuid.UUID
    name: str
    phone: str
    total_loan: float
    remaining_loan: float
    total_paid_loan: float
    loan_start_date: Optional[date] = None
    loan_end_date: Optional[date] = None
    history: List[HistoryItem]


# --- Aggregates ----------------------------------------------------------


class DailyAmountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: str
    amount: float


class SummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_amount: float
    last_month_amount: float
    count: int
    daily_trend: List[DailyAmountOut]


# --- Profits -------------------------------------------------------------


class ProfitCreateRequest(BaseModel):
    """Request body for POST /v1/profits"""

    title: str = Field(..., min_length=1)
    amount: float
    date: date
    description: str = ""


class ProfitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    amount: float
    date: datetime
    description: str
    loan_ref: Optional[uuid.UUID] = None
    created_at: datetime


class ProfitPageOut(BaseModel):
    profits: List[ProfitOut]
    total_count: int
    total_amount: float
    page: int
    page_size: int


class ResetOut(BaseModel):
    profits_deleted: int
    loans_cleared: int
