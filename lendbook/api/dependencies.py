"""Dependency injection for FastAPI endpoints"""

import uuid
from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from lendbook.config import settings
from lendbook.domain.criteria import PageRequest
from lendbook.domain.exceptions import ValidationError
from lendbook.infrastructure.database.session import get_db
from lendbook.services.loans import LoanService
from lendbook.services.profits import ProfitService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_loan_service(request: Request, db: Session = Depends(get_db)) -> LoanService:
    """Provide a loan service bound to the request's session"""
    return LoanService(db, request_id=get_request_id(request))


def get_profit_service(request: Request, db: Session = Depends(get_db)) -> ProfitService:
    """Provide a profit service bound to the request's session"""
    return ProfitService(db, request_id=get_request_id(request))


def parse_id(value: str, label: str = "record") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationError(f"Invalid {label} ID format")


def page_request(page: int = 1, page_size: Optional[int] = None) -> PageRequest:
    """Pagination from query parameters, page size capped by configuration"""
    size = page_size or settings.default_page_size
    return PageRequest(page=page, page_size=min(size, settings.max_page_size))
