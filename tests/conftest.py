"""Pytest fixtures for testing"""

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from lendbook.api.main import create_app
from lendbook.domain.models import LoanDraft
from lendbook.infrastructure.database.models import Base
from lendbook.infrastructure.database.session import get_db
from lendbook.services.loans import LoanService
from lendbook.services.profits import ProfitService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_db(db: Session) -> Generator[Session, None, None]:
    """A second, independent session on the same database"""
    other = TestingSessionLocal()
    try:
        yield other
    finally:
        other.close()


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def loan_service(db: Session) -> LoanService:
    return LoanService(db)


@pytest.fixture
def profit_service(db: Session) -> ProfitService:
    return ProfitService(db)


@pytest.fixture
def loan_draft() -> LoanDraft:
    """A 10,000 loan disbursed as 9,000, collected 500 a day"""
    return LoanDraft(
        name="Asha",
        phone="9990001111",
        loan_amount=10000,
        given_amount=9000,
        per_day_collection=500,
        days_for_loan=20,
        referred_by="Ravi",
    )


@pytest.fixture
def loan_payload() -> dict:
    """JSON body equivalent of loan_draft"""
    return {
        "name": "Asha",
        "phone": "9990001111",
        "loan_amount": 10000,
        "given_amount": 9000,
        "per_day_collection": 500,
        "days_for_loan": 20,
        "referred_by": "Ravi",
    }
