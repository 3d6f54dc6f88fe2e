"""SQLAlchemy ORM models for the loan book and profit ledger"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Numeric, DateTime, Date, Integer, ForeignKey, Text, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

# Amounts are rupees with paise precision, handled as floats in Python
Money = Numeric(14, 2, asdecimal=False)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoanCollection(Base):
    """A borrower's loan with running balance and installment history"""

    __tablename__ = "loan_collection"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    phone = Column(String(32), nullable=False, index=True)
    aadhaar_number = Column(String(32), nullable=True)
    pan_number = Column(String(32), nullable=True)
    referred_by = Column(Text, nullable=True)

    loan_amount = Column(Money, nullable=False)
    given_amount = Column(Money, nullable=False)
    per_day_collection = Column(Money, nullable=False)
    days_for_loan = Column(Integer, nullable=True)

    total_paid_loan = Column(Money, nullable=False, default=0)
    remaining_loan = Column(Money, nullable=False)
    total_paid_installments = Column(Integer, nullable=False, default=0)
    total_due_installments = Column(Integer, nullable=False, default=0)

    status = Column(String(16), nullable=False, default="Open", index=True)
    loan_start_date = Column(Date, nullable=True)
    loan_end_date = Column(Date, nullable=True)
    loan_type = Column(String(16), nullable=False, default="new")
    manual_profit = Column(Money, nullable=True)
    cycle = Column(Integer, nullable=False, default=1)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    installments = relationship(
        "LoanInstallment",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="LoanInstallment.sequence",
    )

    # Optimistic locking: every UPDATE is conditioned on the version it read
    __mapper_args__ = {"version_id_col": version}


class LoanInstallment(Base):
    """One payment event. Rows are only ever appended."""

    __tablename__ = "loan_installment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid, ForeignKey("loan_collection.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    cycle = Column(Integer, nullable=False, default=1)
    amount = Column(Money, nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    remaining_after_installment = Column(Money, nullable=False)

    loan = relationship("LoanCollection", back_populates="installments")


class Profit(Base):
    """Profit ledger entry, either user-entered or mirroring a loan's manual profit"""

    __tablename__ = "profit"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    description = Column(Text, nullable=False, default="")
    # Weak back-reference to the loan that generated the entry; lookup only
    loan_ref = Column(Uuid, nullable=True, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )
