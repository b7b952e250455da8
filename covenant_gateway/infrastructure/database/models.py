"""SQLAlchemy ORM models for loans, covenants, financial periods and test history"""

import uuid
from sqlalchemy import Column, String, Boolean, Float, DateTime, Date, Integer, ForeignKey, Text, JSON, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Borrower(Base):
    """Borrower with an optional agency-style credit rating"""

    __tablename__ = "borrowers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    rating = Column(String(8), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loans = relationship("Loan", back_populates="borrower")


class Loan(Base):
    """Loan facility owning covenants and financial periods"""

    __tablename__ = "loans"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    borrower_id = Column(Uuid(as_uuid=True), ForeignKey("borrowers.id"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    borrower = relationship("Borrower", back_populates="loans")
    covenants = relationship(
        "CovenantRecord",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="(CovenantRecord.created_at, CovenantRecord.id)",
    )
    financial_periods = relationship("FinancialPeriod", back_populates="loan", cascade="all, delete-orphan")


class CovenantRecord(Base):
    """Covenant definition attached to a loan"""

    __tablename__ = "covenants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    operator = Column(Text, nullable=False)
    threshold = Column(Float, nullable=False)
    testing_frequency = Column(Text, nullable=False, default="quarterly")
    grace_period_days = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    loan = relationship("Loan", back_populates="covenants")
    tests = relationship("CovenantTestRow", back_populates="covenant", cascade="all, delete-orphan")


class FinancialPeriod(Base):
    """Reported financials for one period of a loan"""

    __tablename__ = "financial_periods"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
    period_end_date = Column(Date, nullable=False)
    ebitda_reported = Column(Float, nullable=True)
    ebitda_adjusted = Column(Float, nullable=True)
    total_debt = Column(Float, nullable=True)
    interest_expense = Column(Float, nullable=True)
    fixed_charges = Column(Float, nullable=True)
    current_assets = Column(Float, nullable=True)
    current_liabilities = Column(Float, nullable=True)
    net_worth = Column(Float, nullable=True)
    custom_values = Column(JSON, nullable=True)  # covenant id -> pre-computed value
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("Loan", back_populates="financial_periods")


class CovenantTestRow(Base):
    """Immutable covenant test result"""

    __tablename__ = "covenant_tests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    covenant_id = Column(Uuid(as_uuid=True), ForeignKey("covenants.id", ondelete="CASCADE"), nullable=False, index=True)
    financial_period_id = Column(Uuid(as_uuid=True), ForeignKey("financial_periods.id"), nullable=True)
    calculated_value = Column(Float, nullable=False)
    threshold_at_test = Column(Float, nullable=False)
    status = Column(Text, nullable=False)
    headroom_absolute = Column(Float, nullable=True)
    headroom_percentage = Column(Float, nullable=True)
    denominator_zero = Column(Boolean, nullable=False, default=False)
    tested_at = Column(DateTime(timezone=True), nullable=False, index=True)

    covenant = relationship("CovenantRecord", back_populates="tests")


class AlertRow(Base):
    """Alert raised by a warning or breach test"""

    __tablename__ = "alerts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loans.id", ondelete="CASCADE"), nullable=False, index=True)
    covenant_id = Column(Uuid(as_uuid=True), ForeignKey("covenants.id"), nullable=True)
    covenant_test_id = Column(Uuid(as_uuid=True), ForeignKey("covenant_tests.id"), nullable=True)
    type = Column(Text, nullable=False, default="covenant_test")
    severity = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    acknowledged = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuditLog(Base):
    """Audit trail entry"""

    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(Text, nullable=False)
    changes = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
