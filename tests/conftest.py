"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from covenant_gateway.api.main import create_app
from covenant_gateway.infrastructure.database.models import (
    Base,
    Borrower,
    CovenantRecord,
    FinancialPeriod,
    Loan,
)
from covenant_gateway.infrastructure.database.session import get_db
from covenant_gateway.domain.models import Covenant, FinancialSnapshot


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
def leverage_covenant() -> Covenant:
    """Maximum leverage of 5.0x"""
    return Covenant(
        id="cov-leverage",
        loan_id="loan-1",
        name="Maximum Leverage Ratio",
        type="leverage",
        operator="max",
        threshold=5.0,
    )


@pytest.fixture
def coverage_covenant() -> Covenant:
    """Minimum interest coverage of 2.0x"""
    return Covenant(
        id="cov-coverage",
        loan_id="loan-1",
        name="Minimum Interest Coverage Ratio",
        type="interest_coverage",
        operator="min",
        threshold=2.0,
    )


@pytest.fixture
def snapshot() -> FinancialSnapshot:
    """Quarter with leverage exactly at 5.0x and interest coverage at 2.5x"""
    return FinancialSnapshot.from_period(
        loan_id="loan-1",
        period_end_date=date(2024, 3, 31),
        ebitda_adjusted=50.0,
        total_debt=250.0,
        interest_expense=20.0,
        current_assets=300.0,
        current_liabilities=200.0,
        net_worth=1_000.0,
        period_id="period-1",
    )


@pytest.fixture
def seeded_loan(db: Session) -> Loan:
    """Borrower rated BB with one loan, two covenants and two financial periods"""
    borrower = Borrower(name="Acme Manufacturing", rating="BB")
    db.add(borrower)
    db.flush()

    loan = Loan(borrower_id=borrower.id, name="Acme Term Loan B")
    db.add(loan)
    db.flush()

    db.add_all(
        [
            CovenantRecord(
                loan_id=loan.id,
                name="Maximum Leverage Ratio",
                type="leverage",
                operator="max",
                threshold=5.0,
            ),
            CovenantRecord(
                loan_id=loan.id,
                name="Minimum Interest Coverage Ratio",
                type="interest_coverage",
                operator="min",
                threshold=2.0,
            ),
            # Older period must be ignored
            FinancialPeriod(
                loan_id=loan.id,
                period_end_date=date(2023, 12, 31),
                ebitda_adjusted=100.0,
                total_debt=100.0,
                interest_expense=10.0,
            ),
            FinancialPeriod(
                loan_id=loan.id,
                period_end_date=date(2024, 3, 31),
                ebitda_reported=50.0,
                total_debt=260.0,
                interest_expense=20.0,
            ),
        ]
    )
    db.commit()
    return loan
