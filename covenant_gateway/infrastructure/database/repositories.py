"""Data access layer for loans, covenants, financial periods and test history"""

import uuid
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from covenant_gateway.infrastructure.database.models import (
    AlertRow,
    AuditLog,
    CovenantRecord,
    CovenantTestRow,
    FinancialPeriod,
    Loan,
)
from covenant_gateway.domain.models import (
    BorrowerProfile,
    Covenant,
    CovenantTestRecord,
    FinancialSnapshot,
    TestRunSummary,
)


def _to_covenant(row: CovenantRecord) -> Covenant:
    return Covenant(
        id=str(row.id),
        loan_id=str(row.loan_id),
        name=row.name,
        type=row.type,
        operator=row.operator,
        threshold=row.threshold,
        testing_frequency=row.testing_frequency,
    )


def _to_snapshot(row: FinancialPeriod) -> FinancialSnapshot:
    return FinancialSnapshot.from_period(
        loan_id=str(row.loan_id),
        period_end_date=row.period_end_date,
        ebitda_adjusted=row.ebitda_adjusted,
        ebitda_reported=row.ebitda_reported,
        total_debt=row.total_debt,
        interest_expense=row.interest_expense,
        fixed_charges=row.fixed_charges,
        current_assets=row.current_assets,
        current_liabilities=row.current_liabilities,
        net_worth=row.net_worth,
        period_id=str(row.id),
        custom_values=row.custom_values,
    )


class LoanRepository:
    """Repository for loans and their covenant definitions"""

    def __init__(self, db: Session):
        self.db = db

    def get_loan(self, loan_id: uuid.UUID) -> Optional[Loan]:
        return (
            self.db.query(Loan)
            .filter(Loan.id == loan_id, Loan.deleted_at.is_(None))
            .first()
        )

    def get_covenants(self, loan_id: uuid.UUID) -> List[Covenant]:
        """Active covenants of a loan as domain values"""
        rows = (
            self.db.query(CovenantRecord)
            .filter(CovenantRecord.loan_id == loan_id, CovenantRecord.deleted_at.is_(None))
            .order_by(CovenantRecord.created_at, CovenantRecord.id)
            .all()
        )
        return [_to_covenant(row) for row in rows]

    def get_snapshots(self, loan_id: uuid.UUID) -> List[FinancialSnapshot]:
        """All financial periods of a loan, newest first"""
        rows = (
            self.db.query(FinancialPeriod)
            .filter(FinancialPeriod.loan_id == loan_id)
            .order_by(FinancialPeriod.period_end_date.desc())
            .all()
        )
        return [_to_snapshot(row) for row in rows]


class CovenantTestRepository:
    """Repository for covenant test history, alerts and audit entries"""

    def __init__(self, db: Session):
        self.db = db

    def save_test_run(self, summary: TestRunSummary, period_id: Optional[str]) -> List[AlertRow]:
        """Persist every result and alert of a run; returns the created alert rows"""
        test_ids: Dict[str, uuid.UUID] = {}
        for result in summary.results:
            row = CovenantTestRow(
                covenant_id=uuid.UUID(result.covenant_id),
                financial_period_id=uuid.UUID(period_id) if period_id else None,
                calculated_value=result.calculated_value,
                threshold_at_test=result.threshold_at_test,
                status=result.status,
                headroom_absolute=result.headroom_absolute,
                headroom_percentage=result.headroom_percentage,
                denominator_zero=result.denominator_zero,
                tested_at=result.tested_at,
            )
            self.db.add(row)
            self.db.flush()  # Get ID without committing
            test_ids[result.covenant_id] = row.id

        alert_rows = []
        for alert in summary.alerts:
            alert_row = AlertRow(
                loan_id=uuid.UUID(alert.loan_id),
                covenant_id=uuid.UUID(alert.covenant_id),
                covenant_test_id=test_ids.get(alert.covenant_id),
                severity=alert.severity,
                title=alert.title,
                message=alert.message,
                acknowledged=alert.acknowledged,
            )
            self.db.add(alert_row)
            alert_rows.append(alert_row)

        self.db.add(
            AuditLog(
                action="test",
                entity_type="loan",
                entity_id=summary.loan_id,
                changes={
                    "tests_run": len(summary.results),
                    "alerts_created": len(summary.alerts),
                    "failed_covenants": [f.covenant_id for f in summary.failures],
                    "period_end": summary.period_end_date.isoformat(),
                },
            )
        )
        self.db.flush()
        return alert_rows

    def get_tests_for_covenant(self, covenant_id: uuid.UUID, limit: int = 20) -> List[CovenantTestRow]:
        """Fetch recent test results for a covenant, newest first"""
        return (
            self.db.query(CovenantTestRow)
            .filter(CovenantTestRow.covenant_id == covenant_id)
            .order_by(CovenantTestRow.tested_at.desc())
            .limit(limit)
            .all()
        )


class BorrowerRepository:
    """Repository assembling borrower profiles for risk scoring"""

    def __init__(self, db: Session):
        self.db = db

    def get_profiles(
        self,
        borrower_id: Optional[uuid.UUID] = None,
        loan_id: Optional[uuid.UUID] = None,
        history_limit: int = 2,
    ) -> List[BorrowerProfile]:
        """Group active loans by borrower and attach each covenant's recent test history"""
        query = self.db.query(Loan).filter(Loan.deleted_at.is_(None))
        if borrower_id is not None:
            query = query.filter(Loan.borrower_id == borrower_id)
        if loan_id is not None:
            query = query.filter(Loan.id == loan_id)

        profiles: Dict[uuid.UUID, BorrowerProfile] = {}
        tests = CovenantTestRepository(self.db)

        for loan in query.order_by(Loan.created_at).all():
            profile = profiles.get(loan.borrower_id)
            if profile is None:
                borrower = loan.borrower
                profile = BorrowerProfile(
                    borrower_id=str(loan.borrower_id),
                    borrower_name=borrower.name if borrower else "Unknown",
                    credit_rating=borrower.rating if borrower else None,
                    loan_ids=[],
                    covenant_histories=[],
                )
                profiles[loan.borrower_id] = profile
            profile.loan_ids.append(str(loan.id))

            for covenant in loan.covenants:
                if covenant.deleted_at is not None:
                    continue
                rows = tests.get_tests_for_covenant(covenant.id, limit=history_limit)
                profile.covenant_histories.append(
                    [
                        CovenantTestRecord(
                            status=row.status,
                            headroom_percentage=row.headroom_percentage,
                            tested_at=row.tested_at,
                        )
                        for row in rows
                    ]
                )

        return list(profiles.values())
