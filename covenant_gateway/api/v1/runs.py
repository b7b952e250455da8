"""POST /v1/loans/{loan_id}/covenant-tests - run every covenant test for a loan"""

import time
import logging
import uuid
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException, BackgroundTasks, Request
from sqlalchemy.orm import Session

from covenant_gateway.api.v1.schemas import (
    AlertSchema,
    CovenantFailureSchema,
    CovenantTestResultSchema,
    CovenantTestRunResponse,
)
from covenant_gateway.api.dependencies import get_notification_client, get_request_id
from covenant_gateway.infrastructure.database.session import get_db
from covenant_gateway.infrastructure.database.repositories import CovenantTestRepository, LoanRepository
from covenant_gateway.infrastructure.clients.notifications import NotificationClient
from covenant_gateway.domain.monitoring import run_covenant_tests, select_latest_snapshot
from covenant_gateway.domain.exceptions import NoCovenantsError, NoFinancialDataError, NotificationDeliveryError
from covenant_gateway.infrastructure.observability.metrics import record_test_run
from covenant_gateway.infrastructure.observability.logging import log_test_run

router = APIRouter()


async def deliver_alerts(client: NotificationClient, payload: Dict[str, Any], request_id: str) -> None:
    """Background delivery; a failed notification never fails the test run"""
    try:
        await client.send_alerts(payload)
    except NotificationDeliveryError as e:
        logging.error(f"Alert notification failed: {e}", extra={"request_id": request_id})


@router.post("/loans/{loan_id}/covenant-tests", response_model=CovenantTestRunResponse)
async def create_test_run(
    loan_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notification_client: NotificationClient = Depends(get_notification_client),
):
    """
    Run covenant tests for a loan against its latest financial period.

    Flow:
    1. Load the loan's active covenants and financial periods
    2. Evaluate every covenant against the latest period
    3. Persist test results, alerts and an audit entry
    4. Send async alert notification
    5. Return results, alerts and any covenants that failed to evaluate
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        loan_uuid = uuid.UUID(loan_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid loan ID format")

    loan_repo = LoanRepository(db)
    if loan_repo.get_loan(loan_uuid) is None:
        raise HTTPException(status_code=404, detail="Loan not found")

    try:
        # 1. Load inputs
        covenants = loan_repo.get_covenants(loan_uuid)
        snapshots = loan_repo.get_snapshots(loan_uuid)

        # 2. Evaluate
        if not covenants:
            raise NoCovenantsError(loan_id)
        snapshot = select_latest_snapshot(loan_id, snapshots)
        summary = run_covenant_tests(loan_id, covenants, snapshot)

        # 3. Persist
        test_repo = CovenantTestRepository(db)
        alert_rows = test_repo.save_test_run(summary, snapshot.period_id)
        db.commit()

    except NoCovenantsError as e:
        db.rollback()
        logging.warning(f"No covenants: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail="No covenants found for this loan")

    except NoFinancialDataError as e:
        db.rollback()
        logging.warning(f"No financial data: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail="No financial data available to run covenant tests")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id, "loan_id": loan_id})
        raise HTTPException(status_code=500, detail="Failed to run covenant tests")

    # 4. Schedule async notification
    if summary.alerts:
        background_tasks.add_task(
            deliver_alerts,
            notification_client,
            {
                "event": "COVENANT_ALERTS",
                "loan_id": loan_id,
                "period_end_date": summary.period_end_date.isoformat(),
                "alerts": [
                    {
                        "alert_id": str(row.id),
                        "covenant_id": str(row.covenant_id),
                        "severity": row.severity,
                        "title": row.title,
                        "message": row.message,
                    }
                    for row in alert_rows
                ],
            },
            request_id,
        )

    # Record metrics and logs
    duration_ms = (time.time() - start_time) * 1000
    record_test_run(summary)
    log_test_run(request_id, summary, duration_ms)

    return CovenantTestRunResponse(
        loan_id=loan_id,
        period_end_date=summary.period_end_date,
        tested_at=summary.tested_at,
        results=[
            CovenantTestResultSchema(
                covenant_id=r.covenant_id,
                covenant_name=r.covenant_name,
                calculated_value=r.calculated_value,
                threshold_at_test=r.threshold_at_test,
                status=r.status,
                headroom_absolute=r.headroom_absolute,
                headroom_percentage=r.headroom_percentage,
                denominator_zero=r.denominator_zero,
            )
            for r in summary.results
        ],
        alerts=[
            AlertSchema(
                alert_id=str(row.id),
                covenant_id=str(row.covenant_id),
                severity=row.severity,
                title=row.title,
                message=row.message,
                acknowledged=row.acknowledged,
            )
            for row in alert_rows
        ],
        alerts_created=len(alert_rows),
        failures=[
            CovenantFailureSchema(covenant_id=f.covenant_id, covenant_name=f.covenant_name, error=f.error)
            for f in summary.failures
        ],
        message=f"Successfully ran {len(summary.results)} covenant tests",
    )
