"""Test-run orchestration - evaluate every covenant of a loan and derive alerts"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from covenant_gateway.domain.evaluation import evaluate_covenant
from covenant_gateway.domain.exceptions import (
    ConfigurationError,
    NoCovenantsError,
    NoFinancialDataError,
)
from covenant_gateway.domain.models import (
    Alert,
    Covenant,
    CovenantFailure,
    CovenantTestResult,
    FinancialSnapshot,
    TestRunSummary,
)

logger = logging.getLogger(__name__)


def select_latest_snapshot(loan_id: str, snapshots: Sequence[FinancialSnapshot]) -> FinancialSnapshot:
    """
    Pick the most recent snapshot by period end date.

    Raises:
        NoFinancialDataError: No snapshot exists for the loan
    """
    if not snapshots:
        raise NoFinancialDataError(loan_id)
    return max(snapshots, key=lambda s: s.period_end_date)


def _format_threshold(threshold: float) -> str:
    """Render a threshold the way plain number formatting does: 5.0 -> "5", 2.5 -> "2.5" """
    if float(threshold).is_integer():
        return str(int(threshold))
    return repr(float(threshold))


def build_alert(loan_id: str, covenant: Covenant, result: CovenantTestResult) -> Optional[Alert]:
    """
    Synthesize an alert for a warning or breach result.

    Compliant results return None.
    """
    if result.status not in ("breach", "warning"):
        return None

    is_breach = result.status == "breach"
    symbol = "≤" if covenant.operator == "max" else "≥"
    message = (
        f"{covenant.name} is {'in breach' if is_breach else 'at warning level'} "
        f"with a calculated value of {result.calculated_value:.2f}x "
        f"against a threshold of {symbol} {_format_threshold(result.threshold_at_test)}x "
        f"({abs(result.headroom_percentage):.1f}% {'over' if is_breach else 'headroom'})."
    )

    return Alert(
        loan_id=loan_id,
        covenant_id=covenant.id,
        severity="critical" if is_breach else "warning",
        title=f"{covenant.name} {'Breach' if is_breach else 'Warning'}",
        message=message,
    )


def run_covenant_tests(
    loan_id: str,
    covenants: Sequence[Covenant],
    snapshot: Optional[FinancialSnapshot],
    tested_at: Optional[datetime] = None,
) -> TestRunSummary:
    """
    Evaluate every covenant of a loan against its latest financial snapshot.

    All results share one tested_at timestamp. A covenant that fails to
    evaluate is logged and recorded in the summary's failures; the remaining
    covenants are still evaluated.

    Raises:
        NoCovenantsError: Empty covenant list
        NoFinancialDataError: No snapshot supplied
    """
    if not covenants:
        raise NoCovenantsError(loan_id)
    if snapshot is None:
        raise NoFinancialDataError(loan_id)

    run_at = tested_at or datetime.now(timezone.utc)
    summary = TestRunSummary(
        loan_id=loan_id,
        period_end_date=snapshot.period_end_date,
        tested_at=run_at,
    )

    for covenant in covenants:
        try:
            result = evaluate_covenant(covenant, snapshot, tested_at=run_at)
        except (ConfigurationError, ArithmeticError, TypeError, ValueError) as e:
            logger.warning(
                f"Covenant evaluation failed: {e}",
                extra={"loan_id": loan_id, "covenant_id": covenant.id, "covenant_name": covenant.name},
            )
            summary.failures.append(
                CovenantFailure(covenant_id=covenant.id, covenant_name=covenant.name, error=str(e))
            )
            continue

        summary.results.append(result)

        alert = build_alert(loan_id, covenant, result)
        if alert is not None:
            summary.alerts.append(alert)

    return summary
