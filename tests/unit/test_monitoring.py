"""Unit tests for covenant test runs and alert synthesis"""

import logging
import pytest
from datetime import date, datetime, timezone
from covenant_gateway.domain.models import Covenant, FinancialSnapshot
from covenant_gateway.domain.monitoring import (
    build_alert,
    run_covenant_tests,
    select_latest_snapshot,
)
from covenant_gateway.domain.evaluation import evaluate_covenant
from covenant_gateway.domain.exceptions import NoCovenantsError, NoFinancialDataError


RUN_AT = datetime(2024, 4, 15, 12, 0, tzinfo=timezone.utc)


def breach_snapshot() -> FinancialSnapshot:
    """Leverage 5.2x, interest coverage 2.5x"""
    return FinancialSnapshot.from_period(
        loan_id="loan-1",
        period_end_date=date(2024, 3, 31),
        ebitda_adjusted=50.0,
        total_debt=260.0,
        interest_expense=20.0,
    )


def test_breach_raises_one_critical_alert(leverage_covenant: Covenant, coverage_covenant: Covenant):
    summary = run_covenant_tests("loan-1", [leverage_covenant, coverage_covenant], breach_snapshot(), tested_at=RUN_AT)

    assert [r.status for r in summary.results] == ["breach", "compliant"]
    assert len(summary.alerts) == 1

    alert = summary.alerts[0]
    assert alert.severity == "critical"
    assert alert.title == "Maximum Leverage Ratio Breach"
    assert "5.2" in alert.message
    assert "over" in alert.message
    assert alert.acknowledged is False
    assert alert.loan_id == "loan-1"
    assert alert.covenant_id == "cov-leverage"


def test_breach_alert_message_format(leverage_covenant: Covenant):
    summary = run_covenant_tests("loan-1", [leverage_covenant], breach_snapshot(), tested_at=RUN_AT)

    assert summary.alerts[0].message == (
        "Maximum Leverage Ratio is in breach with a calculated value of 5.20x "
        "against a threshold of ≤ 5x (4.0% over)."
    )


def test_warning_alert_message_format(coverage_covenant: Covenant):
    """Coverage of 2.2x against a 2.0x minimum has 10% headroom"""
    snap = FinancialSnapshot.from_period(
        loan_id="loan-1",
        period_end_date=date(2024, 3, 31),
        ebitda_adjusted=44.0,
        interest_expense=20.0,
    )
    alert = build_alert("loan-1", coverage_covenant, evaluate_covenant(coverage_covenant, snap))

    assert alert.severity == "warning"
    assert alert.title == "Minimum Interest Coverage Ratio Warning"
    assert alert.message == (
        "Minimum Interest Coverage Ratio is at warning level with a calculated value of 2.20x "
        "against a threshold of ≥ 2x (10.0% headroom)."
    )


def test_fractional_threshold_in_message():
    covenant = Covenant(
        id="cov-cr",
        loan_id="loan-1",
        name="Minimum Current Ratio",
        type="current_ratio",
        operator="min",
        threshold=1.25,
    )
    snap = FinancialSnapshot.from_period(
        loan_id="loan-1",
        period_end_date=date(2024, 3, 31),
        current_assets=120.0,
        current_liabilities=100.0,
    )
    alert = build_alert("loan-1", covenant, evaluate_covenant(covenant, snap))

    assert "≥ 1.25x" in alert.message
    assert "(4.0% over)" in alert.message


def test_compliant_results_never_alert(coverage_covenant: Covenant, snapshot: FinancialSnapshot):
    result = evaluate_covenant(coverage_covenant, snapshot)
    assert result.status == "compliant"
    assert build_alert("loan-1", coverage_covenant, result) is None


def test_all_results_share_one_timestamp(leverage_covenant: Covenant, coverage_covenant: Covenant):
    summary = run_covenant_tests("loan-1", [leverage_covenant, coverage_covenant], breach_snapshot())

    assert summary.tested_at is not None
    assert {r.tested_at for r in summary.results} == {summary.tested_at}


def test_failed_covenant_does_not_abort_run(
    leverage_covenant: Covenant, coverage_covenant: Covenant, caplog: pytest.LogCaptureFixture
):
    broken = Covenant(
        id="cov-broken",
        loan_id="loan-1",
        name="Debt Yield",
        type="debt_yield",
        operator="min",
        threshold=0.1,
    )

    with caplog.at_level(logging.WARNING):
        summary = run_covenant_tests(
            "loan-1", [leverage_covenant, broken, coverage_covenant], breach_snapshot(), tested_at=RUN_AT
        )

    assert [r.covenant_id for r in summary.results] == ["cov-leverage", "cov-coverage"]
    assert len(summary.failures) == 1
    assert summary.failures[0].covenant_id == "cov-broken"
    assert summary.failures[0].covenant_name == "Debt Yield"
    assert "debt_yield" in summary.failures[0].error
    assert "Covenant evaluation failed" in caplog.text


def test_zero_threshold_reported_as_failure(leverage_covenant: Covenant):
    zero = Covenant(
        id="cov-zero",
        loan_id="loan-1",
        name="Minimum Net Worth",
        type="min_net_worth",
        operator="min",
        threshold=0.0,
    )
    summary = run_covenant_tests("loan-1", [zero, leverage_covenant], breach_snapshot())

    assert [f.covenant_id for f in summary.failures] == ["cov-zero"]
    assert len(summary.results) == 1


def test_nan_inputs_reported_as_failures(leverage_covenant: Covenant, coverage_covenant: Covenant):
    custom = Covenant(
        id="cov-ltv",
        loan_id="loan-1",
        name="Maximum Loan to Value",
        type="custom",
        operator="max",
        threshold=0.6,
    )
    snap = FinancialSnapshot.from_period(
        loan_id="loan-1",
        period_end_date=date(2024, 3, 31),
        ebitda_adjusted=50.0,
        total_debt=float("nan"),
        interest_expense=20.0,
        custom_values={"cov-ltv": float("nan")},
    )

    summary = run_covenant_tests("loan-1", [leverage_covenant, custom, coverage_covenant], snap, tested_at=RUN_AT)

    assert [r.covenant_id for r in summary.results] == ["cov-coverage"]
    assert summary.results[0].status == "compliant"
    assert [f.covenant_id for f in summary.failures] == ["cov-leverage", "cov-ltv"]
    assert all("non-finite" in f.error for f in summary.failures)
    assert summary.alerts == []


def test_no_snapshot_raises(leverage_covenant: Covenant):
    with pytest.raises(NoFinancialDataError) as exc_info:
        run_covenant_tests("loan-1", [leverage_covenant], None)
    assert exc_info.value.loan_id == "loan-1"


def test_no_covenants_raises(snapshot: FinancialSnapshot):
    with pytest.raises(NoCovenantsError):
        run_covenant_tests("loan-1", [], snapshot)


def test_summary_carries_period(leverage_covenant: Covenant):
    summary = run_covenant_tests("loan-1", [leverage_covenant], breach_snapshot(), tested_at=RUN_AT)
    assert summary.loan_id == "loan-1"
    assert summary.period_end_date == date(2024, 3, 31)
    assert summary.tested_at == RUN_AT


def test_select_latest_snapshot():
    older = FinancialSnapshot.from_period(loan_id="loan-1", period_end_date=date(2023, 12, 31), net_worth=1.0)
    newer = FinancialSnapshot.from_period(loan_id="loan-1", period_end_date=date(2024, 3, 31), net_worth=2.0)

    assert select_latest_snapshot("loan-1", [newer, older]) is newer
    assert select_latest_snapshot("loan-1", [older, newer]) is newer


def test_select_latest_snapshot_empty():
    with pytest.raises(NoFinancialDataError):
        select_latest_snapshot("loan-1", [])
