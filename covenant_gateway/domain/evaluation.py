"""Covenant test evaluator - ratio, headroom and compliance status for one covenant"""

import math
from datetime import datetime, timezone
from typing import Optional, Tuple

from covenant_gateway.domain.exceptions import ConfigurationError
from covenant_gateway.domain.models import (
    COVENANT_TYPES,
    OPERATORS,
    Covenant,
    CovenantTestResult,
    FinancialSnapshot,
)

# Contractual status cutoffs on headroom percentage
BREACH_BELOW_PCT = 0.0
WARNING_BELOW_PCT = 15.0


def _divide(numerator: float, denominator: float) -> Tuple[float, bool]:
    """Divide, degrading to 0 on a zero denominator. Returns (value, denominator_zero)."""
    if denominator == 0:
        return 0.0, True
    return numerator / denominator, False


def compute_ratio(covenant: Covenant, snapshot: FinancialSnapshot) -> Tuple[float, bool]:
    """
    Calculate the covenant's measured value from the snapshot.

    Ratio by covenant type:
    - leverage:              total_debt / ebitda
    - interest_coverage:     ebitda / interest_expense
    - fixed_charge_coverage: ebitda / fixed_charges
    - current_ratio:         current_assets / current_liabilities
    - min_net_worth:         net_worth (absolute figure)
    - custom:                pre-computed value supplied on the snapshot

    A zero denominator yields 0 rather than raising, so one bad period cannot
    crash a batch run. The second element of the returned tuple flags that case.

    Raises:
        ConfigurationError: Unknown covenant type, or custom covenant with no value
    """
    if covenant.type == "leverage":
        return _divide(snapshot.total_debt, snapshot.ebitda)
    if covenant.type == "interest_coverage":
        return _divide(snapshot.ebitda, snapshot.interest_expense)
    if covenant.type == "fixed_charge_coverage":
        return _divide(snapshot.ebitda, snapshot.fixed_charges)
    if covenant.type == "current_ratio":
        return _divide(snapshot.current_assets, snapshot.current_liabilities)
    if covenant.type == "min_net_worth":
        return float(snapshot.net_worth), False
    if covenant.type == "custom":
        if covenant.id not in snapshot.custom_values:
            raise ConfigurationError(
                f"Custom covenant '{covenant.name}' has no pre-computed value for this period",
                covenant_id=covenant.id,
                covenant_name=covenant.name,
            )
        return float(snapshot.custom_values[covenant.id]), False

    raise ConfigurationError(
        f"Unrecognized covenant type '{covenant.type}' (expected one of {', '.join(COVENANT_TYPES)})",
        covenant_id=covenant.id,
        covenant_name=covenant.name,
    )


def calculate_headroom(operator: str, threshold: float, value: float) -> Tuple[float, float]:
    """
    Distance between value and threshold in the safe direction.

    max: headroom = threshold - value
    min: headroom = value - threshold

    Returns (headroom_absolute, headroom_percentage), percentage relative to threshold.
    """
    if operator == "max":
        headroom_absolute = threshold - value
    else:
        headroom_absolute = value - threshold
    headroom_percentage = headroom_absolute / threshold * 100
    return headroom_absolute, headroom_percentage


def classify_status(headroom_percentage: float) -> str:
    """Map headroom percentage to compliance status"""
    if headroom_percentage < BREACH_BELOW_PCT:
        return "breach"
    if headroom_percentage < WARNING_BELOW_PCT:
        return "warning"
    return "compliant"


def evaluate_covenant(
    covenant: Covenant,
    snapshot: FinancialSnapshot,
    tested_at: Optional[datetime] = None,
) -> CovenantTestResult:
    """
    Evaluate a single covenant against a financial snapshot. Pure function.

    The threshold is captured on the result so later threshold edits never
    rewrite history.

    Raises:
        ConfigurationError: Unknown type or operator, zero threshold, missing custom value,
            or a non-finite calculated value
    """
    if covenant.operator not in OPERATORS:
        raise ConfigurationError(
            f"Unrecognized covenant operator '{covenant.operator}'",
            covenant_id=covenant.id,
            covenant_name=covenant.name,
        )

    calculated_value, denominator_zero = compute_ratio(covenant, snapshot)

    # NaN compares false against every status cutoff
    if not math.isfinite(calculated_value):
        raise ConfigurationError(
            f"Covenant '{covenant.name}' has a non-finite calculated value ({calculated_value})",
            covenant_id=covenant.id,
            covenant_name=covenant.name,
        )

    # Headroom percentage is undefined against a zero threshold
    if covenant.threshold == 0:
        raise ConfigurationError(
            f"Covenant '{covenant.name}' has a zero threshold; headroom is undefined",
            covenant_id=covenant.id,
            covenant_name=covenant.name,
        )

    headroom_absolute, headroom_percentage = calculate_headroom(
        covenant.operator, covenant.threshold, calculated_value
    )

    return CovenantTestResult(
        covenant_id=covenant.id,
        covenant_name=covenant.name,
        calculated_value=calculated_value,
        threshold_at_test=covenant.threshold,
        status=classify_status(headroom_percentage),
        headroom_absolute=headroom_absolute,
        headroom_percentage=headroom_percentage,
        tested_at=tested_at or datetime.now(timezone.utc),
        denominator_zero=denominator_zero,
    )
