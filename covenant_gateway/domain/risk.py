"""Risk scoring engine - borrower risk score from covenant test history and credit profile"""

from typing import Dict, List, Optional, Sequence
from covenant_gateway.domain.models import (
    BorrowerProfile,
    BorrowerRiskScore,
    CovenantTestRecord,
    PortfolioSummary,
    RiskFactor,
    RiskFactors,
    RiskScore,
)

# Factor weights, always summed to a denominator of 100
BREACH_WEIGHT = 30
WARNING_WEIGHT = 20
HEADROOM_WEIGHT = 20
RATING_WEIGHT = 15
TREND_WEIGHT = 15
WEIGHT_SUM = BREACH_WEIGHT + WARNING_WEIGHT + HEADROOM_WEIGHT + RATING_WEIGHT + TREND_WEIGHT

TREND_DELTA_PCT = 5.0
UNKNOWN_RATING_RISK = 50
MAX_RECOMMENDATIONS = 5

RATING_RISK_MAP: Dict[str, int] = {
    "AAA": 0,
    "AA+": 5,
    "AA": 8,
    "AA-": 10,
    "A+": 12,
    "A": 15,
    "A-": 18,
    "BBB+": 22,
    "BBB": 28,
    "BBB-": 35,
    "BB+": 45,
    "BB": 52,
    "BB-": 60,
    "B+": 68,
    "B": 75,
    "B-": 82,
    "CCC+": 88,
    "CCC": 92,
    "CCC-": 95,
    "CC": 97,
    "C": 99,
    "D": 100,
}

TREND_IMPACT: Dict[str, int] = {
    "improving": 0,
    "stable": 20,
    "deteriorating": 80,
}
UNKNOWN_TREND_IMPACT = 30


def determine_headroom_trend(history: Sequence[CovenantTestRecord]) -> str:
    """
    Compare the two most recent headroom percentages of one covenant.

    Difference above +5 points is improving, below -5 is deteriorating,
    anything in between is stable. Fewer than two data points is unknown.
    """
    ordered = sorted(history, key=lambda t: t.tested_at, reverse=True)
    if len(ordered) < 2:
        return "unknown"

    current = ordered[0].headroom_percentage
    previous = ordered[1].headroom_percentage
    if current is None or previous is None:
        return "unknown"

    if current > previous + TREND_DELTA_PCT:
        return "improving"
    if current < previous - TREND_DELTA_PCT:
        return "deteriorating"
    return "stable"


def aggregate_risk_factors(
    covenant_histories: Sequence[Sequence[CovenantTestRecord]],
    credit_rating: Optional[str] = None,
) -> RiskFactors:
    """
    Collapse a borrower's covenant test histories into scoring inputs.

    Requirements:
    - Only the latest test of each covenant counts toward breach/warning totals
    - Average and lowest headroom come from those latest tests
    - Trend is taken from covenants with at least two tests; when several
      qualify, the last one in input order wins
    """
    factors = RiskFactors(credit_rating=credit_rating)
    headroom_values: List[float] = []

    for history in covenant_histories:
        if not history:
            continue

        latest = max(history, key=lambda t: t.tested_at)
        if latest.status == "breach":
            factors.breach_count += 1
        elif latest.status == "warning":
            factors.warning_count += 1

        if latest.headroom_percentage is not None:
            headroom_values.append(latest.headroom_percentage)

        trend = determine_headroom_trend(history)
        if trend != "unknown":
            factors.headroom_trend = trend

    if headroom_values:
        factors.avg_headroom = sum(headroom_values) / len(headroom_values)
        factors.lowest_headroom = min(headroom_values)

    return factors


def breach_impact(breach_count: int) -> int:
    """20 points per active breach, capped at 100"""
    if breach_count <= 0:
        return 0
    return min(breach_count * 20, 100)


def warning_impact(warning_count: int) -> int:
    """15 points per warning covenant, capped at 80"""
    if warning_count <= 0:
        return 0
    return min(warning_count * 15, 80)


def headroom_impact(lowest_headroom: Optional[float]) -> int:
    """Bucket the tightest headroom cushion. No data contributes nothing."""
    if lowest_headroom is None:
        return 0
    if lowest_headroom < 0:
        return 100
    elif lowest_headroom < 5:
        return 80
    elif lowest_headroom < 10:
        return 60
    elif lowest_headroom < 15:
        return 40
    elif lowest_headroom < 25:
        return 20
    else:
        return 0


def rating_impact(credit_rating: Optional[str]) -> int:
    """Rating lookup; unknown or missing ratings count as moderately risky"""
    if not credit_rating:
        return UNKNOWN_RATING_RISK
    return RATING_RISK_MAP.get(credit_rating.upper(), UNKNOWN_RATING_RISK)


def trend_impact(headroom_trend: str) -> int:
    return TREND_IMPACT.get(headroom_trend, UNKNOWN_TREND_IMPACT)


def determine_risk_level(score: int) -> str:
    """
    Map score to risk tier.

    - 0-30:   low
    - 31-60:  medium
    - 61-100: high
    """
    if score > 60:
        return "high"
    elif score > 30:
        return "medium"
    return "low"


def build_recommendations(factors: RiskFactors, level: str) -> List[str]:
    """
    Collect recommendations in fixed priority order, truncated to five.

    Order: breaches, warnings, low headroom, deteriorating trend, high risk level.
    """
    recommendations: List[str] = []

    if factors.breach_count > 0:
        recommendations.append("Immediate attention required for covenant breaches")
        recommendations.append("Consider requesting waiver or amendment from borrower")

    if factors.warning_count > 0:
        recommendations.append("Monitor warning covenants closely")
        recommendations.append("Schedule review meeting with borrower")

    if factors.lowest_headroom is not None and factors.lowest_headroom < 15:
        recommendations.append("Low headroom - consider requesting updated financials")

    if factors.headroom_trend == "deteriorating":
        recommendations.append("Deteriorating trend - increase monitoring frequency")
        recommendations.append("Review borrower financial projections")

    if level == "high":
        recommendations.append("Consider placing on watchlist")
        recommendations.append("Review collateral and security position")

    return recommendations[:MAX_RECOMMENDATIONS]


def calculate_risk_score(factors: RiskFactors) -> RiskScore:
    """
    Calculate borrower risk score from 0 (lowest risk) to 100 (highest risk).

    Scoring weights:
    - 30: Active covenant breaches
    - 20: Covenants at warning level
    - 20: Lowest headroom cushion
    - 15: Credit rating (applied as 50 when no rating is on file)
    - 15: Headroom trend (applied as 30 when unknown)

    The factors list is a display aid: it omits the rating when none is on
    file and the trend when unknown, although both still count in the score.
    Never raises.
    """
    displayed: List[RiskFactor] = []

    breach = breach_impact(factors.breach_count)
    if factors.breach_count > 0:
        plural = "es" if factors.breach_count > 1 else ""
        displayed.append(
            RiskFactor("Covenant Breaches", breach, f"{factors.breach_count} active breach{plural}")
        )

    warning = warning_impact(factors.warning_count)
    if factors.warning_count > 0:
        plural = "s" if factors.warning_count > 1 else ""
        displayed.append(
            RiskFactor(
                "Warning Covenants",
                warning,
                f"{factors.warning_count} covenant{plural} at warning level",
            )
        )

    headroom = headroom_impact(factors.lowest_headroom)
    if factors.lowest_headroom is not None:
        displayed.append(
            RiskFactor("Headroom Cushion", headroom, f"Lowest headroom: {factors.lowest_headroom:.1f}%")
        )

    rating = rating_impact(factors.credit_rating)
    if factors.credit_rating:
        displayed.append(RiskFactor("Credit Rating", rating, f"Rating: {factors.credit_rating}"))

    trend = trend_impact(factors.headroom_trend)
    if factors.headroom_trend != "unknown":
        displayed.append(RiskFactor("Performance Trend", trend, f"Trend: {factors.headroom_trend}"))

    total = (
        breach * BREACH_WEIGHT
        + warning * WARNING_WEIGHT
        + headroom * HEADROOM_WEIGHT
        + rating * RATING_WEIGHT
        + trend * TREND_WEIGHT
    )
    # Round half up on the integer total
    score = (total * 2 + WEIGHT_SUM) // (WEIGHT_SUM * 2)
    level = determine_risk_level(score)

    return RiskScore(
        score=score,
        level=level,
        factors=sorted(displayed, key=lambda f: f.impact, reverse=True),
        recommendations=build_recommendations(factors, level),
    )


def score_borrowers(borrowers: Sequence[BorrowerProfile]) -> List[BorrowerRiskScore]:
    """Score every borrower, highest risk first"""
    scored = []
    for borrower in borrowers:
        factors = aggregate_risk_factors(borrower.covenant_histories, borrower.credit_rating)
        scored.append(
            BorrowerRiskScore(
                borrower_id=borrower.borrower_id,
                borrower_name=borrower.borrower_name,
                credit_rating=borrower.credit_rating,
                loan_count=len(borrower.loan_ids),
                risk_factors=factors,
                risk_score=calculate_risk_score(factors),
            )
        )
    scored.sort(key=lambda b: b.risk_score.score, reverse=True)
    return scored


def summarize_portfolio(scores: Sequence[BorrowerRiskScore]) -> PortfolioSummary:
    """Roll up borrower scores; expects scores sorted highest risk first"""
    levels = [s.risk_score.level for s in scores]
    total = sum(s.risk_score.score for s in scores)
    avg_score = (total * 2 + len(scores)) // (len(scores) * 2) if scores else 0

    return PortfolioSummary(
        total_borrowers=len(scores),
        high_risk=levels.count("high"),
        medium_risk=levels.count("medium"),
        low_risk=levels.count("low"),
        avg_score=avg_score,
        highest_risk_borrower=scores[0] if scores else None,
    )
