"""Domain models - pure Python dataclasses representing covenant monitoring entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional


COVENANT_TYPES = (
    "leverage",
    "interest_coverage",
    "fixed_charge_coverage",
    "current_ratio",
    "min_net_worth",
    "custom",
)

OPERATORS = ("max", "min")


@dataclass(frozen=True)
class Covenant:
    """Contractual financial constraint owned by a loan"""

    id: str
    loan_id: str
    name: str
    type: str  # one of COVENANT_TYPES
    operator: str  # "max" (value <= threshold) or "min" (value >= threshold)
    threshold: float
    testing_frequency: str = "quarterly"


@dataclass(frozen=True)
class FinancialSnapshot:
    """One financial period's inputs, with upstream fallbacks already applied"""

    loan_id: str
    period_end_date: date
    ebitda: float
    total_debt: float
    interest_expense: float
    fixed_charges: float
    current_assets: float
    current_liabilities: float
    net_worth: float
    period_id: Optional[str] = None
    custom_values: Dict[str, float] = field(default_factory=dict)  # covenant id -> value

    @classmethod
    def from_period(
        cls,
        loan_id: str,
        period_end_date: date,
        ebitda_adjusted: Optional[float] = None,
        ebitda_reported: Optional[float] = None,
        total_debt: Optional[float] = None,
        interest_expense: Optional[float] = None,
        fixed_charges: Optional[float] = None,
        current_assets: Optional[float] = None,
        current_liabilities: Optional[float] = None,
        net_worth: Optional[float] = None,
        period_id: Optional[str] = None,
        custom_values: Optional[Dict[str, float]] = None,
    ) -> "FinancialSnapshot":
        """
        Build a snapshot from raw financial period figures.

        Fallbacks treat zero the same as missing:
        - EBITDA: adjusted, then reported, then 0
        - Fixed charges: fixed charges, then interest expense, then 0
        - Current liabilities: floor of 1 so the current ratio never divides by zero
        """
        return cls(
            loan_id=loan_id,
            period_end_date=period_end_date,
            ebitda=ebitda_adjusted or ebitda_reported or 0.0,
            total_debt=total_debt or 0.0,
            interest_expense=interest_expense or 0.0,
            fixed_charges=fixed_charges or interest_expense or 0.0,
            current_assets=current_assets or 0.0,
            current_liabilities=current_liabilities or 1.0,
            net_worth=net_worth or 0.0,
            period_id=period_id,
            custom_values=dict(custom_values or {}),
        )


@dataclass(frozen=True)
class CovenantTestResult:
    """Outcome of evaluating one covenant against one snapshot. Immutable history."""

    covenant_id: str
    covenant_name: str
    calculated_value: float
    threshold_at_test: float
    status: str  # "compliant", "warning" or "breach"
    headroom_absolute: float
    headroom_percentage: float
    tested_at: datetime
    denominator_zero: bool = False  # ratio degraded to 0 on a zero denominator


@dataclass(frozen=True)
class Alert:
    """Alert derived from a warning or breach result"""

    loan_id: str
    covenant_id: str
    severity: str  # "critical" or "warning"
    title: str
    message: str
    acknowledged: bool = False


@dataclass(frozen=True)
class CovenantFailure:
    """A covenant that could not be evaluated during a test run"""

    covenant_id: str
    covenant_name: str
    error: str


@dataclass
class TestRunSummary:
    """Everything produced by one test run over a loan's covenants"""

    __test__ = False  # not a pytest test class

    loan_id: str
    period_end_date: date
    tested_at: datetime
    results: List[CovenantTestResult] = field(default_factory=list)
    alerts: List[Alert] = field(default_factory=list)
    failures: List[CovenantFailure] = field(default_factory=list)


@dataclass(frozen=True)
class CovenantTestRecord:
    """Persisted test result as seen by the risk aggregator"""

    status: str
    headroom_percentage: Optional[float]
    tested_at: datetime


@dataclass
class RiskFactors:
    """Aggregated scoring inputs for one borrower"""

    breach_count: int = 0
    warning_count: int = 0
    avg_headroom: Optional[float] = None
    lowest_headroom: Optional[float] = None
    credit_rating: Optional[str] = None
    headroom_trend: str = "unknown"  # improving | stable | deteriorating | unknown


@dataclass(frozen=True)
class RiskFactor:
    """Single contributor shown alongside a risk score"""

    name: str
    impact: int
    description: str


@dataclass
class RiskScore:
    """Output of the risk scoring model"""

    score: int
    level: str  # "low", "medium" or "high"
    factors: List[RiskFactor]
    recommendations: List[str]


@dataclass
class BorrowerProfile:
    """A borrower's loans, rating and covenant test histories"""

    borrower_id: str
    borrower_name: str
    credit_rating: Optional[str]
    loan_ids: List[str]
    covenant_histories: List[List[CovenantTestRecord]]


@dataclass
class BorrowerRiskScore:
    """Risk score attached to the borrower it was computed for"""

    borrower_id: str
    borrower_name: str
    credit_rating: Optional[str]
    loan_count: int
    risk_factors: RiskFactors
    risk_score: RiskScore


@dataclass
class PortfolioSummary:
    """Portfolio-level rollup of borrower risk scores"""

    total_borrowers: int
    high_risk: int
    medium_risk: int
    low_risk: int
    avg_score: int
    highest_risk_borrower: Optional[BorrowerRiskScore]
