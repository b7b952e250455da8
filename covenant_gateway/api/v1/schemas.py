"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel
from datetime import date, datetime
from typing import List, Optional


class CovenantTestResultSchema(BaseModel):
    """Single covenant evaluated in a test run"""

    covenant_id: str
    covenant_name: str
    calculated_value: float
    threshold_at_test: float
    status: str
    headroom_absolute: float
    headroom_percentage: float
    denominator_zero: bool


class AlertSchema(BaseModel):
    """Alert raised by a test run"""

    alert_id: Optional[str] = None
    covenant_id: str
    severity: str
    title: str
    message: str
    acknowledged: bool = False


class CovenantFailureSchema(BaseModel):
    """Covenant that could not be evaluated"""

    covenant_id: str
    covenant_name: str
    error: str


class CovenantTestRunResponse(BaseModel):
    """Response for POST /v1/loans/{loan_id}/covenant-tests"""

    loan_id: str
    period_end_date: date
    tested_at: datetime
    results: List[CovenantTestResultSchema]
    alerts: List[AlertSchema]
    alerts_created: int
    failures: List[CovenantFailureSchema]
    message: str


class RiskFactorSchema(BaseModel):
    name: str
    impact: int
    description: str


class BorrowerRiskScoreSchema(BaseModel):
    """Risk score for one borrower"""

    borrower_id: str
    borrower_name: str
    rating: Optional[str] = None
    loan_count: int
    score: int
    level: str
    factors: List[RiskFactorSchema]
    recommendations: List[str]


class PortfolioSummarySchema(BaseModel):
    total_borrowers: int
    high_risk: int
    medium_risk: int
    low_risk: int
    avg_score: int
    highest_risk_borrower: Optional[BorrowerRiskScoreSchema] = None


class RiskScoresResponse(BaseModel):
    """Response for GET /v1/risk-scores"""

    risk_scores: List[BorrowerRiskScoreSchema]
    summary: Optional[PortfolioSummarySchema] = None


class HistoryItem(BaseModel):
    """Single persisted covenant test"""

    test_id: str
    calculated_value: float
    threshold_at_test: float
    status: str
    headroom_absolute: Optional[float] = None
    headroom_percentage: Optional[float] = None
    tested_at: str


class HistoryResponse(BaseModel):
    """Response for GET /v1/covenants/{covenant_id}/tests"""

    covenant_id: str
    tests: List[HistoryItem]
