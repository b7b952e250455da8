"""GET /v1/risk-scores - Borrower risk scores and portfolio summary"""

import uuid
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from covenant_gateway.api.v1.schemas import (
    BorrowerRiskScoreSchema,
    PortfolioSummarySchema,
    RiskFactorSchema,
    RiskScoresResponse,
)
from covenant_gateway.config import settings
from covenant_gateway.domain.models import BorrowerRiskScore
from covenant_gateway.domain.risk import score_borrowers, summarize_portfolio
from covenant_gateway.infrastructure.database.session import get_db
from covenant_gateway.infrastructure.database.repositories import BorrowerRepository
from covenant_gateway.infrastructure.observability.metrics import record_risk_scores

router = APIRouter()


def _parse_uuid(value: Optional[str], name: str) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name} format")


def _to_schema(borrower: BorrowerRiskScore) -> BorrowerRiskScoreSchema:
    return BorrowerRiskScoreSchema(
        borrower_id=borrower.borrower_id,
        borrower_name=borrower.borrower_name,
        rating=borrower.credit_rating,
        loan_count=borrower.loan_count,
        score=borrower.risk_score.score,
        level=borrower.risk_score.level,
        factors=[
            RiskFactorSchema(name=f.name, impact=f.impact, description=f.description)
            for f in borrower.risk_score.factors
        ],
        recommendations=borrower.risk_score.recommendations,
    )


@router.get("/risk-scores", response_model=RiskScoresResponse)
def get_risk_scores(
    borrower_id: Optional[str] = Query(None, description="Restrict to one borrower"),
    loan_id: Optional[str] = Query(None, description="Restrict to one loan"),
    db: Session = Depends(get_db),
):
    """
    Score every borrower from the latest covenant test history of their loans.

    Returns:
        Borrower scores sorted highest risk first, plus a portfolio summary
    """
    profiles = BorrowerRepository(db).get_profiles(
        borrower_id=_parse_uuid(borrower_id, "borrower ID"),
        loan_id=_parse_uuid(loan_id, "loan ID"),
        history_limit=settings.risk_history_limit,
    )
    if not profiles:
        return RiskScoresResponse(risk_scores=[], summary=None)

    scores = score_borrowers(profiles)
    record_risk_scores(scores)
    summary = summarize_portfolio(scores)

    return RiskScoresResponse(
        risk_scores=[_to_schema(s) for s in scores],
        summary=PortfolioSummarySchema(
            total_borrowers=summary.total_borrowers,
            high_risk=summary.high_risk,
            medium_risk=summary.medium_risk,
            low_risk=summary.low_risk,
            avg_score=summary.avg_score,
            highest_risk_borrower=(
                _to_schema(summary.highest_risk_borrower) if summary.highest_risk_borrower else None
            ),
        ),
    )
