"""GET /v1/covenants/{covenant_id}/tests - Fetch a covenant's test history"""

import uuid
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from covenant_gateway.api.v1.schemas import HistoryResponse, HistoryItem
from covenant_gateway.infrastructure.database.session import get_db
from covenant_gateway.infrastructure.database.repositories import CovenantTestRepository

router = APIRouter()


@router.get("/covenants/{covenant_id}/tests", response_model=HistoryResponse)
def get_covenant_history(
    covenant_id: str,
    limit: int = Query(20, ge=1, le=200, description="Maximum number of tests"),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent test results for a covenant.

    Returns:
        Tests newest first, each with the threshold captured at test time
    """
    try:
        covenant_uuid = uuid.UUID(covenant_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid covenant ID format")

    test_repo = CovenantTestRepository(db)
    tests = test_repo.get_tests_for_covenant(covenant_uuid, limit=limit)

    history_items = [
        HistoryItem(
            test_id=str(t.id),
            calculated_value=t.calculated_value,
            threshold_at_test=t.threshold_at_test,
            status=t.status,
            headroom_absolute=t.headroom_absolute,
            headroom_percentage=t.headroom_percentage,
            tested_at=t.tested_at.isoformat(),
        )
        for t in tests
    ]

    return HistoryResponse(covenant_id=covenant_id, tests=history_items)
