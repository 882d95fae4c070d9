"""GET /v1/portfolio - Owner's deposits with aggregated totals"""

from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from term_savings.api.v1.schemas import DepositResponse, PortfolioResponse
from term_savings.api.dependencies import get_clock
from term_savings.infrastructure.database.session import get_db
from term_savings.infrastructure.database.repositories import DepositRepository
from term_savings.domain.accrual import snapshot
from term_savings.domain.portfolio import summarize_deposits

router = APIRouter()

PORTFOLIO_LIST_LIMIT = 100


@router.get("/portfolio", response_model=PortfolioResponse)
def get_portfolio(
    owner_id: str = Query(..., min_length=1, description="Account identifier"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """
    Retrieve an owner's deposits, newest first.

    Returns:
        Totals and per-state counts over every deposit the owner has, plus the
        newest PORTFOLIO_LIST_LIMIT deposits in detail
    """
    deposits = DepositRepository(db).list_by_owner(owner_id)
    summary = summarize_deposits(deposits, now)

    return PortfolioResponse(
        owner_id=owner_id,
        total_principal=summary.total_principal,
        total_interest=summary.total_interest,
        total_value=summary.total_value,
        total_withdrawn=summary.total_withdrawn,
        active_count=summary.active_count,
        matured_count=summary.matured_count,
        withdrawn_count=summary.withdrawn_count,
        deposit_count=len(deposits),
        deposits=[DepositResponse.from_domain(d, snapshot(d, now)) for d in deposits[:PORTFOLIO_LIST_LIMIT]],
    )
