"""/v1/deposits - Open deposits, read their value and drive their lifecycle"""

import time
import uuid
import logging
from datetime import datetime
from typing import Callable
from fastapi import APIRouter, Depends, HTTPException, BackgroundTasks, Request
from sqlalchemy.orm import Session

from term_savings.api.v1.schemas import (
    CreateDepositRequest,
    DepositResponse,
    SettlementResponse,
    WithdrawalPreviewResponse,
)
from term_savings.api.dependencies import get_catalog, get_clock, get_request_id, get_settlement_client
from term_savings.infrastructure.database.session import get_db
from term_savings.infrastructure.database.repositories import DepositRepository
from term_savings.infrastructure.clients.settlement import SettlementClient, build_settlement_event
from term_savings.domain.catalog import PlanCatalog
from term_savings.domain.models import Deposit, Settlement
from term_savings.domain.accrual import (
    advance_lifecycle,
    claim,
    create_deposit,
    early_withdraw,
    preview_early_withdrawal,
    snapshot,
)
from term_savings.domain.exceptions import (
    AlreadyFinalizedError,
    AlreadyMaturedError,
    AmountTooHighError,
    AmountTooLowError,
    ConcurrentTransitionError,
    InvalidPrincipalError,
    NotMaturedError,
    PlanInactiveError,
    PlanNotFoundError,
)
from term_savings.infrastructure.observability.metrics import record_deposit_created, record_finalization
from term_savings.infrastructure.observability.logging import log_transition

router = APIRouter()

# Errors caused by the deposit's lifecycle state rather than by the request body
STATE_CONFLICTS = (NotMaturedError, AlreadyMaturedError, AlreadyFinalizedError, ConcurrentTransitionError)


def _parse_deposit_id(deposit_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(deposit_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid deposit ID format")


def _load(repo: DepositRepository, deposit_id: str, for_update: bool = False) -> Deposit:
    deposit = repo.get(_parse_deposit_id(deposit_id), for_update=for_update)
    if deposit is None:
        raise HTTPException(status_code=404, detail="Deposit not found")
    return deposit


@router.post("/deposits", response_model=DepositResponse, status_code=201)
def open_deposit(
    request_body: CreateDepositRequest,
    db: Session = Depends(get_db),
    catalog: PlanCatalog = Depends(get_catalog),
    now: datetime = Depends(get_clock),
):
    """
    Lock a principal into a savings plan.

    The amount must fall within the plan's inclusive bounds. The term starts now.
    """
    try:
        plan = catalog.get_plan(request_body.plan_id)
        deposit = create_deposit(plan, request_body.principal, now, owner_id=request_body.owner_id)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidPrincipalError, AmountTooLowError, AmountTooHighError, PlanInactiveError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    DepositRepository(db).add(deposit)
    db.commit()

    record_deposit_created(plan.id)
    logging.info(
        "Deposit opened",
        extra={"deposit_id": str(deposit.id), "plan_id": plan.id, "owner_id": deposit.owner_id},
    )
    return DepositResponse.from_domain(deposit, snapshot(deposit, now))


@router.get("/deposits/{deposit_id}", response_model=DepositResponse)
def get_deposit(deposit_id: str, db: Session = Depends(get_db), now: datetime = Depends(get_clock)):
    """Current value, progress and time remaining of a deposit"""
    deposit = _load(DepositRepository(db), deposit_id)
    return DepositResponse.from_domain(deposit, snapshot(deposit, now))


@router.get("/deposits/{deposit_id}/early-withdrawal-preview", response_model=WithdrawalPreviewResponse)
def get_early_withdrawal_preview(
    deposit_id: str,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """Penalty and payout an early withdrawal would settle at right now"""
    deposit = _load(DepositRepository(db), deposit_id)
    try:
        preview = preview_early_withdrawal(deposit, now)
    except STATE_CONFLICTS as e:
        raise HTTPException(status_code=409, detail=str(e))

    return WithdrawalPreviewResponse(
        deposit_id=str(deposit.id),
        as_of=preview.as_of,
        current_value=preview.current_value,
        penalty=preview.penalty,
        payout=preview.payout,
    )


@router.post("/deposits/{deposit_id}/advance", response_model=DepositResponse)
def advance_deposit(
    deposit_id: str,
    request: Request,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """Mark a deposit Matured if its term has ended. Safe to call repeatedly."""
    start_time = time.time()
    request_id = get_request_id(request)
    repo = DepositRepository(db)

    deposit = _load(repo, deposit_id, for_update=True)
    before = deposit.state
    advance_lifecycle(deposit, now)

    if deposit.state != before:
        if not repo.save_transition(deposit, expected_state=before):
            # Another request moved it first; report what is stored now
            db.rollback()
            deposit = _load(repo, deposit_id)
        else:
            db.commit()
            duration_ms = (time.time() - start_time) * 1000
            log_transition(request_id, str(deposit.id), before.value, deposit.state.value, None, duration_ms)

    return DepositResponse.from_domain(deposit, snapshot(deposit, now))


def _raise_lost_race(repo: DepositRepository, deposit_id: uuid.UUID) -> None:
    repo.db.rollback()
    current = repo.get(deposit_id)
    if current is None or current.state.is_terminal:
        raise AlreadyFinalizedError(f"Deposit {deposit_id} was finalized by another request")
    raise ConcurrentTransitionError(
        f"Deposit {deposit_id} moved to {current.state.value} during this request; retry"
    )


def _finalize(
    deposit_id: str,
    operation: Callable[[Deposit, datetime], Settlement],
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session,
    settlement_client: SettlementClient,
    now: datetime,
) -> SettlementResponse:
    """
    Run a terminal transition inside a transaction scoped to one deposit row.

    Flow:
    1. Load and lock the deposit
    2. Apply the maturity transition explicitly, then the terminal operation
    3. Compare-and-swap the stored state. On a lost race the stored row is read
       again: a terminal state is AlreadyFinalized, anything else is retryable
    4. Commit and hand the payout to the settlement service in the background
    """
    start_time = time.time()
    request_id = get_request_id(request)
    repo = DepositRepository(db)

    try:
        deposit = _load(repo, deposit_id, for_update=True)
        before = deposit.state

        advance_lifecycle(deposit, now)
        settlement = operation(deposit, now)

        if not repo.save_transition(deposit, expected_state=before):
            _raise_lost_race(repo, deposit.id)

        db.commit()

    except HTTPException:
        db.rollback()
        raise

    except STATE_CONFLICTS as e:
        db.rollback()
        logging.warning(f"Transition rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    background_tasks.add_task(
        settlement_client.send_settlement_event,
        build_settlement_event(settlement),
    )

    duration_ms = (time.time() - start_time) * 1000
    record_finalization(settlement.final_state, settlement.payout)
    log_transition(
        request_id,
        str(deposit.id),
        before.value,
        settlement.final_state.value,
        str(settlement.payout),
        duration_ms,
    )

    return SettlementResponse(
        deposit_id=str(deposit.id),
        payout=settlement.payout,
        state=settlement.final_state.value,
    )


@router.post("/deposits/{deposit_id}/claim", response_model=SettlementResponse)
def claim_deposit(
    deposit_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settlement_client: SettlementClient = Depends(get_settlement_client),
    now: datetime = Depends(get_clock),
):
    """Pay out a matured deposit at its full-term value"""
    return _finalize(deposit_id, claim, request, background_tasks, db, settlement_client, now)


@router.post("/deposits/{deposit_id}/early-withdraw", response_model=SettlementResponse)
def early_withdraw_deposit(
    deposit_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settlement_client: SettlementClient = Depends(get_settlement_client),
    now: datetime = Depends(get_clock),
):
    """Close a deposit before maturity, forfeiting 5% of its current value"""
    return _finalize(deposit_id, early_withdraw, request, background_tasks, db, settlement_client, now)
