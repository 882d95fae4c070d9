"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional

from term_savings.domain.models import Deposit, SavingsPlan, ValueSnapshot


class PlanSchema(BaseModel):
    """Savings plan offer"""

    plan_id: int
    title: str
    description: str
    duration_days: int
    apy_basis_points: int
    min_amount: Decimal
    max_amount: Decimal

    @classmethod
    def from_domain(cls, plan: SavingsPlan) -> "PlanSchema":
        return cls(
            plan_id=plan.id,
            title=plan.title,
            description=plan.description,
            duration_days=plan.duration_days,
            apy_basis_points=plan.apy_basis_points,
            min_amount=plan.min_amount,
            max_amount=plan.max_amount,
        )


class PlanListResponse(BaseModel):
    """Response for GET /v1/plans"""

    plans: List[PlanSchema]


class CreateDepositRequest(BaseModel):
    """Request body for POST /v1/deposits"""

    owner_id: str = Field(..., min_length=1, description="Account identifier of the depositor")
    plan_id: int = Field(..., description="Savings plan to lock the principal into")
    principal: Decimal = Field(..., description="Amount to deposit")


class TimeRemainingSchema(BaseModel):
    days: int
    hours: int
    minutes: int
    seconds: int
    total_seconds: int


class SnapshotSchema(BaseModel):
    """Current value and progress of a deposit"""

    as_of: datetime
    current_value: Decimal
    accrued_interest: Decimal
    projected_value: Decimal
    progress_fraction: float
    time_remaining: TimeRemainingSchema
    recommended_state: str

    @classmethod
    def from_domain(cls, snap: ValueSnapshot) -> "SnapshotSchema":
        remaining = snap.time_remaining
        return cls(
            as_of=snap.as_of,
            current_value=snap.current_value,
            accrued_interest=snap.accrued_interest,
            projected_value=snap.projected_value,
            progress_fraction=snap.progress_fraction,
            time_remaining=TimeRemainingSchema(
                days=remaining.days,
                hours=remaining.hours,
                minutes=remaining.minutes,
                seconds=remaining.seconds,
                total_seconds=remaining.total_seconds,
            ),
            recommended_state=snap.recommended_state.value,
        )


class DepositResponse(BaseModel):
    """Deposit record together with its snapshot at request time"""

    deposit_id: str
    owner_id: Optional[str] = None
    plan_id: int
    principal: Decimal
    apy_basis_points: int
    start_at: datetime
    maturity_at: datetime
    state: str
    payout: Optional[Decimal] = None
    finalized_at: Optional[datetime] = None
    snapshot: SnapshotSchema

    @classmethod
    def from_domain(cls, deposit: Deposit, snap: ValueSnapshot) -> "DepositResponse":
        return cls(
            deposit_id=str(deposit.id),
            owner_id=deposit.owner_id,
            plan_id=deposit.plan_id,
            principal=deposit.principal,
            apy_basis_points=deposit.apy_basis_points,
            start_at=deposit.start_at,
            maturity_at=deposit.maturity_at,
            state=deposit.state.value,
            payout=deposit.payout,
            finalized_at=deposit.finalized_at,
            snapshot=SnapshotSchema.from_domain(snap),
        )


class WithdrawalPreviewResponse(BaseModel):
    """Response for GET /v1/deposits/{deposit_id}/early-withdrawal-preview"""

    deposit_id: str
    as_of: datetime
    current_value: Decimal
    penalty: Decimal
    payout: Decimal


class SettlementResponse(BaseModel):
    """Response for claim and early-withdraw"""

    deposit_id: str
    payout: Decimal
    state: str


class PortfolioResponse(BaseModel):
    """Response for GET /v1/portfolio"""

    owner_id: str
    total_principal: Decimal
    total_interest: Decimal
    total_value: Decimal
    total_withdrawn: Decimal
    active_count: int
    matured_count: int
    withdrawn_count: int
    deposit_count: int
    deposits: List[DepositResponse]
