"""Domain models - pure Python dataclasses representing savings entities"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class DepositState(str, Enum):
    """Lifecycle states of a deposit. Active is the only initial state."""

    ACTIVE = "active"
    MATURED = "matured"
    CLAIMED = "claimed"
    EARLY_WITHDRAWN = "early_withdrawn"

    @property
    def is_terminal(self) -> bool:
        return self in (DepositState.CLAIMED, DepositState.EARLY_WITHDRAWN)


@dataclass(frozen=True)
class SavingsPlan:
    """Fixed-term savings offer from the plan catalog"""

    id: int
    duration_days: int
    apy_basis_points: int
    min_amount: Decimal
    max_amount: Decimal
    title: str = ""
    description: str = ""
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.duration_days <= 0:
            raise ValueError(f"Plan {self.id}: duration_days must be positive")
        if self.apy_basis_points < 0:
            raise ValueError(f"Plan {self.id}: apy_basis_points must not be negative")
        if self.min_amount >= self.max_amount:
            raise ValueError(f"Plan {self.id}: min_amount must be below max_amount")


@dataclass
class Deposit:
    """
    Principal locked into a plan for a fixed term.

    APY and duration are copied from the plan at creation so that accrual never
    depends on the catalog afterwards. Only the accrual engine's transition
    functions change `state` and the settlement fields, and they do so while
    holding `lock`.
    """

    plan_id: int
    principal: Decimal
    apy_basis_points: int
    duration_days: int
    start_at: datetime
    maturity_at: datetime
    state: DepositState = DepositState.ACTIVE
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    owner_id: Optional[str] = None
    final_value: Optional[Decimal] = None  # gross value when finalized
    payout: Optional[Decimal] = None
    finalized_at: Optional[datetime] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


@dataclass(frozen=True)
class TimeRemaining:
    """Time left until maturity, split for countdown display"""

    days: int
    hours: int
    minutes: int
    seconds: int
    total_seconds: int


@dataclass(frozen=True)
class ValueSnapshot:
    """Point-in-time read of a deposit; never persisted"""

    as_of: datetime
    principal: Decimal
    current_value: Decimal
    accrued_interest: Decimal
    projected_value: Decimal
    progress_fraction: float
    time_remaining: TimeRemaining
    state: DepositState
    recommended_state: DepositState


@dataclass(frozen=True)
class WithdrawalPreview:
    """Early withdrawal figures at a given instant, without side effects"""

    as_of: datetime
    current_value: Decimal
    penalty: Decimal
    payout: Decimal


@dataclass(frozen=True)
class Settlement:
    """Outcome of claim / early withdrawal handed to the settlement collaborator"""

    payout: Decimal
    deposit: Deposit

    @property
    def final_state(self) -> DepositState:
        return self.deposit.state


@dataclass(frozen=True)
class PortfolioSummary:
    """Aggregated view over one owner's deposits"""

    total_principal: Decimal
    total_interest: Decimal
    total_value: Decimal
    total_withdrawn: Decimal
    active_count: int
    matured_count: int
    withdrawn_count: int
