"""Portfolio aggregation across an owner's deposits"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable
from term_savings.domain.models import Deposit, DepositState, PortfolioSummary
from term_savings.domain.accrual import snapshot


def summarize_deposits(deposits: Iterable[Deposit], now: datetime) -> PortfolioSummary:
    """
    Totals and state counts for a set of deposits at `now`.

    Open deposits (Active, Matured) contribute their snapshot value to
    total_value and their earnings to total_interest. Finalized deposits
    (Claimed, EarlyWithdrawn) only contribute their payout to total_withdrawn.
    """
    total_principal = Decimal("0")
    total_interest = Decimal("0")
    total_value = Decimal("0")
    total_withdrawn = Decimal("0")
    active_count = 0
    matured_count = 0
    withdrawn_count = 0

    for deposit in deposits:
        if deposit.state.is_terminal:
            withdrawn_count += 1
            total_withdrawn += deposit.payout
            continue

        # Snapshot values are already rounded, so the sums stay exact
        snap = snapshot(deposit, now)
        total_principal += deposit.principal
        total_interest += snap.accrued_interest
        total_value += snap.current_value

        if snap.recommended_state == DepositState.MATURED:
            matured_count += 1
        else:
            active_count += 1

    return PortfolioSummary(
        total_principal=total_principal,
        total_interest=total_interest,
        total_value=total_value,
        total_withdrawn=total_withdrawn,
        active_count=active_count,
        matured_count=matured_count,
        withdrawn_count=withdrawn_count,
    )
