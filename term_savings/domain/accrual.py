"""Deposit accrual engine - value growth, maturity and settlement of fixed-term deposits"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN, localcontext
from typing import Optional, Union
from term_savings.domain.models import (
    Deposit,
    DepositState,
    SavingsPlan,
    Settlement,
    ValueSnapshot,
    WithdrawalPreview,
)
from term_savings.domain.catalog import validate_amount
from term_savings.domain.exceptions import (
    AlreadyFinalizedError,
    AlreadyMaturedError,
    InvalidPrincipalError,
    NotMaturedError,
    PlanInactiveError,
)
from term_savings.utils.date_utils import ensure_utc, fractional_days, split_remaining, to_microseconds

logger = logging.getLogger(__name__)

EARLY_WITHDRAW_PENALTY_RATE = Decimal("0.05")
DAYS_PER_YEAR = 365  # no leap-year adjustment
BASIS_POINTS_PER_UNIT = 10_000
MONEY_DECIMAL_PLACES = 2

# Intermediate results keep this many significant digits; rounding happens only at output
_WORKING_PRECISION = 50

Amount = Union[Decimal, int, str]


def quantize_money(amount: Decimal, places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Round half-even to a fixed number of decimal places"""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_EVEN)


def _parse_principal(principal: Amount) -> Decimal:
    # Binary floats cannot represent most decimal amounts exactly
    if isinstance(principal, (bool, float)):
        raise InvalidPrincipalError(f"Principal must be a Decimal, int or str, got {type(principal).__name__}")
    try:
        value = Decimal(principal)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidPrincipalError(f"Principal {principal!r} is not a decimal amount") from None
    if not value.is_finite() or value <= 0:
        raise InvalidPrincipalError(f"Principal must be positive, got {principal}")
    if value.normalize().as_tuple().exponent < -MONEY_DECIMAL_PLACES:
        raise InvalidPrincipalError(
            f"Principal {principal} has more than {MONEY_DECIMAL_PLACES} decimal places"
        )
    return value


def daily_rate(apy_basis_points: int) -> Decimal:
    """Simple (non-compounding) daily rate on a 365-day year"""
    with localcontext() as ctx:
        ctx.prec = _WORKING_PRECISION
        return Decimal(apy_basis_points) / BASIS_POINTS_PER_UNIT / DAYS_PER_YEAR


def _accrued_value(deposit: Deposit, until: datetime) -> Decimal:
    """Unrounded principal plus linear interest from start to min(until, maturity)"""
    end = min(until, deposit.maturity_at)
    elapsed = max(end - deposit.start_at, timedelta(0))
    with localcontext() as ctx:
        ctx.prec = _WORKING_PRECISION
        return deposit.principal * (1 + daily_rate(deposit.apy_basis_points) * fractional_days(elapsed))


def _progress(deposit: Deposit, now: datetime) -> float:
    total = to_microseconds(deposit.maturity_at - deposit.start_at)
    elapsed = to_microseconds(now - deposit.start_at)
    return min(max(elapsed / total, 0.0), 1.0)


def create_deposit(
    plan: SavingsPlan,
    principal: Amount,
    now: datetime,
    owner_id: Optional[str] = None,
) -> Deposit:
    """
    Open a new Active deposit on a plan.

    The term starts at `now` and matures exactly `plan.duration_days` whole days
    later. APY and duration are copied onto the deposit.

    Raises:
        InvalidPrincipalError: principal is not a positive amount with at most
            MONEY_DECIMAL_PLACES decimals
        PlanInactiveError: plan is closed to new deposits
        AmountTooLowError / AmountTooHighError: principal outside plan bounds
    """
    amount = _parse_principal(principal)
    if not plan.is_active:
        raise PlanInactiveError(f"Savings plan {plan.id} is not accepting deposits")
    validate_amount(plan, amount)

    start_at = ensure_utc(now)
    deposit = Deposit(
        plan_id=plan.id,
        principal=amount,
        apy_basis_points=plan.apy_basis_points,
        duration_days=plan.duration_days,
        start_at=start_at,
        maturity_at=start_at + timedelta(days=plan.duration_days),
        owner_id=owner_id,
    )
    logger.debug("Deposit %s created on plan %s for %s", deposit.id, plan.id, amount)
    return deposit


def value_at_maturity(deposit: Deposit) -> Decimal:
    """Full-term value of the deposit (principal plus all interest), rounded"""
    return quantize_money(_accrued_value(deposit, deposit.maturity_at))


def snapshot(deposit: Deposit, now: datetime) -> ValueSnapshot:
    """
    Read a deposit's value and progress at `now` without changing it.

    Total over every (deposit, now) pair: instants before the start clamp to
    zero elapsed time, and the value stops growing at maturity. Terminal
    deposits report their frozen final value. `recommended_state` is what
    advance_lifecycle would move the deposit to at this instant.
    """
    now = ensure_utc(now)
    state = deposit.state
    projected = value_at_maturity(deposit)

    if state.is_terminal:
        current = deposit.final_value
        progress = 1.0
        remaining = split_remaining(timedelta(0))
        recommended = state
    else:
        if state == DepositState.MATURED:
            current = projected
        else:
            current = quantize_money(_accrued_value(deposit, now))
        progress = _progress(deposit, now)
        remaining = split_remaining(deposit.maturity_at - now)
        matured = state == DepositState.MATURED or now >= deposit.maturity_at
        recommended = DepositState.MATURED if matured else DepositState.ACTIVE

    return ValueSnapshot(
        as_of=now,
        principal=deposit.principal,
        current_value=current,
        accrued_interest=current - deposit.principal,
        projected_value=projected,
        progress_fraction=progress,
        time_remaining=remaining,
        state=state,
        recommended_state=recommended,
    )


def advance_lifecycle(deposit: Deposit, now: datetime) -> Deposit:
    """Move an Active deposit to Matured once `now` reaches maturity. Idempotent."""
    now = ensure_utc(now)
    with deposit.lock:
        if deposit.state == DepositState.ACTIVE and now >= deposit.maturity_at:
            deposit.state = DepositState.MATURED
            logger.info("Deposit %s matured", deposit.id)
    return deposit


def claim(deposit: Deposit, now: datetime) -> Settlement:
    """
    Pay out a Matured deposit at its full-term value and mark it Claimed.

    An Active deposit past maturity must go through advance_lifecycle first.

    Raises:
        AlreadyFinalizedError: deposit is Claimed or EarlyWithdrawn
        NotMaturedError: deposit is still Active
    """
    now = ensure_utc(now)
    with deposit.lock:
        if deposit.state.is_terminal:
            raise AlreadyFinalizedError(f"Deposit {deposit.id} is already {deposit.state.value}")
        if deposit.state != DepositState.MATURED:
            raise NotMaturedError(f"Deposit {deposit.id} matures at {deposit.maturity_at.isoformat()}")

        payout = value_at_maturity(deposit)
        deposit.final_value = payout
        deposit.payout = payout
        deposit.finalized_at = now
        deposit.state = DepositState.CLAIMED

    logger.info("Deposit %s claimed, payout %s", deposit.id, payout)
    return Settlement(payout=payout, deposit=deposit)


def _check_withdrawable(deposit: Deposit, now: datetime) -> None:
    if deposit.state.is_terminal:
        raise AlreadyFinalizedError(f"Deposit {deposit.id} is already {deposit.state.value}")
    if deposit.state == DepositState.MATURED or now >= deposit.maturity_at:
        raise AlreadyMaturedError(f"Deposit {deposit.id} has matured; claim it instead")


def _withdrawal_figures(deposit: Deposit, now: datetime) -> WithdrawalPreview:
    # Penalty is charged on the grown value, interest included
    with localcontext() as ctx:
        ctx.prec = _WORKING_PRECISION
        current = _accrued_value(deposit, now)
        penalty = current * EARLY_WITHDRAW_PENALTY_RATE
        payout = current * (1 - EARLY_WITHDRAW_PENALTY_RATE)
    return WithdrawalPreview(
        as_of=now,
        current_value=quantize_money(current),
        penalty=quantize_money(penalty),
        payout=quantize_money(payout),
    )


def preview_early_withdrawal(deposit: Deposit, now: datetime) -> WithdrawalPreview:
    """
    Figures an early withdrawal would settle at `now`, leaving the deposit untouched.

    Raises the same errors as early_withdraw.
    """
    now = ensure_utc(now)
    _check_withdrawable(deposit, now)
    return _withdrawal_figures(deposit, now)


def early_withdraw(deposit: Deposit, now: datetime) -> Settlement:
    """
    Close an Active deposit before maturity, keeping EARLY_WITHDRAW_PENALTY_RATE
    of its current value as a penalty.

    Raises:
        AlreadyFinalizedError: deposit is Claimed or EarlyWithdrawn
        AlreadyMaturedError: deposit is Matured or `now` is at/after maturity
    """
    now = ensure_utc(now)
    with deposit.lock:
        _check_withdrawable(deposit, now)
        figures = _withdrawal_figures(deposit, now)
        deposit.final_value = figures.current_value
        deposit.payout = figures.payout
        deposit.finalized_at = now
        deposit.state = DepositState.EARLY_WITHDRAWN

    logger.info(
        "Deposit %s withdrawn early, payout %s (penalty %s)",
        deposit.id,
        figures.payout,
        figures.penalty,
    )
    return Settlement(payout=figures.payout, deposit=deposit)
