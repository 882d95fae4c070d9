"""Unit tests for deposit accrual and lifecycle transitions"""

import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from term_savings.domain.accrual import (
    EARLY_WITHDRAW_PENALTY_RATE,
    advance_lifecycle,
    claim,
    create_deposit,
    daily_rate,
    early_withdraw,
    preview_early_withdrawal,
    quantize_money,
    snapshot,
    value_at_maturity,
)
from term_savings.domain.catalog import get_plan
from term_savings.domain.models import DepositState, SavingsPlan
from term_savings.domain.exceptions import (
    AlreadyFinalizedError,
    AlreadyMaturedError,
    AmountTooHighError,
    AmountTooLowError,
    InvalidPrincipalError,
    NotMaturedError,
    PlanInactiveError,
)

START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def deposit(premium_plan):
    """1000 on the 30-day 12% plan"""
    return create_deposit(premium_plan, Decimal("1000"), START, owner_id="saver_1")


# createDeposit


def test_create_deposit_sets_term(deposit):
    assert deposit.state == DepositState.ACTIVE
    assert deposit.principal == Decimal("1000")
    assert deposit.start_at == START
    assert deposit.maturity_at == START + timedelta(days=30)
    assert deposit.apy_basis_points == 1200
    assert deposit.owner_id == "saver_1"


def test_create_deposit_treats_naive_now_as_utc(premium_plan):
    deposit = create_deposit(premium_plan, "1000", datetime(2024, 1, 1, 9, 0))

    assert deposit.start_at == START


@pytest.mark.parametrize("principal", [0, -5, "0", "-0.01", "abc", "NaN", "Infinity", 100.5, None])
def test_create_deposit_invalid_principal(premium_plan, principal):
    with pytest.raises(InvalidPrincipalError):
        create_deposit(premium_plan, principal, START)


def test_create_deposit_rejects_sub_cent_principal(premium_plan):
    with pytest.raises(InvalidPrincipalError):
        create_deposit(premium_plan, "10.005", START)


def test_create_deposit_accepts_trailing_zeros(premium_plan):
    deposit = create_deposit(premium_plan, "10.5000", START)
    assert deposit.principal == Decimal("10.5")


def test_create_deposit_enforces_plan_bounds(premium_plan):
    create_deposit(premium_plan, "10", START)
    create_deposit(premium_plan, "100000", START)

    with pytest.raises(AmountTooLowError):
        create_deposit(premium_plan, "9.99", START)
    with pytest.raises(AmountTooHighError):
        create_deposit(premium_plan, "100000.01", START)


def test_create_deposit_on_inactive_plan():
    plan = SavingsPlan(
        id=7,
        duration_days=7,
        apy_basis_points=500,
        min_amount=Decimal("1"),
        max_amount=Decimal("100"),
        is_active=False,
    )
    with pytest.raises(PlanInactiveError):
        create_deposit(plan, "50", START)


# snapshot


@pytest.mark.parametrize("plan_id", [1, 2, 3, 4])
@pytest.mark.parametrize("principal", ["10", "1234.56", "100000"])
def test_snapshot_at_start_equals_principal(plan_id, principal):
    deposit = create_deposit(get_plan(plan_id), principal, START)

    snap = snapshot(deposit, START)

    assert snap.current_value == Decimal(principal)
    assert snap.accrued_interest == 0
    assert snap.progress_fraction == 0.0


def test_snapshot_mid_term_value(deposit):
    """1000 at 12% APY for 15 days: 1000 * (1 + 0.12/365 * 15)"""
    snap = snapshot(deposit, START + timedelta(days=15))

    assert snap.current_value == Decimal("1004.93")
    assert snap.accrued_interest == Decimal("4.93")
    assert snap.progress_fraction == 0.5
    assert snap.state == DepositState.ACTIVE
    assert snap.recommended_state == DepositState.ACTIVE


def test_snapshot_reflects_partial_days(premium_plan):
    """Interest accrues continuously, not per whole day"""
    deposit = create_deposit(premium_plan, "100000", START)

    assert snapshot(deposit, START + timedelta(hours=6)).current_value == Decimal("100008.22")
    assert snapshot(deposit, START + timedelta(days=1)).current_value == Decimal("100032.88")


def test_snapshot_projected_value(deposit):
    snap = snapshot(deposit, START)

    assert snap.projected_value == Decimal("1009.86")
    assert value_at_maturity(deposit) == Decimal("1009.86")


def test_snapshot_before_start_clamps_to_zero(deposit):
    snap = snapshot(deposit, START - timedelta(days=2))

    assert snap.current_value == Decimal("1000")
    assert snap.progress_fraction == 0.0
    assert snap.time_remaining.days == 32


def test_snapshot_time_remaining_breakdown(deposit):
    snap = snapshot(deposit, START + timedelta(days=3, hours=4, minutes=5, seconds=6))

    remaining = snap.time_remaining
    assert (remaining.days, remaining.hours, remaining.minutes, remaining.seconds) == (26, 19, 54, 54)
    assert remaining.total_seconds == 26 * 86_400 + 19 * 3_600 + 54 * 60 + 54


def test_snapshot_value_non_decreasing_while_active(deposit):
    instants = [START + timedelta(hours=h) for h in range(-24, 24 * 40, 7)]
    values = [snapshot(deposit, t).current_value for t in instants]
    progress = [snapshot(deposit, t).progress_fraction for t in instants]

    assert values == sorted(values)
    assert progress == sorted(progress)
    assert all(0.0 <= p <= 1.0 for p in progress)


def test_snapshot_pinned_after_maturity_without_advance(deposit):
    """An Active deposit past maturity stops growing and recommends Matured"""
    snap = snapshot(deposit, START + timedelta(days=45))

    assert snap.current_value == Decimal("1009.86")
    assert snap.progress_fraction == 1.0
    assert snap.time_remaining.total_seconds == 0
    assert snap.state == DepositState.ACTIVE
    assert snap.recommended_state == DepositState.MATURED


def test_snapshot_does_not_mutate(deposit):
    snapshot(deposit, START + timedelta(days=60))

    assert deposit.state == DepositState.ACTIVE


def test_snapshot_zero_apy_never_grows():
    plan = SavingsPlan(id=5, duration_days=10, apy_basis_points=0, min_amount=Decimal("1"), max_amount=Decimal("1000"))
    deposit = create_deposit(plan, "250", START)

    assert snapshot(deposit, START + timedelta(days=5)).current_value == Decimal("250")
    assert value_at_maturity(deposit) == Decimal("250")


def test_daily_rate_uses_365_day_year():
    step = Decimal("1e-20")
    assert daily_rate(1200).quantize(step) == (Decimal("0.12") / 365).quantize(step)
    assert daily_rate(0) == 0


# advanceLifecycle


def test_advance_exactly_at_maturity(deposit):
    maturity = deposit.maturity_at

    advance_lifecycle(deposit, maturity)
    snap = snapshot(deposit, maturity)

    assert deposit.state == DepositState.MATURED
    assert snap.progress_fraction == 1.0
    assert snap.time_remaining.total_seconds == 0
    assert snap.current_value == Decimal("1009.86")


def test_advance_before_maturity_is_noop(deposit):
    advance_lifecycle(deposit, deposit.maturity_at - timedelta(microseconds=1))

    assert deposit.state == DepositState.ACTIVE


def test_advance_is_idempotent(deposit):
    later = deposit.maturity_at + timedelta(days=1)

    advance_lifecycle(deposit, later)
    advance_lifecycle(deposit, later)

    assert deposit.state == DepositState.MATURED


def test_matured_value_constant(deposit):
    advance_lifecycle(deposit, deposit.maturity_at)

    values = {snapshot(deposit, deposit.maturity_at + timedelta(days=d)).current_value for d in range(0, 400, 30)}
    assert values == {Decimal("1009.86")}


def test_advance_leaves_terminal_states_alone(deposit):
    early_withdraw(deposit, START + timedelta(days=1))

    advance_lifecycle(deposit, deposit.maturity_at + timedelta(days=1))

    assert deposit.state == DepositState.EARLY_WITHDRAWN


# claim


def test_claim_pays_full_term_value(deposit):
    claimed_at = deposit.maturity_at + timedelta(days=10)
    advance_lifecycle(deposit, claimed_at)

    settlement = claim(deposit, claimed_at)

    assert settlement.payout == Decimal("1009.86")
    assert settlement.final_state == DepositState.CLAIMED
    assert deposit.finalized_at == claimed_at
    assert deposit.payout == Decimal("1009.86")


def test_claim_active_deposit_not_matured(deposit):
    with pytest.raises(NotMaturedError):
        claim(deposit, START + timedelta(days=10))


def test_claim_requires_explicit_advance(deposit):
    """Claim never flips Active to Matured on its own"""
    with pytest.raises(NotMaturedError):
        claim(deposit, deposit.maturity_at + timedelta(days=1))
    assert deposit.state == DepositState.ACTIVE


def test_second_claim_already_finalized(deposit):
    advance_lifecycle(deposit, deposit.maturity_at)
    claim(deposit, deposit.maturity_at)

    with pytest.raises(AlreadyFinalizedError):
        claim(deposit, deposit.maturity_at)


def test_claimed_snapshot_frozen(deposit):
    advance_lifecycle(deposit, deposit.maturity_at)
    claim(deposit, deposit.maturity_at)

    snap = snapshot(deposit, deposit.maturity_at + timedelta(days=100))

    assert snap.current_value == Decimal("1009.86")
    assert snap.progress_fraction == 1.0
    assert snap.state == DepositState.CLAIMED


# earlyWithdraw


def test_early_withdraw_penalty_on_current_value(deposit):
    """5% of the grown value is forfeited, interest included"""
    settlement = early_withdraw(deposit, START + timedelta(days=15))

    assert settlement.payout == Decimal("954.68")
    assert settlement.final_state == DepositState.EARLY_WITHDRAWN
    assert deposit.final_value == Decimal("1004.93")


def test_early_withdraw_immediately_loses_penalty_on_principal(deposit):
    settlement = early_withdraw(deposit, START)

    assert settlement.payout == Decimal("950.00")
    assert EARLY_WITHDRAW_PENALTY_RATE == Decimal("0.05")


def test_early_withdraw_after_maturity_instant(deposit):
    with pytest.raises(AlreadyMaturedError):
        early_withdraw(deposit, deposit.maturity_at)
    assert deposit.state == DepositState.ACTIVE


def test_early_withdraw_matured_deposit(deposit):
    advance_lifecycle(deposit, deposit.maturity_at)

    with pytest.raises(AlreadyMaturedError):
        early_withdraw(deposit, deposit.maturity_at)


def test_early_withdrawn_snapshot_frozen(deposit):
    early_withdraw(deposit, START + timedelta(days=15))

    later = snapshot(deposit, START + timedelta(days=40))

    assert later.current_value == Decimal("1004.93")
    assert later.progress_fraction == 1.0
    assert later.time_remaining.total_seconds == 0


def test_only_one_finalization_succeeds_withdraw_first(deposit):
    early_withdraw(deposit, START + timedelta(days=1))

    with pytest.raises(AlreadyFinalizedError):
        claim(deposit, deposit.maturity_at)
    with pytest.raises(AlreadyFinalizedError):
        early_withdraw(deposit, START + timedelta(days=2))


def test_only_one_finalization_succeeds_claim_first(deposit):
    advance_lifecycle(deposit, deposit.maturity_at)
    claim(deposit, deposit.maturity_at)

    with pytest.raises(AlreadyFinalizedError):
        early_withdraw(deposit, START + timedelta(days=1))


def test_concurrent_early_withdrawals_single_winner(deposit):
    now = START + timedelta(days=5)

    def attempt(_):
        try:
            return early_withdraw(deposit, now)
        except AlreadyFinalizedError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(32)))

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert deposit.state == DepositState.EARLY_WITHDRAWN


# preview


def test_preview_early_withdrawal_has_no_side_effects(deposit):
    preview = preview_early_withdrawal(deposit, START + timedelta(days=15))

    assert preview.current_value == Decimal("1004.93")
    assert preview.penalty == Decimal("50.25")
    assert preview.payout == Decimal("954.68")
    assert deposit.state == DepositState.ACTIVE
    assert deposit.payout is None


def test_preview_matches_withdrawal(deposit):
    now = START + timedelta(days=11, hours=3)

    preview = preview_early_withdrawal(deposit, now)
    settlement = early_withdraw(deposit, now)

    assert preview.payout == settlement.payout


def test_preview_after_finalization(deposit):
    early_withdraw(deposit, START)

    with pytest.raises(AlreadyFinalizedError):
        preview_early_withdrawal(deposit, START)


# rounding


def test_quantize_money_half_even():
    assert quantize_money(Decimal("2.345")) == Decimal("2.34")
    assert quantize_money(Decimal("2.355")) == Decimal("2.36")
    assert quantize_money(Decimal("2.3451")) == Decimal("2.35")
