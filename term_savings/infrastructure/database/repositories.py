"""Data access layer for savings deposits"""

import uuid
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session
from term_savings.infrastructure.database.models import SavingsDeposit
from term_savings.domain.models import Deposit, DepositState
from term_savings.utils.date_utils import ensure_utc


def _to_domain(row: SavingsDeposit) -> Deposit:
    # SQLite drops tzinfo on the way back; stored instants are always UTC
    return Deposit(
        id=row.id,
        owner_id=row.owner_id,
        plan_id=row.plan_id,
        principal=row.principal,
        apy_basis_points=row.apy_basis_points,
        duration_days=row.duration_days,
        start_at=ensure_utc(row.start_at),
        maturity_at=ensure_utc(row.maturity_at),
        state=DepositState(row.state),
        final_value=row.final_value,
        payout=row.payout,
        finalized_at=ensure_utc(row.finalized_at) if row.finalized_at else None,
    )


class DepositRepository:
    """Repository for savings deposits"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, deposit: Deposit) -> SavingsDeposit:
        """Persist a newly created deposit"""
        db_deposit = SavingsDeposit(
            id=deposit.id,
            owner_id=deposit.owner_id,
            plan_id=deposit.plan_id,
            principal=deposit.principal,
            apy_basis_points=deposit.apy_basis_points,
            duration_days=deposit.duration_days,
            start_at=deposit.start_at,
            maturity_at=deposit.maturity_at,
            state=deposit.state.value,
        )
        self.db.add(db_deposit)
        self.db.flush()  # Get ID without committing
        return db_deposit

    def get(self, deposit_id: uuid.UUID, for_update: bool = False) -> Optional[Deposit]:
        """Fetch a deposit, optionally locking its row for the rest of the transaction"""
        query = self.db.query(SavingsDeposit).filter(SavingsDeposit.id == deposit_id)
        if for_update:
            query = query.with_for_update()
        row = query.first()
        return _to_domain(row) if row else None

    def list_by_owner(self, owner_id: str, limit: Optional[int] = None) -> List[Deposit]:
        """Fetch an owner's deposits, newest first. No limit returns all of them."""
        query = (
            self.db.query(SavingsDeposit)
            .filter(SavingsDeposit.owner_id == owner_id)
            .order_by(SavingsDeposit.start_at.desc(), SavingsDeposit.created_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        rows = query.all()
        return [_to_domain(row) for row in rows]

    def save_transition(self, deposit: Deposit, expected_state: DepositState) -> bool:
        """
        Write the deposit's new state only if the stored state is still expected_state.

        Returns False when another transaction changed the state first, in which
        case nothing is written.
        """
        result = self.db.execute(
            update(SavingsDeposit)
            .where(
                SavingsDeposit.id == deposit.id,
                SavingsDeposit.state == expected_state.value,
            )
            .values(
                state=deposit.state.value,
                final_value=deposit.final_value,
                payout=deposit.payout,
                finalized_at=deposit.finalized_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
