"""Plan catalog - the fixed set of savings offers and amount eligibility checks"""

from decimal import Decimal
from typing import Dict, Iterable, Tuple
from term_savings.domain.models import SavingsPlan
from term_savings.domain.exceptions import (
    PlanNotFoundError,
    AmountTooLowError,
    AmountTooHighError,
)


DEFAULT_PLANS: Tuple[SavingsPlan, ...] = (
    SavingsPlan(
        id=1,
        duration_days=7,
        apy_basis_points=500,  # 5%
        min_amount=Decimal("10"),
        max_amount=Decimal("100000"),
        title="Starter Plan",
        description="Perfect for beginners",
    ),
    SavingsPlan(
        id=2,
        duration_days=14,
        apy_basis_points=800,  # 8%
        min_amount=Decimal("10"),
        max_amount=Decimal("100000"),
        title="Growth Plan",
        description="Balanced risk and reward",
    ),
    SavingsPlan(
        id=3,
        duration_days=30,
        apy_basis_points=1200,  # 12%
        min_amount=Decimal("10"),
        max_amount=Decimal("100000"),
        title="Premium Plan",
        description="High yield opportunity",
    ),
    SavingsPlan(
        id=4,
        duration_days=90,
        apy_basis_points=1800,  # 18%
        min_amount=Decimal("10"),
        max_amount=Decimal("100000"),
        title="Elite Plan",
        description="Maximum yield potential",
    ),
)


class PlanCatalog:
    """Immutable, insertion-ordered collection of savings plans"""

    def __init__(self, plans: Iterable[SavingsPlan]):
        self._plans: Tuple[SavingsPlan, ...] = tuple(plans)
        self._by_id: Dict[int, SavingsPlan] = {}
        for plan in self._plans:
            if plan.id in self._by_id:
                raise ValueError(f"Duplicate plan id {plan.id}")
            self._by_id[plan.id] = plan

    def list_plans(self) -> Tuple[SavingsPlan, ...]:
        return self._plans

    def active_plans(self) -> Tuple[SavingsPlan, ...]:
        return tuple(plan for plan in self._plans if plan.is_active)

    def get_plan(self, plan_id: int) -> SavingsPlan:
        """
        Look up a plan by id.

        Raises:
            PlanNotFoundError: If no plan has this id
        """
        try:
            return self._by_id[plan_id]
        except KeyError:
            raise PlanNotFoundError(f"Savings plan {plan_id} not found") from None

    def __len__(self) -> int:
        return len(self._plans)


def validate_amount(plan: SavingsPlan, amount: Decimal) -> None:
    """
    Check that amount lies within the plan's inclusive [min_amount, max_amount].

    Raises:
        AmountTooLowError: amount < plan.min_amount
        AmountTooHighError: amount > plan.max_amount
    """
    if amount < plan.min_amount:
        raise AmountTooLowError(
            f"Amount {amount} is below the minimum {plan.min_amount} for plan {plan.id}"
        )
    if amount > plan.max_amount:
        raise AmountTooHighError(
            f"Amount {amount} is above the maximum {plan.max_amount} for plan {plan.id}"
        )


default_catalog = PlanCatalog(DEFAULT_PLANS)


def list_plans() -> Tuple[SavingsPlan, ...]:
    return default_catalog.list_plans()


def get_plan(plan_id: int) -> SavingsPlan:
    return default_catalog.get_plan(plan_id)
