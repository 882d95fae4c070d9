"""GET /v1/plans - Savings plan catalog"""

from fastapi import APIRouter, Depends, HTTPException

from term_savings.api.v1.schemas import PlanListResponse, PlanSchema
from term_savings.api.dependencies import get_catalog
from term_savings.domain.catalog import PlanCatalog
from term_savings.domain.exceptions import PlanNotFoundError

router = APIRouter()


@router.get("/plans", response_model=PlanListResponse)
def list_plans(catalog: PlanCatalog = Depends(get_catalog)):
    """List plans open to new deposits, in catalog order"""
    return PlanListResponse(plans=[PlanSchema.from_domain(p) for p in catalog.active_plans()])


@router.get("/plans/{plan_id}", response_model=PlanSchema)
def get_plan(plan_id: int, catalog: PlanCatalog = Depends(get_catalog)):
    try:
        plan = catalog.get_plan(plan_id)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return PlanSchema.from_domain(plan)
