"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Reward preview routes.
"""

from decimal import Decimal
from fastapi import APIRouter, HTTPException, status

from rangemarket.schemas import AllocationItem, AllocationRequest, AllocationResponse
from rangemarket.services.allocation import InvalidInput, allocate_rewards

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.post("/preview", response_model=AllocationResponse)
def preview_rewards(request: AllocationRequest):
    """
    Compute the reward split for a supplied bet set without persisting it.

    Args:
        request: Outcome, pool and bets

    Returns:
        Allocation response

    Raises:
        HTTPException: If the pool, a stake or a value is invalid
    """
    try:
        allocations = allocate_rewards(
            request.bets,
            request.actual_value,
            request.pool,
            quantum=request.quantum
        )
    except InvalidInput as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc)
        )

    return AllocationResponse(
        actual_value=request.actual_value,
        pool=request.pool,
        total_distributed=sum((a.reward for a in allocations), Decimal(0)),
        allocations=[AllocationItem.model_validate(a) for a in allocations]
    )
