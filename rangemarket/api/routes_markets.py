"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Market routes: listing, detail, distribution, resolution and payouts.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rangemarket.db import get_db
from rangemarket.models import Market
from rangemarket.schemas import (
    DistributionItem,
    MarketSchema,
    PayoutItem,
    ResolutionResponse,
    ResolveRequest,
)
from rangemarket.security import verify_resolution
from rangemarket.services.allocation import InvalidInput
from rangemarket.services.markets import (
    get_market,
    get_prediction_distribution,
    list_markets,
    status_label,
)
from rangemarket.services.resolution import (
    BettingStillOpen,
    MarketAlreadySettled,
    MarketNotFound,
    get_payouts,
    resolve_market,
)
from rangemarket.utils import format_time_left

router = APIRouter(prefix="/markets", tags=["markets"])


def _to_schema(market: Market) -> MarketSchema:
    schema = MarketSchema.model_validate(market)
    schema.status_label = status_label(market.status)
    schema.time_left = format_time_left(market.end_time)
    return schema


@router.get("", response_model=List[MarketSchema])
async def get_markets(
    category: str = Query("all", description="all, pending, active, resolved or cancelled"),
    limit: int = 100,
    offset: int = 0,
    db: AsyncSession = Depends(get_db)
):
    """
    List markets in a status category, most recently started first.

    Returns:
        List of markets

    Raises:
        HTTPException: If the category is unknown
    """
    try:
        markets = await list_markets(db, category=category, limit=limit, offset=offset)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    return [_to_schema(market) for market in markets]


@router.get("/{market_id}", response_model=MarketSchema)
async def get_market_detail(
    market_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Get a single market.

    Raises:
        HTTPException: If market not found
    """
    market = await get_market(db, market_id)
    if not market:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Market not found"
        )
    return _to_schema(market)


@router.get("/{market_id}/distribution", response_model=List[DistributionItem])
async def get_market_distribution(
    market_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Count bets per predicted value, lowest value first.

    Raises:
        HTTPException: If market not found
    """
    market = await get_market(db, market_id)
    if not market:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Market not found"
        )

    distribution = await get_prediction_distribution(db, market.market_id)
    return [DistributionItem(value=value, count=count) for value, count in distribution]


@router.post("/{market_id}/resolve", response_model=ResolutionResponse)
async def resolve(
    market_id: str,
    request: ResolveRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Resolve a market with its actual value (operator only).

    Args:
        market_id: Market contract address
        request: Actual value and HMAC signature
        db: Database session

    Returns:
        Resolution response

    Raises:
        HTTPException: If the signature is invalid, the market is unknown,
            already settled or still accepting bets
    """
    if not verify_resolution(market_id, request.actual_value, request.sig):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid HMAC signature"
        )

    try:
        outcome = await resolve_market(db, market_id, request.actual_value)
    except MarketNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except (MarketAlreadySettled, BettingStillOpen) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except InvalidInput as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    return ResolutionResponse(
        market_id=outcome.market_id,
        status=status_label(outcome.status),
        pool=outcome.pool,
        fee=outcome.fee,
        payouts=[PayoutItem.model_validate(p) for p in outcome.payouts]
    )


@router.get("/{market_id}/payouts", response_model=List[PayoutItem])
async def get_market_payouts(
    market_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Get persisted payouts for a market.

    Raises:
        HTTPException: If market not found
    """
    market = await get_market(db, market_id)
    if not market:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Market not found"
        )

    payouts = await get_payouts(db, market_id)
    return [PayoutItem.model_validate(p) for p in payouts]
