"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Market resolution: freeze checks, fee, allocation, payouts, cancellation.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from fractions import Fraction
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from rangemarket.config import settings
from rangemarket.models import Bet, Market, MarketStatus, Payout
from rangemarket.services.allocation import (
    Allocation,
    allocate_rewards,
    exact_context,
    floor_to_quantum,
    to_decimal,
)
from rangemarket.services.markets import get_market, is_betting_closed, status_label
from rangemarket.utils import compute_inputs_hash, now_utc, to_wei

logger = logging.getLogger(__name__)

SETTLED_STATUSES = (int(MarketStatus.RESOLVED), int(MarketStatus.CANCELLED))


class ResolutionError(Exception):
    """Base class for resolution workflow failures."""


class MarketNotFound(ResolutionError):
    """Market does not exist."""


class MarketAlreadySettled(ResolutionError):
    """Market is already resolved or cancelled."""


class BettingStillOpen(ResolutionError):
    """Bets are not frozen yet."""


@dataclass
class ResolutionOutcome:
    """Result of resolving (or cancelling) a market."""

    market_id: str
    status: MarketStatus
    pool: Decimal
    fee: Decimal
    allocations: List[Allocation] = field(default_factory=list)
    payouts: List[Payout] = field(default_factory=list)


def compute_fee(total_stake: Decimal, fee_bps: Optional[int] = None, quantum: Any = None) -> Decimal:
    """
    Platform fee taken from the pool before distribution.

    Args:
        total_stake: Sum of all stakes
        fee_bps: Fee in basis points (defaults to settings.platform_fee_bps)
        quantum: Smallest currency unit (defaults to settings.reward_quantum)

    Returns:
        Fee rounded down to the quantum
    """
    fee_bps = settings.platform_fee_bps if fee_bps is None else fee_bps
    if not 0 <= fee_bps <= 10000:
        raise ValueError(f"fee_bps must be within [0, 10000], got {fee_bps}")
    return floor_to_quantum(Fraction(to_decimal(total_stake, "total_stake")) * fee_bps / 10000, quantum)


async def _load_bets(db: AsyncSession, market_id: str) -> List[Bet]:
    result = await db.execute(
        select(Bet).where(Bet.market_id == market_id).order_by(Bet.bet_id)
    )
    return list(result.scalars().all())


async def _load_open_market(db: AsyncSession, market_id: str) -> Market:
    market = await get_market(db, market_id)
    if not market:
        raise MarketNotFound(f"Market not found: {market_id}")
    if market.status in SETTLED_STATUSES:
        raise MarketAlreadySettled(
            f"Market {market.market_id} is already {status_label(market.status).lower()}"
        )
    return market


async def _settle(db: AsyncSession, market: Market, payouts: List[Payout], **values: Any) -> None:
    """
    Flip an open market to settled and store its payouts in one transaction.

    The UPDATE only matches while the market is still open, so of two
    concurrent settlements exactly one writes; the other gets
    MarketAlreadySettled.
    """
    result = await db.execute(
        update(Market)
        .where(
            Market.market_id == market.market_id,
            Market.status.not_in(SETTLED_STATUSES),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise MarketAlreadySettled(f"Market {market.market_id} was settled concurrently")

    db.add_all(payouts)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise MarketAlreadySettled(f"Market {market.market_id} already has payouts")

    await db.refresh(market)


def _refund_payouts(market: Market, bets: List[Bet]) -> List[Payout]:
    return [
        Payout(
            market_id=market.market_id,
            participant=bet.participant,
            reward=Decimal(0),
            refund=Decimal(str(bet.stake)),
            claimed=False,
        )
        for bet in bets
    ]


async def cancel_market(db: AsyncSession, market_id: str) -> ResolutionOutcome:
    """
    Cancel a market and refund every stake.

    Args:
        db: Database session
        market_id: Market contract address

    Returns:
        Cancellation outcome

    Raises:
        MarketNotFound: If the market does not exist
        MarketAlreadySettled: If the market is resolved or cancelled
    """
    market = await _load_open_market(db, market_id)
    bets = await _load_bets(db, market.market_id)

    payouts = _refund_payouts(market, bets)
    await _settle(
        db,
        market,
        payouts,
        status=int(MarketStatus.CANCELLED),
        resolved_at=now_utc(),
    )
    logger.info(f"Cancelled {market.market_id}: refunded {len(payouts)} bets")

    return ResolutionOutcome(
        market_id=market.market_id,
        status=MarketStatus.CANCELLED,
        pool=Decimal(0),
        fee=Decimal(0),
        payouts=payouts,
    )


async def resolve_market(
    db: AsyncSession,
    market_id: str,
    actual_value: Any,
    now: Optional[int] = None
) -> ResolutionOutcome:
    """
    Resolve a market once its bets are frozen.

    Markets below settings.min_participants are cancelled and refunded
    instead. Otherwise the post-fee pool is allocated by accuracy and one
    payout per bet is stored.

    Args:
        db: Database session
        market_id: Market contract address
        actual_value: Outcome the market resolves to
        now: Unix timestamp used for the freeze check (defaults to now)

    Returns:
        Resolution outcome

    Raises:
        MarketNotFound: If the market does not exist
        MarketAlreadySettled: If the market is resolved or cancelled
        BettingStillOpen: If betting has not closed yet
        InvalidInput: If bets or the outcome are not valid numbers
    """
    market = await _load_open_market(db, market_id)
    if not is_betting_closed(market, now):
        raise BettingStillOpen(f"Betting for {market.market_id} is still open")

    actual = to_decimal(actual_value, "actual_value")
    bets = await _load_bets(db, market.market_id)

    if len(bets) < settings.min_participants:
        logger.info(
            f"{market.market_id} has {len(bets)} bets "
            f"(minimum {settings.min_participants}); cancelling"
        )
        return await cancel_market(db, market.market_id)

    with localcontext(exact_context()):
        total_stake = sum((Decimal(str(bet.stake)) for bet in bets), Decimal(0))
        fee = compute_fee(total_stake)
        pool = total_stake - fee

    allocations = allocate_rewards(bets, actual, pool)

    payouts = [
        Payout(
            market_id=market.market_id,
            participant=allocation.participant,
            distance=allocation.distance,
            accuracy=allocation.accuracy,
            reward=allocation.reward,
            refund=Decimal(0),
            claimed=False,
        )
        for allocation in allocations
    ]

    inputs_hash = compute_inputs_hash({
        "market_id": market.market_id,
        "actual_value": str(actual),
        "pool": str(pool),
        "bets": [(bet.participant, str(bet.stake), str(bet.predicted_value)) for bet in bets],
    })
    await _settle(
        db,
        market,
        payouts,
        status=int(MarketStatus.RESOLVED),
        final_value=actual,
        resolved_at=now_utc(),
        inputs_hash=inputs_hash,
    )
    logger.info(
        f"Resolved {market.market_id} at {actual}: pool={pool} fee={fee} "
        f"across {len(payouts)} bets"
    )

    return ResolutionOutcome(
        market_id=market.market_id,
        status=MarketStatus.RESOLVED,
        pool=pool,
        fee=fee,
        allocations=allocations,
        payouts=payouts,
    )


async def get_payouts(db: AsyncSession, market_id: str) -> List[Payout]:
    """
    Get persisted payouts for a market, largest reward first.

    Args:
        db: Database session
        market_id: Market contract address

    Returns:
        List of payouts
    """
    query = select(Payout).where(
        Payout.market_id == market_id.lower()
    ).order_by(Payout.reward.desc(), Payout.id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def export_payouts_json(db: AsyncSession, market_id: str) -> Dict[str, Any]:
    """
    Export payouts as JSON-serializable dictionary.

    Args:
        db: Database session
        market_id: Market contract address

    Returns:
        Dictionary with payouts list and totals. Amounts are given in
        token units and as integer wei strings for the on-chain payout step.
    """
    payouts = await get_payouts(db, market_id)

    with localcontext(exact_context()):
        total_reward = sum((Decimal(str(p.reward)) for p in payouts), Decimal(0))
        total_refund = sum((Decimal(str(p.refund)) for p in payouts), Decimal(0))

    return {
        "market_id": market_id.lower(),
        "payouts": [
            {
                "participant": p.participant,
                "reward": str(p.reward),
                "refund": str(p.refund),
                "reward_wei": str(to_wei(p.reward)),
                "refund_wei": str(to_wei(p.refund)),
                "claimed": bool(p.claimed),
            }
            for p in payouts
        ],
        "total_reward": str(total_reward),
        "total_refund": str(total_refund),
    }
