"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Market registry, status filters and prediction checks.
"""

from collections import Counter
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from rangemarket.models import Bet, Market, MarketStatus
from rangemarket.utils import now_ts


STATUS_LABELS = {
    MarketStatus.PENDING: "Pending",
    MarketStatus.ACTIVE: "Active",
    MarketStatus.RESOLVED: "Resolved",
    MarketStatus.CANCELLED: "Cancelled",
}

CATEGORIES = {
    "all": None,
    "pending": MarketStatus.PENDING,
    "active": MarketStatus.ACTIVE,
    "resolved": MarketStatus.RESOLVED,
    "cancelled": MarketStatus.CANCELLED,
}


def status_label(status: Optional[int]) -> str:
    """
    Display label for a status code. Unknown codes read as Pending.

    Args:
        status: Numeric market status

    Returns:
        Status label
    """
    try:
        return STATUS_LABELS[MarketStatus(status)]
    except (ValueError, TypeError):
        return STATUS_LABELS[MarketStatus.PENDING]


def category_status(category: Optional[str]) -> Optional[MarketStatus]:
    """
    Status a market category selects, None for "all".

    Args:
        category: all, pending, active, resolved or cancelled (any case)

    Returns:
        MarketStatus, or None when every status matches

    Raises:
        ValueError: If category is unknown
    """
    key = (category or "all").lower()
    if key not in CATEGORIES:
        raise ValueError(f"Unknown category: {category}")
    return CATEGORIES[key]


def is_betting_closed(market: Market, now: Optional[int] = None) -> bool:
    """
    Check if betting has closed (at/after end_time).

    Args:
        market: Market
        now: Unix timestamp to check against (defaults to now)

    Returns:
        True if closed, False otherwise
    """
    now = now_ts() if now is None else now
    return now >= market.end_time


def validate_prediction(market: Market, value: Decimal) -> Decimal:
    """
    Check a prediction lies inside the market's value range.

    Args:
        market: Market
        value: Predicted value

    Returns:
        The value, unchanged

    Raises:
        ValueError: If value is outside [min_value, max_value]
    """
    value = Decimal(str(value))
    if value < market.min_value or value > market.max_value:
        raise ValueError(
            f"Prediction value must be between {market.min_value} and {market.max_value}"
        )
    return value


def prediction_distribution(bets: Iterable[Any]) -> List[Tuple[Decimal, int]]:
    """
    Count bets per predicted value.

    Args:
        bets: Bets (anything with predicted_value)

    Returns:
        (value, count) pairs sorted by value
    """
    counts = Counter(Decimal(str(bet.predicted_value)).normalize() for bet in bets)
    return sorted(counts.items())


async def get_market(db: AsyncSession, market_id: str) -> Optional[Market]:
    """
    Get market by ID.

    Args:
        db: Database session
        market_id: Market contract address

    Returns:
        Market or None
    """
    return await db.get(Market, market_id.lower())


async def list_markets(
    db: AsyncSession,
    category: str = "all",
    limit: int = 100,
    offset: int = 0
) -> List[Market]:
    """
    List markets in a status category.

    Args:
        db: Database session
        category: all, pending, active, resolved or cancelled
        limit: Maximum number of markets to return
        offset: Number of markets to skip

    Returns:
        List of markets, most recently started first

    Raises:
        ValueError: If category is unknown
    """
    wanted = category_status(category)

    query = select(Market)
    if wanted is not None:
        query = query.where(Market.status == int(wanted))
    query = query.order_by(Market.start_time.desc()).limit(limit).offset(offset)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_prediction_distribution(db: AsyncSession, market_id: str) -> List[Tuple[Decimal, int]]:
    """
    Count a market's bets per predicted value.

    Args:
        db: Database session
        market_id: Market contract address

    Returns:
        (value, count) pairs sorted by value
    """
    result = await db.execute(select(Bet).where(Bet.market_id == market_id.lower()))
    return prediction_distribution(result.scalars().all())
