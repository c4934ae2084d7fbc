"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Import of exported contract bets, one per participant.
"""

import logging
from decimal import Decimal, localcontext
from typing import Any, Dict, Iterable, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from rangemarket.models import Bet, MarketStatus
from rangemarket.services.allocation import exact_context
from rangemarket.services.markets import get_market, validate_prediction
from rangemarket.utils import from_wei

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Raised when bets cannot be imported into a market."""


def parse_bet_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parse a bet as returned by the contract's getAllBets.

    Args:
        record: Dict with user, amount (wei), predictedValue, timestamp

    Returns:
        Dict with participant, stake (token units), predicted_value, timestamp

    Raises:
        ValueError: If a required field is missing or malformed
    """
    try:
        participant = str(record["user"]).strip().lower()
        stake = from_wei(record["amount"])
        predicted_value = Decimal(str(record["predictedValue"]))
        timestamp = record.get("timestamp")
        if timestamp is not None:
            timestamp = int(timestamp)
    except KeyError as exc:
        raise ValueError(f"Bet record missing field: {exc.args[0]}")
    except (ArithmeticError, AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Malformed bet record: {exc}")

    if not participant:
        raise ValueError("Bet record has an empty user")
    if not predicted_value.is_finite():
        raise ValueError(f"Bet from {participant} has a non-finite prediction")
    if stake < 0:
        raise ValueError(f"Bet from {participant} has a negative amount")

    return {
        "participant": participant,
        "stake": stake,
        "predicted_value": predicted_value,
        "timestamp": timestamp,
    }


async def import_bets(
    db: AsyncSession,
    market_id: str,
    records: Iterable[Dict[str, Any]]
) -> Dict[str, int]:
    """
    Import exported bets into a market's mirror.

    A participant already holding a bet in the market is skipped.

    Args:
        db: Database session
        market_id: Market contract address
        records: Exported bet records

    Returns:
        Dictionary with imported / duplicates / rejected counts

    Raises:
        LedgerError: If the market is unknown or already settled
    """
    market = await get_market(db, market_id)
    if not market:
        raise LedgerError(f"Market not found: {market_id}")
    if market.status in (int(MarketStatus.RESOLVED), int(MarketStatus.CANCELLED)):
        raise LedgerError(f"Market {market.market_id} is settled; bets are frozen")

    existing_result = await db.execute(
        select(Bet.participant).where(Bet.market_id == market.market_id)
    )
    seen = set(existing_result.scalars().all())

    stats = {"imported": 0, "duplicates": 0, "rejected": 0}
    new_bets: List[Bet] = []

    for record in records:
        try:
            parsed = parse_bet_record(record)
            validate_prediction(market, parsed["predicted_value"])
        except ValueError as exc:
            logger.warning(f"Rejected bet for {market.market_id}: {exc}")
            stats["rejected"] += 1
            continue

        if parsed["participant"] in seen:
            logger.debug(f"Duplicate bet from {parsed['participant']} in {market.market_id}")
            stats["duplicates"] += 1
            continue

        seen.add(parsed["participant"])
        new_bets.append(Bet(market_id=market.market_id, **parsed))

    db.add_all(new_bets)

    market.total_participants = (market.total_participants or 0) + len(new_bets)
    with localcontext(exact_context()):
        market.total_volume = Decimal(str(market.total_volume or 0)) + sum(
            (bet.stake for bet in new_bets), Decimal(0)
        )
    stats["imported"] = len(new_bets)

    await db.commit()
    logger.info(
        f"Imported {stats['imported']} bets into {market.market_id} "
        f"({stats['duplicates']} duplicates, {stats['rejected']} rejected)"
    )
    return stats
