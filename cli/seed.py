"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Seed the demo market from the rewards walkthrough.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession

from rangemarket.db import init_db, make_engine, make_session_factory
from rangemarket.models import Bet, Market, MarketStatus

DEMO_MARKET_ID = "0x000000000000000000000000000000000000d3e0"

# Predictions from the walkthrough: the market resolves at 850
DEMO_BETS = [
    ("0x00000000000000000000000000000000000a11ce", Decimal("820")),
    ("0x0000000000000000000000000000000000000b0b", Decimal("850")),
    ("0x00000000000000000000000000000000c4a411e0", Decimal("880")),
    ("0x00000000000000000000000000000000000d1a4a", Decimal("830")),
]


async def seed_data(db: AsyncSession) -> None:
    """
    Seed the demo market and its four equal bets.

    Args:
        db: Database session
    """
    now = datetime.now(timezone.utc)
    start = now - timedelta(days=10)
    end = start + timedelta(days=7)

    market = Market(
        market_id=DEMO_MARKET_ID,
        name="Demo: Credit score",
        description="Predict the score. Four players, 100 tokens each.",
        parameter="SCORE",
        category="demo",
        start_time=int(start.timestamp()),
        end_time=int(end.timestamp()),
        min_value=Decimal("300"),
        max_value=Decimal("900"),
        step=Decimal("10"),
        initial_value=Decimal("600"),
        status=int(MarketStatus.ACTIVE),
        total_volume=Decimal("400"),
        total_participants=len(DEMO_BETS),
    )
    db.add(market)

    for offset, (participant, predicted_value) in enumerate(DEMO_BETS):
        db.add(Bet(
            market_id=DEMO_MARKET_ID,
            participant=participant,
            stake=Decimal("100"),
            predicted_value=predicted_value,
            timestamp=int(start.timestamp()) + offset * 60,
        ))

    await db.commit()
    print(f"✓ Seeded demo market {DEMO_MARKET_ID} with {len(DEMO_BETS)} bets")


async def main() -> None:
    """Main entry point."""
    engine = make_engine()
    async_session = make_session_factory(engine)

    await init_db(engine)
    async with async_session() as session:
        await seed_data(session)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
