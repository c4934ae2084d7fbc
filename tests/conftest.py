"""
Pytest configuration and shared fixtures for RANGEMARKET tests.
"""

import asyncio
import os
from decimal import Decimal

# Point the package at SQLite before anything imports rangemarket.config
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("API_SECRET", "test-secret")

import pytest
from sqlalchemy.pool import NullPool

from rangemarket.db import init_db, make_engine, make_session_factory
from rangemarket.models import Bet, Market, MarketStatus
from rangemarket.services.allocation import BetInput

MARKET_ID = "0x00000000000000000000000000000000000abc01"


@pytest.fixture
def walkthrough_bets():
    """Four equal stakes, the market resolves at 850 with a pool of 400."""
    return [
        BetInput("alice", Decimal("100"), Decimal("820"), 1000),
        BetInput("bob", Decimal("100"), Decimal("850"), 1001),
        BetInput("charlie", Decimal("100"), Decimal("880"), 1002),
        BetInput("diana", Decimal("100"), Decimal("830"), 1003),
    ]


@pytest.fixture
def db_url(tmp_path):
    """File-backed SQLite URL, unique per test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'rangemarket.db'}"


@pytest.fixture
def session_factory(db_url):
    """Session factory bound to a fresh temporary database."""
    engine = make_engine(db_url, poolclass=NullPool)
    asyncio.run(init_db(engine))
    factory = make_session_factory(engine)
    yield factory
    asyncio.run(engine.dispose())


@pytest.fixture
def run_db(session_factory):
    """
    Run an async callable with its own session and return its result.

    Usage:
        stats = run_db(lambda db: import_bets(db, MARKET_ID, records))
    """
    def runner(fn):
        async def _run():
            async with session_factory() as session:
                return await fn(session)
        return asyncio.run(_run())
    return runner


def make_market(market_id=MARKET_ID, **overrides):
    """Build a closed, active market spanning [300, 900]."""
    values = dict(
        market_id=market_id,
        name="Credit score",
        parameter="SCORE",
        start_time=1_700_000_000,
        end_time=1_700_600_000,
        min_value=Decimal("300"),
        max_value=Decimal("900"),
        status=int(MarketStatus.ACTIVE),
        total_volume=Decimal("0"),
        total_participants=0,
    )
    values.update(overrides)
    return Market(**values)


def make_bets(market_id=MARKET_ID, predictions=(820, 850, 880, 830), stake="100"):
    """One bet per prediction, with increasing timestamps."""
    return [
        Bet(
            market_id=market_id,
            participant=f"0x{index:040x}",
            stake=Decimal(stake),
            predicted_value=Decimal(str(value)),
            timestamp=1_700_000_100 + index,
        )
        for index, value in enumerate(predictions)
    ]


@pytest.fixture
def seeded_market(run_db):
    """Persist a closed market with the four walkthrough predictions."""
    async def seed(db):
        bets = make_bets()
        db.add(make_market(total_volume=Decimal("400"), total_participants=len(bets)))
        db.add_all(bets)
        await db.commit()
        return MARKET_ID

    return run_db(seed)


@pytest.fixture
def market_factory():
    return make_market


@pytest.fixture
def bet_factory():
    return make_bets
