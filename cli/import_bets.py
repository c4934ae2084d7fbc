"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Import a market's exported bets (getAllBets JSON) into the database.
"""

import asyncio
import argparse
import json
import sys
from pathlib import Path

from rangemarket.db import make_engine, make_session_factory
from rangemarket.services.ledger import LedgerError, import_bets
from rangemarket.utils import configure_logging


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Import exported bets")
    parser.add_argument("--market", required=True, help="Market contract address")
    parser.add_argument("--file", required=True, type=Path, help="JSON export of getAllBets")

    args = parser.parse_args()
    configure_logging()

    try:
        with open(args.file, "r") as f:
            records = json.load(f)
    except (OSError, ValueError) as exc:
        print(f"✗ Cannot read {args.file}: {exc}", file=sys.stderr)
        sys.exit(1)

    engine = make_engine()
    async_session = make_session_factory(engine)

    try:
        async with async_session() as session:
            stats = await import_bets(session, args.market, records)
    except LedgerError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        await engine.dispose()

    print("✓ Import complete")
    print(f"  Imported: {stats['imported']}")
    print(f"  Duplicates skipped: {stats['duplicates']}")
    print(f"  Rejected: {stats['rejected']}")


if __name__ == "__main__":
    asyncio.run(main())
