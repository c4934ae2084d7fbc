"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Resolve a market with its actual value.
"""

import asyncio
import argparse
import sys

from rangemarket.db import make_engine, make_session_factory
from rangemarket.models import MarketStatus
from rangemarket.services.allocation import InvalidInput
from rangemarket.services.resolution import ResolutionError, cancel_market, resolve_market
from rangemarket.utils import configure_logging


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Resolve or cancel a range market")
    parser.add_argument("--market", required=True, help="Market contract address")
    parser.add_argument("--actual", help="Actual value the market resolves to")
    parser.add_argument("--cancel", action="store_true", help="Cancel and refund instead of resolving")

    args = parser.parse_args()
    if not args.cancel and args.actual is None:
        parser.error("--actual is required unless --cancel is given")

    configure_logging()

    engine = make_engine()
    async_session = make_session_factory(engine)

    try:
        async with async_session() as session:
            if args.cancel:
                outcome = await cancel_market(session, args.market)
            else:
                outcome = await resolve_market(session, args.market, args.actual)
    except (ResolutionError, InvalidInput) as exc:
        print(f"✗ {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        await engine.dispose()

    if outcome.status == MarketStatus.CANCELLED:
        print(f"✓ Cancelled {outcome.market_id}: {len(outcome.payouts)} refunds")
        return

    print(f"✓ Resolved {outcome.market_id} at {args.actual}")
    print(f"  Pool: {outcome.pool} (fee {outcome.fee})")
    for allocation in outcome.allocations:
        print(
            f"  {allocation.participant}  distance={allocation.distance}  "
            f"accuracy={allocation.accuracy:.6f}  reward={allocation.reward}"
        )


if __name__ == "__main__":
    asyncio.run(main())
