"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Export a market's payouts to a JSON file.
"""

import asyncio
import argparse
import json
from pathlib import Path

from rangemarket.db import make_engine, make_session_factory
from rangemarket.services.resolution import export_payouts_json
from rangemarket.utils import configure_logging


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Export payouts to JSON")
    parser.add_argument("--market", required=True, help="Market contract address")

    args = parser.parse_args()
    configure_logging()

    engine = make_engine()
    async_session = make_session_factory(engine)

    async with async_session() as session:
        payouts_data = await export_payouts_json(session, args.market)

    # Create data directory if it doesn't exist
    data_dir = Path("data")
    data_dir.mkdir(exist_ok=True)

    # Write to file
    output_file = data_dir / f"payouts_{payouts_data['market_id']}.json"
    with open(output_file, "w") as f:
        json.dump(payouts_data, f, indent=2)

    print(f"✓ Exported payouts to {output_file}")
    print(f"  Total payouts: {len(payouts_data['payouts'])}")
    print(f"  Reward sum: {payouts_data['total_reward']}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
