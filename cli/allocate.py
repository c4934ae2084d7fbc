"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Offline reward split for an exported bet list (no database).
"""

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path

from rangemarket.schemas import BetSchema
from rangemarket.services.allocation import allocate_rewards
from rangemarket.services.ledger import parse_bet_record
from rangemarket.utils import configure_logging


def load_bets(path: Path, wei: bool) -> list:
    """
    Load bets from a JSON file.

    Args:
        path: JSON list of bets ({user, amount, predictedValue, timestamp})
        wei: Whether amounts are in wei (contract export) or token units

    Returns:
        List of BetSchema
    """
    with open(path, "r") as f:
        records = json.load(f)

    if wei:
        return [BetSchema.model_validate(parse_bet_record(record)) for record in records]
    return [BetSchema.model_validate(record) for record in records]


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Split a pool by prediction accuracy")
    parser.add_argument("--bets", required=True, type=Path, help="JSON file with bets")
    parser.add_argument("--actual", required=True, help="Actual value")
    parser.add_argument("--pool", required=True, help="Pool to distribute (token units)")
    parser.add_argument("--quantum", default=None, help="Smallest currency unit")
    parser.add_argument("--wei", action="store_true", help="Bet amounts are in wei")

    args = parser.parse_args()
    configure_logging()

    try:
        bets = load_bets(args.bets, args.wei)
        allocations = allocate_rewards(bets, args.actual, args.pool, quantum=args.quantum)
    except (OSError, ValueError) as exc:
        # ValueError covers InvalidInput, bad JSON and pydantic ValidationError
        print(f"✗ {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"{'participant':<44} {'distance':>12} {'accuracy':>10} {'reward':>16}")
    for allocation in allocations:
        print(
            f"{allocation.participant:<44} {allocation.distance:>12} "
            f"{allocation.accuracy:>10.6f} {allocation.reward:>16}"
        )
    total = sum((a.reward for a in allocations), Decimal(0))
    print(f"✓ Distributed {total} of {args.pool} across {len(allocations)} bets")


if __name__ == "__main__":
    main()
