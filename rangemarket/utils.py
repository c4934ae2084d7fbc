"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Utility functions: xxhash fingerprints, time helpers, wei conversion.
"""

import logging
import xxhash
from datetime import datetime, timezone
from decimal import Context, Decimal
from typing import Any, Dict, Optional, Union

from rangemarket.config import settings

# Enough digits for any uint256 amount
_WIDE = Context(prec=80)


def compute_inputs_hash(data: Dict[str, Any]) -> str:
    """
    Compute xxhash fingerprint of resolution inputs.

    Args:
        data: Dictionary containing the resolution inputs

    Returns:
        Hex-encoded xxhash hash
    """
    # Sort keys for deterministic hashing
    sorted_data = sorted(data.items())
    data_str = str(sorted_data)

    # Compute xxhash
    hash_obj = xxhash.xxh64()
    hash_obj.update(data_str.encode("utf-8"))

    return hash_obj.hexdigest()


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_ts() -> int:
    """Get current unix timestamp (seconds)."""
    return int(now_utc().timestamp())


def from_wei(amount: Union[int, str], decimals: Optional[int] = None) -> Decimal:
    """
    Convert an integer base-unit amount (wei) to token units.

    Args:
        amount: Amount in base units
        decimals: Token decimals (defaults to settings.token_decimals)

    Returns:
        Exact Decimal amount in token units
    """
    decimals = settings.token_decimals if decimals is None else decimals
    return Decimal(int(amount)).scaleb(-decimals, context=_WIDE)


def to_wei(amount: Union[Decimal, int, str], decimals: Optional[int] = None) -> int:
    """
    Convert a token amount to integer base units (wei).

    Args:
        amount: Amount in token units
        decimals: Token decimals (defaults to settings.token_decimals)

    Returns:
        Amount in base units

    Raises:
        ValueError: If the amount has more precision than the token allows
    """
    decimals = settings.token_decimals if decimals is None else decimals
    scaled = Decimal(str(amount)).scaleb(decimals, context=_WIDE)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{amount} has more than {decimals} decimal places")
    return int(scaled)


def format_time_left(end_time: int, now: Optional[int] = None) -> str:
    """
    Human-readable countdown to a market's end time.

    Args:
        end_time: Unix timestamp (seconds)
        now: Reference timestamp (defaults to current time)

    Returns:
        "Ended", "2d 3h 4m", "3h 4m 5s" or "4m 5s"
    """
    now = now_ts() if now is None else now
    diff = end_time - now
    if diff <= 0:
        return "Ended"

    days, rest = divmod(diff, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)

    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    return f"{minutes}m {seconds}s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for a process entry point.

    Args:
        level: Level name (defaults to settings.log_level)
    """
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
