"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Accuracy-weighted reward allocation for resolved range markets.

    distance(i) = |predicted(i) - actual|
    accuracy(i) = 1 / (distance(i) + 1)
    reward(i)   = accuracy(i) / sum(accuracy) * pool

Shares are computed with exact rationals. Each reward is floored to the
currency quantum and the leftover (pool - sum of floored rewards) goes to a
single bet: the largest raw reward, then the earliest timestamp, then the
earliest position in the input. The distributed total always equals the pool.

Stake does not enter the formula. It is only validated.
"""

import logging
import math
from dataclasses import dataclass
from decimal import (
    Context,
    Decimal,
    Inexact,
    InvalidOperation,
    MAX_EMAX,
    MAX_PREC,
    MIN_EMIN,
    localcontext,
)
from fractions import Fraction
from typing import Any, Iterable, List, Optional, Sequence

from rangemarket.config import settings

logger = logging.getLogger(__name__)

# Significant digits used when rendering exact shares as Decimal
DISPLAY_PRECISION = 60

# Accepted inputs: |value| < 1e38 with at most 38 decimal places
MAX_MAGNITUDE_DIGITS = 38


class InvalidInput(ValueError):
    """Negative pool or stake, or a non-finite / non-numeric value."""


@dataclass(frozen=True)
class BetInput:
    """A single frozen bet, as handed over by the betting layer."""

    participant: str
    stake: Decimal
    predicted_value: Decimal
    timestamp: Optional[int] = None


@dataclass(frozen=True)
class Allocation:
    """Per-bet result of a resolution."""

    participant: str
    distance: Decimal
    accuracy: Decimal
    raw_reward: Decimal
    reward: Decimal


def exact_context() -> Context:
    """Decimal context in which add, subtract and multiply never round."""
    # Anything inexact raises instead of silently losing value
    ctx = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)
    ctx.traps[Inexact] = True
    return ctx


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Convert a numeric input to a finite Decimal.

    Accepts int, float, Decimal and numeric strings. Booleans, None and
    anything else are rejected.

    Args:
        value: Raw value
        field: Field name used in the error message

    Returns:
        Finite Decimal

    Raises:
        InvalidInput: If the value is not a finite number or is out of range
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} must be numeric, got {value!r}")

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        # repr keeps the shortest round-tripping form (0.1 -> "0.1")
        number = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidInput(f"{field} must be numeric, got {value!r}")
    else:
        raise InvalidInput(f"{field} must be numeric, got {type(value).__name__}")

    if not number.is_finite():
        raise InvalidInput(f"{field} must be finite, got {value!r}")

    if (
        number.adjusted() >= MAX_MAGNITUDE_DIGITS
        or number.as_tuple().exponent < -MAX_MAGNITUDE_DIGITS
    ):
        raise InvalidInput(
            f"{field} must be below 1e{MAX_MAGNITUDE_DIGITS} with at most "
            f"{MAX_MAGNITUDE_DIGITS} decimal places, got {number:.6e}"
        )

    return number


def _render(value: Fraction) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = DISPLAY_PRECISION
        return Decimal(value.numerator) / Decimal(value.denominator)


def _resolve_quantum(quantum: Any) -> Decimal:
    if quantum is None:
        quantum = settings.reward_quantum
    step = to_decimal(quantum, "quantum")
    if step <= 0:
        raise InvalidInput(f"quantum must be > 0, got {step}")
    return step


def floor_to_quantum(value: Any, quantum: Any = None) -> Decimal:
    """
    Round a non-negative amount down to a whole number of quanta.

    Args:
        value: Amount (Fraction, Decimal, int, float or numeric string)
        quantum: Smallest currency unit (defaults to settings.reward_quantum)

    Returns:
        Floored Decimal amount
    """
    step = _resolve_quantum(quantum)
    exact = value if isinstance(value, Fraction) else Fraction(to_decimal(value, "value"))
    units = math.floor(exact / Fraction(step))

    with localcontext(exact_context()):
        return Decimal(units) * step


def compute_distance(predicted_value: Any, actual_value: Any) -> Decimal:
    """
    Absolute distance between a prediction and the outcome.

    Args:
        predicted_value: Participant's forecast
        actual_value: Resolved outcome

    Returns:
        |predicted_value - actual_value|
    """
    predicted = to_decimal(predicted_value, "predicted_value")
    actual = to_decimal(actual_value, "actual_value")

    with localcontext(exact_context()):
        return abs(predicted - actual)


def compute_accuracy(distance: Any) -> Decimal:
    """
    Accuracy score 1 / (distance + 1), in (0, 1].

    Args:
        distance: Non-negative distance

    Returns:
        Accuracy as Decimal (exactly 1 for a perfect match)
    """
    d = to_decimal(distance, "distance")
    if d < 0:
        raise InvalidInput(f"distance must be >= 0, got {d}")

    return _render(1 / (Fraction(d) + 1))


def _residual_recipient(raw_rewards: Sequence[Fraction], timestamps: Sequence[Optional[int]]) -> int:
    """Index of the bet that absorbs the rounding residual."""

    def rank(index: int):
        timestamp = timestamps[index]
        return (
            -raw_rewards[index],
            timestamp is None,
            timestamp if timestamp is not None else 0,
            index,
        )

    return min(range(len(raw_rewards)), key=rank)


def allocate_rewards(
    bets: Iterable[Any],
    actual_value: Any,
    pool: Any,
    quantum: Any = None,
) -> List[Allocation]:
    """
    Distribute a resolved market's pool by prediction accuracy.

    Bets may be any objects exposing ``participant``, ``stake`` and
    ``predicted_value`` (and optionally ``timestamp``): BetInput, ORM rows
    and request schemas all qualify.

    Args:
        bets: Frozen bet set of the market
        actual_value: Value the market resolved to
        pool: Post-fee amount to distribute (>= 0)
        quantum: Smallest currency unit (defaults to settings.reward_quantum)

    Returns:
        One Allocation per bet, in input order. Empty for an empty bet set.

    Raises:
        InvalidInput: Negative pool or stake, or non-finite values
    """
    actual = to_decimal(actual_value, "actual_value")
    pool_amount = to_decimal(pool, "pool")
    if pool_amount < 0:
        raise InvalidInput(f"pool must be >= 0, got {pool_amount}")
    step = _resolve_quantum(quantum)

    # Validate everything before computing anything
    participants: List[str] = []
    predictions: List[Decimal] = []
    timestamps: List[Optional[int]] = []
    for bet in bets:
        participant = getattr(bet, "participant", None)
        stake = to_decimal(getattr(bet, "stake", None), f"stake of {participant}")
        if stake < 0:
            raise InvalidInput(f"stake of {participant} must be >= 0, got {stake}")
        predictions.append(
            to_decimal(getattr(bet, "predicted_value", None), f"predicted_value of {participant}")
        )
        participants.append(participant)
        timestamps.append(getattr(bet, "timestamp", None))

    if not participants:
        return []

    distances = [compute_distance(p, actual) for p in predictions]
    accuracies = [1 / (Fraction(d) + 1) for d in distances]
    total_accuracy = sum(accuracies, Fraction(0))

    pool_exact = Fraction(pool_amount)
    raw_rewards = [acc / total_accuracy * pool_exact for acc in accuracies]
    rewards = [floor_to_quantum(raw, step) for raw in raw_rewards]

    recipient = _residual_recipient(raw_rewards, timestamps)
    with localcontext(exact_context()):
        residual = pool_amount - sum(rewards, Decimal(0))
        rewards[recipient] += residual

    logger.debug(
        f"Allocated pool={pool_amount} across {len(rewards)} bets; "
        f"residual {residual} to {participants[recipient]}"
    )

    return [
        Allocation(
            participant=participants[i],
            distance=distances[i],
            accuracy=_render(accuracies[i]),
            raw_reward=_render(raw_rewards[i]),
            reward=rewards[i],
        )
        for i in range(len(participants))
    ]
