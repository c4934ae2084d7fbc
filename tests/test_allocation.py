"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Unit tests for accuracy-weighted reward allocation.
"""

import random
from decimal import Decimal
from fractions import Fraction

import pytest

from rangemarket.services.allocation import (
    BetInput,
    InvalidInput,
    allocate_rewards,
    compute_accuracy,
    compute_distance,
    floor_to_quantum,
    to_decimal,
)


def _by_participant(allocations):
    return {a.participant: a for a in allocations}


def test_walkthrough_rewards(walkthrough_bets):
    """Market resolves at 850, pool of 400, rewards floored to 0.01."""
    allocations = _by_participant(allocate_rewards(walkthrough_bets, 850, 400, quantum="0.01"))

    assert allocations["alice"].distance == Decimal("30")
    assert allocations["bob"].distance == Decimal("0")
    assert allocations["charlie"].distance == Decimal("30")
    assert allocations["diana"].distance == Decimal("20")

    # Perfect match scores exactly 1
    assert allocations["bob"].accuracy == Decimal(1)
    assert allocations["alice"].accuracy == pytest.approx(Decimal(1) / 31)
    assert allocations["diana"].accuracy == pytest.approx(Decimal(1) / 21)

    assert allocations["alice"].raw_reward == pytest.approx(Decimal("11.6022"), abs=Decimal("0.0001"))
    assert allocations["bob"].raw_reward == pytest.approx(Decimal("359.6685"), abs=Decimal("0.0001"))
    assert allocations["diana"].raw_reward == pytest.approx(Decimal("17.1271"), abs=Decimal("0.0001"))

    # Floored: 11.60 + 359.66 + 11.60 + 17.12 = 399.98; Bob absorbs 0.02
    assert allocations["alice"].reward == Decimal("11.60")
    assert allocations["bob"].reward == Decimal("359.68")
    assert allocations["charlie"].reward == Decimal("11.60")
    assert allocations["diana"].reward == Decimal("17.12")


def test_walkthrough_total_accuracy(walkthrough_bets):
    """Sum of accuracies is 1 + 2/31 + 1/21 = 724/651."""
    allocations = allocate_rewards(walkthrough_bets, 850, 400)
    total = sum(Fraction(a.accuracy) for a in allocations)
    assert float(total) == pytest.approx(724 / 651)


def test_conservation_exact(walkthrough_bets):
    """Distributed total equals the pool to the last unit."""
    for pool in ("400", "123.45", "0.07", "1000000.01", "3"):
        allocations = allocate_rewards(walkthrough_bets, 850, pool)
        assert sum(a.reward for a in allocations) == Decimal(pool)


def test_conservation_with_sub_quantum_pool():
    """Pool precision finer than the quantum still distributes exactly."""
    bets = [BetInput(f"p{i}", Decimal("1"), Decimal(i * 7)) for i in range(5)]
    allocations = allocate_rewards(bets, 10, "123.456789")
    assert sum(a.reward for a in allocations) == Decimal("123.456789")


def test_result_order_matches_input(walkthrough_bets):
    """One allocation per bet, in input order."""
    allocations = allocate_rewards(walkthrough_bets, 850, 400)
    assert [a.participant for a in allocations] == ["alice", "bob", "charlie", "diana"]


def test_equal_distance_equal_raw_reward(walkthrough_bets):
    """Symmetric predictions earn the same share."""
    allocations = _by_participant(allocate_rewards(walkthrough_bets, 850, 400))
    assert allocations["alice"].raw_reward == allocations["charlie"].raw_reward


def test_stake_does_not_change_share():
    """Share depends on accuracy only, never on stake."""
    bets = [
        BetInput("whale", Decimal("1000000"), Decimal("100")),
        BetInput("minnow", Decimal("1"), Decimal("100")),
    ]
    allocations = _by_participant(allocate_rewards(bets, 100, 10))
    assert allocations["whale"].raw_reward == allocations["minnow"].raw_reward
    assert allocations["whale"].reward == Decimal("5.00")
    assert allocations["minnow"].reward == Decimal("5.00")


def test_closer_never_earns_less():
    """Reward is non-increasing in distance, after rounding too."""
    rng = random.Random(7)
    bets = [
        BetInput(f"p{i}", Decimal(rng.randint(0, 50)), Decimal(rng.randint(0, 1000)))
        for i in range(25)
    ]
    allocations = allocate_rewards(bets, 500, "987.65")

    for a in allocations:
        for b in allocations:
            if a.distance < b.distance:
                assert a.reward >= b.reward
                assert a.raw_reward > b.raw_reward


def test_scale_invariance(walkthrough_bets):
    """Doubling the pool doubles every raw reward."""
    base = allocate_rewards(walkthrough_bets, 850, 400)
    doubled = allocate_rewards(walkthrough_bets, 850, 800)

    for one, two in zip(base, doubled):
        assert two.raw_reward == pytest.approx(one.raw_reward * 2)


def test_single_bet_takes_pool():
    """A lone bet receives the whole pool however far off it was."""
    allocations = allocate_rewards([BetInput("solo", Decimal("5"), Decimal("1"))], 1000, "42.42")
    assert len(allocations) == 1
    assert allocations[0].reward == Decimal("42.42")


def test_no_bets():
    """Empty bet set allocates nothing."""
    assert allocate_rewards([], 850, 400) == []


def test_zero_pool(walkthrough_bets):
    """Zero pool gives every bet zero."""
    allocations = allocate_rewards(walkthrough_bets, 850, 0)
    assert all(a.reward == 0 for a in allocations)


def test_zero_stake_allowed():
    """Zero stakes are valid and still share the pool."""
    bets = [
        BetInput("a", Decimal("0"), Decimal("10")),
        BetInput("b", Decimal("0"), Decimal("10")),
    ]
    allocations = allocate_rewards(bets, 10, 2, quantum=1)
    assert [a.reward for a in allocations] == [Decimal("1"), Decimal("1")]


def test_residual_goes_to_earliest_timestamp():
    """Among equal raw rewards the earliest bet takes the residual."""
    bets = [
        BetInput("late", Decimal("1"), Decimal("5"), 300),
        BetInput("early", Decimal("1"), Decimal("5"), 100),
        BetInput("middle", Decimal("1"), Decimal("5"), 200),
    ]
    allocations = _by_participant(allocate_rewards(bets, 5, 100))

    assert allocations["early"].reward == Decimal("33.34")
    assert allocations["late"].reward == Decimal("33.33")
    assert allocations["middle"].reward == Decimal("33.33")


def test_residual_missing_timestamp_ranks_last():
    """Bets without a timestamp lose the tie to timestamped ones."""
    bets = [
        BetInput("unknown", Decimal("1"), Decimal("5")),
        BetInput("stamped", Decimal("1"), Decimal("5"), 500),
        BetInput("other", Decimal("1"), Decimal("5")),
    ]
    allocations = _by_participant(allocate_rewards(bets, 5, 100))
    assert allocations["stamped"].reward == Decimal("33.34")


def test_residual_falls_back_to_input_order():
    """Without timestamps the first bet in input order wins the tie."""
    bets = [BetInput(name, Decimal("1"), Decimal("5")) for name in ("first", "second", "third")]
    allocations = allocate_rewards(bets, 5, 1, quantum=1)

    assert [a.reward for a in allocations] == [Decimal("1"), Decimal("0"), Decimal("0")]


def test_residual_prefers_largest_raw_reward():
    """The most accurate bet absorbs the residual even if it came last."""
    bets = [
        BetInput("far", Decimal("1"), Decimal("0"), 1),
        BetInput("near", Decimal("1"), Decimal("9"), 2),
    ]
    allocations = _by_participant(allocate_rewards(bets, 10, 1, quantum=1))
    assert allocations["near"].reward == Decimal("1")
    assert allocations["far"].reward == Decimal("0")


def test_accepts_plain_numbers_and_strings():
    """int, float and numeric strings are all accepted."""
    bets = [
        BetInput("a", 1, 0.1),
        BetInput("b", "2.5", "0.3"),
    ]
    allocations = allocate_rewards(bets, "0.2", 10.0)
    assert sum(a.reward for a in allocations) == Decimal("10")
    assert allocations[0].distance == Decimal("0.1")


def test_accepts_duck_typed_bets():
    """Any object with participant / stake / predicted_value works."""
    class Row:
        def __init__(self, participant, stake, predicted_value):
            self.participant = participant
            self.stake = stake
            self.predicted_value = predicted_value

    allocations = allocate_rewards([Row("x", Decimal("1"), Decimal("3"))], 3, 7)
    assert allocations[0].reward == Decimal("7.00")


def test_negative_pool_rejected(walkthrough_bets):
    with pytest.raises(InvalidInput):
        allocate_rewards(walkthrough_bets, 850, -1)


def test_negative_stake_rejected():
    bets = [
        BetInput("ok", Decimal("1"), Decimal("1")),
        BetInput("bad", Decimal("-1"), Decimal("1")),
    ]
    with pytest.raises(InvalidInput, match="stake of bad"):
        allocate_rewards(bets, 1, 10)


@pytest.mark.parametrize("value", [
    Decimal("NaN"),
    Decimal("Infinity"),
    float("nan"),
    float("-inf"),
    "abc",
    None,
    True,
    [1],
])
def test_non_finite_or_non_numeric_prediction_rejected(value):
    """Bad predictions fail the whole call."""
    bets = [BetInput("p", Decimal("1"), value)]
    with pytest.raises(InvalidInput):
        allocate_rewards(bets, 1, 10)


def test_non_finite_actual_rejected(walkthrough_bets):
    with pytest.raises(InvalidInput):
        allocate_rewards(walkthrough_bets, float("inf"), 400)


@pytest.mark.parametrize("value", ["1e3000000", "-1e3000000", "1e-3000000", "1e38", "1e-39"])
def test_out_of_range_actual_rejected(walkthrough_bets, value):
    with pytest.raises(InvalidInput, match="actual_value"):
        allocate_rewards(walkthrough_bets, Decimal(value), 400)


def test_out_of_range_pool_rejected(walkthrough_bets):
    with pytest.raises(InvalidInput, match="pool"):
        allocate_rewards(walkthrough_bets, 850, Decimal("1e3000000"))


def test_to_decimal_range_edges():
    assert to_decimal("9.99e37", "x") == Decimal("9.99e37")
    assert to_decimal("1e-38", "x") == Decimal("1e-38")
    with pytest.raises(InvalidInput):
        to_decimal("1e38", "x")
    with pytest.raises(InvalidInput):
        to_decimal("1e-39", "x")


def test_invalid_quantum_rejected(walkthrough_bets):
    with pytest.raises(InvalidInput):
        allocate_rewards(walkthrough_bets, 850, 400, quantum=0)


def test_invalid_input_is_value_error():
    """Callers catching ValueError also catch InvalidInput."""
    assert issubclass(InvalidInput, ValueError)


def test_to_decimal_float_uses_shortest_repr():
    assert to_decimal(0.1, "x") == Decimal("0.1")
    assert to_decimal(" 42 ", "x") == Decimal("42")


def test_floor_to_quantum():
    assert floor_to_quantum(Decimal("11.6099"), "0.01") == Decimal("11.60")
    assert floor_to_quantum(Fraction(2, 3), "0.01") == Decimal("0.66")
    assert floor_to_quantum(Decimal("5"), "1") == Decimal("5")
    assert floor_to_quantum(Decimal("0.004"), "0.01") == Decimal("0")


def test_compute_distance():
    assert compute_distance(820, 850) == Decimal("30")
    assert compute_distance("-1.5", "1.5") == Decimal("3.0")


def test_compute_accuracy():
    assert compute_accuracy(0) == Decimal(1)
    assert compute_accuracy(1) == Decimal("0.5")
    assert Decimal(0) < compute_accuracy(10 ** 30) < Decimal(1)

    with pytest.raises(InvalidInput):
        compute_accuracy(-1)
