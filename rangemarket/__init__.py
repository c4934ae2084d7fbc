from .services.allocation import (
    Allocation,
    BetInput,
    InvalidInput,
    allocate_rewards,
    compute_accuracy,
    compute_distance,
)

__version__ = "0.1.0"

__all__ = [
    "Allocation",
    "BetInput",
    "InvalidInput",
    "allocate_rewards",
    "compute_accuracy",
    "compute_distance",
]
