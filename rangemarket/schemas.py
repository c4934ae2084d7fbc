"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

Pydantic models for request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from rangemarket.services.allocation import to_decimal


class BetSchema(BaseModel):
    """A frozen bet submitted for allocation."""

    model_config = ConfigDict(populate_by_name=True)

    participant: str = Field(..., alias="user")
    stake: Decimal = Field(..., alias="amount")
    predicted_value: Decimal = Field(..., alias="predictedValue")
    timestamp: Optional[int] = None

    @field_validator("participant")
    @classmethod
    def _normalize_participant(cls, value: str) -> str:
        normalized = (value or "").strip()
        if not normalized:
            raise ValueError("participant cannot be empty")
        return normalized


class AllocationRequest(BaseModel):
    """Allocation preview request."""

    actual_value: Decimal
    pool: Decimal
    bets: List[BetSchema] = Field(default_factory=list)
    quantum: Optional[Decimal] = None


class AllocationItem(BaseModel):
    """Per-bet allocation result."""

    model_config = ConfigDict(from_attributes=True)

    participant: str
    distance: Decimal
    accuracy: Decimal
    raw_reward: Decimal
    reward: Decimal


class AllocationResponse(BaseModel):
    """Allocation preview response."""

    actual_value: Decimal
    pool: Decimal
    total_distributed: Decimal
    allocations: List[AllocationItem]


class MarketSchema(BaseModel):
    """Market schema for API responses."""

    model_config = ConfigDict(from_attributes=True)

    market_id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    parameter: Optional[str] = None
    category: Optional[str] = None
    start_time: int
    end_time: int
    min_value: Decimal
    max_value: Decimal
    step: Optional[Decimal] = None
    initial_value: Optional[Decimal] = None
    status: int
    status_label: str = ""
    time_left: str = ""
    total_volume: Decimal
    total_participants: int
    final_value: Optional[Decimal] = None
    resolved_at: Optional[datetime] = None


class DistributionItem(BaseModel):
    """Number of bets on one predicted value."""

    value: Decimal
    count: int


class ResolveRequest(BaseModel):
    """Operator request to resolve a market."""

    actual_value: Decimal
    sig: str

    @field_validator("actual_value")
    @classmethod
    def _bounded_actual_value(cls, value: Decimal) -> Decimal:
        return to_decimal(value, "actual_value")


class PayoutItem(BaseModel):
    """Persisted payout."""

    model_config = ConfigDict(from_attributes=True)

    participant: str
    distance: Optional[Decimal] = None
    accuracy: Optional[Decimal] = None
    reward: Decimal
    refund: Decimal
    claimed: bool


class ResolutionResponse(BaseModel):
    """Resolution outcome."""

    market_id: str
    status: str
    pool: Decimal
    fee: Decimal
    payouts: List[PayoutItem]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "OK"
    version: Optional[str] = None
