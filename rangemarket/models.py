"""
RANGEMARKET: bet on the number, not the coin flip. Closer wins more.

SQLAlchemy models for RANGEMARKET database schema.
"""

import enum
from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from rangemarket.db import Base


class MarketStatus(enum.IntEnum):
    """Market lifecycle, using the contract's numeric codes."""

    PENDING = 0
    ACTIVE = 1
    RESOLVED = 2
    CANCELLED = 3


class Market(Base):
    """Range markets mirrored from the factory contract."""

    __tablename__ = "markets"

    market_id = Column(String, primary_key=True, index=True)  # Contract address
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    parameter = Column(String, nullable=True)  # e.g. BTC/USD
    category = Column(String, nullable=True)
    start_time = Column(BigInteger, nullable=False)  # Unix seconds
    end_time = Column(BigInteger, nullable=False, index=True)  # Betting closes
    min_value = Column(Numeric(38, 18), nullable=False)
    max_value = Column(Numeric(38, 18), nullable=False)
    step = Column(Numeric(38, 18), nullable=True)
    initial_value = Column(Numeric(38, 18), nullable=True)
    status = Column(Integer, default=int(MarketStatus.PENDING), nullable=False, index=True)
    total_volume = Column(Numeric(38, 18), default=0, nullable=False)
    total_participants = Column(BigInteger, default=0, nullable=False)
    final_value = Column(Numeric(38, 18), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    inputs_hash = Column(String, nullable=True)  # Fingerprint of the frozen bet set
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    bets = relationship("Bet", back_populates="market")
    payouts = relationship("Payout", back_populates="market")

    __table_args__ = (
        CheckConstraint("min_value <= max_value", name="ck_markets_value_range"),
        Index("idx_markets_status_start", "status", "start_time"),
    )


class Bet(Base):
    """Bets exported from a market contract (one per participant)."""

    __tablename__ = "bets"

    bet_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    market_id = Column(String, ForeignKey("markets.market_id"), nullable=False, index=True)
    participant = Column(String, nullable=False, index=True)
    stake = Column(
        Numeric(38, 18),
        CheckConstraint("stake >= 0"),
        nullable=False
    )
    predicted_value = Column(Numeric(38, 18), nullable=False)
    timestamp = Column(BigInteger, nullable=True)  # Unix seconds, from the contract

    # Relationships
    market = relationship("Market", back_populates="bets")

    __table_args__ = (
        UniqueConstraint("market_id", "participant", name="uq_bets_market_participant"),
    )


class Payout(Base):
    """Per-bet reward (resolved) or refund (cancelled)."""

    __tablename__ = "payouts"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    market_id = Column(String, ForeignKey("markets.market_id"), nullable=False, index=True)
    participant = Column(String, nullable=False, index=True)
    distance = Column(Numeric(38, 18), nullable=True)
    accuracy = Column(Numeric(38, 18), nullable=True)
    reward = Column(Numeric(38, 18), default=0, nullable=False)
    refund = Column(Numeric(38, 18), default=0, nullable=False)
    claimed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    market = relationship("Market", back_populates="payouts")

    __table_args__ = (
        UniqueConstraint("market_id", "participant", name="uq_payouts_market_participant"),
    )
