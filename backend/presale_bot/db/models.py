"""
SQLAlchemy Models for the presale ledger

- Purchase: one row per fulfilled deposit (idempotency key = signature)
- Burn: append-only burn events
- SkippedDeposit: deposits deliberately never paid
"""

from sqlalchemy import Column, Integer, String, DateTime, BigInteger, Numeric, CheckConstraint, Index
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone


def utcnow():
    """Helper for timezone-aware UTC datetime (replaces deprecated utcnow)"""
    return datetime.now(timezone.utc)


Base = declarative_base()


class Purchase(Base):
    """
    Fulfilled deposit

    Written only after the token transfer to the buyer was accepted.
    Never updated or deleted.
    """
    __tablename__ = "purchases"

    # Transaction signatures are 64-byte ed25519 signatures, base58 (<= 88 chars)
    signature = Column(String(100), primary_key=True)
    sender = Column(String(64), nullable=False, index=True)
    base_amount = Column(Numeric(20, 9), nullable=False)  # SOL
    token_amount = Column(BigInteger, nullable=False)  # whole tokens, buyer-facing only
    recorded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint('base_amount > 0', name='purchase_positive_base'),
        CheckConstraint('token_amount >= 0', name='purchase_non_negative_tokens'),
        Index('idx_purchases_recorded_at', 'recorded_at'),
    )

    def __repr__(self):
        return f"<Purchase(sig={self.signature[:16]}..., sender={self.sender}, tokens={self.token_amount})>"


class Burn(Base):
    """
    Executed burn

    No uniqueness: the same deposit signature appears once per burn call.
    """
    __tablename__ = "burns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    amount = Column(BigInteger, nullable=False)  # whole tokens
    signature = Column(String(100), nullable=True, index=True)  # deposit that triggered it
    recorded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint('amount > 0', name='burn_positive_amount'),
    )

    def __repr__(self):
        return f"<Burn(id={self.id}, amount={self.amount})>"


class SkippedDeposit(Base):
    """
    Deposit that will never be paid

    Counts as seen for idempotency but never contributes to totals.
    reason:
    - below_minimum / above_maximum - guard thresholds
    - zero_payout - pricing produced no tokens
    - burn_consumes_payout - take-mode burn left nothing for the buyer
    - warm_start - history present when the service first booted
    """
    __tablename__ = "skipped_deposits"

    signature = Column(String(100), primary_key=True)
    reason = Column(String(32), nullable=False, index=True)
    base_amount = Column(Numeric(20, 9), nullable=True)
    recorded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "reason IN ('below_minimum', 'above_maximum', 'zero_payout', 'burn_consumes_payout', 'warm_start')",
            name='skipped_valid_reason'
        ),
    )

    def __repr__(self):
        return f"<SkippedDeposit(sig={self.signature[:16]}..., reason={self.reason})>"
