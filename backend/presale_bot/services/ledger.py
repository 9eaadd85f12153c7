"""
Ledger Store

Idempotent record of fulfilled deposits, burns and skipped deposits.

Two interchangeable backends, selected once at startup:
- SqlLedgerStore: SQLAlchemy (SQLite/PostgreSQL), survives restarts
- MemoryLedgerStore: process-lifetime only, recent history bounded

CRITICAL: commit_purchase is insert-or-ignore on signature. A repeated or
concurrent insert for the same signature is dropped, never duplicated.
"""

import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

from sqlalchemy import func, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from presale_bot.core.logging_config import get_logger
from presale_bot.db.models import Burn, Purchase, SkippedDeposit, utcnow

logger = get_logger(__name__)

ZERO = Decimal("0")


@dataclass
class PurchaseEntry:
    signature: str
    sender: str
    base_amount: Decimal
    token_amount: int
    recorded_at: datetime | None = None


@dataclass
class BurnEntry:
    amount: int
    signature: str | None = None
    recorded_at: datetime | None = None


@dataclass
class SkipEntry:
    signature: str
    reason: str
    base_amount: Decimal | None = None
    recorded_at: datetime | None = None


@dataclass(frozen=True)
class LedgerSnapshot:
    """Aggregates taken in a single consistent read"""
    total_base: Decimal
    total_tokens: int
    total_burned: int
    purchase_count: int

    @classmethod
    def empty(cls) -> "LedgerSnapshot":
        return cls(total_base=ZERO, total_tokens=0, total_burned=0, purchase_count=0)


class LedgerStore(ABC):
    """Storage interface shared by the durable and volatile ledgers"""

    durable: bool = False

    @abstractmethod
    def seen(self, signature: str) -> bool:
        """True if the signature was paid or deliberately skipped"""

    @abstractmethod
    def commit_purchase(self, entry: PurchaseEntry) -> bool:
        """Record a fulfilled deposit. Returns False if the signature already existed."""

    @abstractmethod
    def commit_burn(self, entry: BurnEntry) -> None:
        """Append a burn event"""

    @abstractmethod
    def commit_skip(self, entry: SkipEntry) -> bool:
        """Mark a deposit as never to be paid. Returns False if already seen."""

    @abstractmethod
    def snapshot(self) -> LedgerSnapshot:
        """All aggregates from one consistent read"""

    @abstractmethod
    def recent_purchases(self, limit: int = 25) -> list[PurchaseEntry]:
        """Most recent purchases, newest first"""

    @abstractmethod
    def is_empty(self) -> bool:
        """True when nothing was ever recorded (first boot)"""

    def totals(self) -> tuple[Decimal, int]:
        """(sum of SOL received, sum of buyer-side tokens)"""
        snap = self.snapshot()
        return snap.total_base, snap.total_tokens

    def total_burned(self) -> int:
        return self.snapshot().total_burned

    def ping(self) -> None:
        """Raise if the store is unreachable"""
        return None


# ============================================================================
# Durable backend
# ============================================================================

class SqlLedgerStore(LedgerStore):
    """
    SQLAlchemy-backed ledger

    Each call uses its own short-lived session, so the read API and the
    poller never share a transaction.
    """

    durable = True

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _insert_ignore(self, db: Session, model, values: dict) -> bool:
        """INSERT ... ON CONFLICT DO NOTHING; True if a row was written"""
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(model).values(**values).on_conflict_do_nothing()
        elif dialect == "sqlite":
            stmt = sqlite_insert(model).values(**values).on_conflict_do_nothing()
        else:
            try:
                with db.begin_nested():
                    db.add(model(**values))
                return True
            except IntegrityError:
                return False
        result = db.execute(stmt)
        return result.rowcount > 0

    def seen(self, signature: str) -> bool:
        with self.session_factory() as db:
            paid = db.execute(
                select(Purchase.signature).where(Purchase.signature == signature)
            ).first()
            if paid is not None:
                return True
            skipped = db.execute(
                select(SkippedDeposit.signature).where(SkippedDeposit.signature == signature)
            ).first()
            return skipped is not None

    def commit_purchase(self, entry: PurchaseEntry) -> bool:
        with self.session_factory() as db:
            written = self._insert_ignore(db, Purchase, {
                "signature": entry.signature,
                "sender": entry.sender,
                "base_amount": entry.base_amount,
                "token_amount": entry.token_amount,
                "recorded_at": entry.recorded_at or utcnow(),
            })
            db.commit()

        if not written:
            logger.warning("Purchase %s already recorded, insert ignored", entry.signature[:16])
        return written

    def commit_burn(self, entry: BurnEntry) -> None:
        with self.session_factory() as db:
            db.add(Burn(
                amount=entry.amount,
                signature=entry.signature,
                recorded_at=entry.recorded_at or utcnow(),
            ))
            db.commit()

    def commit_skip(self, entry: SkipEntry) -> bool:
        with self.session_factory() as db:
            already_paid = db.execute(
                select(Purchase.signature).where(Purchase.signature == entry.signature)
            ).first()
            if already_paid is not None:
                return False
            written = self._insert_ignore(db, SkippedDeposit, {
                "signature": entry.signature,
                "reason": entry.reason,
                "base_amount": entry.base_amount,
                "recorded_at": entry.recorded_at or utcnow(),
            })
            db.commit()
        return written

    def snapshot(self) -> LedgerSnapshot:
        # One statement, so all four figures come from the same read
        stmt = select(
            select(func.coalesce(func.sum(Purchase.base_amount), 0)).scalar_subquery(),
            select(func.coalesce(func.sum(Purchase.token_amount), 0)).scalar_subquery(),
            select(func.coalesce(func.sum(Burn.amount), 0)).scalar_subquery(),
            select(func.count(Purchase.signature)).scalar_subquery(),
        )
        with self.session_factory() as db:
            total_base, total_tokens, total_burned, count = db.execute(stmt).one()

        return LedgerSnapshot(
            total_base=Decimal(str(total_base or 0)),
            total_tokens=int(total_tokens or 0),
            total_burned=int(total_burned or 0),
            purchase_count=int(count or 0),
        )

    def recent_purchases(self, limit: int = 25) -> list[PurchaseEntry]:
        with self.session_factory() as db:
            rows = db.execute(
                select(Purchase)
                .order_by(Purchase.recorded_at.desc(), Purchase.signature.desc())
                .limit(limit)
            ).scalars().all()

            return [
                PurchaseEntry(
                    signature=row.signature,
                    sender=row.sender,
                    base_amount=Decimal(str(row.base_amount)),
                    token_amount=int(row.token_amount),
                    recorded_at=row.recorded_at,
                )
                for row in rows
            ]

    def is_empty(self) -> bool:
        with self.session_factory() as db:
            purchases = db.execute(select(func.count(Purchase.signature))).scalar_one()
            skipped = db.execute(select(func.count(SkippedDeposit.signature))).scalar_one()
        return purchases == 0 and skipped == 0

    def ping(self) -> None:
        with self.session_factory() as db:
            db.execute(text("SELECT 1"))


# ============================================================================
# Volatile backend
# ============================================================================

class MemoryLedgerStore(LedgerStore):
    """
    In-process ledger for deployments without DATABASE_URL

    The full signature set and running sums live for the process lifetime;
    only the recent-purchase history is bounded. All mutations and reads
    happen under one lock, so sums always match the recorded entries.
    """

    durable = False

    def __init__(self, recent_limit: int = 25):
        self.recent_limit = recent_limit
        self._lock = threading.Lock()
        self._paid: set[str] = set()
        self._skipped: dict[str, SkipEntry] = {}
        self._recent: deque[PurchaseEntry] = deque(maxlen=recent_limit)
        self._total_base = ZERO
        self._total_tokens = 0
        self._total_burned = 0

    def seen(self, signature: str) -> bool:
        with self._lock:
            return signature in self._paid or signature in self._skipped

    def commit_purchase(self, entry: PurchaseEntry) -> bool:
        with self._lock:
            if entry.signature in self._paid:
                logger.warning("Purchase %s already recorded, insert ignored", entry.signature[:16])
                return False
            if entry.recorded_at is None:
                entry.recorded_at = utcnow()
            self._paid.add(entry.signature)
            self._recent.appendleft(entry)
            self._total_base += entry.base_amount
            self._total_tokens += entry.token_amount
            return True

    def commit_burn(self, entry: BurnEntry) -> None:
        with self._lock:
            self._total_burned += entry.amount

    def commit_skip(self, entry: SkipEntry) -> bool:
        with self._lock:
            if entry.signature in self._paid or entry.signature in self._skipped:
                return False
            if entry.recorded_at is None:
                entry.recorded_at = utcnow()
            self._skipped[entry.signature] = entry
            return True

    def snapshot(self) -> LedgerSnapshot:
        with self._lock:
            return LedgerSnapshot(
                total_base=self._total_base,
                total_tokens=self._total_tokens,
                total_burned=self._total_burned,
                purchase_count=len(self._paid),
            )

    def recent_purchases(self, limit: int = 25) -> list[PurchaseEntry]:
        with self._lock:
            return list(self._recent)[:limit]

    def is_empty(self) -> bool:
        with self._lock:
            return not self._paid and not self._skipped


def build_ledger_store(settings) -> LedgerStore:
    """
    Pick the ledger backend from settings

    DATABASE_URL set -> SqlLedgerStore (tables created if missing)
    otherwise        -> MemoryLedgerStore
    """
    if settings.DATABASE_URL:
        from presale_bot.db.session import create_db_engine, create_session_factory, init_db

        engine = create_db_engine(settings.DATABASE_URL)
        init_db(engine)
        logger.info("Ledger backend: sql")
        return SqlLedgerStore(create_session_factory(engine))

    logger.warning(
        "DATABASE_URL not set, using in-memory ledger (history is lost on restart)"
    )
    return MemoryLedgerStore(recent_limit=settings.MEMORY_RECENT_LIMIT)
