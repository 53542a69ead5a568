"""SQLAlchemy-backed store for canonical transactions.

Every row belongs to exactly one user and every read is scoped to that
user. Check constraints on ``type`` and ``amount`` reject malformed values
at the storage layer even if they slip past extraction.
"""

from __future__ import annotations

import datetime as dt
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from sqlalchemy import CheckConstraint, Date, DateTime, Numeric, String, Text, case, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from receiptflow.domain.errors import ConstraintViolation
from receiptflow.domain.transaction import UNCATEGORIZED, CanonicalTransaction, Direction
from receiptflow.runtime.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class TransactionRow(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("type IN ('debit', 'credit')", name="ck_transactions_type"),
        CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
        CheckConstraint("length(category) > 0", name="ck_transactions_category_present"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    type: Mapped[str] = mapped_column(String(6), nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False, default=UNCATEGORIZED)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


@dataclass(frozen=True)
class StoredTransaction:
    """A persisted transaction with its generated identifier."""

    id: str
    user_id: str
    transaction: CanonicalTransaction
    image_path: str | None
    created_at: dt.datetime

    def to_dict(self) -> dict[str, str | None]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            **self.transaction.to_dict(),
            "image_path": self.image_path,
            "created_at": self.created_at.isoformat(),
        }


def _money(value: object) -> Decimal:
    """Normalize an aggregate to a two-place Decimal; SQL SUM over no rows is NULL."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS)


def _to_stored(row: TransactionRow) -> StoredTransaction:
    return StoredTransaction(
        id=row.id,
        user_id=row.user_id,
        transaction=CanonicalTransaction(
            date=row.date,
            description=row.description,
            amount=Decimal(row.amount),
            type=row.type,  # type: ignore[arg-type]
            category=row.category,
            notes=row.notes,
        ),
        image_path=row.image_path,
        created_at=row.created_at,
    )


class TransactionStore:
    """Persist and read back canonical transactions, scoped per owning user."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_maker = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)

    @classmethod
    def from_url(cls, database_url: str, *, create_schema: bool = True) -> TransactionStore:
        if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
            Path(database_url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(database_url, pool_pre_ping=True)
        store = cls(engine)
        if create_schema:
            store.create_schema()
        return store

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def save(
        self,
        transaction: CanonicalTransaction,
        *,
        user_id: str,
        image_path: str | None = None,
    ) -> StoredTransaction:
        """
        Insert one transaction for a user.

        Raises:
            ConstraintViolation: the row was rejected by the database.
        """
        if not user_id:
            raise ConstraintViolation("user_id is required")

        row = TransactionRow(
            user_id=user_id,
            date=transaction.date,
            description=transaction.description,
            amount=transaction.amount,
            type=transaction.type,
            category=transaction.category,
            notes=transaction.notes,
            image_path=image_path,
        )
        try:
            with self.session_scope() as session:
                session.add(row)
                session.flush()
                stored = _to_stored(row)
        except IntegrityError as e:
            logger.error("Transaction rejected by store: %s", e.orig)
            raise ConstraintViolation(f"Failed to save transaction: {e.orig}") from e

        logger.info("Saved transaction %s for user %s", stored.id, user_id)
        return stored

    def get(self, transaction_id: str, *, user_id: str) -> StoredTransaction | None:
        """Return one transaction if it exists and belongs to the user."""
        with self.session_scope() as session:
            row = session.execute(
                select(TransactionRow).where(TransactionRow.id == transaction_id, TransactionRow.user_id == user_id)
            ).scalar_one_or_none()
            return _to_stored(row) if row is not None else None

    def list_for_user(self, user_id: str) -> list[StoredTransaction]:
        """Return a user's transactions, newest date first."""
        with self.session_scope() as session:
            rows = session.execute(
                select(TransactionRow)
                .where(TransactionRow.user_id == user_id)
                .order_by(TransactionRow.date.desc(), TransactionRow.created_at.desc())
            ).scalars()
            return [_to_stored(row) for row in rows]

    def total_amount(
        self,
        user_id: str,
        *,
        start: dt.date,
        end: dt.date | None = None,
        direction: Direction | None = None,
        categories: Sequence[str] | None = None,
        category_contains: str | None = None,
    ) -> Decimal:
        """
        Sum a user's amounts dated from start (inclusive) to end (inclusive, open when None).

        Args:
            categories: Exact category names to include.
            category_contains: Case-insensitive substring filter on the category.
        """
        stmt = select(func.sum(TransactionRow.amount)).where(
            TransactionRow.user_id == user_id,
            TransactionRow.date >= start,
        )
        if end is not None:
            stmt = stmt.where(TransactionRow.date <= end)
        if direction is not None:
            stmt = stmt.where(TransactionRow.type == direction)
        if categories is not None:
            stmt = stmt.where(TransactionRow.category.in_(categories))
        if category_contains is not None:
            stmt = stmt.where(TransactionRow.category.ilike(f"%{category_contains}%"))

        with self.session_scope() as session:
            return _money(session.execute(stmt).scalar_one())

    def category_totals(
        self, user_id: str, *, start: dt.date, direction: Direction = "debit"
    ) -> list[tuple[str, Decimal]]:
        """Per-category totals since start, largest first."""
        total = func.sum(TransactionRow.amount)
        stmt = (
            select(TransactionRow.category, total)
            .where(
                TransactionRow.user_id == user_id,
                TransactionRow.type == direction,
                TransactionRow.date >= start,
            )
            .group_by(TransactionRow.category)
            .order_by(total.desc(), TransactionRow.category)
        )
        with self.session_scope() as session:
            return [(category, _money(amount)) for category, amount in session.execute(stmt)]

    def net_amount(self, user_id: str, *, start: dt.date, end: dt.date | None = None) -> Decimal:
        """Credits minus debits for a user over a date range."""
        signed = case((TransactionRow.type == "credit", TransactionRow.amount), else_=-TransactionRow.amount)
        stmt = select(func.sum(signed)).where(TransactionRow.user_id == user_id, TransactionRow.date >= start)
        if end is not None:
            stmt = stmt.where(TransactionRow.date <= end)
        with self.session_scope() as session:
            return _money(session.execute(stmt).scalar_one())
