"""
Relational datastore for users, categories, expenses and subscriptions.

Rows are SQLAlchemy models; everything leaving the store is a frozen domain
dataclass from tracker.domain. Every query that touches user data is scoped
by an explicit user id.
"""

import logging
from dataclasses import fields
from datetime import date, datetime
from typing import Dict, Iterable, Optional, Tuple, Type, TypeVar

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text, create_engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from tracker.domain import Category, Expense, Recurrence, Subscription, User
from tracker.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

Base = declarative_base()

T = TypeVar("T")


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=True)  # null for OAuth users
    image = Column(String(500), nullable=True)

    categories = relationship("CategoryRow", back_populates="user", cascade="all, delete-orphan")


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    color = Column(String(7), nullable=False)
    icon = Column(String(50), nullable=False)

    user = relationship("UserRow", back_populates="categories")
    expenses = relationship("ExpenseRow", back_populates="category")
    subscriptions = relationship("SubscriptionRow", back_populates="category")


class ExpenseRow(Base):
    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    date = Column(Date, nullable=False, index=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    category = relationship("CategoryRow", back_populates="expenses")


class SubscriptionRow(Base):
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)
    name = Column(String(100), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    logo_url = Column(String(500), nullable=True)
    recurrence = Column(String(10), nullable=False)  # MONTHLY | ANNUALLY
    start_date = Column(Date, nullable=False)
    next_payment = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    # written by SubscriptionService from its clock
    updated_at = Column(DateTime, nullable=False, default=datetime.now)

    category = relationship("CategoryRow", back_populates="subscriptions")


ROWS: Dict[type, type] = {
    User: UserRow,
    Category: CategoryRow,
    Expense: ExpenseRow,
    Subscription: SubscriptionRow,
}


def _column_values(entity) -> dict:
    values = {f.name: getattr(entity, f.name) for f in fields(entity)}
    if isinstance(values.get("recurrence"), Recurrence):
        values["recurrence"] = values["recurrence"].value
    return values


def to_domain(kind: Type[T], row) -> T:
    values = {f.name: getattr(row, f.name) for f in fields(kind)}
    if kind is Subscription:
        values["recurrence"] = Recurrence(values["recurrence"])
    return kind(**values)


class Store:
    """Create/read/update/delete over the domain dataclasses."""

    def __init__(self, url: str = "sqlite://", echo: bool = False):
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine = create_engine(url, echo=echo, connect_args=connect_args)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)
        logger.debug("Store ready at %s", url)

    # generic CRUD

    def add(self, entity: T) -> T:
        row_cls = ROWS[type(entity)]
        values = {k: v for k, v in _column_values(entity).items() if v is not None}
        try:
            with self.Session() as session, session.begin():
                session.add(row_cls(**values))
        except IntegrityError as e:
            logger.warning("Rejected %s %s: %s", type(entity).__name__, entity.id, e.orig)
            raise ConflictError(
                f"{type(entity).__name__} {entity.id} conflicts with an existing record",
                {"error": "conflict", "message": str(e.orig), "id": entity.id},
            ) from e
        return entity

    def add_all(self, entities: Iterable) -> int:
        count = 0
        with self.Session() as session, session.begin():
            for entity in entities:
                values = {k: v for k, v in _column_values(entity).items() if v is not None}
                session.add(ROWS[type(entity)](**values))
                count += 1
        return count

    def get(self, kind: Type[T], id: str, user_id: Optional[str] = None) -> Optional[T]:
        with self.Session() as session:
            row = session.get(ROWS[kind], id)
            if row is None:
                return None
            if user_id is not None and kind is not User and row.user_id != user_id:
                return None
            return to_domain(kind, row)

    def update(self, entity: T) -> T:
        row_cls = ROWS[type(entity)]
        try:
            with self.Session() as session, session.begin():
                row = session.get(row_cls, entity.id)
                if row is None:
                    raise NotFoundError(f"{type(entity).__name__} with ID {entity.id} not found")
                for key, value in _column_values(entity).items():
                    if key in ("id", "created_at") and value is None:
                        continue
                    setattr(row, key, value)
                session.flush()
                updated = to_domain(type(entity), row)
        except IntegrityError as e:
            raise ConflictError(
                f"{type(entity).__name__} {entity.id} conflicts with an existing record",
                {"error": "conflict", "message": str(e.orig), "id": entity.id},
            ) from e
        return updated

    def delete(self, kind: type, id: str, user_id: Optional[str] = None) -> bool:
        with self.Session() as session, session.begin():
            row = session.get(ROWS[kind], id)
            if row is None:
                return False
            if user_id is not None and kind is not User and row.user_id != user_id:
                return False
            session.delete(row)
        return True

    # reads used by the services

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self.Session() as session:
            row = session.scalars(select(UserRow).where(UserRow.email == email)).first()
            return to_domain(User, row) if row else None

    def list_categories(self, user_id: str, ids: Optional[Iterable[str]] = None) -> Tuple[Category, ...]:
        stmt = select(CategoryRow).where(CategoryRow.user_id == user_id)
        if ids is not None:
            stmt = stmt.where(CategoryRow.id.in_(list(ids)))
        with self.Session() as session:
            rows = session.scalars(stmt.order_by(CategoryRow.name)).all()
            return tuple(to_domain(Category, r) for r in rows)

    def list_expenses(
        self, user_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> Tuple[Expense, ...]:
        stmt = select(ExpenseRow).where(ExpenseRow.user_id == user_id)
        if start is not None:
            stmt = stmt.where(ExpenseRow.date >= start)
        if end is not None:
            stmt = stmt.where(ExpenseRow.date <= end)
        stmt = stmt.order_by(ExpenseRow.date.desc(), ExpenseRow.created_at.desc())
        with self.Session() as session:
            return tuple(to_domain(Expense, r) for r in session.scalars(stmt).all())

    def list_subscriptions(self, user_id: str) -> Tuple[Subscription, ...]:
        stmt = (
            select(SubscriptionRow)
            .where(SubscriptionRow.user_id == user_id)
            .order_by(SubscriptionRow.start_date, SubscriptionRow.name)
        )
        with self.Session() as session:
            return tuple(to_domain(Subscription, r) for r in session.scalars(stmt).all())

    def count_linked(self, category_id: str) -> Tuple[int, int]:
        """(expenses, subscriptions) still pointing at a category."""
        with self.Session() as session:
            expenses = session.scalar(
                select(func.count()).select_from(ExpenseRow).where(ExpenseRow.category_id == category_id)
            )
            subscriptions = session.scalar(
                select(func.count()).select_from(SubscriptionRow).where(SubscriptionRow.category_id == category_id)
            )
        return int(expenses or 0), int(subscriptions or 0)

    def seed(self, users, categories, expenses, subscriptions) -> Dict[str, int]:
        counts = {}
        for name, entities in (
            ("users", users),
            ("categories", categories),
            ("expenses", expenses),
            ("subscriptions", subscriptions),
        ):
            counts[name] = self.add_all(entities)
        logger.info("Seeded store: %s", counts)
        return counts
