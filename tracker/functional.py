import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Generic, Iterable, Tuple, TypeVar, Union

from tracker.domain import Category, Expense, Recurrence, Subscription

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')

MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MAX_CATEGORY_NAME = 50
MAX_SUBSCRIPTION_NAME = 100
MAX_NOTE = 500
# largest value a Numeric(10, 2) column holds
MAX_AMOUNT = Decimal("99999999.99")


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    def is_some(self) -> bool:
        return isinstance(self, Some)

    def is_none(self) -> bool:
        return not self.is_some()


@dataclass(frozen=True)
class Some(Maybe[T]):
    value: T

    def map(self, f):
        return Some(f(self.value))

    def bind(self, f):
        return f(self.value)

    def get_or_else(self, default):
        return self.value


@dataclass(frozen=True)
class Nothing(Maybe[T]):

    def map(self, f):
        return Nothing()

    def bind(self, f):
        return Nothing()

    def get_or_else(self, default):
        return default


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def get_error(self) -> E:
        pass

    def is_right(self) -> bool:
        return isinstance(self, Right)

    def is_left(self) -> bool:
        return not self.is_right()


@dataclass(frozen=True)
class Right(Either[E, T]):
    value: T

    def map(self, f):
        return Right(f(self.value))

    def bind(self, f):
        return f(self.value)

    def get_or_else(self, default):
        return self.value

    def get_error(self):
        raise ValueError("Cannot get error from Right")


@dataclass(frozen=True)
class Left(Either[E, T]):
    error: E

    def map(self, f):
        return self

    def bind(self, f):
        return self

    def get_or_else(self, default):
        return default

    def get_error(self):
        return self.error


def _invalid(field: str, message: str, **extra) -> Left:
    return Left({"error": "invalid_" + field, "message": message, "field": field, **extra})


def safe_category(cats: Iterable[Category], cat_id: str) -> Maybe[Category]:
    for cat in cats:
        if cat.id == cat_id:
            return Some(cat)
    return Nothing()


def parse_month(value: str) -> Either[dict, Tuple[int, int]]:
    """'2024-03' -> Right((2024, 3))."""
    match = MONTH_RE.match((value or "").strip())
    if not match:
        return _invalid("month", f"Month must look like YYYY-MM, got {value!r}", value=value)
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return _invalid("month", f"Month number out of range in {value!r}", value=value)
    return Right((year, month))


def parse_date(value: Union[str, date]) -> Either[dict, date]:
    if isinstance(value, datetime):
        return Right(value.date())
    if isinstance(value, date):
        return Right(value)
    try:
        return Right(date.fromisoformat(str(value).strip()))
    except ValueError:
        return _invalid("date", f"Date must look like YYYY-MM-DD, got {value!r}", value=value)


def parse_amount(value: Any) -> Either[dict, Decimal]:
    """Money in, Decimal out: positive, finite, at most two fraction digits."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return _invalid("amount", f"Amount is not a number: {value!r}", value=str(value))
    if not amount.is_finite() or amount <= 0:
        return _invalid("amount", "Amount must be greater than zero", value=str(value))
    if amount > MAX_AMOUNT:
        return _invalid("amount", f"Amount can be at most {MAX_AMOUNT}", value=str(value))
    if amount != amount.quantize(Decimal("0.01")):
        return _invalid("amount", "Amount can have at most two decimal places", value=str(value))
    return Right(amount.quantize(Decimal("0.01")))


def parse_recurrence(value: Union[str, Recurrence]) -> Either[dict, Recurrence]:
    try:
        return Right(Recurrence(value))
    except ValueError:
        return _invalid("recurrence", f"Recurrence must be MONTHLY or ANNUALLY, got {value!r}", value=value)


def validate_email(value: str) -> Either[dict, str]:
    email = (value or "").strip().lower()
    if not EMAIL_RE.match(email):
        return _invalid("email", f"Not a valid email address: {value!r}", value=value)
    return Right(email)


def validate_category(c: Category) -> Either[dict, Category]:
    name = (c.name or "").strip()
    if not 1 <= len(name) <= MAX_CATEGORY_NAME:
        return _invalid("name", f"Category name must be 1-{MAX_CATEGORY_NAME} characters")
    if not COLOR_RE.match(c.color or ""):
        return _invalid("color", f"Color must be a hex code like #65CE55, got {c.color!r}", value=c.color)
    if not (c.icon or "").strip():
        return _invalid("icon", "Icon is required")
    return Right(Category(id=c.id, user_id=c.user_id, name=name, color=c.color, icon=c.icon.strip()))


def _owned_category(user_id: str, category_id: str, cats: Iterable[Category]) -> Either[dict, Category]:
    found = safe_category(cats, category_id)
    if found.is_none() or found.get_or_else(None).user_id != user_id:
        return Left({
            "error": "category_not_found",
            "message": f"Category with ID {category_id} does not exist",
            "category_id": category_id,
        })
    return Right(found.get_or_else(None))


def validate_expense(e: Expense, cats: Iterable[Category]) -> Either[dict, Expense]:
    if e.note is not None and len(e.note) > MAX_NOTE:
        return _invalid("note", f"Note can be at most {MAX_NOTE} characters")
    return (
        parse_amount(e.amount)
        .bind(lambda _: _owned_category(e.user_id, e.category_id, cats))
        .map(lambda _: e)
    )


def validate_subscription(s: Subscription, cats: Iterable[Category]) -> Either[dict, Subscription]:
    name = (s.name or "").strip()
    if not 1 <= len(name) <= MAX_SUBSCRIPTION_NAME:
        return _invalid("name", f"Subscription name must be 1-{MAX_SUBSCRIPTION_NAME} characters")
    return (
        parse_amount(s.amount)
        .bind(lambda _: parse_recurrence(s.recurrence))
        .bind(lambda _: _owned_category(s.user_id, s.category_id, cats))
        .map(lambda _: s)
    )
