from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class Recurrence(str, Enum):
    MONTHLY = "MONTHLY"
    ANNUALLY = "ANNUALLY"


@dataclass(frozen=True)
class User:
    id: str
    email: str                           # unique
    name: Optional[str] = None
    password_hash: Optional[str] = None  # None for externally authenticated users
    image: Optional[str] = None


@dataclass(frozen=True)
class Category:
    id: str
    user_id: str
    name: str
    color: str    # e.g. "#65CE55"
    icon: str     # glyph name, e.g. "ShoppingCart"


@dataclass(frozen=True)
class Expense:
    id: str
    user_id: str
    category_id: str
    amount: Decimal   # always > 0, two fraction digits
    date: date
    note: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Subscription:
    id: str
    user_id: str
    category_id: str
    name: str
    amount: Decimal
    recurrence: Recurrence
    start_date: date
    logo_url: Optional[str] = None
    next_payment: Optional[date] = None  # derived, see billing.next_occurrence_from
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Patches list exactly the settable fields; None means "leave unchanged".

@dataclass(frozen=True)
class UserPatch:
    email: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None


@dataclass(frozen=True)
class CategoryPatch:
    name: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


@dataclass(frozen=True)
class ExpensePatch:
    amount: Optional[Decimal] = None
    date: Optional[date] = None
    category_id: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionPatch:
    name: Optional[str] = None
    amount: Optional[Decimal] = None
    logo_url: Optional[str] = None
    recurrence: Optional[Recurrence] = None
    start_date: Optional[date] = None
    category_id: Optional[str] = None
