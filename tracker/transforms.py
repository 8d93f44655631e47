import json
from dataclasses import fields, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Tuple, TypeVar

from tracker.billing import next_occurrence_from
from tracker.domain import Category, Expense, Recurrence, Subscription, User

T = TypeVar("T")


def _expense(raw: dict) -> Expense:
    return Expense(
        id=raw["id"],
        user_id=raw["user_id"],
        category_id=raw["category_id"],
        amount=Decimal(str(raw["amount"])),
        date=date.fromisoformat(raw["date"]),
        note=raw.get("note"),
        created_at=datetime.fromisoformat(raw["created_at"]) if raw.get("created_at") else None,
    )


def _subscription(raw: dict) -> Subscription:
    return Subscription(
        id=raw["id"],
        user_id=raw["user_id"],
        category_id=raw["category_id"],
        name=raw["name"],
        amount=Decimal(str(raw["amount"])),
        recurrence=Recurrence(raw["recurrence"]),
        start_date=date.fromisoformat(raw["start_date"]),
        logo_url=raw.get("logo_url"),
    )


def load_seed(
    path: str,
) -> Tuple[
    Tuple[User, ...],
    Tuple[Category, ...],
    Tuple[Expense, ...],
    Tuple[Subscription, ...],
]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    users = tuple(User(**u) for u in data.get("users", []))
    categories = tuple(Category(**c) for c in data.get("categories", []))
    expenses = tuple(_expense(e) for e in data.get("expenses", []))
    subscriptions = tuple(_subscription(s) for s in data.get("subscriptions", []))

    return users, categories, expenses, subscriptions


def apply_patch(entity: T, patch) -> T:
    """New entity with every field the patch sets; unset (None) fields are kept."""
    changes = {
        f.name: getattr(patch, f.name)
        for f in fields(patch)
        if getattr(patch, f.name) is not None
    }
    return replace(entity, **changes)


def patch_touches(patch, *names: str) -> bool:
    return any(getattr(patch, n) is not None for n in names)


def with_next_payment(subscriptions: Tuple[Subscription, ...], reference) -> Tuple[Subscription, ...]:
    return tuple(
        replace(s, next_payment=next_occurrence_from(s.start_date, s.recurrence, reference))
        for s in subscriptions
    )
