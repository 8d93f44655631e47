import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
from uuid import uuid4

from tracker.async_reports import expenses_by_month
from tracker.billing import month_bounds, next_occurrence_from, occurrences_in_month, occurrences_in_year, previous_month
from tracker.config import Settings
from tracker.dashboard import Dashboard, billing_subscriptions, build_dashboard
from tracker.domain import (
    Category,
    CategoryPatch,
    Expense,
    ExpensePatch,
    Recurrence,
    Subscription,
    SubscriptionPatch,
    User,
    UserPatch,
)
from tracker.errors import ConflictError, NotFoundError, ValidationError
from tracker.export import export_csv, export_rows, export_summary
from tracker.functional import (
    Either,
    parse_amount,
    parse_date,
    parse_month,
    parse_recurrence,
    validate_category,
    validate_email,
    validate_expense,
    validate_subscription,
)
from tracker.store import Store
from tracker.transforms import apply_patch, patch_touches

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _new_id() -> str:
    return str(uuid4())


def _unwrap(result: Either) -> Any:
    if result.is_left():
        detail = result.get_error()
        logger.warning("Rejected input: %s", detail.get("message"))
        raise ValidationError.from_detail(detail)
    return result.get_or_else(None)


def _require_user(user_id: str) -> str:
    if not user_id:
        raise ValidationError("An authenticated user id is required", {
            "error": "user_required",
            "message": "An authenticated user id is required",
        })
    return user_id


def _not_found(kind: str, id: str) -> NotFoundError:
    return NotFoundError(f"{kind} with ID {id} not found", {
        "error": f"{kind.lower()}_not_found",
        "message": f"{kind} with ID {id} not found",
        "id": id,
    })


class UserService:
    """Profiles. Password handling belongs to the authentication layer."""

    def __init__(self, store: Store):
        self.store = store

    def register(self, email: str, name: Optional[str] = None, image: Optional[str] = None) -> User:
        email = _unwrap(validate_email(email))
        if self.store.get_user_by_email(email) is not None:
            raise ConflictError(f"User with email {email} already exists", {
                "error": "email_taken",
                "message": f"User with email {email} already exists",
                "email": email,
            })
        user = self.store.add(User(id=_new_id(), email=email, name=name, image=image))
        logger.info("Registered user %s", user.id)
        return user

    def get(self, user_id: str) -> User:
        user = self.store.get(User, _require_user(user_id))
        if user is None:
            raise _not_found("User", user_id)
        return user

    def update_profile(self, user_id: str, patch: UserPatch) -> User:
        user = self.get(user_id)
        if patch.email is not None:
            email = _unwrap(validate_email(patch.email))
            owner = self.store.get_user_by_email(email)
            if owner is not None and owner.id != user.id:
                raise ConflictError(f"User with email {email} already exists", {
                    "error": "email_taken",
                    "message": f"User with email {email} already exists",
                    "email": email,
                })
            patch = replace(patch, email=email)
        return self.store.update(apply_patch(user, patch))


class CategoryService:
    def __init__(self, store: Store):
        self.store = store

    def create(self, user_id: str, name: str, color: str, icon: str) -> Category:
        if self.store.get(User, _require_user(user_id)) is None:
            raise _not_found("User", user_id)
        category = _unwrap(validate_category(
            Category(id=_new_id(), user_id=user_id, name=name, color=color, icon=icon)
        ))
        self.store.add(category)
        logger.info("Created category %s (%s) for user %s", category.id, category.name, user_id)
        return category

    def list(self, user_id: str) -> Tuple[Category, ...]:
        return self.store.list_categories(_require_user(user_id))

    def get(self, user_id: str, category_id: str) -> Category:
        category = self.store.get(Category, category_id, _require_user(user_id))
        if category is None:
            raise _not_found("Category", category_id)
        return category

    def update(self, user_id: str, category_id: str, patch: CategoryPatch) -> Category:
        category = _unwrap(validate_category(apply_patch(self.get(user_id, category_id), patch)))
        return self.store.update(category)

    def delete(self, user_id: str, category_id: str) -> None:
        category = self.get(user_id, category_id)
        expenses, subscriptions = self.store.count_linked(category.id)
        if expenses or subscriptions:
            message = (
                f"Cannot delete category {category.name}: "
                f"{expenses} expense(s) and {subscriptions} subscription(s) still use it"
            )
            logger.warning(message)
            raise ConflictError(message, {
                "error": "category_in_use",
                "message": message,
                "category_id": category.id,
                "expenses": expenses,
                "subscriptions": subscriptions,
            })
        self.store.delete(Category, category.id, user_id)
        logger.info("Deleted category %s for user %s", category.id, user_id)


class ExpenseService:
    def __init__(self, store: Store, clock: Clock = datetime.now):
        self.store = store
        self.clock = clock

    def create(
        self,
        user_id: str,
        amount: Union[str, Decimal],
        date: Union[str, date],
        category_id: str,
        note: Optional[str] = None,
    ) -> Expense:
        expense = Expense(
            id=_new_id(),
            user_id=_require_user(user_id),
            category_id=category_id,
            amount=_unwrap(parse_amount(amount)),
            date=_unwrap(parse_date(date)),
            note=note,
            created_at=self.clock(),
        )
        expense = _unwrap(validate_expense(expense, self.store.list_categories(user_id, [category_id])))
        self.store.add(expense)
        logger.info("Created expense %s (%s on %s) for user %s", expense.id, expense.amount, expense.date, user_id)
        return expense

    def list_for_month(self, user_id: str, month: str) -> Tuple[Expense, ...]:
        year, month_num = _unwrap(parse_month(month))
        start, end = month_bounds(year, month_num)
        return self.store.list_expenses(_require_user(user_id), start, end)

    def get(self, user_id: str, expense_id: str) -> Expense:
        expense = self.store.get(Expense, expense_id, _require_user(user_id))
        if expense is None:
            raise _not_found("Expense", expense_id)
        return expense

    def update(self, user_id: str, expense_id: str, patch: ExpensePatch) -> Expense:
        expense = self.get(user_id, expense_id)
        if patch.amount is not None:
            patch = replace(patch, amount=_unwrap(parse_amount(patch.amount)))
        if patch.date is not None:
            patch = replace(patch, date=_unwrap(parse_date(patch.date)))
        updated = apply_patch(expense, patch)
        updated = _unwrap(validate_expense(updated, self.store.list_categories(user_id, [updated.category_id])))
        return self.store.update(updated)

    def delete(self, user_id: str, expense_id: str) -> None:
        if not self.store.delete(Expense, expense_id, _require_user(user_id)):
            raise _not_found("Expense", expense_id)
        logger.info("Deleted expense %s for user %s", expense_id, user_id)

    def export(self, user_id: str, month: str) -> Tuple[List[Dict[str, object]], Dict[str, str]]:
        """Rows for the month (manual + subscription charges) and their totals."""
        year, month_num = _unwrap(parse_month(month))
        start, end = month_bounds(year, month_num)
        expenses = self.store.list_expenses(_require_user(user_id), start, end)
        subscriptions = self.store.list_subscriptions(user_id)
        categories = self.store.list_categories(user_id)
        rows = export_rows(expenses, subscriptions, categories, year, month_num)
        return rows, export_summary(rows)

    def export_csv(self, user_id: str, month: str) -> str:
        rows, _ = self.export(user_id, month)
        return export_csv(rows)


class SubscriptionService:
    def __init__(self, store: Store, clock: Clock = datetime.now):
        self.store = store
        self.clock = clock

    def create(
        self,
        user_id: str,
        name: str,
        amount: Union[str, Decimal],
        recurrence: Union[str, Recurrence],
        start_date: Union[str, date],
        category_id: str,
        logo_url: Optional[str] = None,
    ) -> Subscription:
        now = self.clock()
        recurrence = _unwrap(parse_recurrence(recurrence))
        start_date = _unwrap(parse_date(start_date))
        subscription = Subscription(
            id=_new_id(),
            user_id=_require_user(user_id),
            category_id=category_id,
            name=(name or "").strip(),
            amount=_unwrap(parse_amount(amount)),
            recurrence=recurrence,
            start_date=start_date,
            logo_url=logo_url,
            next_payment=next_occurrence_from(start_date, recurrence, now),
            created_at=now,
            updated_at=now,
        )
        subscription = _unwrap(validate_subscription(
            subscription, self.store.list_categories(user_id, [category_id])
        ))
        self.store.add(subscription)
        logger.info("Created subscription %s (%s, %s) for user %s",
                    subscription.id, subscription.name, recurrence.value, user_id)
        return subscription

    def list(self, user_id: str) -> Tuple[Subscription, ...]:
        return self.store.list_subscriptions(_require_user(user_id))

    def list_for_month(self, user_id: str, month: str) -> Tuple[Subscription, ...]:
        """Subscriptions billing in the month, next_payment set to that month's charge."""
        year, month_num = _unwrap(parse_month(month))
        billing = []
        for s in self.list(user_id):
            billed_on = occurrences_in_month(s.start_date, s.recurrence, year, month_num)
            if billed_on is not None:
                billing.append(replace(s, next_payment=billed_on))
        return tuple(billing)

    def list_for_year(self, user_id: str, year: int) -> Tuple[Subscription, ...]:
        """Every charge in the year, one entry per occurrence, in date order."""
        charges = [
            replace(s, next_payment=billed_on)
            for s in self.list(user_id)
            for billed_on in occurrences_in_year(s.start_date, s.recurrence, year)
        ]
        return tuple(sorted(charges, key=lambda s: (s.next_payment, s.name)))

    def get(self, user_id: str, subscription_id: str) -> Subscription:
        subscription = self.store.get(Subscription, subscription_id, _require_user(user_id))
        if subscription is None:
            raise _not_found("Subscription", subscription_id)
        return subscription

    def update(self, user_id: str, subscription_id: str, patch: SubscriptionPatch) -> Subscription:
        subscription = self.get(user_id, subscription_id)
        if patch.amount is not None:
            patch = replace(patch, amount=_unwrap(parse_amount(patch.amount)))
        if patch.recurrence is not None:
            patch = replace(patch, recurrence=_unwrap(parse_recurrence(patch.recurrence)))
        if patch.start_date is not None:
            patch = replace(patch, start_date=_unwrap(parse_date(patch.start_date)))
        if patch.name is not None:
            patch = replace(patch, name=patch.name.strip())

        now = self.clock()
        updated = replace(apply_patch(subscription, patch), updated_at=now)
        if patch_touches(patch, "recurrence", "start_date"):
            updated = replace(
                updated, next_payment=next_occurrence_from(updated.start_date, updated.recurrence, now)
            )
        updated = _unwrap(validate_subscription(
            updated, self.store.list_categories(user_id, [updated.category_id])
        ))
        return self.store.update(updated)

    def delete(self, user_id: str, subscription_id: str) -> None:
        if not self.store.delete(Subscription, subscription_id, _require_user(user_id)):
            raise _not_found("Subscription", subscription_id)
        logger.info("Deleted subscription %s for user %s", subscription_id, user_id)


class DashboardService:
    """Fetches a month (and the one before it) and hands the rows to build_dashboard."""

    def __init__(self, store: Store, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or Settings()

    def dashboard(self, user_id: str, month: str) -> Dashboard:
        year, month_num = _unwrap(parse_month(month))
        user_id = _require_user(user_id)
        prev_year, prev_month_num = previous_month(year, month_num)

        expenses = self.store.list_expenses(user_id, *month_bounds(year, month_num))
        previous = self.store.list_expenses(user_id, *month_bounds(prev_year, prev_month_num))
        subscriptions = self.store.list_subscriptions(user_id)

        category_ids = {e.category_id for e in expenses}
        category_ids.update(s.category_id for s in billing_subscriptions(subscriptions, year, month_num))
        categories = self.store.list_categories(user_id, category_ids)

        return build_dashboard(
            expenses, previous, subscriptions, categories,
            year, month_num, top_n=self.settings.top_categories,
        )

    async def trend(self, user_id: str, months: Sequence[str]) -> Dict[str, Decimal]:
        """Monthly totals for several months, e.g. for a spending trend chart."""
        parsed = [_unwrap(parse_month(m)) for m in months]
        user_id = _require_user(user_id)
        if not parsed:
            return {}
        start, _ = month_bounds(*min(parsed))
        _, end = month_bounds(*max(parsed))
        expenses = self.store.list_expenses(user_id, start, end)
        subscriptions = self.store.list_subscriptions(user_id)
        return await expenses_by_month(expenses, subscriptions, list(months))
