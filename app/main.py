import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime

from tracker.config import configure_logging, load_settings
from tracker.dashboard import dashboard_to_dict
from tracker.errors import TrackerError
from tracker.services import DashboardService, ExpenseService, SubscriptionService
from tracker.store import Store
from tracker.transforms import load_seed, with_next_payment

logger = logging.getLogger("app")


def subscription_to_dict(s) -> dict:
    data = asdict(s)
    data["amount"] = str(s.amount)
    data["recurrence"] = s.recurrence.value
    for key in ("start_date", "next_payment", "created_at", "updated_at"):
        if data[key] is not None:
            data[key] = data[key].isoformat()
    return data


def cmd_seed(store: Store, settings, args) -> int:
    users, categories, expenses, subscriptions = load_seed(args.path or settings.seed_path)
    counts = store.seed(users, categories, expenses, with_next_payment(subscriptions, datetime.now()))
    print(json.dumps(counts))
    return 0


def cmd_dashboard(store: Store, settings, args) -> int:
    dashboard = DashboardService(store, settings).dashboard(args.user, args.month)
    print(json.dumps(dashboard_to_dict(dashboard), indent=2))
    return 0


def cmd_export(store: Store, settings, args) -> int:
    service = ExpenseService(store)
    if args.summary:
        _, summary = service.export(args.user, args.month)
        print(json.dumps(summary, indent=2))
    else:
        sys.stdout.write(service.export_csv(args.user, args.month))
    return 0


def cmd_subscriptions(store: Store, settings, args) -> int:
    service = SubscriptionService(store)
    subs = service.list_for_month(args.user, args.month) if args.month else service.list(args.user)
    print(json.dumps([subscription_to_dict(s) for s in subs], indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="finance-tracker", description="Personal finance tracker")
    parser.add_argument("--database", help="SQLAlchemy URL (default: FINANCE_DATABASE_URL)")
    sub = parser.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="load users, categories, expenses and subscriptions from JSON")
    seed.add_argument("--path", help="seed file (default: FINANCE_SEED_PATH)")
    seed.set_defaults(func=cmd_seed)

    dashboard = sub.add_parser("dashboard", help="monthly dashboard as JSON")
    dashboard.add_argument("--user", required=True)
    dashboard.add_argument("--month", required=True, help="YYYY-MM")
    dashboard.set_defaults(func=cmd_dashboard)

    export = sub.add_parser("export", help="monthly expenses as CSV")
    export.add_argument("--user", required=True)
    export.add_argument("--month", required=True, help="YYYY-MM")
    export.add_argument("--summary", action="store_true", help="print totals instead of CSV")
    export.set_defaults(func=cmd_export)

    subscriptions = sub.add_parser("subscriptions", help="subscriptions, optionally those billing in a month")
    subscriptions.add_argument("--user", required=True)
    subscriptions.add_argument("--month", help="YYYY-MM")
    subscriptions.set_defaults(func=cmd_subscriptions)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)
    store = Store(args.database or settings.database_url)

    try:
        return args.func(store, settings, args)
    except TrackerError as e:
        logger.error("%s", e)
        print(json.dumps(e.detail), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
