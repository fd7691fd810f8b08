"""GymStore operator CLI.

Usage:
    python src/manage.py setup-db                 # Create relational tables
    python src/manage.py drop-db                  # Drop relational tables
    python src/manage.py reconcile-stock          # Replay every item's ledger
    python src/manage.py reconcile-stock --item ID
    python src/manage.py recover-checkouts        # Report half-finished checkouts
    python src/manage.py low-stock-sweep          # Send the low-stock digest
    python src/manage.py low-stock-report         # Print items at or below threshold

Commands that find a problem exit with status 1.
"""

import argparse
import sys


def _store():
    from store.domain import store
    from store.utils.logging import configure_logging

    configure_logging()
    store.init()
    return store


def setup_database():
    from store.utils.db import setup_db

    touched = setup_db(_store())
    print(f"Schema ready for: {', '.join(touched) or 'no relational providers'}")
    return 0


def drop_database():
    from store.utils.db import drop_db

    touched = drop_db(_store())
    print(f"Schema dropped for: {', '.join(touched) or 'no relational providers'}")
    return 0


def reconcile_stock(item_id=None):
    from store.stock.ledger import ledger

    with _store().domain_context():
        reports = [ledger.reconcile(item_id)] if item_id else ledger.reconcile_all()

    failures = 0
    for report in reports:
        marker = "ok " if report.consistent else "BAD"
        print(f"[{marker}] {report.item_id}: opening {report.opening_quantity}, replayed {report.replayed_quantity}, recorded {report.recorded_quantity}, {report.entry_count} entries")
        for problem in report.problems:
            print(f"      - {problem}")
        failures += 0 if report.consistent else 1

    print(f"{len(reports)} item(s) checked, {failures} inconsistent.")
    return 1 if failures else 0


def recover_checkouts():
    from store.checkout import recovery

    with _store().domain_context():
        findings = recovery.scan()

    for finding in findings:
        print(f"{finding.checkout_id} (member {finding.member_id}, {finding.status}): {finding.detail}")
        for movement in finding.movements:
            print(f"      - {movement['item_id']}: -{movement['quantity']} ({movement['previous_stock']} -> {movement['new_stock']})")

    print(f"{len(findings)} checkout(s) need reconciliation.")
    return 1 if findings else 0


def low_stock_sweep():
    from store.alerts.monitor import monitor

    with _store().domain_context():
        digest = monitor.sweep()

    if digest is None:
        print("No items are low on stock.")
    else:
        print(f"Digest sent for {len(digest.items)} item(s).")
    return 0


def low_stock_report():
    from store.alerts.monitor import monitor

    with _store().domain_context():
        report = monitor.report()

    for line in report.lines:
        print(f"{line.status:<13} {line.name} ({line.item_id}): {line.quantity}/{line.threshold}, short {line.shortfall}")
    print(f"{report.total_items} low item(s), {report.critical_items} out of stock.")
    return 0


def main():
    parser = argparse.ArgumentParser(description="GymStore operations")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    reconcile_parser = subparsers.add_parser("reconcile-stock", help="Replay stock ledgers against live quantities")
    reconcile_parser.add_argument("--item", dest="item_id", help="Only reconcile this item")

    subparsers.add_parser("recover-checkouts", help="Find checkouts that decremented stock without an order")
    subparsers.add_parser("low-stock-sweep", help="Re-evaluate every item and send the low-stock digest")
    subparsers.add_parser("low-stock-report", help="Print items at or below their threshold")

    args = parser.parse_args()

    if args.command == "setup-db":
        status = setup_database()
    elif args.command == "drop-db":
        status = drop_database()
    elif args.command == "reconcile-stock":
        status = reconcile_stock(args.item_id)
    elif args.command == "recover-checkouts":
        status = recover_checkouts()
    elif args.command == "low-stock-sweep":
        status = low_stock_sweep()
    elif args.command == "low-stock-report":
        status = low_stock_report()
    else:
        parser.print_help()
        status = 1

    sys.exit(status)


if __name__ == "__main__":
    main()
