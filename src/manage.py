"""Delivery database management CLI.

Provides commands to create and drop the delivery database schema, and to
run the maintenance passes outside the HTTP API (for cron-style schedulers).

Usage:
    python src/manage.py setup-db            # Create all tables
    python src/manage.py drop-db             # Drop all tables
    python src/manage.py reconcile-escrow    # Advance orders stuck in Awaiting_Escrow
    python src/manage.py retry-settlements   # Retry partially settled orders
"""

import argparse
import sys


def _initialized_domain():
    from delivery.domain import delivery

    print("Initializing delivery domain...")
    delivery.init()
    return delivery


def setup_database():
    from delivery.utils.db import setup_db

    domain = _initialized_domain()
    print("Creating delivery database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from delivery.utils.db import drop_db

    domain = _initialized_domain()
    print("Dropping delivery database schema...")
    drop_db(domain)
    print("Done.")


def reconcile_escrow():
    from delivery.order.reconciliation import ReconcileEscrowStatus

    domain = _initialized_domain()
    with domain.domain_context():
        count = domain.process(ReconcileEscrowStatus(), asynchronous=False)
    print(f"Advanced {count} order(s) to Ready_For_Pickup.")


def retry_settlements(order_id=None):
    from delivery.order.reconciliation import RetryPendingSettlements

    domain = _initialized_domain()
    with domain.domain_context():
        count = domain.process(RetryPendingSettlements(order_id=order_id), asynchronous=False)
    print(f"Fully settled {count} order(s).")


def main():
    parser = argparse.ArgumentParser(description="Delivery marketplace management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("reconcile-escrow", help="Advance orders whose status lags their escrow flags")
    retry_parser = subparsers.add_parser("retry-settlements", help="Retry partially settled orders")
    retry_parser.add_argument("--order-id", help="Restrict the retry to one order")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "reconcile-escrow":
        reconcile_escrow()
    elif args.command == "retry-settlements":
        retry_settlements(args.order_id)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
