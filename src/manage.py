"""Marketplace management CLI.

Usage:
    python src/manage.py setup-db                      # Create all tables
    python src/manage.py drop-db                       # Drop all tables
    python src/manage.py recompute-refunds [ORDER_ID]  # Rebuild refund totals
"""

import argparse
import sys


def _initialized_domain():
    from marketplace.domain import marketplace

    print("Initializing marketplace domain...")
    marketplace.init()
    return marketplace


def setup_database():
    from marketplace.utils.db import setup_db

    domain = _initialized_domain()
    print("Creating marketplace database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from marketplace.utils.db import drop_db

    domain = _initialized_domain()
    print("Dropping marketplace database schema...")
    drop_db(domain)
    print("Done.")


def recompute_refunds(order_ids, include_pending=None):
    """Re-run the refund recompute for the given orders, or for every order."""
    from marketplace.order.order import Order
    from marketplace.refund.recompute import RecomputeRefundState
    from protean.exceptions import ObjectNotFoundError

    domain = _initialized_domain()
    with domain.domain_context():
        if not order_ids:
            order_ids = [str(order.id) for order in domain.repository_for(Order)._dao.query.all().items]

        changed = 0
        for order_id in order_ids:
            try:
                state = domain.process(
                    RecomputeRefundState(order_id=order_id, include_pending=include_pending),
                    asynchronous=False,
                )
            except ObjectNotFoundError:
                print(f"  {order_id}: not found")
                continue
            changed += int(state.changed)
            print(f"  {order_id}: {state.status} ({state.refunded_total_cents} refunded)")

    print(f"Done. {changed} of {len(order_ids)} orders changed.")


def main():
    parser = argparse.ArgumentParser(description="Marketplace management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    recompute = subparsers.add_parser("recompute-refunds", help="Rebuild order refund totals from refund records")
    recompute.add_argument("order_ids", nargs="*", help="Orders to recompute (default: all)")
    recompute.add_argument("--include-pending", action="store_true", default=None, help="Count pending refunds")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "recompute-refunds":
        recompute_refunds(args.order_ids, include_pending=args.include_pending)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
