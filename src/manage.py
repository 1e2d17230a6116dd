"""Order desk database management CLI.

Creates and drops the orders schema on SQL providers configured in
domain.toml. The default in-memory provider needs neither.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

import structlog

logger = structlog.get_logger(__name__)


def setup_database():
    """Create the orders schema."""
    from orders.domain import orders
    from orders.utils.db import setup_db

    orders.init()
    providers = setup_db(orders)
    if providers:
        logger.info("Schema created", providers=providers)
    else:
        logger.info("No SQL provider configured; nothing to create")


def drop_database():
    """Drop the orders schema."""
    from orders.domain import orders
    from orders.utils.db import drop_db

    orders.init()
    providers = drop_db(orders)
    logger.info("Schema dropped", providers=providers)


def main():
    from orders.utils.logging import configure_logging

    configure_logging()

    parser = argparse.ArgumentParser(description="Order desk database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
