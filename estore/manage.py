# estore/manage.py
#
# Database management commands:
#     python -m estore.manage setup-db        # Create all tables
#     python -m estore.manage drop-db         # Drop all tables
#     python -m estore.manage create-admin --name Ada --email ada@example.com --password s3cret
#     python -m estore.manage seed            # Insert demo products into an empty catalog

import argparse
import sys
from decimal import Decimal

from sqlalchemy import func, select

from . import accounts, catalog
from .config import get_settings
from .database import connection, create_db_engine, drop_db, init_db, products
from .errors import StoreError
from .logging_config import configure_logging

DEMO_PRODUCTS = [
    {
        "name": "Pixel 7A",
        "description": "Powerful camera and smooth Android experience.",
        "price": Decimal("349.99"),
        "stock": 25,
        "category": "Mobiles",
    },
    {
        "name": "ThinkPad X1",
        "description": "Business-class laptop with legendary keyboard.",
        "price": Decimal("1199.99"),
        "stock": 10,
        "category": "Laptops",
    },
    {
        "name": "MacBook Air M2",
        "description": "Ultra portable with M2 performance.",
        "price": Decimal("1249.99"),
        "stock": 12,
        "category": "Laptops",
    },
    {
        "name": "Noise Cancelling Headphones",
        "description": "Immerse in music with ANC.",
        "price": Decimal("199.99"),
        "stock": 40,
        "category": "Accessories",
    },
]


def seed_products(engine) -> int:
    """Insert the demo catalog if no products exist yet. Returns rows added."""
    with connection(engine) as conn:
        count = conn.execute(select(func.count()).select_from(products)).scalar_one()
    if count:
        return 0
    for values in DEMO_PRODUCTS:
        catalog.create_product(engine, values)
    return len(DEMO_PRODUCTS)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="estore database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed", help="Insert demo products into an empty catalog")

    admin_parser = subparsers.add_parser("create-admin", help="Create an admin account")
    admin_parser.add_argument("--name", required=True)
    admin_parser.add_argument("--email", required=True)
    admin_parser.add_argument("--password", required=True)

    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    engine = create_db_engine(settings.database_url)

    try:
        if args.command == "setup-db":
            init_db(engine)
        elif args.command == "drop-db":
            drop_db(engine)
        elif args.command == "seed":
            init_db(engine)
            added = seed_products(engine)
            print(f"Seeded {added} products.")
        elif args.command == "create-admin":
            init_db(engine)
            admin = accounts.create_admin(engine, args.name, args.email, args.password)
            print(f"Admin created: id={admin.id} email={admin.email}")
    except StoreError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
