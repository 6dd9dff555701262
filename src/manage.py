"""Marketplace database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py seed       # Demo merchants' products and a flash sale
"""

import argparse
import sys
from datetime import timedelta
from decimal import Decimal

_DEMO_PRODUCTS = [
    ("Maasai Shuka Blanket", "Nairobi Textiles", Decimal("25.00"), 40),
    ("Kenyan AA Coffee 500g", "Nyeri Highlands Roasters", Decimal("14.50"), 120),
    ("Soapstone Carving", "Kisii Artisans", Decimal("32.00"), 15),
    ("Kikoy Beach Towel", "Lamu Weavers", Decimal("18.75"), 60),
]


def _marketplace():
    from marketplace.domain import marketplace as domain
    from marketplace.services import Marketplace

    marketplace = Marketplace(domain)
    marketplace.init()
    return marketplace


def setup_database():
    """Create the database schema."""
    print("Initializing marketplace domain...")
    _marketplace()
    print("Done.")


def drop_database():
    """Drop the database schema."""
    from marketplace.utils.db import drop_db

    print("Initializing marketplace domain...")
    marketplace = _marketplace()
    print("Dropping marketplace database schema...")
    drop_db(marketplace.domain)
    print("Done.")


def seed_database():
    """Register demo products and schedule a flash sale over them."""
    from marketplace.flash_sale.management import CreateFlashSale, FlashSaleProductData
    from marketplace.product.management import RegisterProduct
    from marketplace.shared.money import to_money
    from marketplace.utils.db import utcnow

    marketplace = _marketplace()
    products = []
    for index, (name, merchant, price, stock) in enumerate(_DEMO_PRODUCTS):
        product = marketplace.catalogue.register(
            RegisterProduct(
                name=name,
                merchant_id=f"merchant-{index + 1:03d}",
                merchant_name=merchant,
                price=price,
                stock_quantity=stock,
            )
        )
        products.append(product)
        print(f"  Product {product.id}: {name} ({stock} in stock)")

    now = utcnow()
    sale = marketplace.flash_sales.create(
        admin_id="admin-seed",
        command=CreateFlashSale(
            title="Weekend Flash Sale",
            description="Up to 30% off selected crafts",
            start_date=now + timedelta(minutes=1),
            end_date=now + timedelta(days=2),
            products=[
                FlashSaleProductData(
                    product_id=str(product.id),
                    name=product.name,
                    original_price=to_money(product.price),
                    sale_price=(to_money(product.price) * Decimal("0.7")).quantize(Decimal("0.01")),
                    merchant_id=product.merchant_id,
                    merchant_name=product.merchant_name,
                    stock_quantity=min(product.stock_quantity, 10),
                )
                for product in products[:2]
            ],
        ),
    )
    print(f"  Flash sale {sale.id}: {sale.title}")
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Marketplace database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed", help="Insert demo products and a flash sale")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "seed":
        seed_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
