#!/usr/bin/env python3
"""
Seed database with test data for development.

Creates a few shoppers and products and records recent product views so
that the next abandonment scan has candidates at each urgency level.

Usage:
    python scripts/seed_data.py
"""

import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from cart_recovery.config import get_settings  # noqa: E402
from cart_recovery.infrastructure.database.connection import (  # noqa: E402
    get_async_engine,
    get_async_session_factory,
)
from cart_recovery.infrastructure.database.repository import (  # noqa: E402
    CartRecoveryRepository,
)

PRODUCTS = [
    {"id": "prod-001", "name": "Wireless Noise-Canceling Headphones"},
    {"id": "prod-002", "name": "Mechanical Gaming Keyboard"},
    {"id": "prod-003", "name": "Ergonomic Office Chair"},
    {"id": "prod-004", "name": "4K Ultra HD Monitor"},
    {"id": "prod-005", "name": "Standing Desk Converter"},
    {"id": "prod-006", "name": "USB-C Hub"},
]

USERS = [
    {"email": "alice@example.com", "phone": "+15550000001"},
    {"email": "bob@example.com", "phone": "+15550000002"},
    {"email": "charlie@example.com", "phone": None},
]


async def seed_products(repository: CartRecoveryRepository) -> None:
    """Seed sample products."""
    for product in PRODUCTS:
        await repository.get_or_create_product(product["id"], product["name"])

    print(f"Created {len(PRODUCTS)} sample products")


async def seed_users(repository: CartRecoveryRepository) -> dict[str, str]:
    """Seed sample users, returning email -> user id."""
    user_ids = {}
    for user in USERS:
        user_ids[user["email"]] = await repository.get_or_create_user(
            user["email"], phone=user["phone"]
        )

    print(f"Created {len(user_ids)} sample users")
    return user_ids


async def seed_views(repository: CartRecoveryRepository, user_ids: dict[str, str]) -> None:
    """Seed recent product views."""
    now = datetime.now(timezone.utc)
    views = [
        # Alice: two products, oldest view 25 minutes ago -> high urgency
        ("alice@example.com", PRODUCTS[0], now - timedelta(minutes=25)),
        ("alice@example.com", PRODUCTS[1], now - timedelta(minutes=10)),
        # Bob: one view 17 minutes ago -> medium urgency
        ("bob@example.com", PRODUCTS[2], now - timedelta(minutes=17)),
        # Charlie: just now -> low urgency, no phone on file
        ("charlie@example.com", PRODUCTS[3], now - timedelta(minutes=2)),
    ]

    for email, product, timestamp in views:
        await repository.create_view(
            user_id=user_ids[email],
            product_id=product["id"],
            product_name=product["name"],
            timestamp=timestamp,
        )

    # An anonymous view is stored but never reminded
    await repository.create_view(
        user_id=None,
        product_id=PRODUCTS[4]["id"],
        product_name=PRODUCTS[4]["name"],
        timestamp=now - timedelta(minutes=5),
    )

    print(f"Created {len(views) + 1} sample product views")


async def main():
    """Run seeding."""
    print("Seeding database with test data...")
    print("=" * 50)

    engine = get_async_engine(get_settings())
    repository = CartRecoveryRepository(get_async_session_factory(engine))
    try:
        await seed_products(repository)
        user_ids = await seed_users(repository)
        await seed_views(repository, user_ids)
    finally:
        await engine.dispose()

    print("=" * 50)
    print("Seeding complete!")


if __name__ == "__main__":
    asyncio.run(main())
