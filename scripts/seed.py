#!/usr/bin/env python3
"""Seed database with review fixtures.

Creates:
- Categories
- Approved partner retailers (Target, Walmart, Amazon) and pending applications
- Pending deals that land in the flagged inventory queue
- An admin profile (ADMIN_USER_ID / ADMIN_EMAIL) allowed to use the API

Seed script is idempotent (rows are matched by slug / id and skipped if present).

Usage:
    python -m scripts.seed
"""

import asyncio
from datetime import timedelta
import os

from dotenv import load_dotenv
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deals_admin.models import Category, Deal, Retailer, UserProfile
from deals_admin.models.columns import utcnow
from deals_admin.models.user_profile import ROLE_ADMIN, ROLE_RETAILER
from deals_admin.services.catalog import refresh_deal_counts
from deals_admin.services.lifecycle import ReviewStatus
from deals_admin.services.validation import calculate_savings_percentage
from deals_admin.settings import get_settings
from deals_admin.stores.postgres import Database

load_dotenv()

# ============================================================
# Categories
# ============================================================

CATEGORIES = [
    {"name": "Electronics", "slug": "electronics", "icon": "laptop", "order": 1},
    {"name": "Home & Kitchen", "slug": "home-kitchen", "icon": "home", "order": 2},
    {"name": "Apparel", "slug": "apparel", "icon": "shirt", "order": 3},
    {"name": "Toys & Games", "slug": "toys-games", "icon": "gamepad", "order": 4},
]

# ============================================================
# Retailers
# ============================================================

PARTNERS = [
    {"name": "Target", "slug": "target", "website_url": "https://www.target.com", "commission": "5%"},
    {"name": "Walmart", "slug": "walmart", "website_url": "https://www.walmart.com", "commission": "4%"},
    {"name": "Amazon", "slug": "amazon", "website_url": "https://www.amazon.com", "commission": "3%"},
]

# Applications covering each risk flag the queue can show
APPLICATIONS = [
    {
        "user_id": "seed-applicant-1",
        "name": "Liquidation Outlet LLC",
        "slug": "liquidation-outlet",
        "email": "owner@gmail.com",
        "website_url": "None provided",
        "entity_type": "LLC",
        "state": "TX",
        "year_established_offset": 1,
        "volume": "500-1000 units/month",
    },
    {
        "user_id": "seed-applicant-2",
        "name": "Overstock Partners Inc",
        "slug": "overstock-partners",
        "email": "sales@overstockpartners.com",
        "website_url": "https://overstockpartners.com",
        "entity_type": "Corporation",
        "state": "CA",
        "year_established_offset": 12,
        "volume": "1000+ units/month",
    },
]

# ============================================================
# Deals (prices in cents)
# ============================================================

PENDING_DEALS = [
    {
        "product_name": "4K Smart TV 55in",
        "slug": "4k-smart-tv-55in",
        "sku": "TV-55-4K",
        "category": "electronics",
        "retailer": "target",
        "price": 20000,
        "original_price": 50000,
        "quantity": 150,
        "image_url": None,
    },
    {
        "product_name": "Stand Mixer",
        "slug": "stand-mixer",
        "sku": "KM-500",
        "category": "home-kitchen",
        "retailer": "walmart",
        "price": 19999,
        "original_price": 29999,
        "quantity": 20,
        "image_url": "https://images.example.com/stand-mixer.jpg",
    },
]


async def seed_database() -> None:
    """Seed database with review fixtures."""
    settings = get_settings()
    db = Database.from_url(settings.async_database_url)
    await db.create_tables()

    async with db.session() as session:
        print("Seeding database...")

        print("\nCreating admin profile...")
        await seed_admin(session)

        print("\nCreating categories...")
        await seed_categories(session)

        print("\nCreating retailers...")
        await seed_retailers(session)

        print("\nCreating pending deals...")
        await seed_deals(session)

        print("\nRefreshing deal counts...")
        await refresh_deal_counts(session)

    print("\nDatabase seeded successfully!")
    await db.close()


async def seed_admin(session: AsyncSession) -> None:
    admin_id = os.getenv("ADMIN_USER_ID")
    if not admin_id:
        print("  ADMIN_USER_ID not set, skipping")
        return
    if await session.get(UserProfile, admin_id) is not None:
        print(f"  {admin_id} (exists)")
        return
    session.add(
        UserProfile(
            id=admin_id,
            email=os.getenv("ADMIN_EMAIL"),
            full_name="Seed Admin",
            role=ROLE_ADMIN,
        )
    )
    print(f"  {admin_id}")


async def seed_categories(session: AsyncSession) -> None:
    for c in CATEGORIES:
        exists = await session.execute(select(Category.id).where(Category.slug == c["slug"]))
        if exists.scalar_one_or_none():
            print(f"  {c['slug']} (exists)")
            continue
        session.add(Category(**c))
        print(f"  {c['slug']}")


async def seed_retailers(session: AsyncSession) -> None:
    now = utcnow()
    for p in PARTNERS:
        exists = await session.execute(select(Retailer.id).where(Retailer.slug == p["slug"]))
        if exists.scalar_one_or_none():
            print(f"  {p['slug']} (exists)")
            continue
        session.add(
            Retailer(
                **p,
                status=ReviewStatus.APPROVED,
                is_active=True,
                approved_at=now,
                approval_notes="Seeded partner",
            )
        )
        print(f"  {p['slug']} (approved)")

    for a in APPLICATIONS:
        exists = await session.execute(select(Retailer.id).where(Retailer.slug == a["slug"]))
        if exists.scalar_one_or_none():
            print(f"  {a['slug']} (exists)")
            continue
        values = {k: v for k, v in a.items() if k != "year_established_offset"}
        values["year_established"] = now.year - a["year_established_offset"]
        session.add(Retailer(**values, status=ReviewStatus.PENDING))
        if await session.get(UserProfile, a["user_id"]) is None:
            session.add(
                UserProfile(
                    id=a["user_id"],
                    email=a["email"],
                    role=ROLE_RETAILER,
                    retailer_status=ReviewStatus.PENDING.value,
                )
            )
        print(f"  {a['slug']} (pending)")


async def seed_deals(session: AsyncSession) -> None:
    expires = utcnow() + timedelta(days=30)
    for d in PENDING_DEALS:
        exists = await session.execute(select(Deal.id).where(Deal.slug == d["slug"]))
        if exists.scalar_one_or_none():
            print(f"  {d['slug']} (exists)")
            continue
        session.add(
            Deal(
                **d,
                description=f"{d['product_name']} clearance",
                deal_url=f"https://example.com/deals/{d['slug']}",
                savings_percentage=calculate_savings_percentage(d["original_price"], d["price"]),
                expiration_date=expires,
                status=ReviewStatus.PENDING,
            )
        )
        print(f"  {d['slug']}")


if __name__ == "__main__":
    asyncio.run(seed_database())
