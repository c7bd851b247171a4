from __future__ import annotations

import argparse
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Ensure the backend project root (the directory containing the "servicehub"
# package) is on sys.path so this script can be executed from the repo root
# or backend/.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy import select

from servicehub.core.database import AsyncSessionLocal, create_all
from servicehub.core.security import get_password_hash
from servicehub.models import Category, Provider, Service, User

CATEGORIES = [
    ("Cleaning", "broom"),
    ("Plumbing", "wrench"),
    ("Electrical", "bolt"),
    ("Tutoring", "book"),
]

# name, email, (lat, lon), rating, reviews, [(category, service, price, minutes)]
PROVIDERS = [
    (
        "Harbour Cleaners",
        "harbour@example.com",
        (-33.8688, 151.2093),
        4.8,
        112,
        [("Cleaning", "Standard home clean", "90.00", 120), ("Cleaning", "Oven deep clean", "60.00", 60)],
    ),
    (
        "Inner West Plumbing",
        "iwplumbing@example.com",
        (-33.8981, 151.1746),
        4.3,
        41,
        [("Plumbing", "Leaking tap repair", "120.00", 60)],
    ),
    (
        "Sparky Sam",
        "sam@example.com",
        None,
        3.9,
        8,
        [("Electrical", "Light fitting install", "85.00", 30)],
    ),
]


async def seed(password: str) -> None:
    """Insert demo categories, providers and services if they are missing."""

    await create_all()

    async with AsyncSessionLocal() as session:
        categories: dict[str, Category] = {}
        for name, icon in CATEGORIES:
            result = await session.execute(select(Category).where(Category.name == name))
            category = result.scalar_one_or_none()
            if not category:
                category = Category(name=name, icon=icon, is_active=True)
                session.add(category)
            categories[name] = category
        await session.flush()

        created = 0
        for name, email, coords, rating, reviews, services in PROVIDERS:
            result = await session.execute(select(User).where(User.email == email))
            if result.scalar_one_or_none():
                print(f"⚠️ {email} already exists; skipping")
                continue

            user = User(
                email=email,
                password=get_password_hash(password),
                name=name,
                role="PROVIDER",
                latitude=coords[0] if coords else None,
                longitude=coords[1] if coords else None,
            )
            session.add(user)
            await session.flush()

            provider = Provider(
                user_id=user.id,
                business_name=name,
                is_available=True,
                average_rating=rating,
                total_reviews=reviews,
            )
            session.add(provider)
            await session.flush()

            for category_name, service_name, price, minutes in services:
                session.add(Service(
                    provider_id=provider.id,
                    category_id=categories[category_name].id,
                    name=service_name,
                    base_price=Decimal(price),
                    duration=minutes,
                    is_active=True,
                ))
            created += 1

        await session.commit()
        print(f"✅ Seeded {len(categories)} categories and {created} providers.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed demo marketplace data.")
    parser.add_argument(
        "--password",
        default="demo-password",
        help="Password given to every seeded provider account",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(seed(args.password))


if __name__ == "__main__":
    main()
