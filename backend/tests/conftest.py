import asyncio
import itertools
import os
import sys
import tempfile
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

# Point the app at a throwaway SQLite database BEFORE any servicehub import
_DB_DIR = tempfile.mkdtemp(prefix="servicehub-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["JWT_SECRET"] = "servicehub-test-secret-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DB_AUTO_CREATE"] = "false"

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

from servicehub.core.database import AsyncSessionLocal, create_all, drop_all
from servicehub.core.security import create_access_token, get_password_hash
from servicehub.main import app
from servicehub.models import Booking, Category, Provider, Service, User

DEFAULT_PASSWORD = "secret123"


async def _reset_schema() -> None:
    await drop_all()
    await create_all()


async def _persist(*objects):
    async with AsyncSessionLocal() as session:
        session.add_all(objects)
        await session.commit()
    return objects


class MarketplaceSeeder:
    """Inserts rows straight through the ORM, outside the HTTP API."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._password_hash = get_password_hash(DEFAULT_PASSWORD)

    def _save(self, obj):
        asyncio.run(_persist(obj))
        return obj

    def user(
        self,
        name: str = "Customer",
        email: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        role: str = "CUSTOMER",
    ) -> User:
        email = email or f"user{next(self._counter)}@example.com"
        return self._save(User(
            email=email,
            password=self._password_hash,
            name=name,
            role=role,
            latitude=latitude,
            longitude=longitude,
        ))

    def provider(
        self,
        name: str = "Provider",
        location: Optional[tuple] = None,
        rating: float = 4.5,
        reviews: int = 10,
        is_available: bool = True,
    ) -> Provider:
        user = self.user(
            name=name,
            latitude=location[0] if location else None,
            longitude=location[1] if location else None,
            role="PROVIDER",
        )
        return self._save(Provider(
            user_id=user.id,
            business_name=name,
            is_available=is_available,
            average_rating=rating,
            total_reviews=reviews,
        ))

    def category(self, name: str = "Cleaning", is_active: bool = True) -> Category:
        return self._save(Category(name=name, icon=name.lower(), is_active=is_active))

    def service(
        self,
        provider: Provider,
        category: Category,
        name: str = "Service",
        price: str = "50.00",
        duration: int = 60,
        is_active: bool = True,
        created_at: Optional[datetime] = None,
    ) -> Service:
        return self._save(Service(
            provider_id=provider.id,
            category_id=category.id,
            name=name,
            base_price=Decimal(price),
            duration=duration,
            is_active=is_active,
            created_at=created_at or datetime.utcnow(),
        ))

    def booking(
        self,
        service: Service,
        customer: User,
        scheduled_date: date,
        scheduled_time: str,
        status: str = "CONFIRMED",
        duration: Optional[int] = None,
    ) -> Booking:
        return self._save(Booking(
            customer_id=customer.id,
            service_id=service.id,
            provider_id=service.provider_id,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            duration=duration or service.duration,
            status=status,
            total_price=service.base_price,
        ))

    def token(self, user_id: int) -> str:
        return create_access_token(user_id)

    def auth(self, user_id: int) -> dict:
        return {"Authorization": f"Bearer {self.token(user_id)}"}


async def _fetch(model, pk):
    async with AsyncSessionLocal() as session:
        return await session.get(model, pk)


@pytest.fixture()
def fetch():
    """Fresh copy of a row, read outside the app's sessions."""
    return lambda model, pk: asyncio.run(_fetch(model, pk))


@pytest.fixture()
def client():
    asyncio.run(_reset_schema())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def seed(client):
    return MarketplaceSeeder()
