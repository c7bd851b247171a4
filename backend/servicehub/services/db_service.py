from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from servicehub.models import User, Provider, Category, Service, Booking, Message
from typing import Any, Optional, List, Sequence, Tuple
from datetime import date

# Relationships every service payload needs
SERVICE_LOAD_OPTIONS = (
    selectinload(Service.category),
    selectinload(Service.provider).selectinload(Provider.user),
)

# Relationships every booking payload needs
BOOKING_LOAD_OPTIONS = (
    selectinload(Booking.customer),
    selectinload(Booking.service).selectinload(Service.category),
    selectinload(Booking.provider).selectinload(Provider.user),
)

MESSAGE_LOAD_OPTIONS = (
    selectinload(Message.sender),
    selectinload(Message.receiver),
)


class DBService:
    """
    Service for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ==================== USERS ====================

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        result = await self.session.execute(
            select(User).where(User.email == email)
        )
        return result.scalar_one_or_none()

    async def create_user(self, data: dict) -> User:
        """Create new user"""
        user = User(**data)
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    # ==================== CATALOGUE ====================

    async def get_active_service(self, service_id: int) -> Optional[Service]:
        """Get an active service with its category and provider loaded"""
        result = await self.session.execute(
            select(Service)
            .options(*SERVICE_LOAD_OPTIONS)
            .where(Service.id == service_id, Service.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def find_services(
        self,
        conditions: Sequence[Any],
        order_by: Sequence[Any] = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Service]:
        """Services (joined to their provider and category) matching ``conditions``"""
        query = (
            select(Service)
            .join(Service.provider)
            .join(Service.category)
            .options(*SERVICE_LOAD_OPTIONS)
            .where(*conditions)
            .order_by(*order_by)
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_services(self, conditions: Sequence[Any]) -> int:
        result = await self.session.execute(
            select(func.count(Service.id))
            .select_from(Service)
            .join(Service.provider)
            .join(Service.category)
            .where(*conditions)
        )
        return result.scalar_one()

    async def list_active_categories(self) -> List[Tuple[Category, int]]:
        """Active categories ordered by name, with their service counts"""
        service_count = (
            select(func.count(Service.id))
            .where(Service.category_id == Category.id)
            .correlate(Category)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(Category, service_count)
            .where(Category.is_active.is_(True))
            .order_by(Category.name.asc())
        )
        return [(category, count) for category, count in result.all()]

    async def list_popular_services(self, min_rating: float, limit: int) -> List[Tuple[Service, int]]:
        """Top rated services of available providers, with their booking counts"""
        booking_count = (
            select(func.count(Booking.id))
            .where(Booking.service_id == Service.id)
            .correlate(Service)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(Service, booking_count)
            .join(Service.provider)
            .options(*SERVICE_LOAD_OPTIONS)
            .where(
                Service.is_active.is_(True),
                Provider.is_available.is_(True),
                Provider.average_rating >= min_rating,
            )
            .order_by(
                Provider.average_rating.desc(),
                Provider.total_reviews.desc(),
                Service.id.asc(),
            )
            .limit(limit)
        )
        return [(service, count) for service, count in result.all()]

    # ==================== BOOKINGS ====================

    async def create_booking(self, data: dict) -> Booking:
        """Create new booking and return it with relations loaded"""
        booking = Booking(**data)
        self.session.add(booking)
        await self.session.commit()
        return await self.get_booking(booking.id)

    async def get_booking(self, booking_pk: int) -> Optional[Booking]:
        """Get booking by primary key"""
        result = await self.session.execute(
            select(Booking)
            .options(*BOOKING_LOAD_OPTIONS)
            .where(Booking.id == booking_pk)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_booking_for_provider_user(
        self,
        booking_id: str,
        user_id: int,
    ) -> Optional[Booking]:
        """Get a booking by external id, only if ``user_id`` owns its provider"""
        result = await self.session.execute(
            select(Booking)
            .join(Booking.provider)
            .options(*BOOKING_LOAD_OPTIONS)
            .where(
                Booking.booking_id == booking_id,
                Provider.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_provider_bookings_on(
        self,
        provider_id: int,
        scheduled_date: date,
        statuses: Sequence[str],
    ) -> List[Booking]:
        """Bookings of a provider on one day, limited to ``statuses``"""
        result = await self.session.execute(
            select(Booking)
            .where(
                Booking.provider_id == provider_id,
                Booking.scheduled_date == scheduled_date,
                Booking.status.in_(list(statuses)),
            )
            .order_by(Booking.scheduled_time.asc())
        )
        return list(result.scalars().all())

    async def list_customer_bookings(
        self,
        customer_id: int,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Booking], int]:
        """A page of a customer's bookings (newest first) and the total count"""
        conditions = [Booking.customer_id == customer_id]
        if status:
            conditions.append(Booking.status == status)

        result = await self.session.execute(
            select(Booking)
            .options(*BOOKING_LOAD_OPTIONS)
            .where(*conditions)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .offset(offset)
            .limit(limit)
        )
        total = await self.session.execute(
            select(func.count(Booking.id)).where(*conditions)
        )
        return list(result.scalars().all()), total.scalar_one()

    async def update_booking(self, booking: Booking, data: dict) -> Booking:
        """Update booking"""
        for key, value in data.items():
            setattr(booking, key, value)
        await self.session.commit()
        return await self.get_booking(booking.id)

    # ==================== MESSAGES ====================

    async def create_message(self, data: dict) -> Message:
        """Create new message and return it with sender/receiver loaded"""
        message = Message(**data)
        self.session.add(message)
        await self.session.commit()
        result = await self.session.execute(
            select(Message)
            .options(*MESSAGE_LOAD_OPTIONS)
            .where(Message.id == message.id)
        )
        return result.scalar_one()

    async def mark_messages_read(self, message_ids: Sequence[int], receiver_id: int) -> int:
        """Mark messages addressed to ``receiver_id`` as read; returns rows touched"""
        if not message_ids:
            return 0
        result = await self.session.execute(
            update(Message)
            .where(
                Message.id.in_(list(message_ids)),
                Message.receiver_id == receiver_id,
            )
            .values(is_read=True)
        )
        await self.session.commit()
        return result.rowcount or 0
