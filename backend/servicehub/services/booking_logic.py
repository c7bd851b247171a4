"""
Booking lifecycle: slot availability, conflict detection, creation and
status transitions.

Conflict detection and availability share the same half-open interval test
so that a slot offered by ``get_available_slots`` is one ``create_booking``
would accept, except that availability only counts CONFIRMED/IN_PROGRESS
bookings while creation also treats PENDING ones as taken.

There is no locking: two concurrent requests for overlapping slots can both
pass the conflict check and both be stored.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import List, Optional

from servicehub.models import ACTIVE_STATUSES, Booking, BookingStatus, Service
from servicehub.services.availability import (
    TimeSlot,
    compute_available_slots,
    overlaps_any,
    parse_hhmm,
    format_hhmm,
)
from servicehub.services.db_service import DBService
from servicehub.services.realtime import RealtimeNotifier, notify_best_effort, user_room
from servicehub.services.serializers import booking_to_dict

logger = logging.getLogger(__name__)

# Only these statuses remove a slot from the public availability grid
AVAILABILITY_BLOCKING_STATUSES = (
    BookingStatus.CONFIRMED.value,
    BookingStatus.IN_PROGRESS.value,
)

# Targets a provider may move a booking to
UPDATABLE_STATUSES = (
    BookingStatus.CONFIRMED.value,
    BookingStatus.IN_PROGRESS.value,
    BookingStatus.COMPLETED.value,
    BookingStatus.CANCELLED.value,
)


class BookingError(ValueError):
    pass


class ServiceNotFoundError(BookingError):
    pass


class BookingNotFoundError(BookingError):
    pass


class ProviderUnavailableError(BookingError):
    pass


class SlotUnavailableError(BookingError):
    pass


async def get_available_slots(
    db_service: DBService,
    service_id: int,
    scheduled_date: date,
) -> List[TimeSlot]:
    service = await db_service.get_active_service(service_id)
    if not service:
        raise ServiceNotFoundError("Service not found")

    existing = await db_service.get_provider_bookings_on(
        service.provider_id,
        scheduled_date,
        AVAILABILITY_BLOCKING_STATUSES,
    )
    return compute_available_slots(service.duration, existing)


async def find_conflicts(
    db_service: DBService,
    service: Service,
    scheduled_date: date,
    scheduled_time: str,
) -> List[Booking]:
    """Active bookings of the service's provider that overlap the request."""
    existing = await db_service.get_provider_bookings_on(
        service.provider_id,
        scheduled_date,
        ACTIVE_STATUSES,
    )
    start = parse_hhmm(scheduled_time)
    return [
        booking for booking in existing
        if overlaps_any(start, service.duration, [booking])
    ]


async def create_booking(
    db_service: DBService,
    *,
    customer_id: int,
    service_id: int,
    scheduled_date: date,
    scheduled_time: str,
    notes: Optional[str] = None,
    notifier: Optional[RealtimeNotifier] = None,
) -> Booking:
    service = await db_service.get_active_service(service_id)
    if not service:
        raise ServiceNotFoundError("Service not found")

    if not service.provider.is_available:
        raise ProviderUnavailableError("Provider is currently unavailable")

    # Stored as zero-padded HH:MM so "9:00" and "09:00" compare equal
    normalized_time = format_hhmm(parse_hhmm(scheduled_time))

    conflicts = await find_conflicts(db_service, service, scheduled_date, normalized_time)
    if conflicts:
        raise SlotUnavailableError("Time slot is not available")

    booking = await db_service.create_booking({
        "booking_id": str(uuid.uuid4()),
        "customer_id": customer_id,
        "service_id": service.id,
        "provider_id": service.provider_id,
        "scheduled_date": scheduled_date,
        "scheduled_time": normalized_time,
        # Snapshot so later service edits do not rewrite existing bookings
        "duration": service.duration,
        "total_price": service.base_price,
        "notes": notes or None,
        "status": BookingStatus.PENDING.value,
    })
    logger.info(f"💾 Booking saved: {booking.booking_id} (provider {booking.provider_id})")

    await notify_best_effort(
        notifier,
        user_room(service.provider.user_id),
        "new_booking",
        {
            "type": "NEW_BOOKING",
            "booking": booking_to_dict(booking),
            "message": f"New booking request from {booking.customer.name}",
        },
    )
    return booking


async def list_customer_bookings(
    db_service: DBService,
    customer_id: int,
    *,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
):
    return await db_service.list_customer_bookings(
        customer_id,
        status=status.upper() if status else None,
        offset=(page - 1) * limit,
        limit=limit,
    )


async def update_booking_status(
    db_service: DBService,
    *,
    booking_id: str,
    actor_user_id: int,
    status: str,
    cancellation_reason: Optional[str] = None,
    notifier: Optional[RealtimeNotifier] = None,
) -> Booking:
    if status not in UPDATABLE_STATUSES:
        raise BookingError(f"Unsupported status: {status}")

    # Bookings of other providers are reported as missing, not forbidden
    booking = await db_service.get_booking_for_provider_user(booking_id, actor_user_id)
    if not booking:
        raise BookingNotFoundError("Booking not found")

    updated = await db_service.update_booking(booking, {
        "status": status,
        "cancellation_reason": (
            cancellation_reason if status == BookingStatus.CANCELLED.value else None
        ),
    })
    logger.info(f"🔄 Booking {updated.booking_id} moved to {status}")

    await notify_best_effort(
        notifier,
        user_room(updated.customer_id),
        "booking_update",
        {
            "type": "BOOKING_STATUS_UPDATED",
            "booking": booking_to_dict(updated),
            "message": f"Your booking has been {status.lower()}",
        },
    )
    return updated
