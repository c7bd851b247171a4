from __future__ import annotations

import math
from datetime import date
from typing import Any, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from servicehub.api.deps import get_current_user, get_notifier
from servicehub.core.database import get_db
from servicehub.models import User
from servicehub.services import booking_logic
from servicehub.services.booking_logic import (
    BookingError,
    BookingNotFoundError,
    ServiceNotFoundError,
)
from servicehub.services.db_service import DBService
from servicehub.services.realtime import RealtimeNotifier
from servicehub.services.serializers import booking_to_dict

router = APIRouter(tags=["bookings"])

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"
DATE_FORMAT_ERROR = "Invalid date format; expected YYYY-MM-DD"


def _parse_date(value: Any) -> date:
    # ISO YYYY-MM-DD strings only, never numbers
    if not isinstance(value, str):
        raise ValueError(DATE_FORMAT_ERROR)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(DATE_FORMAT_ERROR)


class CreateBookingPayload(BaseModel):
    service_id: int = Field(..., ge=1, alias="serviceId")
    scheduled_date: date = Field(..., alias="scheduledDate")
    scheduled_time: str = Field(..., pattern=TIME_PATTERN, alias="scheduledTime")
    notes: Optional[str] = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def _iso_date(cls, value: Any) -> date:
        return _parse_date(value)


class UpdateStatusPayload(BaseModel):
    status: Literal["CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELLED"]
    cancellation_reason: Optional[str] = Field(None, alias="cancellationReason")


def _raise_booking_http_error(exc: BookingError) -> None:
    if isinstance(exc, (ServiceNotFoundError, BookingNotFoundError)):
        raise HTTPException(status_code=404, detail=str(exc))
    raise HTTPException(status_code=400, detail=str(exc))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: CreateBookingPayload,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Optional[RealtimeNotifier] = Depends(get_notifier),
):
    """Book a service slot as the authenticated customer."""
    try:
        booking = await booking_logic.create_booking(
            DBService(db),
            customer_id=current_user.id,
            service_id=payload.service_id,
            scheduled_date=payload.scheduled_date,
            scheduled_time=payload.scheduled_time,
            notes=payload.notes.strip() if payload.notes else None,
            notifier=notifier,
        )
    except BookingError as exc:
        _raise_booking_http_error(exc)

    return {
        "message": "Booking created successfully",
        "booking": booking_to_dict(booking),
    }


@router.get("/my")
async def list_my_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Bookings made by the authenticated customer, newest first"""
    bookings, total_count = await booking_logic.list_customer_bookings(
        DBService(db),
        current_user.id,
        status=status_filter,
        page=page,
        limit=limit,
    )
    return {
        "bookings": [booking_to_dict(booking) for booking in bookings],
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total_count / limit),
            "totalCount": total_count,
        },
    }


@router.patch("/{booking_id}/status")
async def update_booking_status(
    booking_id: UUID,
    payload: UpdateStatusPayload,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Optional[RealtimeNotifier] = Depends(get_notifier),
):
    """Move a booking to a new status; only its provider may do this."""
    try:
        booking = await booking_logic.update_booking_status(
            DBService(db),
            booking_id=str(booking_id),
            actor_user_id=current_user.id,
            status=payload.status,
            cancellation_reason=payload.cancellation_reason,
            notifier=notifier,
        )
    except BookingError as exc:
        _raise_booking_http_error(exc)

    return {
        "message": "Booking status updated successfully",
        "booking": booking_to_dict(booking),
    }


@router.get("/availability/{service_id}")
async def get_availability(
    service_id: int = Path(..., ge=1),
    date_str: str = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
):
    """Free 30-minute slots between 09:00 and 18:00 for a service on a date"""
    try:
        scheduled_date = _parse_date(date_str)
    except ValueError:
        raise HTTPException(status_code=400, detail=DATE_FORMAT_ERROR)

    try:
        slots = await booking_logic.get_available_slots(DBService(db), service_id, scheduled_date)
    except BookingError as exc:
        _raise_booking_http_error(exc)

    return {"timeSlots": [slot.to_dict() for slot in slots]}
