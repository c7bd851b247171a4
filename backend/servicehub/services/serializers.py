from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from servicehub.models import Booking, Category, Message, Provider, Service, User


def _dt_to_iso(value: Optional[datetime | date]) -> Optional[str]:
    if not value:
        return None
    return value.isoformat()


def _money(value: Optional[Decimal]) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def user_to_dict(user: User) -> dict[str, Any]:
    """Public user profile; never includes the password hash."""
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "phone": user.phone,
        "avatar": user.avatar,
        "address": user.address,
        "latitude": user.latitude,
        "longitude": user.longitude,
        "createdAt": _dt_to_iso(user.created_at),
    }


def user_summary(user: Optional[User]) -> Optional[dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "avatar": user.avatar}


def category_to_dict(category: Optional[Category]) -> Optional[dict[str, Any]]:
    if category is None:
        return None
    return {"id": category.id, "name": category.name, "icon": category.icon}


def provider_to_dict(provider: Provider) -> dict[str, Any]:
    user = provider.user
    return {
        "id": provider.id,
        "userId": provider.user_id,
        "businessName": provider.business_name,
        "isAvailable": provider.is_available,
        "averageRating": provider.average_rating,
        "totalReviews": provider.total_reviews,
        "user": {
            "id": user.id,
            "name": user.name,
            "avatar": user.avatar,
            "latitude": user.latitude,
            "longitude": user.longitude,
            "address": user.address,
        } if user else None,
    }


def service_to_dict(service: Service, distance: Optional[float] = None, *, with_distance: bool = False) -> dict[str, Any]:
    data = {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "basePrice": _money(service.base_price),
        "duration": service.duration,
        "isActive": service.is_active,
        "createdAt": _dt_to_iso(service.created_at),
        "category": category_to_dict(service.category),
        "provider": provider_to_dict(service.provider),
    }
    if with_distance:
        data["distance"] = distance
    return data


def booking_to_dict(booking: Booking) -> dict[str, Any]:
    customer = booking.customer
    service = booking.service
    provider = booking.provider
    return {
        "id": booking.id,
        "bookingId": booking.booking_id,
        "customerId": booking.customer_id,
        "serviceId": booking.service_id,
        "providerId": booking.provider_id,
        "scheduledDate": _dt_to_iso(booking.scheduled_date),
        "scheduledTime": booking.scheduled_time,
        "duration": booking.duration,
        "status": booking.status,
        "totalPrice": _money(booking.total_price),
        "notes": booking.notes,
        "cancellationReason": booking.cancellation_reason,
        "createdAt": _dt_to_iso(booking.created_at),
        "updatedAt": _dt_to_iso(booking.updated_at),
        "customer": {
            "id": customer.id,
            "name": customer.name,
            "email": customer.email,
            "phone": customer.phone,
        } if customer else None,
        "service": {
            "id": service.id,
            "name": service.name,
            "duration": service.duration,
            "category": category_to_dict(service.category),
        } if service else None,
        "provider": {
            "id": provider.id,
            "userId": provider.user_id,
            "user": user_summary(provider.user),
        } if provider else None,
    }


def message_to_dict(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "content": message.content,
        "type": message.type,
        "senderId": message.sender_id,
        "receiverId": message.receiver_id,
        "bookingId": message.booking_id,
        "isRead": message.is_read,
        "createdAt": _dt_to_iso(message.created_at),
        "sender": user_summary(message.sender),
        "receiver": user_summary(message.receiver),
    }
