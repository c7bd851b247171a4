import enum
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Index, Numeric, Text
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from servicehub.core.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Statuses that hold a provider's time
ACTIVE_STATUSES = (
    BookingStatus.PENDING.value,
    BookingStatus.CONFIRMED.value,
    BookingStatus.IN_PROGRESS.value,
)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("idx_bookings_provider_date_status", "provider_id", "scheduled_date", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Opaque external identifier handed to clients
    booking_id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))

    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)

    # Booking Details
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(String(5), nullable=False)  # HH:MM, 24h
    duration = Column(Integer, nullable=False)  # copied from service at creation

    # Status
    status = Column(String, default=BookingStatus.PENDING.value, nullable=False)
    cancellation_reason = Column(Text, nullable=True)

    # Revenue (copied from service at creation)
    total_price = Column(Numeric(10, 2), nullable=False)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customer = relationship("User", foreign_keys=[customer_id])
    service = relationship("Service", back_populates="bookings")
    provider = relationship("Provider")

    def __repr__(self):
        return f"<Booking(id={self.id}, booking_id={self.booking_id}, status={self.status})>"
