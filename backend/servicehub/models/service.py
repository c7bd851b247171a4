from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from servicehub.core.database import Base

class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Pricing & scheduling
    base_price = Column(Numeric(10, 2), nullable=False)
    duration = Column(Integer, nullable=False, default=60)  # minutes

    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    provider = relationship("Provider", back_populates="services")
    category = relationship("Category", back_populates="services")
    bookings = relationship("Booking", back_populates="service")

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name})>"
