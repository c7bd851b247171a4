from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship
from servicehub.core.database import Base

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, unique=True, nullable=False)
    icon = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)

    services = relationship("Service", back_populates="category")

    def __repr__(self):
        return f"<Category(id={self.id}, name={self.name})>"
