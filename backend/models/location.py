# backend/models/location.py
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base

# A physical or logical storage point (warehouse, shelf, store room)
class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    address = Column(String, nullable=True)
    description = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
