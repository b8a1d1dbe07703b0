# backend/models/customer.py
from sqlalchemy import Column, Integer, String
from database import Base

# Buyer optionally referenced by sales orders
class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
