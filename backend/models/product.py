# backend/models/product.py
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, CheckConstraint, func
from database import Base

# Model Product
# Catalogue entry tracked by the stock ledger. Quantities are not stored here:
# on-hand stock lives per location in StockLevel.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    unit = Column(String, nullable=False, default="pcs")

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)

    # 0 disables low-stock detection for this product
    reorder_level = Column(Integer, CheckConstraint("reorder_level >= 0"), nullable=False, default=0)

    cost_price = Column(Float, CheckConstraint("cost_price >= 0"), nullable=False, default=0)
    selling_price = Column(Float, CheckConstraint("selling_price >= 0"), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
