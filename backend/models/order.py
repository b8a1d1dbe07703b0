# backend/models/order.py
import enum
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Text, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Lifecycle shared by purchase and sales orders.
# RECEIVED applies to purchase orders, SHIPPED to sales orders.
class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PROCESSING = "PROCESSING"
    PARTIAL = "PARTIAL"
    RECEIVED = "RECEIVED"
    SHIPPED = "SHIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Header of an inbound order placed with a supplier
class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(100), unique=True, nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)  # creator
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)

    order_date = Column(DateTime(timezone=True), server_default=func.now())
    expected_delivery_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("PurchaseOrderItem", cascade="all, delete-orphan", order_by="PurchaseOrderItem.id")


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    quantity_ordered = Column(Integer, CheckConstraint("quantity_ordered > 0"), nullable=False)
    # Only ever incremented, bounded by quantity_ordered
    quantity_received = Column(Integer, nullable=False, default=0)
    unit_cost = Column(Float, CheckConstraint("unit_cost >= 0"), nullable=False, default=0)

    product = relationship("Product", lazy="joined")

    __table_args__ = (
        CheckConstraint("quantity_received >= 0 AND quantity_received <= quantity_ordered",
                        name="ck_po_item_received_bounds"),
    )


# Header of an outbound order shipped to a customer
class SalesOrder(Base):
    __tablename__ = "sales_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(100), unique=True, nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    customer_ref = Column(String(255), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)  # creator
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)

    order_date = Column(DateTime(timezone=True), server_default=func.now())
    shipping_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship("SalesOrderItem", cascade="all, delete-orphan", order_by="SalesOrderItem.id")


class SalesOrderItem(Base):
    __tablename__ = "sales_order_items"

    id = Column(Integer, primary_key=True, index=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    quantity_ordered = Column(Integer, CheckConstraint("quantity_ordered > 0"), nullable=False)
    # Only ever incremented, bounded by quantity_ordered
    quantity_shipped = Column(Integer, nullable=False, default=0)
    unit_price = Column(Float, CheckConstraint("unit_price >= 0"), nullable=False, default=0)

    product = relationship("Product", lazy="joined")

    __table_args__ = (
        CheckConstraint("quantity_shipped >= 0 AND quantity_shipped <= quantity_ordered",
                        name="ck_so_item_shipped_bounds"),
    )
