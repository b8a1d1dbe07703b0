# backend/models/transaction.py
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Index, func
from sqlalchemy.orm import relationship
from database import Base

# Reason a stock quantity changed
class TransactionType(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    ADJUSTMENT_IN = "ADJUSTMENT_IN"
    ADJUSTMENT_OUT = "ADJUSTMENT_OUT"
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"

# Append-only ledger entry. Rows are written once and never updated or deleted.
class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(20), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    # Signed: positive for inbound, negative for outbound
    quantity_change = Column(Integer, nullable=False)

    source_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True, index=True)
    destination_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    related_po_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=True, index=True)
    related_so_id = Column(Integer, ForeignKey("sales_orders.id"), nullable=True, index=True)

    # Shared by the TRANSFER_OUT/TRANSFER_IN pair of one transfer
    transfer_group = Column(String(36), nullable=True, index=True)

    notes = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    product = relationship("Product", lazy="joined")
    source_location = relationship("Location", foreign_keys=[source_location_id])
    destination_location = relationship("Location", foreign_keys=[destination_location_id])
    user = relationship("User")

    __table_args__ = (
        Index("ix_transactions_product_timestamp", "product_id", "timestamp"),
    )
