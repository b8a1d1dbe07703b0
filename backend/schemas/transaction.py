# backend/schemas/transaction.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal

from schemas.product import ProductBrief

# Manual adjustment types accepted by the API
AdjustmentType = Literal["ADJUSTMENT_IN", "ADJUSTMENT_OUT"]

# Schema for a manual stock correction
class AdjustmentCreate(BaseModel):
    product_id: int
    location_id: int
    quantity: int = Field(gt=0)
    type: AdjustmentType
    notes: Optional[str] = None

# Schema for moving stock between two locations
class TransferCreate(BaseModel):
    product_id: int
    source_location_id: int
    destination_location_id: int
    quantity: int = Field(gt=0)
    notes: Optional[str] = None

# Ledger entry as returned by the API
class TransactionOut(BaseModel):
    id: int
    type: str
    product_id: int
    quantity_change: int
    source_location_id: Optional[int] = None
    destination_location_id: Optional[int] = None
    user_id: int
    related_po_id: Optional[int] = None
    related_so_id: Optional[int] = None
    transfer_group: Optional[str] = None
    notes: Optional[str] = None
    timestamp: datetime
    product: Optional[ProductBrief] = None

    model_config = ConfigDict(from_attributes=True)

# Both ledger rows written by one transfer
class TransferOut(BaseModel):
    transfer_group: str
    out_transaction: TransactionOut
    in_transaction: TransactionOut

# Paginated response for ledger history
class TransactionPage(BaseModel):
    items: List[TransactionOut]
    total: int
    page: int
    page_size: int
