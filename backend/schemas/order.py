from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime

from models.order import OrderStatus
from schemas.product import ProductBrief


# Input line for a new purchase order
class PurchaseOrderItemCreate(BaseModel):
    product_id: int
    quantity_ordered: int = Field(gt=0)
    unit_cost: float = Field(default=0, ge=0)


# Input schema for creating a purchase order
class PurchaseOrderCreate(BaseModel):
    supplier_id: int
    order_number: Optional[str] = Field(None, min_length=1, max_length=100)
    order_date: Optional[datetime] = None
    expected_delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[PurchaseOrderItemCreate] = Field(min_length=1)


class PurchaseOrderItemOut(BaseModel):
    id: int
    purchase_order_id: int
    product_id: int
    quantity_ordered: int
    quantity_received: int
    unit_cost: float
    product: Optional[ProductBrief] = None

    model_config = ConfigDict(from_attributes=True)


class PurchaseOrderOut(BaseModel):
    id: int
    order_number: str
    supplier_id: int
    user_id: int
    status: str
    order_date: Optional[datetime] = None
    expected_delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[PurchaseOrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class PurchaseOrderPage(BaseModel):
    items: List[PurchaseOrderOut]
    total: int
    page: int
    page_size: int


# Input line for a new sales order
class SalesOrderItemCreate(BaseModel):
    product_id: int
    quantity_ordered: int = Field(gt=0)
    unit_price: float = Field(default=0, ge=0)


# Input schema for creating a sales order
class SalesOrderCreate(BaseModel):
    customer_id: Optional[int] = None
    customer_ref: Optional[str] = None
    order_number: Optional[str] = Field(None, min_length=1, max_length=100)
    order_date: Optional[datetime] = None
    shipping_date: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[SalesOrderItemCreate] = Field(min_length=1)


class SalesOrderItemOut(BaseModel):
    id: int
    sales_order_id: int
    product_id: int
    quantity_ordered: int
    quantity_shipped: int
    unit_price: float
    product: Optional[ProductBrief] = None

    model_config = ConfigDict(from_attributes=True)


class SalesOrderOut(BaseModel):
    id: int
    order_number: str
    customer_id: Optional[int] = None
    customer_ref: Optional[str] = None
    user_id: int
    status: str
    order_date: Optional[datetime] = None
    shipping_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[SalesOrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class SalesOrderPage(BaseModel):
    items: List[SalesOrderOut]
    total: int
    page: int
    page_size: int


# Schema for manual order status changes
class OrderStatusPatch(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None
    shipping_date: Optional[datetime] = None  # sales orders only


# Receive (purchase) or ship (sales) part of one order line
class FulfillItemPayload(BaseModel):
    quantity: int = Field(gt=0)
    location_id: int
    notes: Optional[str] = None
