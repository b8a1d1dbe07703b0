# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Shared base attributes for product entities
class ProductBase(ORMBase):
    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1)
    description: Optional[str] = None
    unit: str = "pcs"
    category_id: Optional[int] = None
    reorder_level: int = Field(default=0, ge=0)
    cost_price: float = Field(default=0, ge=0)
    selling_price: float = Field(default=0, ge=0)


# Schema for creating a new product
class ProductCreate(ProductBase):
    pass


# Schema for partial product updates
class ProductUpdate(ORMBase):
    """Schema for PATCH requests - all fields optional."""
    sku: Optional[str] = Field(None, min_length=1, max_length=64)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    unit: Optional[str] = None
    category_id: Optional[int] = None
    reorder_level: Optional[int] = Field(None, ge=0)
    cost_price: Optional[float] = Field(None, ge=0)
    selling_price: Optional[float] = Field(None, ge=0)


# Full product representation including ID
class ProductOut(ProductBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Compact form embedded in stock, ledger and order responses
class ProductBrief(ORMBase):
    id: int
    sku: str
    name: str
    reorder_level: int


# Paginated response for product listings
class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int
