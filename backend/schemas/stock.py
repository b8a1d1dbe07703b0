# backend/schemas/stock.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional

from schemas.product import ProductBrief
from schemas.location import LocationBrief

# Current balance of one product at one location
class StockLevelOut(BaseModel):
    id: int
    product_id: int
    location_id: int
    quantity: int
    last_updated: Optional[datetime] = None
    product: ProductBrief
    location: LocationBrief

    model_config = ConfigDict(from_attributes=True)

# Paginated response for stock level listings
class StockLevelPage(BaseModel):
    items: List[StockLevelOut]
    total: int
    page: int
    page_size: int
