from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List


class LocationBase(BaseModel):
    name: str = Field(min_length=1)
    address: Optional[str] = None
    description: Optional[str] = None


class LocationCreate(LocationBase):
    pass


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    description: Optional[str] = None


class LocationOut(LocationBase):
    id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LocationBrief(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class LocationPage(BaseModel):
    items: List[LocationOut]
    total: int
    page: int
    page_size: int
