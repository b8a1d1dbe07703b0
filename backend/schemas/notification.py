from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime


class NotificationOut(BaseModel):
    id: int
    message: str
    type: str
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationPage(BaseModel):
    items: List[NotificationOut]
    total: int
    page: int
    page_size: int
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int
