# backend/models/notification.py
import enum
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, func
from database import Base

class NotificationType(str, enum.Enum):
    LOW_STOCK = "LOW_STOCK"
    ORDER_STATUS_UPDATE = "ORDER_STATUS_UPDATE"
    GENERAL = "GENERAL"

# In-app message addressed to a single user
class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    message = Column(String, nullable=False)
    type = Column(String(30), nullable=False, default=NotificationType.GENERAL.value)

    related_entity_id = Column(String(50), nullable=True)
    related_entity_type = Column(String(50), nullable=True)

    is_read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
