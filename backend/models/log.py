from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from database import Base

# Side audit trail of mutating operations, separate from the stock ledger
class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Event timestamp and core action details
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(50), index=True)
    entity = Column(String(50), index=True)
    entity_id = Column(String(100), nullable=True, index=True)
    status = Column(String(20), index=True, default="SUCCESS")
    ip = Column(String(64), nullable=True)

    # JSON container for flexible context data
    details = Column(JSON, nullable=True)

    # Relationship to the acting user
    user = relationship("User", lazy="joined", uselist=False)
