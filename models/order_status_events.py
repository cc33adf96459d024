from core.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from utils.lifecycle import utcnow

class OrderStatusEvent(Base):
    """Timeline entry. Rows are only ever inserted."""
    __tablename__ = "order_status_events"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    order_pk = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    order = relationship("Order", back_populates="status_timeline")

    status = Column(String, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
